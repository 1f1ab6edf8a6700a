"""
Forward-only cursor over a WXR document.

:class:`XmlCursor` wraps :func:`xml.etree.ElementTree.iterparse` and
presents it as a pull reader: ``read()`` moves to the next node, the
current node can be expanded into a complete subtree, and
``skip_to_next_sibling()`` jumps past it.  Subtrees are detached from
their parent once the cursor has moved past them, so memory stays bounded
by the largest single record rather than by the size of the export.

Element names are reported with the prefix the document declared for
their namespace (``wp:author``, ``content:encoded``), which is also how
tags are rewritten inside expanded subtrees.
"""

from __future__ import annotations

import os
import xml.etree.ElementTree as ET
from typing import IO, Dict, List, Optional, Tuple, Union

from wxr_importer.results import Failure, FailureKind, Ok, Result

Source = Union[str, "os.PathLike[str]", IO[bytes]]


class CursorError(Exception):
    """Raised when the document turns out to be unreadable mid-scan."""


class XmlCursor:
    def __init__(self, stream: IO[bytes], *, owns_stream: bool = False) -> None:
        self._stream = stream
        self._owns_stream = owns_stream
        self._events = ET.iterparse(stream, events=("start-ns", "start", "end"))
        self._prefixes: Dict[str, str] = {}
        # elements whose start has been seen but not their end
        self._open: List[ET.Element] = []
        self._event: Optional[str] = None
        self._elem: Optional[ET.Element] = None
        self._expanded = False
        self._closed = False
        self.error: Optional[ET.ParseError] = None

    def __enter__(self) -> "XmlCursor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    def _pull(self) -> Optional[Tuple[str, object]]:
        try:
            return next(self._events)
        except StopIteration:
            return None
        except ET.ParseError as exc:
            self.error = exc
            return None

    def _track(self, event: str, payload) -> None:
        if event == "start-ns":
            prefix, uri = payload
            self._prefixes[uri] = prefix
        elif event == "start":
            self._open.append(payload)
        elif event == "end":
            self._open.pop()

    def _release(self, elem: ET.Element) -> None:
        elem.clear()
        if self._open:
            try:
                self._open[-1].remove(elem)
            except ValueError:
                pass

    def qualify(self, tag: str) -> str:
        """Turn ``{uri}local`` into ``prefix:local`` using the declared prefixes."""
        if not tag.startswith("{"):
            return tag
        uri, local = tag[1:].split("}", 1)
        prefix = self._prefixes.get(uri)
        return f"{prefix}:{local}" if prefix else local

    # ------------------------------------------------------------------
    def read(self) -> bool:
        """Advance to the next node.  ``False`` at end of document or on a parse error."""
        if self._closed or self.error is not None:
            return False
        # elements the caller moved through without skipping are released here
        if self._elem is not None and (self._event == "end" or self._expanded):
            self._release(self._elem)
        item = self._pull()
        if item is None:
            self._event, self._elem = None, None
            return False
        event, payload = item
        self._track(event, payload)
        self._event = event
        self._elem = payload if event in ("start", "end") else None
        self._expanded = False
        return True

    def is_element_open(self) -> bool:
        return self._event == "start" and not self._expanded

    def element_name(self) -> str:
        if self._elem is None:
            return ""
        return self.qualify(self._elem.tag)

    def expand(self) -> ET.Element:
        """Materialize the current element and its whole subtree."""
        if self._event != "start" or self._elem is None:
            raise CursorError("expand() called while not positioned on an element open")
        elem = self._elem
        if self._expanded:
            return elem
        while True:
            item = self._pull()
            if item is None:
                raise CursorError(
                    f"Document ended inside <{self.qualify(elem.tag)}>: {self.error or 'unexpected end'}"
                )
            event, payload = item
            self._track(event, payload)
            if event == "end" and payload is elem:
                break
        for child in elem.iter():
            if isinstance(child.tag, str):
                child.tag = self.qualify(child.tag)
        self._expanded = True
        return elem

    def read_string(self) -> str:
        """Text content of the current element, descendants included."""
        return "".join(self.expand().itertext())

    def skip_to_next_sibling(self) -> None:
        """Move past the current element's subtree, expanded or not."""
        if self._event != "start" or self._elem is None:
            return
        elem = self._elem
        if not self._expanded:
            self.expand()
        self._release(elem)
        self._event, self._elem, self._expanded = "end", None, False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._open.clear()
        self._elem = None
        if self._owns_stream:
            self._stream.close()


def open_xml_cursor(source: Source) -> Result[XmlCursor]:
    """Open a cursor over ``source`` (a path or a binary file object)."""
    if hasattr(source, "read"):
        return Ok(XmlCursor(source))  # type: ignore[arg-type]
    try:
        stream = open(source, "rb")
    except OSError as exc:
        return Failure(
            FailureKind.CURSOR_UNAVAILABLE,
            "Could not open the XML file for parsing!",
            {"source": os.fspath(source), "error": str(exc)},
        )
    return Ok(XmlCursor(stream, owns_stream=True))
