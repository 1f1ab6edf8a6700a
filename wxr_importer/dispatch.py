"""
The scan loop of an import run.

:class:`DispatchEngine` walks an open cursor once, from the first node to
the end of the document, and routes every element open through a table
keyed by element name.  Records are extracted and handed to the store one
at a time, in document order.  A record that fails to parse or to persist
is logged and reported, and the scan moves on: nothing a single node does
can stop the run.
"""

from __future__ import annotations

import re
from collections import Counter
from functools import partial
from typing import Any, Callable, Dict, Optional, Tuple

from wxr_importer.ports import DocumentCursor, EntityExtractor, EntityProcessor
from wxr_importer.readers import CursorError
from wxr_importer.results import Failure, FailureKind, Result, extraction_failure, processing_failure
from wxr_importer.state import ImportOptions, ImportSession
from wxr_importer.utils.errors import report_error, report_ok
from wxr_importer.utils.logger import ImportLogger

MAX_WXR_VERSION = "1.2"

Handler = Callable[[DocumentCursor, ImportOptions, ImportSession], None]


def version_tuple(version: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in re.findall(r"\d+", version or ""))


def is_newer_version(version: str, maximum: str = MAX_WXR_VERSION) -> bool:
    """``True`` when ``version`` sorts after ``maximum`` (``"1.10" > "1.2"``)."""
    current, limit = list(version_tuple(version)), list(version_tuple(maximum))
    width = max(len(current), len(limit))
    current += [0] * (width - len(current))
    limit += [0] * (width - len(limit))
    return current > limit


_REPORT_CODES = {
    "process_author": "AUTHOR_IMPORTED",
    "process_term": "TERM_IMPORTED",
    "process_post": "POST_IMPORTED",
}


def describe_record(kind: str, payload: Any) -> Dict[str, Any]:
    """Identifying fields of an extracted payload, for report entries."""
    data = getattr(payload, "data", None)
    if kind == "post" and data is not None:
        return {"node": kind, "post_id": data.post_id, "post_type": data.post_type, "title": data.post_title}
    if kind == "author" and data is not None:
        return {"node": kind, "login": data.user_login}
    if data is not None and hasattr(data, "slug"):
        return {"node": kind, "taxonomy": data.taxonomy, "slug": data.slug}
    return {"node": kind}


def safe_extract(extractor: EntityExtractor, kind: str, node) -> Result[Any]:
    """Run the extractor, turning an unexpected exception into a failure."""
    try:
        return extractor.extract(kind, node)
    except Exception as e:
        return extraction_failure(f"Extractor raised {type(e).__name__}: {e}", node=kind)


class DispatchEngine:
    def __init__(
        self,
        extractor: EntityExtractor,
        processor: EntityProcessor,
        logger: ImportLogger,
        *,
        report_dir: Optional[str] = None,
    ) -> None:
        self.extractor = extractor
        self.processor = processor
        self.logger = logger
        self.report_dir = report_dir
        self.counts: Counter = Counter()
        self.handlers: Dict[str, Handler] = {
            "wp:wxr_version": self._handle_version,
            "wp:base_site_url": self._handle_base_url,
            "item": partial(self._handle_record, "post", "posts", "process_post"),
            "wp:author": partial(self._handle_record, "author", "users", "process_author"),
            "wp:category": partial(self._handle_record, "category", "categories", "process_term"),
            "wp:tag": partial(self._handle_record, "tag", "tags", "process_term"),
            "wp:term": partial(self._handle_record, "term", "terms", "process_term"),
        }

    def log_failure(self, failure: Failure) -> None:
        """Log a node-local failure and append it to the error report."""
        self.counts[failure.kind.value] += 1
        self.logger.error(f"{failure.kind.value}: {failure.describe()}")
        if self.report_dir:
            report_error(
                failure.kind.value,
                {"detail": failure.message, **failure.context},
                report_dir=self.report_dir,
            )

    def run(self, cursor: DocumentCursor, options: ImportOptions, session: ImportSession) -> None:
        """Scan ``cursor`` to the end, dispatching every element open."""
        self.counts.clear()
        while cursor.read():
            if not cursor.is_element_open():
                continue
            handler = self.handlers.get(cursor.element_name())
            if handler is None:
                # Containers (rss, channel) and anything unknown: keep reading into it
                continue
            try:
                handler(cursor, options, session)
            except CursorError as e:
                self.logger.critical(f"Stopped reading the export file: {e}")
                break

        error = getattr(cursor, "error", None)
        if error is not None:
            self.counts["READ_ERROR"] += 1
            self.logger.error(f"The export file could not be read to the end: {error}")
            if self.report_dir:
                report_error("READ_ERROR", {"detail": str(error)}, report_dir=self.report_dir)

    # ------------------------------------------------------------------
    def _handle_version(self, cursor: DocumentCursor, options: ImportOptions, session: ImportSession) -> None:
        session.version = cursor.read_string().strip()
        if is_newer_version(session.version, MAX_WXR_VERSION):
            self.counts[FailureKind.VERSION_TOO_NEW.value] += 1
            self.logger.warning(
                f"This WXR file (version {session.version}) is newer than the importer "
                f"(version {MAX_WXR_VERSION}) and may not be supported. Please consider updating."
            )
        cursor.skip_to_next_sibling()

    def _handle_base_url(self, cursor: DocumentCursor, options: ImportOptions, session: ImportSession) -> None:
        session.base_url = cursor.read_string().strip()
        cursor.skip_to_next_sibling()

    def _handle_record(
        self,
        kind: str,
        option: str,
        method: str,
        cursor: DocumentCursor,
        options: ImportOptions,
        session: ImportSession,
    ) -> None:
        if not getattr(options, option):
            cursor.skip_to_next_sibling()
            return

        node = cursor.expand()
        try:
            parsed = safe_extract(self.extractor, kind, node)
            if not parsed.ok:
                self.log_failure(parsed)
                return
            status = self._process(method, parsed.value, session, kind)
            if not status.ok:
                self.log_failure(status)
            elif status.value is None:
                # already present or deliberately left out by the store
                self.counts[f"{option}_skipped"] += 1
            else:
                self.counts[f"{option}_imported"] += 1
                if self.report_dir:
                    report_ok(
                        _REPORT_CODES[method],
                        describe_record(kind, parsed.value),
                        {"new_id": status.value},
                        report_dir=self.report_dir,
                    )
        finally:
            cursor.skip_to_next_sibling()

    def _process(self, method: str, payload: Any, session: ImportSession, kind: str) -> Result[Any]:
        try:
            return getattr(self.processor, method)(payload, session)
        except Exception as e:
            return processing_failure(f"{method} raised {type(e).__name__}: {e}", node=kind)
