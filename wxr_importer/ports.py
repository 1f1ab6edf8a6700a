"""Contracts the importer drives: cursor, extractor and content store."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Callable, Protocol, runtime_checkable

from wxr_importer.config import RunConfig
from wxr_importer.models import ParsedAuthor, ParsedPost, ParsedTerm
from wxr_importer.results import Result
from wxr_importer.state import ImportSession


@runtime_checkable
class DocumentCursor(Protocol):
    def read(self) -> bool: ...

    def is_element_open(self) -> bool: ...

    def element_name(self) -> str: ...

    def expand(self) -> ET.Element: ...

    def read_string(self) -> str: ...

    def skip_to_next_sibling(self) -> None: ...

    def close(self) -> None: ...


CursorFactory = Callable[[Any], Result[DocumentCursor]]


class EntityExtractor(Protocol):
    def extract(self, kind: str, node: ET.Element) -> Result[Any]:
        """Turn an expanded node of ``kind`` into a typed payload or a failure."""
        ...


class EntityProcessor(Protocol):
    def process_author(self, author: ParsedAuthor, session: ImportSession) -> Result[Any]: ...

    def process_term(self, term: ParsedTerm, session: ImportSession) -> Result[Any]: ...

    def process_post(self, post: ParsedPost, session: ImportSession) -> Result[Any]: ...


class ContentStore(EntityProcessor, Protocol):
    """Processor plus the lifecycle and post-processing hooks of a run."""

    def begin_import(self, source: Any, run_config: RunConfig) -> Result[Any]: ...

    def abort_import(self) -> None: ...

    def end_import(self) -> None: ...

    def post_process(self) -> None: ...

    def rewrite_urls_in_content(self) -> None: ...

    def remap_featured_images(self) -> None: ...
