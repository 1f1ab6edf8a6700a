"""
Content detection: which kinds of records does an export contain?

The scan reads the whole document but never reaches a store.  Authors and
items are only extracted until the first one parses; taxonomy elements
count on sight.  Each call opens and closes its own cursor, so scanning is
safe to repeat.
"""

from __future__ import annotations

from typing import Dict, Union

from wxr_importer.dispatch import safe_extract
from wxr_importer.ports import CursorFactory, EntityExtractor
from wxr_importer.readers import CursorError
from wxr_importer.results import Failure
from wxr_importer.state import CONTENT_KINDS, DetectionResult
from wxr_importer.utils.logger import ImportLogger

# element name -> (flag, extractor kind)
_EXTRACTED = {
    "wp:author": ("users", "author"),
    "item": ("posts", "post"),
}

_ON_SIGHT = {
    "wp:category": "categories",
    "wp:tag": "tags",
    "wp:term": "terms",
}


class DetectionScanner:
    def __init__(self, extractor: EntityExtractor, cursor_factory: CursorFactory, logger: ImportLogger) -> None:
        self.extractor = extractor
        self.cursor_factory = cursor_factory
        self.logger = logger

    def detect_contents(self, source) -> Union[DetectionResult, Failure]:
        opened = self.cursor_factory(source)
        if not opened.ok:
            self.logger.error(opened.describe())
            return opened

        found: Dict[str, bool] = dict.fromkeys(CONTENT_KINDS, False)
        cursor = opened.value
        try:
            while cursor.read():
                if not cursor.is_element_open():
                    continue
                name = cursor.element_name()
                if name in _EXTRACTED:
                    flag, kind = _EXTRACTED[name]
                    if not found[flag]:
                        # a malformed record does not settle anything; keep looking
                        parsed = safe_extract(self.extractor, kind, cursor.expand())
                        found[flag] = parsed.ok
                    cursor.skip_to_next_sibling()
                elif name in _ON_SIGHT:
                    found[_ON_SIGHT[name]] = True
                    cursor.skip_to_next_sibling()
        except CursorError as e:
            self.logger.error(f"Stopped reading the export file: {e}")
        finally:
            cursor.close()

        return DetectionResult(**found)
