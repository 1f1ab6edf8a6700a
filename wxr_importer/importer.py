"""
High-level orchestration of a WXR import.

This module defines the :class:`WXRImporter` class that ties together the
cursor, the extractors and a content store into a complete run.  It
exposes two operations:

* :meth:`WXRImporter.detect_contents` reports which kinds of records an
  export contains, without importing anything.
* :meth:`WXRImporter.import_file` runs the full import: start the store,
  stream every record through the :class:`~wxr_importer.dispatch.DispatchEngine`,
  then run the deferred post-processing phase and close the store.

Configuration is supplied via a JSON file path or directly as a
dictionary (see :mod:`wxr_importer.config`).  No exception escapes
:meth:`import_file`; failures are logged, reported and reflected in its
boolean result only when the run could not complete.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict, Mapping, Optional, Union

from wxr_importer.config import RunConfig, load_config
from wxr_importer.detection import DetectionScanner
from wxr_importer.dispatch import DispatchEngine
from wxr_importer.extractors import WXRExtractor
from wxr_importer.ports import ContentStore, CursorFactory, EntityExtractor
from wxr_importer.readers import open_xml_cursor
from wxr_importer.results import Failure, FailureKind
from wxr_importer.state import DetectionResult, ImportOptions, ImportSession
from wxr_importer.utils.errors import report_error
from wxr_importer.utils.logger import ImportLogger


class WXRImporter:
    """
    Encapsulates everything needed to run imports of WXR exports into a
    content store.  The store, the extractor and the cursor factory are
    injected, so any of them can be swapped (or faked in tests) without
    subclassing.
    """

    def __init__(
        self,
        store: ContentStore,
        config: Optional[Dict[str, Any]] = None,
        *,
        config_file: Optional[str] = None,
        extractor: Optional[EntityExtractor] = None,
        cursor_factory: CursorFactory = open_xml_cursor,
        logger: Optional[ImportLogger] = None,
    ) -> None:
        self.config = load_config(config, config_file=config_file)
        self.run_config = RunConfig.from_dict(self.config["importer"])
        self.report_dir: Optional[str] = self.config["reports"]["dir"]
        self.logger = logger or ImportLogger(
            os.path.join(self.report_dir, "import.log") if self.report_dir else None,
            min_level=self.config["reports"]["log_level"],
        )
        self.store = store
        self.extractor = extractor or WXRExtractor()
        self.cursor_factory = cursor_factory
        self.scanner = DetectionScanner(self.extractor, cursor_factory, self.logger)
        self.engine = DispatchEngine(self.extractor, store, self.logger, report_dir=self.report_dir)
        # state of the latest run, kept for inspection once it returns
        self.session: Optional[ImportSession] = None

    def detect_contents(self, source: Any) -> Union[DetectionResult, Failure]:
        """Which of users/categories/tags/terms/posts does ``source`` contain?"""
        return self.scanner.detect_contents(source)

    def _report(self, code: str, record: Dict[str, Any], exc: Optional[BaseException] = None) -> None:
        if self.report_dir:
            report_error(code, record, exc, report_dir=self.report_dir)

    def _run_phase(self, name: str, hook: Callable[..., Any], *args: Any) -> Any:
        """Call a store hook; an exception is logged and the run carries on."""
        try:
            return hook(*args)
        except Exception as e:
            self.logger.error(f"Import phase '{name}' failed: {e}")
            self._report("PHASE_FAILED", {"phase": name}, e)
            return None

    def import_file(
        self,
        source: Any,
        options: Optional[Mapping[str, Any]] = None,
        *,
        run_config: Optional[RunConfig] = None,
    ) -> bool:
        """
        Import ``source`` into the store.

        :param source: Path of the WXR file (or a binary file object).
        :param options: Which kinds to import (``users``, ``categories``,
            ``tags``, ``terms``, ``posts``).  Empty or omitted means every
            kind except users.
        :param run_config: Overrides the configuration-derived
            :class:`RunConfig` for this run only.
        :return: ``True`` once the run went through to the end, ``False``
            when it could not start.
        """
        run_config = run_config or self.run_config
        source_name = str(getattr(source, "name", source))

        started = self._run_phase("begin_import", self.store.begin_import, source, run_config)
        if started is None or not started.ok:
            reason = started.describe() if isinstance(started, Failure) else "store raised while starting"
            self.logger.error(f"Content import start error: {reason}")
            self._report(FailureKind.IMPORT_START_FAILED.value, {"source": source_name, "detail": reason})
            return False

        options = ImportOptions.from_mapping(options)

        opened = self.cursor_factory(source)
        if not opened.ok:
            self.logger.error(opened.describe())
            self._report(opened.kind.value, {"detail": opened.message, **opened.context})
            self._run_phase("abort_import", self.store.abort_import)
            return False

        self.logger.info(f"Importing {source_name} with options {options.as_dict()}")
        session = self.session = ImportSession()
        cursor = opened.value
        try:
            self.engine.run(cursor, options, session)
        except Exception as e:
            self.logger.critical(f"Unexpected error while scanning {source_name}: {e}")
            self._report("PHASE_FAILED", {"phase": "scan", "source": source_name}, e)
        finally:
            cursor.close()

        # Only now is every record known: cross references can be resolved
        self._run_phase("post_process", self.store.post_process)
        if run_config.aggressive_url_search:
            self._run_phase("rewrite_urls_in_content", self.store.rewrite_urls_in_content)
        self._run_phase("remap_featured_images", self.store.remap_featured_images)
        self._run_phase("end_import", self.store.end_import)

        counts = ", ".join(f"{k}={v}" for k, v in sorted(self.engine.counts.items())) or "nothing"
        self.logger.info(f"Import of {source_name} finished (WXR {session.version}): {counts}")
        return True
