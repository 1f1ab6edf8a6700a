"""
Top-level package for the WordPress WXR import pipeline.

This package bundles the components required to stream a WordPress
eXtended RSS export, report which kinds of content it holds, and import
its authors, terms, posts, comments and attachments into a content store.
Modules are split into subpackages:

* :mod:`wxr_importer.readers` – forward-only cursor over the XML document
* :mod:`wxr_importer.extractors` – turn expanded nodes into typed records
* :mod:`wxr_importer.stores` – the DuckDB content store and media downloads
* :mod:`wxr_importer.utils` – logging, JSON Lines reports and mapping CSV

The scan loop (:mod:`wxr_importer.dispatch`) and the content detection
(:mod:`wxr_importer.detection`) only know the contracts of
:mod:`wxr_importer.ports`; orchestration is handled in
:mod:`wxr_importer.importer`.
"""

from .importer import WXRImporter
from .results import Failure, FailureKind, Ok
from .state import DetectionResult, ImportOptions, ImportSession

__all__ = [
    "DetectionResult",
    "Failure",
    "FailureKind",
    "ImportOptions",
    "ImportSession",
    "Ok",
    "WXRImporter",
]
