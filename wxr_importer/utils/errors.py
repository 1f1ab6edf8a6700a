"""
Structured reports for import failures and successes.

The :mod:`wxr_importer.utils.errors` module centralizes the writing of
report entries for both failed and imported records.  Each entry is
appended to a JSON Lines file under the reports directory (by default
``reports/import``) so that the outcome of a run can be reviewed or parsed
afterwards.

Two public functions are provided:

``report_error``
    Record a failure for a record.  An optional exception can be supplied
    and will be serialized to the report.

``report_ok``
    Record a successfully imported record.  Additional key/value
    information can be attached via the ``extra`` parameter.

The ``ERRORS`` dictionary maps event codes to human readable messages.
Codes not present in the dictionary fall back to the code itself.
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

# Mapping of event codes used by the importer to descriptive messages.  The
# same lookup serves :func:`report_error` and :func:`report_ok`.
ERRORS: Dict[str, str] = {
    "CURSOR_UNAVAILABLE": "Could not open the export file for reading",
    "IMPORT_START_FAILED": "Content import start error",
    "EXTRACTION_FAILED": "Record could not be parsed",
    "PROCESSING_FAILED": "Record could not be imported",
    "VERSION_TOO_NEW": "Export file is newer than the importer",
    "READ_ERROR": "Export file could not be read to the end",
    "PHASE_FAILED": "Import phase raised an error",
    "AUTHOR_IMPORTED": "Author imported",
    "TERM_IMPORTED": "Term imported",
    "POST_IMPORTED": "Post imported",
}

REPORT_DIR = os.path.join("reports", "import")
ERROR_LOG = "errors.jsonl"
OK_LOG = "success.jsonl"


def _write_jsonl(path: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``path``."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, default=str)
        f.write("\n")


def report_error(
    code: str,
    record: Dict[str, Any],
    exc: Optional[BaseException] = None,
    *,
    report_dir: str = REPORT_DIR,
) -> Dict[str, Any]:
    """Write an error entry for ``record``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    record:
        Identifying context of the offending record (post id, login, slug,
        source file...).  Merged as-is into the entry.
    exc:
        Optional exception instance that triggered the error.

    Returns the entry that was written.
    """
    entry: Dict[str, Any] = {"code": code, "message": ERRORS.get(code, code)}
    entry.update(record)
    if exc is not None:
        entry["error"] = str(exc)
    _write_jsonl(os.path.join(report_dir, ERROR_LOG), entry)
    return entry


def report_ok(
    code: str,
    record: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None,
    *,
    report_dir: str = REPORT_DIR,
) -> Dict[str, Any]:
    """Write a success entry for ``record``, merging ``extra`` when given."""
    entry: Dict[str, Any] = {"code": code, "message": ERRORS.get(code, code)}
    entry.update(record)
    if extra:
        entry.update(extra)
    _write_jsonl(os.path.join(report_dir, OK_LOG), entry)
    return entry
