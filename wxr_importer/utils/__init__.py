"""
Utility helpers used by the importer.

This subpackage exposes the leveled logger, the JSON Lines reports and
the post mapping CSV generation.
"""

from .errors import ERRORS, report_error, report_ok
from .logger import ImportLogger
from .mapping import generate_mapping_csv

__all__ = ["ERRORS", "ImportLogger", "generate_mapping_csv", "report_error", "report_ok"]
