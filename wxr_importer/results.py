"""
Result values returned across the extraction and processing boundaries.

Every extractor and store call hands back either an :class:`Ok` wrapping
its payload or a :class:`Failure` describing what went wrong.  Callers
check ``result.ok`` instead of catching exceptions, so one bad record
never interrupts the scan loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    CURSOR_UNAVAILABLE = "CURSOR_UNAVAILABLE"
    IMPORT_START_FAILED = "IMPORT_START_FAILED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    PROCESSING_FAILED = "PROCESSING_FAILED"
    VERSION_TOO_NEW = "VERSION_TOO_NEW"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: Optional[T] = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """A structured, non-raising failure.

    ``context`` identifies the offending record (post id, author login,
    term slug, file path...) so log entries can point back at it.
    """

    kind: FailureKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    def describe(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


Result = Union[Ok[T], Failure]


def extraction_failure(message: str, **context: Any) -> Failure:
    return Failure(FailureKind.EXTRACTION_FAILED, message, dict(context))


def processing_failure(message: str, **context: Any) -> Failure:
    return Failure(FailureKind.PROCESSING_FAILED, message, dict(context))
