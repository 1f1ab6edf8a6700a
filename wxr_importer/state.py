"""Per-run values: detection results, import options and the import session."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Mapping, Optional

CONTENT_KINDS = ("users", "categories", "tags", "terms", "posts")


@dataclass(frozen=True)
class DetectionResult:
    users: bool = False
    categories: bool = False
    tags: bool = False
    terms: bool = False
    posts: bool = False

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass(frozen=True)
class ImportOptions:
    users: bool = False
    categories: bool = True
    tags: bool = True
    terms: bool = True
    posts: bool = True

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, object]] = None) -> "ImportOptions":
        """Defaults when ``options`` is empty; otherwise unnamed kinds are off."""
        if isinstance(options, ImportOptions):
            return options
        if not options:
            return cls()
        return cls(**{kind: bool(options.get(kind)) for kind in CONTENT_KINDS})

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass
class ImportSession:
    """Mutable state of one import run, written only by the dispatch engine."""

    version: str = "1.0"
    base_url: str = ""
