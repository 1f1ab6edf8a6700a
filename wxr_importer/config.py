"""
Configuration loading for the importer.

Configuration is supplied via a JSON file path or directly as a
dictionary.  Missing keys are filled with defaults (and environment
variables where a deployment usually overrides them) so the rest of the
code can index the sections without guarding against ``KeyError``.

Only the ``importer`` section influences a run's semantics; it is turned
into a :class:`RunConfig`, which carries the meta-key filter and the HTTP
timeout into the store explicitly.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Optional

CONFIG_FILE = "config/import_config.json"

DEFAULT_EXCLUDED_META_KEYS = ("_wp_attached_file", "_wp_attachment_metadata", "_edit_lock")


def load_config(
    config: Optional[Dict[str, Any]] = None, *, config_file: Optional[str] = None
) -> Dict[str, Any]:
    if config_file and os.path.exists(config_file):
        with open(config_file, "r", encoding="utf-8") as f:
            config = json.load(f)
    elif config is None:
        config = {}

    config.setdefault("importer", {})
    config["importer"].setdefault("aggressive_url_search", False)
    config["importer"].setdefault("fetch_attachments", False)
    config["importer"].setdefault("update_attachment_guids", False)
    config["importer"].setdefault("prefill_existing_posts", True)
    config["importer"].setdefault("prefill_existing_terms", True)
    config["importer"].setdefault("default_author", None)
    config["importer"].setdefault("http_timeout", 60)
    config["importer"].setdefault("max_attachment_size", 0)
    config["importer"].setdefault("excluded_meta_keys", list(DEFAULT_EXCLUDED_META_KEYS))

    config.setdefault("store", {})
    config["store"].setdefault("database", os.getenv("WXR_IMPORT_DB", "data/import.duckdb"))
    config["store"].setdefault("uploads_dir", "data/uploads")
    config["store"].setdefault("uploads_url", os.getenv("WXR_UPLOADS_URL", "/uploads"))

    config.setdefault("reports", {})
    config["reports"].setdefault("dir", os.path.join("reports", "import"))
    config["reports"].setdefault("log_level", "INFO")
    return config


def make_meta_key_filter(excluded: FrozenSet[str]) -> Callable[[str], bool]:
    """Build the predicate deciding whether a post meta key gets imported.

    Attachment metadata is regenerated by the store and ``_edit_lock`` is
    meaningless on another site, hence the default exclusions.
    """

    def is_valid_meta_key(key: str) -> bool:
        return bool(key) and key not in excluded

    return is_valid_meta_key


@dataclass(frozen=True)
class RunConfig:
    aggressive_url_search: bool = False
    fetch_attachments: bool = False
    update_attachment_guids: bool = False
    prefill_existing_posts: bool = True
    prefill_existing_terms: bool = True
    default_author: Optional[int] = None
    http_timeout: float = 60
    max_attachment_size: int = 0
    meta_key_filter: Callable[[str], bool] = field(
        default_factory=lambda: make_meta_key_filter(frozenset(DEFAULT_EXCLUDED_META_KEYS))
    )

    @classmethod
    def from_dict(cls, section: Dict[str, Any]) -> "RunConfig":
        excluded = frozenset(section.get("excluded_meta_keys", DEFAULT_EXCLUDED_META_KEYS))
        default_author = section.get("default_author")
        return cls(
            aggressive_url_search=bool(section.get("aggressive_url_search", False)),
            fetch_attachments=bool(section.get("fetch_attachments", False)),
            update_attachment_guids=bool(section.get("update_attachment_guids", False)),
            prefill_existing_posts=bool(section.get("prefill_existing_posts", True)),
            prefill_existing_terms=bool(section.get("prefill_existing_terms", True)),
            default_author=int(default_author) if default_author is not None else None,
            http_timeout=float(section.get("http_timeout", 60)),
            max_attachment_size=int(section.get("max_attachment_size", 0) or 0),
            meta_key_filter=make_meta_key_filter(excluded),
        )
