import json
import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wxr_importer.config import DEFAULT_EXCLUDED_META_KEYS, RunConfig, load_config
from wxr_importer.state import ImportOptions


def test_defaults_fill_every_section(monkeypatch):
    monkeypatch.delenv("WXR_IMPORT_DB", raising=False)
    monkeypatch.delenv("WXR_UPLOADS_URL", raising=False)
    config = load_config()
    assert config["importer"]["aggressive_url_search"] is False
    assert config["importer"]["fetch_attachments"] is False
    assert config["importer"]["http_timeout"] == 60
    assert config["importer"]["excluded_meta_keys"] == list(DEFAULT_EXCLUDED_META_KEYS)
    assert config["store"]["database"] == "data/import.duckdb"
    assert config["store"]["uploads_url"] == "/uploads"
    assert config["reports"]["log_level"] == "INFO"


def test_environment_overrides_store_locations(monkeypatch):
    monkeypatch.setenv("WXR_IMPORT_DB", ":memory:")
    monkeypatch.setenv("WXR_UPLOADS_URL", "https://cdn.example.com/uploads")
    config = load_config({})
    assert config["store"]["database"] == ":memory:"
    assert config["store"]["uploads_url"] == "https://cdn.example.com/uploads"


def test_config_file_values_win_over_defaults(tmp_path):
    path = tmp_path / "import_config.json"
    path.write_text(json.dumps({"importer": {"aggressive_url_search": True, "http_timeout": 5}}), encoding="utf-8")
    config = load_config(config_file=str(path))
    assert config["importer"]["aggressive_url_search"] is True
    assert config["importer"]["http_timeout"] == 5
    assert config["importer"]["fetch_attachments"] is False


def test_missing_config_file_falls_back_to_the_dict(tmp_path):
    config = load_config({"importer": {"fetch_attachments": True}}, config_file=str(tmp_path / "nope.json"))
    assert config["importer"]["fetch_attachments"] is True


def test_run_config_meta_filter():
    run = RunConfig.from_dict(load_config({})["importer"])
    assert run.meta_key_filter("_thumbnail_id") is True
    for key in ("_wp_attached_file", "_wp_attachment_metadata", "_edit_lock", ""):
        assert run.meta_key_filter(key) is False

    custom = RunConfig.from_dict({"excluded_meta_keys": ["_private"], "default_author": "7"})
    assert custom.meta_key_filter("_edit_lock") is True
    assert custom.meta_key_filter("_private") is False
    assert custom.default_author == 7


def test_import_options_defaults_and_literal_mappings():
    assert ImportOptions.from_mapping(None).as_dict() == {
        "users": False,
        "categories": True,
        "tags": True,
        "terms": True,
        "posts": True,
    }
    assert ImportOptions.from_mapping({}) == ImportOptions()
    partial = ImportOptions.from_mapping({"posts": True, "unknown": True})
    assert partial.posts is True
    assert partial.categories is False
    assert partial.users is False
    options = ImportOptions(users=True)
    assert ImportOptions.from_mapping(options) is options
