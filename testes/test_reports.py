import json
import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pandas as pd

from wxr_importer.utils import ImportLogger, generate_mapping_csv, report_error, report_ok


def _lines(path):
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f]


def test_report_error_appends_json_lines(tmp_path):
    report_error("EXTRACTION_FAILED", {"post_id": 3}, ValueError("bad id"), report_dir=str(tmp_path))
    entry = report_error("CUSTOM_CODE", {"slug": "x"}, report_dir=str(tmp_path))
    assert entry == {"code": "CUSTOM_CODE", "message": "CUSTOM_CODE", "slug": "x"}
    assert _lines(tmp_path / "errors.jsonl") == [
        {"code": "EXTRACTION_FAILED", "message": "Record could not be parsed", "post_id": 3, "error": "bad id"},
        {"code": "CUSTOM_CODE", "message": "CUSTOM_CODE", "slug": "x"},
    ]


def test_report_ok_merges_extra(tmp_path):
    report_ok("TERM_IMPORTED", {"slug": "news"}, {"new_id": 4}, report_dir=str(tmp_path / "nested"))
    assert _lines(tmp_path / "nested" / "success.jsonl") == [
        {"code": "TERM_IMPORTED", "message": "Term imported", "slug": "news", "new_id": 4}
    ]


def test_logger_prints_and_appends_above_min_level(tmp_path, capsys):
    log_file = tmp_path / "logs" / "import.log"
    logger = ImportLogger(str(log_file), min_level="notice")
    logger.info("hidden")
    logger.notice("skipping attachment")
    logger.error("boom")

    out = capsys.readouterr().out
    assert "[INFO] hidden" not in out
    assert "[NOTICE] skipping attachment" in out
    assert "[ERROR] boom" in out
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[0].endswith("NOTICE: skipping attachment")


def test_mapping_csv_urls(tmp_path):
    mapping = pd.DataFrame(
        [
            {"original_id": 1, "new_id": 5, "post_type": "post", "post_name": "hello", "link": "https://old/hello/", "guid": "https://old/?p=1"},
            {"original_id": 2, "new_id": 7, "post_type": "page", "post_name": None, "link": None, "guid": "https://old/?p=2"},
            {"original_id": 3, "new_id": 9, "post_type": "attachment", "post_name": "pic", "link": "https://old/pic/", "guid": "/uploads/pic.jpg"},
        ]
    )
    out = generate_mapping_csv(mapping, new_base="https://new.example.com/", out_path=str(tmp_path / "out" / "map.csv"))
    df = pd.read_csv(out)
    assert list(df.columns) == ["original_id", "new_id", "post_type", "OldURL", "NewURL"]
    assert df["OldURL"].tolist() == ["https://old/hello/", "https://old/?p=2", "https://old/pic/"]
    assert df["NewURL"].tolist() == ["https://new.example.com/hello", "https://new.example.com/7", "/uploads/pic.jpg"]
