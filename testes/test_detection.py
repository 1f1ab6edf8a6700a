import io
import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from wxr_importer.detection import DetectionScanner
from wxr_importer.extractors import WXRExtractor
from wxr_importer.importer import WXRImporter
from wxr_importer.readers import open_xml_cursor
from wxr_importer.results import Failure, FailureKind
from wxr_importer.state import DetectionResult
from wxr_importer.utils.logger import ImportLogger

SAMPLE = os.path.join(os.path.dirname(__file__), "data", "sample_wxr.xml")

WRAP = (
    '<rss xmlns:wp="http://wordpress.org/export/1.2/" xmlns:dc="http://purl.org/dc/elements/1.1/">'
    "<channel>{}</channel></rss>"
)
VALID_ITEM = "<item><title>Ok {n}</title><wp:post_id>{n}</wp:post_id></item>"
BROKEN_ITEM = "<item><title>Broken</title><wp:post_id>nope</wp:post_id></item>"


class SpyExtractor(WXRExtractor):
    def __init__(self):
        self.calls = []

    def extract(self, kind, node):
        self.calls.append(kind)
        return super().extract(kind, node)


def _doc(body):
    return io.BytesIO(WRAP.format(body).encode("utf-8"))


def _scanner(extractor=None):
    return DetectionScanner(extractor or SpyExtractor(), open_xml_cursor, ImportLogger(min_level="ERROR"))


def test_document_without_known_elements_detects_nothing():
    result = _scanner().detect_contents(_doc("<title>Empty</title><link>https://example.com</link>"))
    assert result == DetectionResult()
    assert not any(result.as_dict().values())


def test_posts_are_extracted_only_until_the_first_success():
    spy = SpyExtractor()
    body = "".join(VALID_ITEM.format(n=n) for n in (1, 2, 3))
    result = _scanner(spy).detect_contents(_doc(body))
    assert result.posts is True
    assert spy.calls == ["post"]


def test_malformed_first_post_does_not_stop_detection():
    spy = SpyExtractor()
    result = _scanner(spy).detect_contents(_doc(BROKEN_ITEM + VALID_ITEM.format(n=2)))
    assert result.posts is True
    assert spy.calls == ["post", "post"]


def test_only_malformed_posts_detect_no_posts():
    result = _scanner().detect_contents(_doc(BROKEN_ITEM))
    assert result.posts is False


def test_taxonomies_are_flagged_on_sight_without_extraction():
    spy = SpyExtractor()
    body = "<wp:category><wp:cat_name>x</wp:cat_name></wp:category><wp:term></wp:term>"
    result = _scanner(spy).detect_contents(_doc(body))
    assert result.categories is True
    assert result.terms is True
    assert result.tags is False
    assert spy.calls == []


def test_sample_export_contains_every_kind():
    result = _scanner().detect_contents(SAMPLE)
    assert result.as_dict() == {
        "users": True,
        "categories": True,
        "tags": True,
        "terms": True,
        "posts": True,
    }


def test_detection_can_be_repeated_on_the_same_path():
    scanner = _scanner()
    assert scanner.detect_contents(SAMPLE) == scanner.detect_contents(SAMPLE)


def test_unopenable_source_returns_the_failure(tmp_path):
    result = _scanner().detect_contents(str(tmp_path / "missing.xml"))
    assert isinstance(result, Failure)
    assert result.kind is FailureKind.CURSOR_UNAVAILABLE


def test_importer_detection_never_touches_the_store():
    importer = WXRImporter(store=None, config={"reports": {"dir": None}})
    result = importer.detect_contents(SAMPLE)
    assert result.users and result.posts


def _counting_scanner(closes):
    def factory(source):
        opened = open_xml_cursor(source)
        if opened.ok:
            real_close = opened.value.close

            def close():
                closes.append(source)
                real_close()

            opened.value.close = close
        return opened

    return DetectionScanner(SpyExtractor(), factory, ImportLogger(min_level="CRITICAL"))


def test_scanner_closes_its_cursor_once():
    closes = []
    result = _counting_scanner(closes).detect_contents(_doc(VALID_ITEM.format(n=1)))
    assert result.posts is True
    assert len(closes) == 1


def test_scanner_closes_its_cursor_once_on_a_read_error():
    closes = []
    doc = io.BytesIO(
        b'<rss xmlns:wp="http://wordpress.org/export/1.2/"><channel>'
        b"<wp:category><wp:cat_name>x</wp:cat_name></wp:category>"
        b"<item><title>B</title>"
    )
    result = _counting_scanner(closes).detect_contents(doc)
    assert result.categories is True
    assert len(closes) == 1
