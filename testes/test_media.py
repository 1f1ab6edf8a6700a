import os
import sys

# Ensure project root is on sys.path for imports when running tests directly
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
import requests

from wxr_importer.stores import media
from wxr_importer.stores.media import AttachmentError, RateLimiter, fetch_remote_file, with_retries


class FakeResponse:
    def __init__(self, status=200, chunks=(b"data",), headers=None):
        self.status_code = status
        self.chunks = list(chunks)
        self.headers = headers or {}
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def iter_content(self, chunk_size=1):
        return iter(self.chunks)

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        return self.responses.pop(0)


@pytest.fixture(autouse=True)
def no_rate_limit(monkeypatch):
    monkeypatch.setattr(media, "_limiter", RateLimiter(10 ** 6))


def test_rate_limiter_sleeps_for_the_remaining_interval():
    clock = iter([10.0, 10.0, 10.5, 10.5])
    slept = []
    limiter = RateLimiter(60)
    limiter.wait(time_fn=lambda: next(clock), sleep_fn=slept.append)
    limiter.wait(time_fn=lambda: next(clock), sleep_fn=slept.append)
    assert slept == [pytest.approx(0.5)]


def test_with_retries_backs_off_on_server_errors():
    responses = [FakeResponse(503), FakeResponse(429, headers={"Retry-After": "3"}), FakeResponse(200)]
    slept = []
    resp = with_retries(lambda: responses.pop(0), base_delay=1, sleep_fn=slept.append)
    assert resp.status_code == 200
    assert slept == [1, 3.0]


def test_with_retries_gives_up_on_client_errors():
    with pytest.raises(requests.HTTPError):
        with_retries(lambda: FakeResponse(404), sleep_fn=lambda s: None)


def test_fetch_remote_file_writes_into_upload_month(tmp_path):
    http = FakeSession(FakeResponse(chunks=[b"ab", b"cd"], headers={"Content-Length": "4"}))
    upload = fetch_remote_file(
        "https://old.example.com/wp-content/uploads/2020/01/photo.jpg",
        str(tmp_path),
        upload_date="2020/01",
        timeout=7,
        http=http,
    )
    assert upload["relative"] == "2020/01/photo.jpg"
    assert upload["mime_type"] == "image/jpeg"
    with open(upload["file"], "rb") as f:
        assert f.read() == b"abcd"
    assert http.requests[0][1] == {"timeout": 7, "stream": True}


def test_fetch_remote_file_never_overwrites(tmp_path):
    (tmp_path / "photo.jpg").write_bytes(b"old")
    http = FakeSession(FakeResponse(chunks=[b"new"]))
    upload = fetch_remote_file("https://old.example.com/photo.jpg", str(tmp_path), http=http)
    assert upload["relative"] == "photo-1.jpg"


def test_oversized_file_is_rejected_and_removed(tmp_path):
    http = FakeSession(FakeResponse(chunks=[b"12345", b"67890"]))
    with pytest.raises(AttachmentError):
        fetch_remote_file("https://old.example.com/big.png", str(tmp_path), max_size=6, http=http)
    assert os.listdir(tmp_path) == []


def test_empty_or_truncated_files_are_rejected(tmp_path):
    with pytest.raises(AttachmentError, match="Zero size"):
        fetch_remote_file("https://old.example.com/a.png", str(tmp_path), http=FakeSession(FakeResponse(chunks=[])))
    truncated = FakeResponse(chunks=[b"ab"], headers={"Content-Length": "10"})
    with pytest.raises(AttachmentError, match="incorrect size"):
        fetch_remote_file("https://old.example.com/b.png", str(tmp_path), http=FakeSession(truncated))
    assert os.listdir(tmp_path) == []


def test_unknown_file_type_is_rejected_before_downloading(tmp_path):
    http = FakeSession()
    with pytest.raises(AttachmentError, match="Invalid file type"):
        fetch_remote_file("https://old.example.com/download", str(tmp_path), http=http)
    assert http.requests == []
