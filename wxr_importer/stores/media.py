"""
Attachment download helpers.

This module implements the network side of attachment imports: a remote
file is downloaded with ``requests`` into the uploads directory, under a
``YYYY/MM`` sub-directory mirroring the exporting site.  A simple rate
limiter keeps bursts of downloads polite towards the origin server, and a
generic retry wrapper handles transient network errors and server-side
rate limiting responses (429 or 5xx).
"""

from __future__ import annotations

import mimetypes
import os
import time
from typing import Callable, Dict, Optional
from urllib.parse import unquote, urlparse

import requests

###############################################################################
# Rate limiting and retry utilities
###############################################################################

class RateLimiter:
    """
    Simple time-based rate limiter.  Ensures that no more than ``rpm``
    requests are dispatched per minute.
    """

    def __init__(self, rpm: int = 200) -> None:
        self.rpm = max(1, rpm)
        self.interval = 60.0 / float(self.rpm)
        self._last = 0.0

    def wait(self, time_fn: Callable[[], float] = time.time, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        now = time_fn()
        dt = now - self._last
        if dt < self.interval:
            sleep_fn(self.interval - dt)
        self._last = time_fn()


def with_retries(
    fn: Callable[[], requests.Response],
    *,
    max_attempts: int = 5,
    base_delay: float = 0.7,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Execute a function returning a ``requests.Response``, retrying on
    transient HTTP errors.  Retries are attempted on status codes 429
    (too many requests) and 5xx server errors, with exponential backoff
    unless the server sends ``Retry-After``.

    :param fn: A zero-argument callable that performs the HTTP request.
    :param max_attempts: Maximum number of attempts before giving up.
    :param base_delay: Base delay in seconds for exponential backoff.
    :return: The successful ``requests.Response``.
    :raises requests.HTTPError: if all attempts fail.
    """
    attempt = 0
    while True:
        try:
            resp = fn()
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else 0
            if status not in (429, 500, 502, 503, 504) or attempt >= max_attempts - 1:
                raise
            retry_after = e.response.headers.get("Retry-After")
            if retry_after and retry_after.isdigit():
                wait = float(retry_after)
            else:
                wait = base_delay * (2 ** attempt)
            sleep_fn(wait)
            attempt += 1
        except requests.RequestException:
            if attempt >= max_attempts - 1:
                raise
            sleep_fn(base_delay * (2 ** attempt))
            attempt += 1


###############################################################################
# Remote files
###############################################################################

class AttachmentError(Exception):
    """Raised when a downloaded attachment cannot be accepted."""


_limiter = RateLimiter(180)


def _unique_path(directory: str, file_name: str) -> str:
    base, ext = os.path.splitext(file_name)
    candidate = os.path.join(directory, file_name)
    n = 1
    while os.path.exists(candidate):
        candidate = os.path.join(directory, f"{base}-{n}{ext}")
        n += 1
    return candidate


def fetch_remote_file(
    url: str,
    uploads_dir: str,
    *,
    upload_date: Optional[str] = None,
    timeout: float = 60,
    max_size: int = 0,
    http: Optional[requests.Session] = None,
) -> Dict[str, str]:
    """
    Download ``url`` into ``uploads_dir``.

    :param upload_date: ``YYYY/MM`` sub-directory to place the file in.
    :param timeout: Seconds before the request is abandoned.
    :param max_size: Largest accepted file in bytes, ``0`` for no limit.
    :return: ``{"file": local path, "relative": path under uploads_dir,
        "mime_type": ...}``
    :raises AttachmentError: for empty, truncated, oversized or
        unrecognized files.
    :raises requests.RequestException: when the download itself fails.
    """
    file_name = os.path.basename(unquote(urlparse(url).path)) or "attachment"
    mime_type, _ = mimetypes.guess_type(file_name)
    if not mime_type:
        raise AttachmentError(f"Invalid file type for {file_name}")

    target_dir = os.path.join(uploads_dir, upload_date) if upload_date else uploads_dir
    os.makedirs(target_dir, exist_ok=True)
    getter = http.get if http is not None else requests.get

    _limiter.wait()
    resp = with_retries(lambda: getter(url, timeout=timeout, stream=True))
    path = _unique_path(target_dir, file_name)
    written = 0
    try:
        with open(path, "wb") as f:
            for chunk in resp.iter_content(chunk_size=64 * 1024):
                if not chunk:
                    continue
                written += len(chunk)
                if max_size and written > max_size:
                    raise AttachmentError(f"Remote file is too large, limit is {max_size} bytes")
                f.write(chunk)
        if written == 0:
            raise AttachmentError("Zero size file downloaded")
        expected = resp.headers.get("Content-Length")
        if expected and expected.isdigit() and int(expected) != written:
            raise AttachmentError("Remote file is incorrect size")
    except AttachmentError:
        os.remove(path)
        raise
    finally:
        resp.close()

    return {
        "file": path,
        "relative": os.path.relpath(path, uploads_dir).replace(os.sep, "/"),
        "mime_type": mime_type,
    }
