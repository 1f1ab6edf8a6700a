"""
Content stores.

A store receives the extracted records one at a time and owns the
lifecycle and post-processing hooks of a run.  :class:`DuckDBContentStore`
is the default one; :mod:`.media` holds the attachment download helpers it
relies on.
"""

from .duckdb_store import DuckDBContentStore
from .media import AttachmentError, RateLimiter, fetch_remote_file, with_retries

__all__ = ["AttachmentError", "DuckDBContentStore", "RateLimiter", "fetch_remote_file", "with_retries"]
