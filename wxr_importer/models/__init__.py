"""
Typed payloads produced by the extractors and consumed by the stores.
"""

from .entities import (
    AuthorData,
    CommentData,
    MetaItem,
    ParsedAuthor,
    ParsedPost,
    ParsedTerm,
    PostData,
    TermData,
    TermRef,
    sanitize_login,
    slugify,
)

__all__ = [
    "AuthorData",
    "CommentData",
    "MetaItem",
    "ParsedAuthor",
    "ParsedPost",
    "ParsedTerm",
    "PostData",
    "TermData",
    "TermRef",
    "sanitize_login",
    "slugify",
]
