"""
Extractors for WordPress WXR export nodes.

This subpackage turns one expanded XML subtree at a time (an author, a
term or an ``item``) into the typed payloads of :mod:`wxr_importer.models`.
Extraction never raises: malformed records come back as failures so the
scan can move on to the next node.
"""

from .wxr_extractor import (
    WXRExtractor,
    parse_author_node,
    parse_post_node,
    parse_term_node,
)

__all__ = ["WXRExtractor", "parse_author_node", "parse_post_node", "parse_term_node"]
