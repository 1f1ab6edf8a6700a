"""
Extração de entidades a partir de nós WXR já expandidos.

Cada função recebe um elemento ``xml.etree.ElementTree.Element`` cujo
subárvore foi materializada pelo cursor (com tags no formato
``prefixo:nome``) e devolve um :class:`~wxr_importer.results.Ok` com o
modelo tipado ou uma :class:`~wxr_importer.results.Failure` descrevendo
o registro problemático.  Nenhuma função levanta exceção para o chamador.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from wxr_importer.models import (
    CommentData,
    MetaItem,
    ParsedAuthor,
    ParsedPost,
    ParsedTerm,
    TermRef,
)
from wxr_importer.results import Result, Ok, extraction_failure

_AUTHOR_FIELDS = {
    "wp:author_id": "ID",
    "wp:author_login": "user_login",
    "wp:author_email": "user_email",
    "wp:author_display_name": "display_name",
    "wp:author_first_name": "first_name",
    "wp:author_last_name": "last_name",
}

_POST_FIELDS = {
    "wp:post_type": "post_type",
    "title": "post_title",
    "guid": "guid",
    "link": "link",
    "dc:creator": "post_author",
    "content:encoded": "post_content",
    "excerpt:encoded": "post_excerpt",
    "wp:post_id": "post_id",
    "wp:post_date": "post_date",
    "wp:post_date_gmt": "post_date_gmt",
    "wp:comment_status": "comment_status",
    "wp:ping_status": "ping_status",
    "wp:post_name": "post_name",
    "wp:status": "post_status",
    "wp:post_parent": "post_parent",
    "wp:menu_order": "menu_order",
    "wp:post_password": "post_password",
    "wp:is_sticky": "is_sticky",
    "wp:attachment_url": "attachment_url",
}

_COMMENT_FIELDS = {f"wp:{name}" for name in CommentData.model_fields if name != "meta"}

_TERM_FIELDS = {
    "term": {
        "wp:term_id": "id",
        "wp:term_taxonomy": "taxonomy",
        "wp:term_slug": "slug",
        "wp:term_parent": "parent",
        "wp:term_name": "name",
        "wp:term_description": "description",
    },
    "category": {
        "wp:term_id": "id",
        "wp:category_nicename": "slug",
        "wp:category_parent": "parent",
        "wp:cat_name": "name",
        "wp:category_description": "description",
    },
    "tag": {
        "wp:term_id": "id",
        "wp:tag_slug": "slug",
        "wp:tag_name": "name",
        "wp:tag_description": "description",
    },
}

_FIXED_TAXONOMY = {"category": "category", "tag": "post_tag"}


def _text(node: ET.Element) -> str:
    return "".join(node.itertext())


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def parse_meta_node(node: ET.Element) -> Optional[Dict[str, str]]:
    """Lê um nó ``wp:postmeta``/``wp:termmeta``/``wp:commentmeta``.

    Returns:
        dict | None: ``{"key": ..., "value": ...}`` ou ``None`` quando a chave está vazia.
    """
    key = ""
    value = ""
    for child in node:
        if child.tag == "wp:meta_key":
            key = _text(child)
        elif child.tag == "wp:meta_value":
            value = _text(child)
    if not key:
        return None
    return {"key": key, "value": value}


def parse_comment_node(node: ET.Element) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    meta: List[Dict[str, str]] = []
    for child in node:
        if child.tag == "wp:commentmeta":
            item = parse_meta_node(child)
            if item:
                meta.append(item)
        elif child.tag in _COMMENT_FIELDS:
            data[child.tag[3:]] = _text(child)
    data["meta"] = meta
    return data


def parse_category_node(node: ET.Element) -> Optional[Dict[str, str]]:
    """Lê uma referência de termo dentro de um ``item`` (``<category domain="...">``)."""
    taxonomy = node.get("domain") or ""
    if not taxonomy:
        return None
    return {
        "taxonomy": taxonomy,
        "slug": node.get("nicename") or "",
        "name": _text(node),
    }


def parse_author_node(node: ET.Element) -> Result[ParsedAuthor]:
    """Extrai um autor de um nó ``wp:author``.

    Args:
        node (Element): O nó expandido.

    Returns:
        Result: ``Ok(ParsedAuthor)`` ou uma falha de extração quando o login está ausente.
    """
    data: Dict[str, Any] = {}
    meta: List[Dict[str, str]] = []
    for child in node:
        field = _AUTHOR_FIELDS.get(child.tag)
        if field:
            data[field] = _text(child)
    try:
        return Ok(ParsedAuthor(data=data, meta=meta))
    except ValidationError as e:
        return extraction_failure(
            f"Invalid author node: {_describe_errors(e)}",
            node="wp:author",
            login=data.get("user_login"),
            author_id=data.get("ID"),
        )


def parse_post_node(node: ET.Element) -> Result[ParsedPost]:
    """Extrai um post (ou página, anexo, item de menu...) de um nó ``item``.

    Além dos campos do post, coleta os metadados (``wp:postmeta``), os
    comentários (``wp:comment``) e as referências de termos (``category``).
    A extração é tudo ou nada: qualquer campo inválido invalida o nó inteiro.

    Args:
        node (Element): O nó ``item`` expandido.

    Returns:
        Result: ``Ok(ParsedPost)`` ou uma falha identificando o post.
    """
    data: Dict[str, Any] = {}
    meta: List[Dict[str, str]] = []
    comments: List[Dict[str, Any]] = []
    terms: List[Dict[str, str]] = []

    for child in node:
        tag = child.tag
        if tag == "wp:postmeta":
            item = parse_meta_node(child)
            if item:
                meta.append(item)
        elif tag == "wp:comment":
            comments.append(parse_comment_node(child))
        elif tag == "category":
            term = parse_category_node(child)
            if term:
                terms.append(term)
        elif tag in _POST_FIELDS:
            data[_POST_FIELDS[tag]] = _text(child)

    for term in terms:
        # Compatibilidade com WXR 1.0
        if term["taxonomy"] == "tag":
            term["taxonomy"] = "post_tag"

    try:
        parsed = ParsedPost(
            data=data,
            meta=[MetaItem(**m) for m in meta],
            comments=[CommentData(**c) for c in comments],
            terms=[TermRef(**t) for t in terms],
        )
    except ValidationError as e:
        return extraction_failure(
            f"Invalid item node: {_describe_errors(e)}",
            node="item",
            post_id=data.get("post_id"),
            title=data.get("post_title"),
        )
    return Ok(parsed)


def parse_term_node(node: ET.Element, kind: str = "term") -> Result[ParsedTerm]:
    """Extrai um termo de ``wp:category``, ``wp:tag`` ou ``wp:term``.

    Args:
        node (Element): O nó expandido.
        kind (str): ``"category"``, ``"tag"`` ou ``"term"``; define quais tags
            são lidas e, para os dois primeiros, fixa a taxonomia.

    Returns:
        Result: ``Ok(ParsedTerm)`` ou uma falha quando taxonomia ou nome faltam.
    """
    fields = _TERM_FIELDS.get(kind, _TERM_FIELDS["term"])
    data: Dict[str, Any] = {}
    meta: List[Dict[str, str]] = []
    if kind in _FIXED_TAXONOMY:
        data["taxonomy"] = _FIXED_TAXONOMY[kind]

    for child in node:
        if child.tag == "wp:termmeta":
            item = parse_meta_node(child)
            if item:
                meta.append(item)
            continue
        field = fields.get(child.tag)
        if field:
            data[field] = _text(child)

    try:
        return Ok(ParsedTerm(data=data, meta=meta))
    except ValidationError as e:
        return extraction_failure(
            f"Invalid {kind} node: {_describe_errors(e)}",
            node=f"wp:{kind}",
            slug=data.get("slug"),
            taxonomy=data.get("taxonomy"),
        )


class WXRExtractor:
    """Default entity extractor, dispatching on the node kind."""

    def extract(self, kind: str, node: ET.Element) -> Result[Any]:
        if kind == "author":
            return parse_author_node(node)
        if kind == "post":
            return parse_post_node(node)
        if kind in _TERM_FIELDS:
            return parse_term_node(node, kind)
        return extraction_failure(f"Unknown node kind '{kind}'", kind=kind)
