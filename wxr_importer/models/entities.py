from __future__ import annotations

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def slugify(value: str) -> str:
    text = value.strip().lower()
    out = []
    prev_dash = False
    for ch in text:
        if ch.isalnum():
            out.append(ch)
            prev_dash = False
        else:
            if not prev_dash:
                out.append("-")
            prev_dash = True
    slug = "".join(out).strip("-")
    return slug[:200]


def sanitize_login(value: str) -> str:
    """Strict login cleanup: keep letters, digits, space and ``_ . - @``."""
    text = (value or "").strip()
    text = re.sub(r"[^A-Za-z0-9 _.\-@]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def _zero_if_blank(v: Any) -> Any:
    if v is None or (isinstance(v, str) and not v.strip()):
        return 0
    return v


class WXRModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MetaItem(WXRModel):
    key: str = Field(..., min_length=1)
    value: str = ""


class AuthorData(WXRModel):
    id: Optional[int] = Field(None, alias="ID")
    user_login: str = Field(..., min_length=1)
    user_email: Optional[str] = None
    display_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("user_login", mode="before")
    @classmethod
    def _strip_login(cls, v: Optional[str]):
        return v.strip() if isinstance(v, str) else v

    @field_validator("id", mode="before")
    @classmethod
    def _blank_id(cls, v: Any):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ParsedAuthor(WXRModel):
    data: AuthorData
    meta: List[MetaItem] = Field(default_factory=list)


class TermRef(WXRModel):
    """A term referenced from inside an ``item`` (``<category domain=...>``)."""

    taxonomy: str = Field(..., min_length=1)
    slug: str = ""
    name: str = ""


class CommentData(WXRModel):
    comment_id: int
    comment_author: str = ""
    comment_author_email: str = ""
    comment_author_IP: str = ""
    comment_author_url: str = ""
    comment_date: Optional[str] = None
    comment_date_gmt: Optional[str] = None
    comment_content: str = ""
    comment_approved: str = "1"
    comment_type: str = ""
    comment_parent: int = 0
    comment_user_id: int = 0
    meta: List[MetaItem] = Field(default_factory=list)

    @field_validator("comment_parent", "comment_user_id", mode="before")
    @classmethod
    def _blank_ints(cls, v: Any):
        return _zero_if_blank(v)


class PostData(WXRModel):
    post_id: int
    post_type: str = "post"
    post_title: str = ""
    guid: Optional[str] = None
    link: Optional[str] = None
    post_author: str = ""
    post_content: str = ""
    post_excerpt: str = ""
    post_date: Optional[str] = None
    post_date_gmt: Optional[str] = None
    comment_status: Optional[str] = None
    ping_status: Optional[str] = None
    post_name: Optional[str] = None
    post_status: str = "publish"
    post_parent: int = 0
    menu_order: int = 0
    post_password: str = ""
    is_sticky: bool = False
    attachment_url: Optional[str] = None

    @field_validator("post_parent", "menu_order", mode="before")
    @classmethod
    def _blank_ints(cls, v: Any):
        return _zero_if_blank(v)

    @field_validator("is_sticky", mode="before")
    @classmethod
    def _sticky(cls, v: Any):
        if v is None or (isinstance(v, str) and not v.strip()):
            return False
        return v


class ParsedPost(WXRModel):
    data: PostData
    meta: List[MetaItem] = Field(default_factory=list)
    comments: List[CommentData] = Field(default_factory=list)
    terms: List[TermRef] = Field(default_factory=list)


class TermData(WXRModel):
    id: Optional[int] = None
    taxonomy: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    slug: str = Field("", validate_default=True)
    parent: Optional[str] = None
    description: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _blank_id(cls, v: Any):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("taxonomy", mode="after")
    @classmethod
    def _legacy_tag(cls, v: str) -> str:
        # WXR 1.0 exported tags under the "tag" taxonomy name
        return "post_tag" if v == "tag" else v

    @field_validator("slug", mode="after")
    @classmethod
    def _ensure_slug(cls, v: str, info):
        if v.strip():
            return v.strip()
        name = info.data.get("name")
        if isinstance(name, str) and name.strip():
            return slugify(name)
        return v

    @property
    def mapping_key(self) -> str:
        return f"{self.taxonomy}:{self.slug}"


class ParsedTerm(WXRModel):
    data: TermData
    meta: List[MetaItem] = Field(default_factory=list)
