"""
DuckDB-backed content store.

:class:`DuckDBContentStore` persists authors, terms, posts, comments and
their meta into a DuckDB database, and implements the lifecycle and
post-processing hooks the importer calls around the scan.

Records reference each other by their ids on the exporting site (a post
parent, a comment parent, the author of a post, the attachment used as a
featured image).  When the target of a reference has already been
imported it is mapped right away; otherwise a temporary ``_wxr_import_*``
marker is written and the reference is settled in :meth:`post_process`,
once every record of the file has been seen.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import duckdb
import pandas as pd
import requests

from wxr_importer.config import RunConfig
from wxr_importer.models import (
    CommentData,
    ParsedAuthor,
    ParsedPost,
    ParsedTerm,
    PostData,
    TermData,
    TermRef,
    sanitize_login,
    slugify,
)
from wxr_importer.results import Failure, FailureKind, Ok, Result, processing_failure
from wxr_importer.state import ImportSession
from wxr_importer.stores.media import AttachmentError, fetch_remote_file
from wxr_importer.utils.logger import ImportLogger

SCHEMA: Tuple[str, ...] = (
    "CREATE SEQUENCE IF NOT EXISTS users_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS terms_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS posts_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS comments_seq START 1",
    """CREATE TABLE IF NOT EXISTS users (
        id BIGINT, original_id BIGINT, user_login VARCHAR, user_email VARCHAR,
        display_name VARCHAR, first_name VARCHAR, last_name VARCHAR)""",
    """CREATE TABLE IF NOT EXISTS terms (
        id BIGINT, original_id BIGINT, taxonomy VARCHAR, slug VARCHAR, name VARCHAR,
        description VARCHAR, parent BIGINT DEFAULT 0, import_parent VARCHAR)""",
    "CREATE TABLE IF NOT EXISTS term_meta (term_id BIGINT, meta_key VARCHAR, meta_value VARCHAR)",
    """CREATE TABLE IF NOT EXISTS posts (
        id BIGINT, original_id BIGINT, post_type VARCHAR, post_title VARCHAR, post_name VARCHAR,
        post_content VARCHAR, post_excerpt VARCHAR, post_status VARCHAR, post_date VARCHAR,
        post_date_gmt VARCHAR, post_author BIGINT, post_parent BIGINT, menu_order INTEGER,
        comment_status VARCHAR, ping_status VARCHAR, post_password VARCHAR, guid VARCHAR,
        link VARCHAR, post_mime_type VARCHAR, is_sticky BOOLEAN)""",
    "CREATE TABLE IF NOT EXISTS post_meta (post_id BIGINT, meta_key VARCHAR, meta_value VARCHAR)",
    "CREATE TABLE IF NOT EXISTS post_terms (post_id BIGINT, term_id BIGINT)",
    """CREATE TABLE IF NOT EXISTS comments (
        id BIGINT, original_id BIGINT, post_id BIGINT, author VARCHAR, author_email VARCHAR,
        author_ip VARCHAR, author_url VARCHAR, comment_date VARCHAR, comment_date_gmt VARCHAR,
        content VARCHAR, approved VARCHAR, comment_type VARCHAR, parent BIGINT, user_id BIGINT)""",
    "CREATE TABLE IF NOT EXISTS comment_meta (comment_id BIGINT, meta_key VARCHAR, meta_value VARCHAR)",
)

# Content that looks like it embeds uploaded files and may need its URLs remapped
REGEX_HAS_ATTACHMENT_REFS = re.compile(
    r"""
    (
        # anything with an image or attachment class
        class=['"].*?\b(wp-image-\d+|attachment-[\w\-]+)\b
    |
        # anything that looks like an upload URL
        src=['"][^'"]*(
            [0-9]{4}/[0-9]{2}/[^'"]+\.(jpg|jpeg|png|gif)
        |
            content/uploads[^'"]+
        )['"]
    )
    """,
    re.IGNORECASE | re.VERBOSE,
)

IMPORT_PARENT = "_wxr_import_parent"
IMPORT_USER_SLUG = "_wxr_import_user_slug"
IMPORT_USER = "_wxr_import_user"
IMPORT_HAS_ATTACHMENT_REFS = "_wxr_import_has_attachment_refs"
IMPORT_TERM = "_wxr_import_term"


def post_exists_key(
    guid: Optional[str], post_type: str, title: Optional[str], date: Optional[str], content: Optional[str]
) -> Optional[str]:
    """Identity of a post for duplicate detection, ``None`` when it has none.

    Without a guid a post is identified by type, title, date and content;
    a post with none of those (menu items, mostly) never matches another.
    """
    if guid:
        return guid
    if not title and not date and not content:
        return None
    digest = hashlib.md5((content or "").encode("utf-8")).hexdigest()
    return f"{post_type}|{title or ''}|{date or ''}|{digest}"


def _post_exists_key(data: PostData) -> Optional[str]:
    return post_exists_key(data.guid, data.post_type, data.post_title, data.post_date, data.post_content)


class DuckDBContentStore:
    """
    Content store persisting into DuckDB.

    The connection is opened on :meth:`begin_import` and kept until
    :meth:`close`, so an in-memory database (``":memory:"``) stays
    queryable after a run.
    """

    def __init__(
        self,
        database: str = ":memory:",
        *,
        uploads_dir: str = "data/uploads",
        uploads_url: str = "/uploads",
        logger: Optional[ImportLogger] = None,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.database = database
        self.uploads_dir = uploads_dir
        self.uploads_url = uploads_url
        self.logger = logger or ImportLogger()
        self.http = http
        self.con: Optional[duckdb.DuckDBPyConnection] = None
        self.run_config = RunConfig()
        self._reset_state()

    @classmethod
    def from_config(cls, config: Dict[str, Any], logger: Optional[ImportLogger] = None) -> "DuckDBContentStore":
        store_cfg = config.get("store", {})
        return cls(
            store_cfg.get("database", ":memory:"),
            uploads_dir=store_cfg.get("uploads_dir", "data/uploads"),
            uploads_url=store_cfg.get("uploads_url", "/uploads"),
            logger=logger,
        )

    def _reset_state(self) -> None:
        self.mapping: Dict[str, Dict[Any, int]] = {
            "post": {},
            "user": {},
            "user_slug": {},
            "term": {},
            "term_id": {},
            "comment": {},
        }
        self.requires_remapping: Dict[str, Set[int]] = {"post": set(), "comment": set(), "term": set()}
        self.exists: Dict[str, Dict[Any, int]] = {"post": {}, "term": {}, "comment": {}}
        self.featured_images: Dict[int, int] = {}
        self.url_remap: Dict[str, str] = {}

    # ------------------------------------------------------------------
    # Database helpers
    # ------------------------------------------------------------------
    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self.con is None:
            if self.database != ":memory:":
                os.makedirs(os.path.dirname(self.database) or ".", exist_ok=True)
            self.con = duckdb.connect(database=self.database, read_only=False)
            for statement in SCHEMA:
                self.con.execute(statement)
        return self.con

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[tuple]:
        return self._connect().execute(sql, list(params)).fetchall()

    def _next_id(self, table: str) -> int:
        return int(self._connect().execute(f"SELECT nextval('{table}_seq')").fetchone()[0])

    def _insert(self, table: str, row: Dict[str, Any]) -> None:
        columns = ", ".join(row)
        marks = ", ".join("?" for _ in row)
        self._connect().execute(f"INSERT INTO {table} ({columns}) VALUES ({marks})", list(row.values()))

    def _get_meta(self, table: str, owner: str, owner_id: int, key: str) -> List[str]:
        rows = self.query(
            f"SELECT meta_value FROM {table} WHERE {owner} = ? AND meta_key = ?", (owner_id, key)
        )
        return [r[0] for r in rows]

    def _delete_meta(self, table: str, owner: str, owner_id: int, keys: Sequence[str]) -> None:
        for key in keys:
            self._connect().execute(
                f"DELETE FROM {table} WHERE {owner} = ? AND meta_key = ?", [owner_id, key]
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def begin_import(self, source: Any, run_config: Optional[RunConfig] = None) -> Result[None]:
        if not hasattr(source, "read") and not os.path.isfile(source):
            return Failure(
                FailureKind.IMPORT_START_FAILED,
                "The file does not exist, please try again.",
                {"source": str(source)},
            )
        self.run_config = run_config or RunConfig()
        self._reset_state()
        con = self._connect()
        con.begin()

        if self.run_config.prefill_existing_posts:
            for post_id, guid, post_type, title, date, content in self.query(
                "SELECT id, guid, post_type, post_title, post_date, post_content FROM posts"
            ):
                key = post_exists_key(guid, post_type, title, date, content)
                if key is not None:
                    self.exists["post"][key] = post_id
            for comment_id, author, date in self.query("SELECT id, author, comment_date FROM comments"):
                self.exists["comment"][(author, date)] = comment_id
        if self.run_config.prefill_existing_terms:
            for term_id, taxonomy, slug in self.query("SELECT id, taxonomy, slug FROM terms"):
                self.exists["term"][f"{taxonomy}:{slug}"] = term_id
        return Ok(None)

    def abort_import(self) -> None:
        if self.con is not None:
            self.con.rollback()
        self.logger.warning("Import aborted, pending changes rolled back")

    def end_import(self) -> None:
        if self.con is not None:
            self.con.commit()
        self.logger.info("Import committed")

    def close(self) -> None:
        if self.con is not None:
            self.con.close()
            self.con = None

    # ------------------------------------------------------------------
    # Existence lookups
    # ------------------------------------------------------------------
    def _post_exists(self, data: PostData) -> Optional[int]:
        key = _post_exists_key(data)
        if key is None:
            return None
        if key in self.exists["post"] or self.run_config.prefill_existing_posts:
            return self.exists["post"].get(key)
        if data.guid:
            rows = self.query("SELECT id FROM posts WHERE guid = ? LIMIT 1", (data.guid,))
        else:
            rows = self.query(
                "SELECT id FROM posts WHERE post_type = ? AND post_title = ? AND coalesce(post_date, '') = ? "
                "AND coalesce(post_content, '') = ? LIMIT 1",
                (data.post_type, data.post_title, data.post_date or "", data.post_content or ""),
            )
        found = rows[0][0] if rows else None
        if found is not None:
            self.exists["post"][key] = found
        return found

    def _term_exists(self, data: TermData) -> Optional[int]:
        key = data.mapping_key
        if key in self.exists["term"] or self.run_config.prefill_existing_terms:
            return self.exists["term"].get(key)
        rows = self.query(
            "SELECT id FROM terms WHERE taxonomy = ? AND slug = ? LIMIT 1", (data.taxonomy, data.slug)
        )
        return rows[0][0] if rows else None

    def _comment_exists(self, comment: CommentData) -> Optional[int]:
        key = (comment.comment_author, comment.comment_date)
        if key in self.exists["comment"]:
            return self.exists["comment"][key]
        rows = self.query(
            "SELECT id FROM comments WHERE author = ? AND comment_date IS NOT DISTINCT FROM ? LIMIT 1",
            key,
        )
        return rows[0][0] if rows else None

    # ------------------------------------------------------------------
    # Authors
    # ------------------------------------------------------------------
    def process_author(self, author: ParsedAuthor, session: ImportSession) -> Result[Optional[int]]:
        data = author.data
        original_id = data.id or 0
        original_slug = data.user_login

        # posts name their author through the same cleanup, see process_post
        login = sanitize_login(original_slug)
        if not login:
            return processing_failure(
                f'Failed to import user "{original_slug}": invalid login', login=original_slug
            )

        # Have we already handled this user?
        if original_id and original_id in self.mapping["user"]:
            self.mapping["user_slug"].setdefault(login, self.mapping["user"][original_id])
            return Ok(None)
        if login in self.mapping["user_slug"]:
            if original_id:
                self.mapping["user"][original_id] = self.mapping["user_slug"][login]
            return Ok(None)

        existing = self.query("SELECT id FROM users WHERE user_login = ? LIMIT 1", (login,))
        if existing:
            user_id = existing[0][0]
            self.logger.info(f'User "{login}" already exists.')
        else:
            user_id = self._next_id("users")
            self._insert(
                "users",
                {
                    "id": user_id,
                    "original_id": original_id or None,
                    "user_login": login,
                    "user_email": data.user_email,
                    "display_name": data.display_name or login,
                    "first_name": data.first_name,
                    "last_name": data.last_name,
                },
            )
            self.logger.info(f'Imported user "{data.display_name or login}"')

        if original_id:
            self.mapping["user"][original_id] = user_id
        self.mapping["user_slug"][login] = user_id
        self.logger.debug(f"User {original_id} remapped to {user_id}")
        return Ok(user_id)

    # ------------------------------------------------------------------
    # Terms
    # ------------------------------------------------------------------
    def process_term(self, term: ParsedTerm, session: ImportSession) -> Result[Optional[int]]:
        data = term.data
        original_id = data.id or 0
        mapping_key = data.mapping_key

        existing = self._term_exists(data)
        if existing:
            self.mapping["term"][mapping_key] = existing
            if original_id:
                self.mapping["term_id"][original_id] = existing
            self.logger.info(f'Term "{data.name}" ({data.taxonomy}) already exists.')
            return Ok(None)

        # WP really likes to repeat itself in export files
        if mapping_key in self.mapping["term"]:
            return Ok(None)

        term_id = self._insert_term(data.taxonomy, data.slug, data.name, data.description, original_id)
        for item in term.meta:
            self._insert("term_meta", {"term_id": term_id, "meta_key": item.key, "meta_value": item.value})
        if data.parent and data.parent.strip() not in ("", "0"):
            self._connect().execute("UPDATE terms SET import_parent = ? WHERE id = ?", [data.parent.strip(), term_id])
            self.requires_remapping["term"].add(term_id)

        if original_id:
            self.mapping["term_id"][original_id] = term_id
        self.logger.info(f'Imported "{data.name}" ({data.taxonomy})')
        self.logger.debug(f"Term {original_id} remapped to {term_id}")
        return Ok(term_id)

    def _insert_term(self, taxonomy: str, slug: str, name: str, description: str = "", original_id: int = 0) -> int:
        term_id = self._next_id("terms")
        self._insert(
            "terms",
            {
                "id": term_id,
                "original_id": original_id or None,
                "taxonomy": taxonomy,
                "slug": slug,
                "name": name,
                "description": description,
                "parent": 0,
            },
        )
        key = f"{taxonomy}:{slug}"
        self.mapping["term"][key] = term_id
        self.exists["term"][key] = term_id
        return term_id

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------
    def process_post(self, post: ParsedPost, session: ImportSession) -> Result[Optional[int]]:
        data = post.data
        original_id = data.post_id

        # Have we already processed this?
        if original_id in self.mapping["post"]:
            return Ok(None)

        if not re.fullmatch(r"[a-z0-9_\-]+", data.post_type or ""):
            return processing_failure(
                f'Failed to import "{data.post_title}": Invalid post type {data.post_type!r}',
                post_id=original_id,
                title=data.post_title,
            )

        existing = self._post_exists(data)
        if existing:
            self.logger.info(f'{data.post_type} "{data.post_title}" already exists.')
            self.mapping["post"][original_id] = existing
            # Even though this post already exists, new comments might need importing
            self._process_comments(post.comments, existing, post_exists=True)
            return Ok(None)

        meta: List[Tuple[str, str]] = [(m.key, m.value) for m in post.meta]
        requires_remapping = False

        # Map the parent post, or mark it as one we need to fix
        parent_id = 0
        if data.post_parent:
            if data.post_parent in self.mapping["post"]:
                parent_id = self.mapping["post"][data.post_parent]
            else:
                meta.append((IMPORT_PARENT, str(data.post_parent)))
                requires_remapping = True

        # Map the author, or mark it as one we need to fix
        author_slug = sanitize_login(data.post_author)
        if not author_slug:
            author_id = self.run_config.default_author or 0
        elif author_slug in self.mapping["user_slug"]:
            author_id = self.mapping["user_slug"][author_slug]
        else:
            meta.append((IMPORT_USER_SLUG, author_slug))
            requires_remapping = True
            author_id = 0

        if REGEX_HAS_ATTACHMENT_REFS.search(data.post_content or ""):
            meta.append((IMPORT_HAS_ATTACHMENT_REFS, "1"))
            requires_remapping = True

        row = {
            "original_id": original_id,
            "post_type": data.post_type,
            "post_title": data.post_title,
            "post_name": data.post_name,
            "post_content": data.post_content,
            "post_excerpt": data.post_excerpt,
            "post_status": data.post_status,
            "post_date": data.post_date,
            "post_date_gmt": data.post_date_gmt,
            "post_author": author_id,
            "post_parent": parent_id,
            "menu_order": data.menu_order,
            "comment_status": data.comment_status,
            "ping_status": data.ping_status,
            "post_password": data.post_password,
            "guid": data.guid,
            "link": data.link,
            "post_mime_type": None,
            "is_sticky": data.is_sticky,
        }

        if data.post_type == "attachment":
            if not self.run_config.fetch_attachments:
                self.logger.notice(f'Skipping attachment "{data.post_title}", fetching attachments disabled')
                return Ok(None)
            remote_url = data.attachment_url or data.guid or ""
            attached = self._process_attachment(row, meta, remote_url, session)
            if not attached.ok:
                return attached
            post_id = attached.value
        else:
            post_id = self._next_id("posts")
            self._insert("posts", {"id": post_id, **row})

        # map pre-import ID to local ID
        self.mapping["post"][original_id] = post_id
        key = _post_exists_key(data)
        if key is not None:
            self.exists["post"][key] = post_id

        self.logger.info(f'Imported "{data.post_title}" ({data.post_type})')
        self.logger.debug(f"Post {original_id} remapped to {post_id}")

        requires_remapping = self._assign_terms(post_id, post.terms, meta) or requires_remapping
        if requires_remapping:
            self.requires_remapping["post"].add(post_id)

        self._process_comments(post.comments, post_id)
        self._process_post_meta(meta, post_id)
        return Ok(post_id)

    def _assign_terms(self, post_id: int, terms: Sequence[TermRef], meta: List[Tuple[str, str]]) -> bool:
        pending = False
        linked: Set[int] = set()
        for term in terms:
            key = f"{term.taxonomy}:{term.slug}"
            term_id = self.mapping["term"].get(key) or self.exists["term"].get(key)
            if term_id:
                if term_id not in linked:
                    self._insert("post_terms", {"post_id": post_id, "term_id": term_id})
                    linked.add(term_id)
            else:
                meta.append((IMPORT_TERM, json.dumps(term.model_dump())))
                pending = True
        return pending

    def _process_attachment(
        self, row: Dict[str, Any], meta: List[Tuple[str, str]], remote_url: str, session: ImportSession
    ) -> Result[int]:
        # use _wp_attached_file for the upload folder so files land where the exporting site had them
        upload_date = None
        if row.get("post_date"):
            upload_date = row["post_date"][:7].replace("-", "/")
        for key, value in meta:
            if key != "_wp_attached_file":
                continue
            match = re.match(r"^[0-9]{4}/[0-9]{2}", value)
            if match:
                upload_date = match.group(0)
            break

        # absolute path without a host: assume the exporting site's base URL
        if re.match(r"^/[\w\W]+$", remote_url):
            remote_url = session.base_url.rstrip("/") + remote_url
        if not remote_url:
            return processing_failure("Attachment has no URL", post_id=row["original_id"])

        try:
            upload = fetch_remote_file(
                remote_url,
                self.uploads_dir,
                upload_date=upload_date,
                timeout=self.run_config.http_timeout,
                max_size=self.run_config.max_attachment_size,
                http=self.http,
            )
        except (AttachmentError, requests.RequestException, OSError) as e:
            return processing_failure(
                f'Failed to import attachment "{row["post_title"]}": {e}',
                post_id=row["original_id"],
                url=remote_url,
            )

        new_url = f"{self.uploads_url.rstrip('/')}/{upload['relative']}"
        post_id = self._next_id("posts")
        row = dict(row, post_mime_type=upload["mime_type"])
        if self.run_config.update_attachment_guids:
            row["guid"] = new_url
        self._insert("posts", {"id": post_id, **row})
        self._insert("post_meta", {"post_id": post_id, "meta_key": "_wp_attached_file", "meta_value": upload["relative"]})

        # Map this file URL later if we need to
        self.url_remap[remote_url] = new_url
        if remote_url.startswith("https://"):
            self.url_remap["http" + remote_url[5:]] = new_url
        return Ok(post_id)

    def _process_post_meta(self, meta: Sequence[Tuple[str, str]], post_id: int) -> None:
        for key, value in meta:
            if not self.run_config.meta_key_filter(key):
                continue
            if key == "_edit_last":
                try:
                    old_user = int(value)
                except ValueError:
                    continue
                if old_user not in self.mapping["user"]:
                    continue
                value = str(self.mapping["user"][old_user])
            self._insert("post_meta", {"post_id": post_id, "meta_key": key, "meta_value": value})
            # if the post has a featured image, take note of this in case of remap
            if key == "_thumbnail_id" and value.strip().isdigit():
                self.featured_images[post_id] = int(value)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------
    def _process_comments(self, comments: Sequence[CommentData], post_id: int, post_exists: bool = False) -> int:
        num_comments = 0
        # Sort by ID to avoid excessive remapping later
        for comment in sorted(comments, key=lambda c: c.comment_id):
            if post_exists:
                existing = self._comment_exists(comment)
                if existing:
                    self.mapping["comment"][comment.comment_id] = existing
                    continue

            meta: List[Tuple[str, str]] = [(m.key, m.value) for m in comment.meta]
            requires_remapping = False

            parent = 0
            if comment.comment_parent:
                if comment.comment_parent in self.mapping["comment"]:
                    parent = self.mapping["comment"][comment.comment_parent]
                else:
                    meta.append((IMPORT_PARENT, str(comment.comment_parent)))
                    requires_remapping = True

            user_id = 0
            if comment.comment_user_id:
                if comment.comment_user_id in self.mapping["user"]:
                    user_id = self.mapping["user"][comment.comment_user_id]
                else:
                    meta.append((IMPORT_USER, str(comment.comment_user_id)))
                    requires_remapping = True

            comment_id = self._next_id("comments")
            self._insert(
                "comments",
                {
                    "id": comment_id,
                    "original_id": comment.comment_id,
                    "post_id": post_id,
                    "author": comment.comment_author,
                    "author_email": comment.comment_author_email,
                    "author_ip": comment.comment_author_IP,
                    "author_url": comment.comment_author_url,
                    "comment_date": comment.comment_date,
                    "comment_date_gmt": comment.comment_date_gmt,
                    "content": comment.comment_content,
                    "approved": comment.comment_approved,
                    "comment_type": comment.comment_type,
                    "parent": parent,
                    "user_id": user_id,
                },
            )
            self.mapping["comment"][comment.comment_id] = comment_id
            self.exists["comment"][(comment.comment_author, comment.comment_date)] = comment_id
            if requires_remapping:
                self.requires_remapping["comment"].add(comment_id)
            for key, value in meta:
                self._insert("comment_meta", {"comment_id": comment_id, "meta_key": key, "meta_value": value})
            num_comments += 1
        return num_comments

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------
    def _replace_urls(self, content: str) -> str:
        # longest first, in case one URL is a prefix of another
        for from_url in sorted(self.url_remap, key=len, reverse=True):
            content = content.replace(from_url, self.url_remap[from_url])
        return content

    def post_process(self) -> None:
        for post_id in sorted(self.requires_remapping["post"]):
            self._post_process_post(post_id)
        for comment_id in sorted(self.requires_remapping["comment"]):
            self._post_process_comment(comment_id)
        for term_id in sorted(self.requires_remapping["term"]):
            self._post_process_term(term_id)

    def _post_process_post(self, post_id: int) -> None:
        rows = self.query("SELECT post_title, post_content FROM posts WHERE id = ?", (post_id,))
        if not rows:
            return
        title, content = rows[0]
        data: Dict[str, Any] = {}
        resolved: List[str] = []

        for parent in self._get_meta("post_meta", "post_id", post_id, IMPORT_PARENT):
            parent_id = int(parent)
            if parent_id in self.mapping["post"]:
                data["post_parent"] = self.mapping["post"][parent_id]
                resolved.append(IMPORT_PARENT)
            else:
                self.logger.warning(f'Could not find the post parent for "{title}" (post #{post_id})')
                self.logger.debug(f"Post {post_id} was imported with parent {parent_id}, but could not be found")

        for author_slug in self._get_meta("post_meta", "post_id", post_id, IMPORT_USER_SLUG):
            if author_slug in self.mapping["user_slug"]:
                data["post_author"] = self.mapping["user_slug"][author_slug]
                resolved.append(IMPORT_USER_SLUG)
            else:
                self.logger.warning(f'Could not find the author for "{title}" (post #{post_id})')
                self.logger.debug(f"Post {post_id} was imported with author \"{author_slug}\", but could not be found")

        if self._get_meta("post_meta", "post_id", post_id, IMPORT_HAS_ATTACHMENT_REFS):
            new_content = self._replace_urls(content or "")
            if new_content != content:
                data["post_content"] = new_content
            resolved.append(IMPORT_HAS_ATTACHMENT_REFS)

        pending_terms = self._get_meta("post_meta", "post_id", post_id, IMPORT_TERM)
        linked = {r[0] for r in self.query("SELECT term_id FROM post_terms WHERE post_id = ?", (post_id,))}
        for raw in pending_terms:
            term = TermRef(**json.loads(raw))
            slug = term.slug or slugify(term.name)
            key = f"{term.taxonomy}:{slug}"
            term_id = self.mapping["term"].get(key) or self.exists["term"].get(key)
            if not term_id:
                term_id = self._insert_term(term.taxonomy, slug, term.name or slug)
                self.logger.info(f'Created "{term.name}" ({term.taxonomy}) referenced by post #{post_id}')
            if term_id not in linked:
                self._insert("post_terms", {"post_id": post_id, "term_id": term_id})
                linked.add(term_id)
        if pending_terms:
            resolved.append(IMPORT_TERM)

        if not data and not resolved:
            self.logger.debug(f"Post {post_id} was marked for post-processing, but none was required.")
            return
        if data:
            assignments = ", ".join(f"{column} = ?" for column in data)
            self._connect().execute(
                f"UPDATE posts SET {assignments} WHERE id = ?", [*data.values(), post_id]
            )
        # Clear out our temporary meta keys
        self._delete_meta("post_meta", "post_id", post_id, resolved)

    def _post_process_comment(self, comment_id: int) -> None:
        data: Dict[str, Any] = {}
        resolved: List[str] = []
        for parent in self._get_meta("comment_meta", "comment_id", comment_id, IMPORT_PARENT):
            parent_id = int(parent)
            if parent_id in self.mapping["comment"]:
                data["parent"] = self.mapping["comment"][parent_id]
                resolved.append(IMPORT_PARENT)
            else:
                self.logger.warning(f"Could not find the comment parent for comment #{comment_id}")
                self.logger.debug(f"Comment {comment_id} was imported with parent {parent_id}, but could not be found")
        for user in self._get_meta("comment_meta", "comment_id", comment_id, IMPORT_USER):
            user_id = int(user)
            if user_id in self.mapping["user"]:
                data["user_id"] = self.mapping["user"][user_id]
                resolved.append(IMPORT_USER)
            else:
                self.logger.warning(f"Could not find the author for comment #{comment_id}")
                self.logger.debug(f"Comment {comment_id} was imported with author {user_id}, but could not be found")
        if not data:
            return
        assignments = ", ".join(f"{column} = ?" for column in data)
        self._connect().execute(f"UPDATE comments SET {assignments} WHERE id = ?", [*data.values(), comment_id])
        self._delete_meta("comment_meta", "comment_id", comment_id, resolved)

    def _post_process_term(self, term_id: int) -> None:
        rows = self.query("SELECT taxonomy, name, import_parent FROM terms WHERE id = ?", (term_id,))
        if not rows:
            return
        taxonomy, name, parent = rows[0]
        parent_id = self.mapping["term"].get(f"{taxonomy}:{parent}") or self.exists["term"].get(f"{taxonomy}:{parent}")
        if not parent_id and parent and parent.isdigit():
            parent_id = self.mapping["term_id"].get(int(parent))
        if not parent_id:
            self.logger.warning(f'Could not find the parent "{parent}" of "{name}" ({taxonomy})')
            return
        self._connect().execute(
            "UPDATE terms SET parent = ?, import_parent = NULL WHERE id = ?", [parent_id, term_id]
        )

    def rewrite_urls_in_content(self) -> None:
        """Replace every remapped attachment URL in post content and enclosures."""
        con = self._connect()
        for from_url in sorted(self.url_remap, key=len, reverse=True):
            to_url = self.url_remap[from_url]
            con.execute("UPDATE posts SET post_content = replace(post_content, ?, ?)", [from_url, to_url])
            con.execute(
                "UPDATE post_meta SET meta_value = replace(meta_value, ?, ?) WHERE meta_key = 'enclosure'",
                [from_url, to_url],
            )

    def remap_featured_images(self) -> None:
        if not self.featured_images:
            return
        self.logger.info("Starting remapping of featured images")
        for post_id, value in self.featured_images.items():
            new_id = self.mapping["post"].get(value)
            # only update if there's a difference
            if new_id is None or new_id == value:
                continue
            self.logger.info(f"Remapping featured image ID {value} to new ID {new_id} for post ID {post_id}")
            self._connect().execute(
                "UPDATE post_meta SET meta_value = ? WHERE post_id = ? AND meta_key = '_thumbnail_id'",
                [str(new_id), post_id],
            )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def post_mapping(self) -> pd.DataFrame:
        """Original and new id of every imported post, with the URLs needed for redirects."""
        return self._connect().execute(
            "SELECT original_id, id AS new_id, post_type, post_name, link, guid "
            "FROM posts WHERE original_id IS NOT NULL ORDER BY id"
        ).df()
