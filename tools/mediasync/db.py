"""Database operations – authors, posts and downloaded media."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.rows import dict_row

from .config import DatabaseConfig
from .errors import StoreError
from .models import Author, Media, Post

logger = logging.getLogger("mediasync.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS author (
    id   TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    url  TEXT
);

CREATE TABLE IF NOT EXISTS post (
    id                BIGSERIAL PRIMARY KEY,
    author_id         TEXT NOT NULL,
    url               TEXT NOT NULL UNIQUE,
    description       TEXT,
    timestamp         TEXT,
    locked            BOOLEAN NOT NULL DEFAULT FALSE,
    cache_media_count INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS media (
    id        BIGSERIAL PRIMARY KEY,
    post_id   BIGINT NOT NULL,
    url       TEXT NOT NULL,
    file_path TEXT
);

CREATE INDEX IF NOT EXISTS idx_post_author ON post (author_id);
CREATE INDEX IF NOT EXISTS idx_media_post_url ON media (post_id, url);
"""


def _post(row: dict[str, Any]) -> Post:
    return Post(
        id=row["id"],
        author_id=row["author_id"],
        url=row["url"],
        description=row["description"],
        timestamp=row["timestamp"],
        locked=bool(row["locked"]),
        cache_media_count=row["cache_media_count"],
    )


class Database:
    """Postgres store for mediasync.

    Every write runs under one lock and is committed on its own, so writes are
    applied strictly in call order and never interleave.
    """

    def __init__(self, cfg: DatabaseConfig | None = None) -> None:
        self.cfg = cfg or DatabaseConfig.from_env()
        self._conn: psycopg.Connection | None = None
        self._write_lock = threading.Lock()

    @property
    def conn(self) -> psycopg.Connection:
        if self._conn is None or self._conn.closed:
            self._conn = psycopg.connect(self.cfg.dsn, row_factory=dict_row, autocommit=False)
        return self._conn

    # ── plumbing ─────────────────────────────────────────────────

    def _fetchone(self, sql: str, params: tuple = ()) -> dict[str, Any] | None:
        try:
            row = self.conn.execute(sql, params).fetchone()
            # end the implicit read transaction
            self.conn.commit()
            return row
        except psycopg.Error as exc:
            self._rollback_quietly()
            raise StoreError(str(exc)) from exc

    def _fetchall(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        try:
            rows = self.conn.execute(sql, params).fetchall()
            self.conn.commit()
            return rows
        except psycopg.Error as exc:
            self._rollback_quietly()
            raise StoreError(str(exc)) from exc

    @contextmanager
    def _write(self) -> Iterator[psycopg.Connection]:
        with self._write_lock:
            try:
                yield self.conn
                self.conn.commit()
            except psycopg.Error as exc:
                self._rollback_quietly()
                raise StoreError(str(exc)) from exc

    def _rollback_quietly(self) -> None:
        if self._conn is None or self._conn.closed:
            return
        try:
            self._conn.rollback()
        except psycopg.Error as exc:
            logger.warning("Rollback failed: %s", exc)

    # ── schema ───────────────────────────────────────────────────

    def ensure_schema(self) -> None:
        """Create the author/post/media tables if they do not exist."""
        with self._write() as conn:
            conn.execute(SCHEMA)
        logger.debug("Schema ensured")

    # ── author operations ────────────────────────────────────────

    def upsert_author(self, author: Author) -> None:
        """Insert an author unless one with the same id exists."""
        with self._write() as conn:
            conn.execute(
                """INSERT INTO author (id, name, url)
                   VALUES (%s, %s, %s)
                   ON CONFLICT (id) DO NOTHING""",
                (author.id, author.name, author.url),
            )

    def get_author(self, author_id: str) -> Author | None:
        row = self._fetchone("SELECT id, name, url FROM author WHERE id = %s", (author_id,))
        return Author(id=row["id"], name=row["name"], url=row["url"]) if row else None

    def list_authors(self) -> list[Author]:
        rows = self._fetchall("SELECT id, name, url FROM author ORDER BY id")
        return [Author(id=r["id"], name=r["name"], url=r["url"]) for r in rows]

    # ── post operations ──────────────────────────────────────────

    def get_post(self, post_id: int) -> Post | None:
        row = self._fetchone("SELECT * FROM post WHERE id = %s", (post_id,))
        return _post(row) if row else None

    def get_post_by_url(self, url: str) -> Post | None:
        row = self._fetchone("SELECT * FROM post WHERE url = %s", (url,))
        return _post(row) if row else None

    def insert_post(
        self,
        *,
        author_id: str,
        url: str,
        description: str | None,
        timestamp: str | None,
        locked: bool,
    ) -> int:
        """Insert a post with a zero media count. Returns its ID.

        An existing post with the same URL is left untouched and its ID returned.
        """
        with self._write() as conn:
            row = conn.execute(
                """INSERT INTO post (author_id, url, description, timestamp,
                                     locked, cache_media_count)
                   VALUES (%s, %s, %s, %s, %s, 0)
                   ON CONFLICT (url) DO UPDATE SET url = EXCLUDED.url
                   RETURNING id""",
                (author_id, url, description, timestamp, locked),
            ).fetchone()
        return row["id"]

    def increment_media_count(self, post_id: int) -> int:
        """Add one to the post's cached media count, returning the new value."""
        with self._write() as conn:
            row = conn.execute(
                """UPDATE post SET cache_media_count = cache_media_count + 1
                   WHERE id = %s
                   RETURNING cache_media_count""",
                (post_id,),
            ).fetchone()
        if row is None:
            raise StoreError(f"post {post_id} does not exist")
        return row["cache_media_count"]

    def count_posts(self, author_id: str) -> int:
        row = self._fetchone("SELECT COUNT(*) AS n FROM post WHERE author_id = %s", (author_id,))
        return row["n"] if row else 0

    # ── media operations ─────────────────────────────────────────

    def get_media(self, post_id: int, url: str) -> Media | None:
        row = self._fetchone(
            "SELECT * FROM media WHERE post_id = %s AND url = %s", (post_id, url)
        )
        if not row:
            return None
        return Media(id=row["id"], post_id=row["post_id"], url=row["url"], file_path=row["file_path"])

    def insert_media(self, *, post_id: int, url: str, file_path: str) -> int:
        """Record a downloaded file.  ``(post_id, url)`` is checked for an
        existing row first; if one exists its ID is returned instead."""
        with self._write() as conn:
            existing = conn.execute(
                "SELECT id FROM media WHERE post_id = %s AND url = %s", (post_id, url)
            ).fetchone()
            if existing:
                logger.debug("Media %s already recorded for post %d", url, post_id)
                return existing["id"]
            row = conn.execute(
                """INSERT INTO media (post_id, url, file_path)
                   VALUES (%s, %s, %s)
                   RETURNING id""",
                (post_id, url, file_path),
            ).fetchone()
        return row["id"]

    def count_media(self, post_id: int) -> int:
        row = self._fetchone("SELECT COUNT(*) AS n FROM media WHERE post_id = %s", (post_id,))
        return row["n"] if row else 0

    def count_author_media(self, author_id: str) -> int:
        row = self._fetchone(
            """SELECT COUNT(*) AS n FROM media m
               JOIN post p ON p.id = m.post_id
               WHERE p.author_id = %s""",
            (author_id,),
        )
        return row["n"] if row else 0

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        if self._conn and not self._conn.closed:
            self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
