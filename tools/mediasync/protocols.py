"""
Protocol definitions for the pipeline's two collaborators.

- Store: persistence of authors, posts and media rows
- Page: a rendered, scriptable browser tab

Components receive these explicitly, so tests can swap in an in-memory store
and a scripted page.
"""

from __future__ import annotations

from typing import Any, Protocol

from .models import Author, Media, Post


class Store(Protocol):
    """Persistent state.  Lookups return ``None`` when nothing matches;
    failures raise ``StoreError``.  Writes are applied one at a time."""

    def upsert_author(self, author: Author) -> None: ...

    def get_author(self, author_id: str) -> Author | None: ...

    def list_authors(self) -> list[Author]: ...

    def get_post(self, post_id: int) -> Post | None: ...

    def get_post_by_url(self, url: str) -> Post | None: ...

    def insert_post(
        self,
        *,
        author_id: str,
        url: str,
        description: str | None,
        timestamp: str | None,
        locked: bool,
    ) -> int:
        """Insert a post with a zero media count, returning its id.

        If a post with this URL already exists its id is returned unchanged.
        """
        ...

    def get_media(self, post_id: int, url: str) -> Media | None: ...

    def insert_media(self, *, post_id: int, url: str, file_path: str) -> int: ...

    def increment_media_count(self, post_id: int) -> int: ...

    def count_media(self, post_id: int) -> int: ...


class Page(Protocol):
    """The browser capability the pipeline drives.  Times are milliseconds."""

    def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None: ...

    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        """Return once ``selector`` is attached; raise ``ProbeTimeout`` otherwise."""
        ...

    def evaluate(self, script: str, arg: Any = None) -> Any: ...

    def click(self, selector: str) -> None: ...

    def type(self, selector: str, text: str) -> None: ...

    def sleep(self, ms: int) -> None: ...
