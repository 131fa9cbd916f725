"""
Shared test fixtures.

Provides an in-memory ``Store``, a scripted ``Page`` that serves canned DOM
snapshots, and a fetcher that writes small files instead of hitting the
network.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from itertools import count
from pathlib import Path
from typing import Any

import pytest

from mediasync import classifier as cls_js
from mediasync import discovery as disc_js
from mediasync.config import BrowserConfig, SiteConfig, SyncConfig
from mediasync.errors import FetchError, PageError, ProbeTimeout, StoreError
from mediasync.models import Author, Media, Post
from mediasync.storage import DiskStorage

SITE = SiteConfig(base_url="https://site")


# =============================================================================
# In-memory store
# =============================================================================

class MemoryStore:
    """Dict-backed stand-in for ``db.Database``.

    ``fail`` maps a method name to a predicate over its first argument; a
    matching call raises ``StoreError``.  ``log`` records every write in order.
    """

    def __init__(self) -> None:
        self.authors: dict[str, Author] = {}
        self.posts: dict[int, Post] = {}
        self.media: dict[int, Media] = {}
        self.log: list[tuple[str, Any]] = []
        self.fail: dict[str, Callable[[Any], bool]] = {}
        self._post_ids = count(1)
        self._media_ids = count(1)

    def _check(self, op: str, arg: Any) -> None:
        pred = self.fail.get(op)
        if pred and pred(arg):
            raise StoreError(f"{op} failed")

    def upsert_author(self, author: Author) -> None:
        self._check("upsert_author", author)
        self.authors.setdefault(author.id, author)

    def get_author(self, author_id: str) -> Author | None:
        return self.authors.get(author_id)

    def list_authors(self) -> list[Author]:
        return sorted(self.authors.values(), key=lambda a: a.id)

    def get_post(self, post_id: int) -> Post | None:
        return self.posts.get(post_id)

    def get_post_by_url(self, url: str) -> Post | None:
        self._check("get_post_by_url", url)
        return next((p for p in self.posts.values() if p.url == url), None)

    def insert_post(self, *, author_id, url, description, timestamp, locked) -> int:
        self._check("insert_post", url)
        existing = self.get_post_by_url(url)
        if existing:
            return existing.id
        post = Post(
            id=next(self._post_ids), author_id=author_id, url=url, description=description,
            timestamp=timestamp, locked=locked, cache_media_count=0,
        )
        self.posts[post.id] = post
        self.log.append(("insert_post", post.id))
        return post.id

    def get_media(self, post_id: int, url: str) -> Media | None:
        return next(
            (m for m in self.media.values() if m.post_id == post_id and m.url == url), None
        )

    def insert_media(self, *, post_id: int, url: str, file_path: str) -> int:
        self._check("insert_media", url)
        existing = self.get_media(post_id, url)
        if existing:
            return existing.id
        media = Media(id=next(self._media_ids), post_id=post_id, url=url, file_path=file_path)
        self.media[media.id] = media
        self.log.append(("insert_media", url))
        return media.id

    def increment_media_count(self, post_id: int) -> int:
        self._check("increment_media_count", post_id)
        post = self.posts[post_id]
        updated = replace(post, cache_media_count=post.cache_media_count + 1)
        self.posts[post_id] = updated
        self.log.append(("increment_media_count", post_id))
        return updated.cache_media_count

    def count_media(self, post_id: int) -> int:
        return sum(1 for m in self.media.values() if m.post_id == post_id)

    # helpers for seeding state

    def add_post(self, url: str, *, locked: bool = False, media_count: int = 0, author_id: str = "alice") -> Post:
        post = Post(
            id=next(self._post_ids), author_id=author_id, url=url, description="seed",
            timestamp="", locked=locked, cache_media_count=media_count,
        )
        self.posts[post.id] = post
        return post


# =============================================================================
# Scripted page
# =============================================================================

@dataclass
class Dom:
    """A canned rendering of one URL."""
    present: set[str] = field(default_factory=set)
    texts: dict[str, str] = field(default_factory=dict)
    attrs: dict[tuple[str, str], str] = field(default_factory=dict)
    nested: dict[str, list[str]] = field(default_factory=dict)
    revealed_on_click: set[str] = field(default_factory=set)
    heights: list[int] = field(default_factory=lambda: [1000])
    element_ids: list[str] = field(default_factory=list)


class FakePage:
    def __init__(self, doms: dict[str, Dom] | None = None) -> None:
        self.doms = doms or {}
        self.current = Dom()
        self.visited: list[str] = []
        self.waited: list[tuple[str, int]] = []
        self.clicks: list[str] = []
        self.typed: list[tuple[str, str]] = []
        self.sleeps: list[int] = []
        self.scrolls = 0
        self.fail_navigation: set[str] = set()
        self._heights = iter(self.current.heights)
        self._last_height = self.current.heights[0]

    def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None:
        if url in self.fail_navigation:
            raise PageError(f"could not load {url}")
        self.visited.append(url)
        self.current = self.doms.get(url, Dom())
        self._heights = iter(self.current.heights)
        self._last_height = self.current.heights[0]

    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        self.waited.append((selector, timeout_ms))
        if selector not in self.current.present:
            raise ProbeTimeout(selector, timeout_ms)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        dom = self.current
        if script == cls_js.JS_EXISTS:
            return arg in dom.present
        if script == cls_js.JS_TEXT:
            return dom.texts.get(arg)
        if script == cls_js.JS_ATTR:
            return dom.attrs.get((arg[0], arg[1]))
        if script == cls_js.JS_NESTED_ATTRS:
            return list(dom.nested.get(arg[0], []))
        if script == disc_js.JS_HEIGHT:
            self._last_height = next(self._heights, self._last_height)
            return self._last_height
        if script == disc_js.JS_SCROLL_BOTTOM:
            self.scrolls += 1
            return None
        if script == disc_js.JS_ELEMENT_IDS:
            return list(dom.element_ids)
        raise AssertionError(f"unexpected script: {script}")

    def click(self, selector: str) -> None:
        self.clicks.append(selector)
        self.current.present |= self.current.revealed_on_click

    def type(self, selector: str, text: str) -> None:
        self.typed.append((selector, text))

    def sleep(self, ms: int) -> None:
        self.sleeps.append(ms)


def locked_dom(description: str = "Pay to see") -> Dom:
    return Dom(
        present={SITE.post_wrapper, SITE.locked_marker, SITE.description, SITE.timestamp},
        texts={SITE.description: description, SITE.timestamp: "Jan 1"},
    )


def gallery_dom(sources: list[str], description: str = "Beach day") -> Dom:
    return Dom(
        present={SITE.post_wrapper, SITE.gallery, SITE.description, SITE.timestamp},
        texts={SITE.description: description, SITE.timestamp: "Jan 2"},
        nested={SITE.gallery: sources},
    )


def image_dom(source: str, description: str = "Selfie") -> Dom:
    return Dom(
        present={SITE.post_wrapper, SITE.single_image, SITE.description, SITE.timestamp},
        texts={SITE.description: description, SITE.timestamp: "Jan 3"},
        attrs={(SITE.single_image, "src"): source},
    )


def video_dom(source: str | None, description: str = "Clip") -> Dom:
    dom = Dom(
        present={SITE.post_wrapper, SITE.video_button, SITE.description, SITE.timestamp},
        texts={SITE.description: description, SITE.timestamp: "Jan 4"},
    )
    if source is not None:
        dom.revealed_on_click = {SITE.video_source}
        dom.attrs[(SITE.video_source, "src")] = source
    return dom


def feed_dom(post_ids: list[str], heights: list[int] | None = None) -> Dom:
    return Dom(
        present={SITE.feed_container},
        element_ids=[f"postId_{pid}" for pid in post_ids],
        heights=heights or [1000, 2000, 2000],
    )


# =============================================================================
# Fetcher double
# =============================================================================

class FakeFetcher:
    """Writes the URL as file content; URLs in ``failures`` raise ``FetchError``."""

    def __init__(self) -> None:
        self.fetched: list[str] = []
        self.failures: set[str] = set()

    def fetch(self, url: str, destination: Callable[[str | None], Path]) -> Path:
        self.fetched.append(url)
        if url in self.failures:
            raise FetchError(url, "connection reset")
        path = destination("image/jpeg")
        path.write_text(url)
        return path

    def close(self) -> None:
        pass


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture()
def site() -> SiteConfig:
    return SITE


@pytest.fixture()
def browser_cfg() -> BrowserConfig:
    return BrowserConfig()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def storage(tmp_path: Path) -> DiskStorage:
    return DiskStorage(tmp_path / "downloads")


@pytest.fixture()
def alice() -> Author:
    return Author(id="alice", name="Alice", url="https://site/alice")


@pytest.fixture()
def sync_cfg(tmp_path: Path) -> SyncConfig:
    return SyncConfig(site=SITE, authors_file=tmp_path / "authors.json")
