"""Deduplicating downloader – fetch only the media a post is still missing."""

from __future__ import annotations

import logging

from .errors import FetchError
from .fetcher import MediaFetcher
from .models import Author, DownloadResult, PostContent
from .protocols import Store
from .storage import DiskStorage, extension_for
from .urls import canonicalize, extension_of

logger = logging.getLogger("mediasync.downloader")


class DedupDownloader:
    """Download a post's sources one by one, recording each as it lands.

    A source is identified by its canonical URL within its post.  After every
    successful download the media row is inserted and then the post's counter
    is bumped, so an interrupted run never overstates progress.
    """

    def __init__(self, store: Store, fetcher: MediaFetcher, storage: DiskStorage) -> None:
        self.store = store
        self.fetcher = fetcher
        self.storage = storage

    def ensure_post(self, author: Author, url: str, content: PostContent) -> int:
        """Return the post's ID, inserting the row on first encounter."""
        post = self.store.get_post_by_url(url)
        if post is not None:
            return post.id
        post_id = self.store.insert_post(
            author_id=author.id,
            url=url,
            description=content.description,
            timestamp=content.timestamp,
            locked=content.locked,
        )
        logger.debug("Created post %d for %s", post_id, url)
        return post_id

    def missing_sources(self, post_id: int, sources: list[str]) -> list[tuple[int, str]]:
        """``(position, raw url)`` for every source without a media row yet.

        Sources sharing a canonical URL are queued once, at the position of the
        first.  A source that cannot be parsed raises ``FetchError``.
        """
        missing = []
        seen: set[str] = set()
        for index, source in enumerate(sources):
            try:
                key = canonicalize(source)
            except ValueError as exc:
                raise FetchError(source, f"malformed URL: {exc}") from exc
            if key in seen:
                logger.debug("Post %d: duplicate source %s", post_id, source)
                continue
            seen.add(key)
            if self.store.get_media(post_id, key) is None:
                missing.append((index, source))
        return missing

    def download(self, author: Author, url: str, content: PostContent) -> DownloadResult:
        post_id = self.ensure_post(author, url, content)
        queue = self.missing_sources(post_id, content.sources)
        result = DownloadResult(post_id=post_id, skipped=len(content.sources) - len(queue))

        for index, source in queue:
            ext = extension_of(source)

            def destination(content_type: str | None, index: int = index, ext: str = ext):
                return self.storage.media_path(
                    author.id, content.description, index, ext or extension_for(content_type)
                )

            try:
                path = self.fetcher.fetch(source, destination)
            except FetchError as exc:
                logger.error("Aborting post %d after failed download: %s", post_id, exc)
                result.failed += 1
                result.aborted = True
                break

            self.store.insert_media(post_id=post_id, url=canonicalize(source), file_path=str(path))
            self.store.increment_media_count(post_id)
            result.downloaded += 1

        if queue and not result.aborted:
            logger.info("Post %d: downloaded %d file(s)", post_id, result.downloaded)
        return result
