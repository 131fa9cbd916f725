"""Core harvesting logic – orchestrates feed → classifier → downloader → DB."""

from __future__ import annotations

import logging

from rich.progress import Progress, SpinnerColumn, BarColumn, TextColumn, TimeElapsedColumn

from .classifier import PostClassifier
from .config import SyncConfig
from .db import Database
from .discovery import PostDiscovery
from .downloader import DedupDownloader
from .errors import MediaSyncError
from .fetcher import MediaFetcher
from .models import Author, DownloadResult
from .protocols import Page, Store
from .storage import DiskStorage

logger = logging.getLogger("mediasync.core")


class Harvester:
    """Runs the full pipeline for each tracked author, one post at a time."""

    def __init__(
        self,
        page: Page,
        cfg: SyncConfig | None = None,
        *,
        store: Store | None = None,
        fetcher: MediaFetcher | None = None,
        storage: DiskStorage | None = None,
    ) -> None:
        self.cfg = cfg or SyncConfig()
        self.page = page
        self._owns_store = store is None
        self._owns_fetcher = fetcher is None
        self.store: Store = store if store is not None else Database(self.cfg.db)
        self.fetcher = fetcher or MediaFetcher(self.cfg.fetch)
        self.storage = storage or DiskStorage(self.cfg.fetch.download_dir)

        self.discovery = PostDiscovery(self.store, self.cfg.site, self.cfg.browser)
        self.classifier = PostClassifier(self.cfg.site, self.cfg.browser)
        self.downloader = DedupDownloader(self.store, self.fetcher, self.storage)
        # Stats
        self.stats = {"authors": 0, "posts": 0, "locked": 0, "media": 0, "skipped": 0, "errors": 0}

    # ── single post ──────────────────────────────────────────────

    def harvest_post(self, author: Author, url: str) -> DownloadResult:
        """Render, classify and download one post."""
        logger.info("Scraping %s...", url)
        self.page.navigate(url, wait_until="domcontentloaded")
        content = self.classifier.classify(self.page, url)
        result = self.downloader.download(author, url, content)

        self.stats["posts"] += 1
        self.stats["media"] += result.downloaded
        self.stats["skipped"] += result.skipped
        if content.locked:
            self.stats["locked"] += 1
        if result.aborted:
            self.stats["errors"] += 1
        return result

    # ── author ───────────────────────────────────────────────────

    def harvest_author(self, author: Author) -> int:
        """Process every pending post of one author, oldest first.

        Returns the number of files downloaded.  A failing post is logged and
        skipped; it will be picked up again on the next run.
        """
        try:
            urls = self.discovery.discover(self.page, author)
        except MediaSyncError as exc:
            logger.error("Could not load feed for %s: %s", author.id, exc)
            self.stats["errors"] += 1
            return 0

        downloaded = 0
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
        ) as progress:
            task = progress.add_task(f"{author.id} posts", total=len(urls))
            for url in urls:
                try:
                    downloaded += self.harvest_post(author, url).downloaded
                except MediaSyncError as exc:
                    logger.error("Error harvesting %s: %s", url, exc)
                    self.stats["errors"] += 1
                progress.advance(task)

        self.stats["authors"] += 1
        logger.info("Author %s complete: %d file(s) downloaded", author.id, downloaded)
        return downloaded

    # ── multi-author ─────────────────────────────────────────────

    def harvest_authors(self, authors: list[Author]) -> dict[str, int]:
        """Harvest authors sequentially, in the order given."""
        results = {}
        for author in authors:
            logger.info("Starting harvest of %s (%s)", author.name, author.id)
            results[author.id] = self.harvest_author(author)
        return results

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()
        if self._owns_store and isinstance(self.store, Database):
            self.store.close()

    def __enter__(self) -> Harvester:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
