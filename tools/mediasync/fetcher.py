"""Media fetcher – throttled, single-attempt HTTP downloads to disk."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

import httpx

from .config import FetchConfig
from .errors import FetchError
from .storage import DiskStorage

logger = logging.getLogger("mediasync.fetcher")


class MediaFetcher:
    """Stream media URLs into local files, one request at a time."""

    def __init__(self, cfg: FetchConfig | None = None, client: httpx.Client | None = None) -> None:
        self.cfg = cfg or FetchConfig()
        self._last_request: float = 0.0
        self._client = client or httpx.Client(
            timeout=self.cfg.timeout,
            headers={"User-Agent": self.cfg.user_agent},
            follow_redirects=True,
        )

    # ── rate limiting ────────────────────────────────────────────
    def _throttle(self) -> None:
        elapsed = time.monotonic() - self._last_request
        if elapsed < self.cfg.request_delay:
            time.sleep(self.cfg.request_delay - elapsed)
        self._last_request = time.monotonic()

    # ── public API ───────────────────────────────────────────────

    def fetch(self, url: str, destination: Callable[[str | None], Path]) -> Path:
        """Download ``url`` into the path chosen by ``destination``.

        ``destination`` receives the response Content-Type, which lets callers
        pick an extension when the URL has none.  On any failure the partial
        file is removed and ``FetchError`` is raised; there is no retry.
        """
        self._throttle()
        path: Path | None = None
        try:
            with self._client.stream("GET", url) as resp:
                resp.raise_for_status()
                path = destination(resp.headers.get("content-type"))
                if path.exists():
                    logger.warning('Overwriting existing file "%s"', path)
                logger.info('Downloading to "%s"...', path.name)
                with path.open("wb") as fh:
                    for chunk in resp.iter_bytes(self.cfg.chunk_size):
                        fh.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, OSError) as exc:
            if path is not None:
                DiskStorage.discard(path)
            logger.warning("Failed to download %s: %s", url, exc)
            raise FetchError(url, str(exc)) from exc
        return path

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> MediaFetcher:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
