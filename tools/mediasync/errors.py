"""Exception hierarchy shared across the pipeline."""

from __future__ import annotations


class MediaSyncError(Exception):
    """Base class for all mediasync errors."""


class ProbeTimeout(MediaSyncError):
    """An element did not appear within its probe timeout.

    Absence is usually an expected outcome; see ``classifier.probe``.
    """

    def __init__(self, selector: str, timeout_ms: int) -> None:
        super().__init__(f"{selector!r} not found within {timeout_ms} ms")
        self.selector = selector
        self.timeout_ms = timeout_ms


class PageError(MediaSyncError):
    """The browser failed to load or script a page."""


class StoreError(MediaSyncError):
    """A read or write against the persistent store failed."""


class FetchError(MediaSyncError):
    """Downloading a media file failed."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class LoginTimeout(MediaSyncError):
    """The signed-in feed never appeared before the login deadline."""
