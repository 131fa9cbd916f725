"""URL helpers: canonical media identity and site URL patterns."""

from __future__ import annotations

from urllib.parse import urlsplit

from .config import SiteConfig


def canonicalize(url: str) -> str:
    """Reduce a media URL to ``scheme://host/path``.

    Signed CDN links differ only in their query string between page loads, so
    this is the identity used for deduplication.  The raw URL is what gets
    downloaded.
    """
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.hostname or ''}{parts.path}"


def feed_url(site: SiteConfig, author_id: str) -> str:
    return f"{site.base_url}/{author_id}/media?order=publish_date_asc"


def post_url(site: SiteConfig, author_id: str, post_id: int | str) -> str:
    return f"{site.base_url}/{post_id}/{author_id}"


def extension_of(url: str) -> str:
    """File extension of the URL path without the dot, or ``""``."""
    name = urlsplit(url).path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()
