"""Configuration and environment settings for mediasync."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from .models import Author


@dataclass(frozen=True)
class DatabaseConfig:
    host: str = "localhost"
    port: int = 5432
    dbname: str = "mediasync"
    user: str = "mediasync"
    password: str = "mediasync"

    @property
    def dsn(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.dbname}"

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        return cls(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            dbname=os.getenv("DB_NAME", "mediasync"),
            user=os.getenv("DB_USER", "mediasync"),
            password=os.getenv("DB_PASSWORD", "mediasync"),
        )


@dataclass(frozen=True)
class SiteConfig:
    """Where authors live and how their pages are laid out."""
    base_url: str = "https://onlyfans.com"

    # feed
    feed_container: str = ".user_posts"
    feed_post: str = ".user_posts .b-post"

    # post page
    post_wrapper: str = ".b-post__wrapper"
    locked_marker: str = ".post-purchase"
    video_button: str = ".video-js button"
    video_source: str = 'video > source[label="720"]'
    gallery: str = ".swiper-wrapper"
    gallery_image: str = 'img[draggable="false"]'
    single_image: str = ".img-responsive"
    description: str = ".b-post__text-el"
    timestamp: str = ".b-post__date > span"

    # login form
    login_form: str = "form.b-loginreg__form"
    login_email: str = 'input[name="email"]'
    login_password: str = 'input[name="password"]'
    login_submit: str = 'button[type="submit"]'

    @classmethod
    def from_env(cls) -> SiteConfig:
        return cls(base_url=os.getenv("SITE_BASE_URL", "https://onlyfans.com").rstrip("/"))


@dataclass(frozen=True)
class BrowserConfig:
    """Page rendering settings.  All durations are milliseconds."""
    headless: bool = False
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:90.0) Gecko/20100101 Firefox/90.0"
    viewport_width: int = 1280
    viewport_height: int = 720
    page_timeout: int = 30_000
    probe_timeout: int = 100
    video_source_timeout: int = 2_000
    login_timeout: int = 4 * 60 * 1000
    scroll_interval: int = 1_000
    max_scroll_rounds: int = 500

    @classmethod
    def from_env(cls) -> BrowserConfig:
        return cls(headless=os.getenv("BROWSER_HEADLESS", "false").lower() == "true")


@dataclass(frozen=True)
class FetchConfig:
    """Media download settings.  One attempt per file, no retries."""
    download_dir: Path = Path("downloads")
    request_delay: float = 0.5  # seconds between downloads
    timeout: float = 60.0
    chunk_size: int = 64 * 1024
    user_agent: str = BrowserConfig.user_agent

    @classmethod
    def from_env(cls) -> FetchConfig:
        return cls(
            download_dir=Path(os.getenv("DOWNLOAD_DIR", "downloads")),
            request_delay=float(os.getenv("REQUEST_DELAY", "0.5")),
        )


@dataclass(frozen=True)
class Credentials:
    username: str = ""
    password: str = ""

    @classmethod
    def from_env(cls) -> Credentials:
        return cls(
            username=os.getenv("MEDIASYNC_USERNAME", ""),
            password=os.getenv("MEDIASYNC_PASSWORD", ""),
        )


@dataclass
class SyncConfig:
    db: DatabaseConfig = field(default_factory=DatabaseConfig.from_env)
    site: SiteConfig = field(default_factory=SiteConfig.from_env)
    browser: BrowserConfig = field(default_factory=BrowserConfig.from_env)
    fetch: FetchConfig = field(default_factory=FetchConfig.from_env)
    credentials: Credentials = field(default_factory=Credentials.from_env)
    authors_file: Path = Path("authors.json")


def load_authors(path: Path, site: SiteConfig) -> list[Author]:
    """Read the tracked-author list (``[{"id": ..., "name": ...}, ...]``)."""
    entries = json.loads(path.read_text(encoding="utf-8"))
    authors = []
    for entry in entries:
        author_id = str(entry["id"])
        authors.append(Author(
            id=author_id,
            name=entry.get("name") or author_id,
            url=f"{site.base_url}/{author_id}",
        ))
    return authors
