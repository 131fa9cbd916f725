"""Row and value types passed between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ContentKind(str, Enum):
    LOCKED = "locked"
    VIDEO = "video"
    GALLERY = "gallery"
    IMAGE = "image"
    NONE = "none"


@dataclass(frozen=True)
class Author:
    id: str
    name: str
    url: str


@dataclass(frozen=True)
class Post:
    id: int
    author_id: str
    url: str
    description: str | None
    timestamp: str | None
    locked: bool
    cache_media_count: int

    @property
    def needs_processing(self) -> bool:
        """Unlocked posts that never got a single download are retried."""
        return not self.locked and self.cache_media_count == 0


@dataclass(frozen=True)
class Media:
    id: int
    post_id: int
    url: str
    file_path: str | None


@dataclass
class PostContent:
    """What the classifier read off a rendered post page."""
    kind: ContentKind
    description: str
    timestamp: str
    sources: list[str] = field(default_factory=list)

    @property
    def locked(self) -> bool:
        return self.kind is ContentKind.LOCKED


@dataclass
class DownloadResult:
    post_id: int
    downloaded: int = 0
    skipped: int = 0
    failed: int = 0
    aborted: bool = False
