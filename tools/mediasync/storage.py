"""Local disk layout – where each downloaded media file lands."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import quote

logger = logging.getLogger("mediasync.storage")

# Map response MIME type → file extension, for URLs without one
EXTENSION_MAP: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
}

# Characters that cannot appear in a file name on common filesystems
_UNSAFE = re.compile(r'[\\/:*?"<>|. ]')
# Same safe set as JavaScript's encodeURIComponent
_QUOTE_SAFE = "-_.!~*'()"

MAX_NAME_LENGTH = 100
TRUNCATED_LENGTH = 50


def media_stem(description: str, index: int) -> str:
    """Build the file name (no extension) for the ``index``-th source of a post.

    The description is sanitized, percent-encoded and capped.  Every source
    after the first gets a ``_(n)`` suffix with its 1-based position.
    """
    name = quote(_UNSAFE.sub("_", description), safe=_QUOTE_SAFE)
    if len(name) > MAX_NAME_LENGTH:
        # drop a dangling, half-cut escape
        name = re.sub(r"%[0-9A-F]?$", "", name[:TRUNCATED_LENGTH])
    if not name:
        name = "media"
    if index > 0:
        name += f"_({index + 1})"
    return name


def extension_for(content_type: str | None) -> str:
    if not content_type:
        return "bin"
    mime = content_type.split(";", 1)[0].strip().lower()
    return EXTENSION_MAP.get(mime, "bin")


class DiskStorage:
    """Files live under ``<root>/<author id>/``; directories are created on demand."""

    def __init__(self, root: Path | str = "downloads") -> None:
        self.root = Path(root)

    def author_dir(self, author_id: str) -> Path:
        path = self.root / author_id
        path.mkdir(parents=True, exist_ok=True)
        return path

    def media_path(self, author_id: str, description: str, index: int, extension: str) -> Path:
        stem = media_stem(description, index)
        return self.author_dir(author_id) / f"{stem}.{extension or 'bin'}"

    @staticmethod
    def discard(path: Path) -> None:
        """Remove a partially written file, if any."""
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove partial file %s: %s", path, exc)
