"""Post classification – decide what kind of media a rendered post holds.

Rules are tried in a fixed priority order and the first one that yields
sources wins:

    locked  →  video  →  gallery  →  single image  →  none

A locked post never gets probed for media.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .config import BrowserConfig, SiteConfig
from .errors import ProbeTimeout
from .models import ContentKind, PostContent
from .protocols import Page

logger = logging.getLogger("mediasync.classifier")

JS_EXISTS = "(sel) => document.querySelector(sel) !== null"
JS_TEXT = "(sel) => { const el = document.querySelector(sel); return el ? el.innerText : null; }"
JS_ATTR = (
    "([sel, attr]) => { const el = document.querySelector(sel);"
    " return el ? el.getAttribute(attr) : null; }"
)
JS_NESTED_ATTRS = (
    "([outer, inner, attr]) => { const root = document.querySelector(outer);"
    " if (!root) return [];"
    " return Array.from(root.querySelectorAll(inner)).map(el => el.getAttribute(attr)); }"
)


def probe(page: Page, selector: str, timeout_ms: int) -> bool:
    """True if ``selector`` shows up within ``timeout_ms``."""
    try:
        page.wait_for_element(selector, timeout_ms)
    except ProbeTimeout:
        return False
    return True


def exists(page: Page, selector: str) -> bool:
    return bool(page.evaluate(JS_EXISTS, selector))


@dataclass(frozen=True)
class Rule:
    """One row of the decision table.

    ``extract`` returns ``None`` when the rule does not apply, otherwise the
    (possibly empty) source list.
    """
    kind: ContentKind
    extract: Callable[[Page], list[str] | None]


class PostClassifier:
    def __init__(self, site: SiteConfig | None = None, browser: BrowserConfig | None = None) -> None:
        self.site = site or SiteConfig()
        self.browser = browser or BrowserConfig()
        self.rules: list[Rule] = [
            Rule(ContentKind.LOCKED, self._locked),
            Rule(ContentKind.VIDEO, self._video),
            Rule(ContentKind.GALLERY, self._gallery),
            Rule(ContentKind.IMAGE, self._single_image),
        ]

    # ── rules ────────────────────────────────────────────────────

    def _locked(self, page: Page) -> list[str] | None:
        if probe(page, self.site.locked_marker, self.browser.probe_timeout):
            return []
        return None

    def _video(self, page: Page) -> list[str] | None:
        if not probe(page, self.site.video_button, self.browser.probe_timeout):
            return None
        logger.debug("Found video")
        page.click(self.site.video_button)
        if not probe(page, self.site.video_source, self.browser.video_source_timeout):
            logger.debug("Video source never appeared, trying images")
            return None
        src = page.evaluate(JS_ATTR, [self.site.video_source, "src"])
        return [src] if src else None

    def _gallery(self, page: Page) -> list[str] | None:
        if not exists(page, self.site.gallery):
            return None
        srcs = page.evaluate(JS_NESTED_ATTRS, [self.site.gallery, self.site.gallery_image, "src"])
        return [s for s in srcs or [] if s]

    def _single_image(self, page: Page) -> list[str] | None:
        if not exists(page, self.site.single_image):
            return None
        src = page.evaluate(JS_ATTR, [self.site.single_image, "src"])
        return [src] if src else []

    # ── public API ───────────────────────────────────────────────

    def classify(self, page: Page, url: str) -> PostContent:
        """Classify the post currently rendered in ``page``.

        ``url`` is the post's own address, used as the description when the
        post has no text.
        """
        page.wait_for_element(self.site.post_wrapper, self.browser.page_timeout)

        kind, sources = ContentKind.NONE, []
        for rule in self.rules:
            found = rule.extract(page)
            if found is not None:
                kind, sources = rule.kind, found
                break

        description = page.evaluate(JS_TEXT, self.site.description)
        if description is None:
            description = url
        timestamp = page.evaluate(JS_TEXT, self.site.timestamp) or ""

        logger.info("Post %s: %s, %d source(s)", url, kind.value, len(sources))
        return PostContent(kind=kind, description=description, timestamp=timestamp, sources=sources)
