"""Post discovery – list an author's posts and pick the ones still to process."""

from __future__ import annotations

import logging
import re

from .config import BrowserConfig, SiteConfig
from .errors import StoreError
from .models import Author
from .protocols import Page, Store
from .urls import feed_url, post_url

logger = logging.getLogger("mediasync.discovery")

POST_ID_RE = re.compile(r"postId_(.+)", re.IGNORECASE)

JS_HEIGHT = "() => document.body.scrollHeight"
JS_SCROLL_BOTTOM = "() => window.scrollTo(0, document.body.scrollHeight)"
JS_ELEMENT_IDS = "(sel) => Array.from(document.querySelectorAll(sel)).map(el => el.id)"


def parse_post_ids(element_ids: list[str]) -> list[str]:
    """Pull post identifiers out of feed element ids, keeping first-seen order."""
    seen: set[str] = set()
    ids: list[str] = []
    for element_id in element_ids:
        m = POST_ID_RE.search(element_id or "")
        if not m or m.group(1) in seen:
            continue
        seen.add(m.group(1))
        ids.append(m.group(1))
    return ids


class PostDiscovery:
    def __init__(
        self,
        store: Store,
        site: SiteConfig | None = None,
        browser: BrowserConfig | None = None,
    ) -> None:
        self.store = store
        self.site = site or SiteConfig()
        self.browser = browser or BrowserConfig()

    def load_feed(self, page: Page, author: Author) -> None:
        """Open the author's media feed, oldest post first."""
        page.navigate(feed_url(self.site, author.id), wait_until="networkidle")
        page.wait_for_element(self.site.feed_container, self.browser.page_timeout)

    def scroll_to_end(self, page: Page) -> int:
        """Scroll until the page stops growing.  Returns the number of rounds."""
        height = page.evaluate(JS_HEIGHT)
        rounds = 0
        while rounds < self.browser.max_scroll_rounds:
            page.evaluate(JS_SCROLL_BOTTOM)
            page.sleep(self.browser.scroll_interval)
            rounds += 1
            new_height = page.evaluate(JS_HEIGHT)
            if new_height <= height:
                break
            height = new_height
        else:
            logger.warning("Feed still growing after %d scroll rounds", rounds)
        logger.debug("Feed fully loaded after %d scroll round(s)", rounds)
        return rounds

    def extract_post_ids(self, page: Page) -> list[str]:
        return parse_post_ids(page.evaluate(JS_ELEMENT_IDS, self.site.feed_post) or [])

    def select_pending(self, author: Author, post_ids: list[str]) -> list[str]:
        """Post URLs that are new, or known but unlocked with nothing downloaded.

        A lookup failure skips that post for this run; it is picked up again
        next time.
        """
        pending = []
        for pid in post_ids:
            url = post_url(self.site, author.id, pid)
            try:
                post = self.store.get_post_by_url(url)
            except StoreError as exc:
                logger.error("Lookup failed for %s, skipping: %s", url, exc)
                continue
            if post is None or post.needs_processing:
                pending.append(url)
        return pending

    def discover(self, page: Page, author: Author) -> list[str]:
        self.load_feed(page, author)
        self.scroll_to_end(page)
        post_ids = self.extract_post_ids(page)
        pending = self.select_pending(author, post_ids)
        logger.info(
            "%s: %d post(s) on feed, %d to process", author.id, len(post_ids), len(pending)
        )
        return pending
