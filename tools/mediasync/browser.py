"""Playwright-backed page capability."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page as PlaywrightPageHandle
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from .config import BrowserConfig
from .errors import PageError, ProbeTimeout

logger = logging.getLogger("mediasync.browser")


class PlaywrightPage:
    """Adapts a Playwright ``Page`` to the ``protocols.Page`` interface."""

    def __init__(self, page: PlaywrightPageHandle, cfg: BrowserConfig | None = None) -> None:
        self._page = page
        self.cfg = cfg or BrowserConfig()

    def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None:
        logger.debug("Navigating to %s", url)
        try:
            self._page.goto(url, wait_until=wait_until, timeout=self.cfg.page_timeout)
        except PlaywrightError as exc:
            raise PageError(f"could not load {url}: {exc}") from exc

    def wait_for_element(self, selector: str, timeout_ms: int) -> None:
        try:
            self._page.wait_for_selector(selector, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ProbeTimeout(selector, timeout_ms) from exc
        except PlaywrightError as exc:
            raise PageError(str(exc)) from exc

    def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return self._page.evaluate(script, arg)
        except PlaywrightError as exc:
            raise PageError(str(exc)) from exc

    def click(self, selector: str) -> None:
        try:
            self._page.click(selector, timeout=self.cfg.page_timeout)
        except PlaywrightError as exc:
            raise PageError(f"could not click {selector!r}: {exc}") from exc

    def type(self, selector: str, text: str) -> None:
        try:
            self._page.type(selector, text, delay=10, timeout=self.cfg.page_timeout)
        except PlaywrightError as exc:
            raise PageError(f"could not type into {selector!r}: {exc}") from exc

    def sleep(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)


@contextmanager
def open_browser(cfg: BrowserConfig | None = None) -> Iterator[PlaywrightPage]:
    """Launch Chromium and yield a single page for the whole run."""
    cfg = cfg or BrowserConfig()
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=cfg.headless)
        try:
            context = browser.new_context(
                user_agent=cfg.user_agent,
                viewport={"width": cfg.viewport_width, "height": cfg.viewport_height},
            )
            yield PlaywrightPage(context.new_page(), cfg)
        finally:
            browser.close()
