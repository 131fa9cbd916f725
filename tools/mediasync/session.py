"""Sign-in handshake."""

from __future__ import annotations

import logging

from .config import BrowserConfig, Credentials, SiteConfig
from .errors import LoginTimeout, ProbeTimeout
from .protocols import Page

logger = logging.getLogger("mediasync.session")


def login(page: Page, creds: Credentials, site: SiteConfig, browser: BrowserConfig) -> None:
    """Submit the login form and wait for the signed-in feed.

    The wait is long because a human may have to solve a CAPTCHA in the
    (non-headless) browser window.  Raises ``LoginTimeout`` when it expires.
    """
    logger.info("Loading main page...")
    page.navigate(site.base_url, wait_until="domcontentloaded")
    page.wait_for_element(site.login_form, browser.page_timeout)

    logger.info("Logging in...")
    page.type(site.login_email, creds.username)
    page.type(site.login_password, creds.password)
    page.click(site.login_submit)

    logger.info("Waiting for CAPTCHA...")
    try:
        page.wait_for_element(site.feed_container, browser.login_timeout)
    except ProbeTimeout as exc:
        raise LoginTimeout(
            f"not signed in within {browser.login_timeout // 1000} s"
        ) from exc
    logger.info("Logged in.")
