"""Synchronous Playwright browser wrapper.

Owns the Playwright driver, the browser process and the single page the
Playwright environment drives.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from playwright.sync_api import sync_playwright

from domharness.exceptions import ConfigurationError, HarnessError

if TYPE_CHECKING:
    from playwright.sync_api import Browser, BrowserContext, Page, Playwright

_LOGGER = logging.getLogger(__name__)

BROWSER_ENGINES = ("chromium", "firefox", "webkit")


class PlaywrightBrowser:
    """Synchronous Playwright browser with one page."""

    def __init__(
        self,
        browser: str = "chromium",
        headless: bool = True,
        timeout: int = 30000,
        viewport: dict[str, int] | None = None,
    ):
        """Initialize browser wrapper.

        Args:
            browser: Browser engine name ('chromium', 'firefox', 'webkit')
            headless: Run browser in headless mode
            timeout: Default timeout in milliseconds (default: 30000 = 30s)
            viewport: Viewport size, e.g. {"width": 1920, "height": 1080}
        """
        if browser not in BROWSER_ENGINES:
            raise ConfigurationError(f"Unsupported browser: {browser}")

        self._engine = browser
        self._headless = headless
        self._timeout = timeout
        self._viewport = viewport
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None

        _LOGGER.debug(
            "PlaywrightBrowser initialized (browser=%s, headless=%s, timeout=%dms)",
            browser, headless, timeout
        )

    def start(self):
        """Launch browser and create page.

        This must be called before using the wrapper.
        """
        _LOGGER.info("Starting Playwright browser...")

        self._playwright = sync_playwright().start()
        launcher = getattr(self._playwright, self._engine)
        launch_args = []
        if self._engine == "chromium":
            launch_args = ['--proxy-server="direct://"', "--proxy-bypass-list=*"]
        self._browser = launcher.launch(headless=self._headless, args=launch_args)

        pages = self._browser.contexts[0].pages if self._browser.contexts else []
        self._page = pages[0] if pages else self._browser.new_page()
        self._page.set_default_timeout(self._timeout)
        if self._viewport:
            self._page.set_viewport_size(self._viewport)

        _LOGGER.info(
            "Playwright browser started (browser=%s, headless=%s)",
            self._engine, self._headless
        )

    def close(self):
        """Close browser and stop Playwright."""
        if self._browser:
            try:
                self._browser.close()
                _LOGGER.info("Browser closed")
            except Exception as e:  # noqa: BLE001
                _LOGGER.warning("Error closing browser: %s", e)
            self._browser = None

        if self._playwright:
            try:
                self._playwright.stop()
                _LOGGER.info("Playwright stopped")
            except Exception as e:  # noqa: BLE001
                _LOGGER.warning("Error stopping Playwright: %s", e)
            self._playwright = None

        self._page = None

    @property
    def page(self) -> Page:
        """Get Playwright Page object.

        Returns:
            Playwright Page for direct manipulation
        """
        if self._page is None:
            raise HarnessError("Browser not started. Call start() first.")
        return self._page

    @property
    def context(self) -> BrowserContext:
        """Get the browser context of the page."""
        return self.page.context

    def grant_permissions(self, origin: str, permissions: list[str]):
        """Grant browser permissions to origin.

        A permission the engine rejects is logged and skipped.

        Args:
            origin: Origin the permissions apply to
            permissions: Permission names, e.g. ['clipboard-read']
        """
        for permission in permissions:
            try:
                self.context.grant_permissions([permission], origin=origin)
            except Exception as e:  # noqa: BLE001
                _LOGGER.warning("Permission '%s' not granted: %s", permission, e)

    def take_screenshot(self, path: str, full_page: bool = True):
        """Take screenshot and save to file.

        Args:
            path: File path to save screenshot
            full_page: If True, capture entire page (scrolling as needed)
        """
        _LOGGER.debug("Taking screenshot: %s (full_page=%s)", path, full_page)

        try:
            self.page.screenshot(path=path, full_page=full_page)
            _LOGGER.info("Screenshot saved: %s", path)
        except Exception as e:
            _LOGGER.error("Failed to take screenshot: %s", e, exc_info=True)
            raise
