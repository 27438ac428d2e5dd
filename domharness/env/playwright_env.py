"""Environment driving a separate browser process through Playwright.

Elements are Playwright ``ElementHandle`` objects; every DOM operation is
evaluated inside the page. HTTP requests issued by tests go through an
``HttpSession`` with its own cookie jar. Results are printed to the
console with ``rich``.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Sequence
from urllib.parse import urlsplit

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from rich.console import Console
from rich.markup import escape

from domharness.env.environment import Environment, ResultRecord
from domharness.exceptions import ConfigurationError, PageError, WaitTimeoutError
from domharness.lib import scripts
from domharness.lib.browser import PlaywrightBrowser
from domharness.lib.http import HttpResponse, HttpSession
from domharness.lib.navigation import LoadListener
from domharness.lib.utils import format_time

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle, Page

    from domharness.application import TestApplication
    from domharness.config import HarnessConfig
    from domharness.env.environment import ContentValidator, RouteHandler

_LOGGER = logging.getLogger(__name__)

BLOCK_STYLES: dict[Any, str] = {
    1: "bold white on blue",
    2: "black on green",
    3: "cyan",
    "warn": "red",
}


class PageLoadListener(LoadListener):
    """Load listener registered on a Playwright page."""

    def __init__(self, environment: PlaywrightEnvironment, page: Page) -> None:
        self._environment = environment
        self._page = page
        self._loaded = False
        self._handler = self._on_load
        page.on("load", self._handler)

    def _on_load(self, *_args: Any) -> None:  # noqa: ANN401
        self._loaded = True

    def is_loaded(self) -> bool:
        self._environment.check_page_error()
        return self._loaded

    def close(self) -> None:
        self._page.remove_listener("load", self._handler)


class PlaywrightEnvironment(Environment):
    """Test environment backed by Playwright."""

    def __init__(
        self,
        config: HarnessConfig | None = None,
        browser: PlaywrightBrowser | None = None,
        http: HttpSession | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize Playwright environment.

        :param config: test run configuration
        :param browser: browser wrapper, created from config on run() if None
        :param http: HTTP session for http_req
        :param console: console receiving the report
        """
        super().__init__(config)
        self.browser = browser
        self.http = http or HttpSession()
        self.console = console or Console(highlight=False)
        self.document: ElementHandle | None = None
        self._story: str | None = None
        self._page_error_handler = self.on_page_error

    @property
    def page(self) -> Page:
        """Page under test."""
        if self.browser is None:
            raise PageError("Browser is not ready")
        return self.browser.page

    def url(self) -> str:
        return self.page.url

    def get_selected_story(self) -> str | None:
        return self._story or super().get_selected_story()

    # ========================================================================
    # DOM
    # ========================================================================

    def query(self, selector: str, parent: Any = None) -> ElementHandle | None:  # noqa: ANN401
        if not isinstance(selector, str):
            return None
        root = self.page if parent is None else parent
        try:
            return root.query_selector(selector)
        except PlaywrightError as exc:
            raise ConfigurationError(f"Invalid selector specified: {selector}") from exc

    def query_all(self, selector: str, parent: Any = None) -> list[ElementHandle]:  # noqa: ANN401
        if not isinstance(selector, str):
            return []
        root = self.page if parent is None else parent
        try:
            return list(root.query_selector_all(selector))
        except PlaywrightError as exc:
            raise ConfigurationError(f"Invalid selector specified: {selector}") from exc

    def closest(self, elem: ElementHandle, selector: str) -> ElementHandle | None:
        if elem is None or not isinstance(selector, str):
            return None
        return elem.evaluate_handle(scripts.CLOSEST, selector).as_element()

    def parent_node(self, elem: ElementHandle) -> ElementHandle | None:
        if elem is None:
            return None
        return elem.evaluate_handle(scripts.PARENT_NODE).as_element()

    def attr(self, elem: ElementHandle, name: str) -> str | None:
        if elem is None or not isinstance(name, str):
            return None
        return elem.get_attribute(name)

    def has_attr(self, elem: ElementHandle, name: str) -> bool:
        if elem is None or not isinstance(name, str):
            return False
        return bool(elem.evaluate(scripts.HAS_ATTRIBUTE, name))

    def has_class(self, elem: ElementHandle, name: str) -> bool:
        if elem is None or not isinstance(name, str):
            return False
        return bool(elem.evaluate(scripts.HAS_CLASS, name))

    def evaluate_visibility(self, elems: Sequence[ElementHandle | None]) -> list[bool]:
        if not elems:
            return []
        return [bool(item) for item in self.page.evaluate(scripts.VISIBILITY_BATCH, list(elems))]

    def _element_visible(self, elem: ElementHandle, recursive: bool) -> bool:
        return elem.evaluate(scripts.VISIBILITY, recursive is True)

    def _read_property(self, elem: ElementHandle, segments: list[str]) -> tuple[bool, Any]:
        found, value = elem.evaluate(scripts.PROPERTY_PATH, segments)
        return bool(found), value

    def _read_global(self, segments: list[str]) -> tuple[bool, Any]:
        found, value = self.page.evaluate(scripts.GLOBAL_PATH, segments)
        return bool(found), value

    # ========================================================================
    # Input
    # ========================================================================

    def _select_options(self, elem: ElementHandle) -> dict | None:
        return elem.evaluate(scripts.SELECT_OPTIONS)

    def _apply_selection(self, elem: ElementHandle, index: int, selected: bool) -> None:
        elem.evaluate(scripts.APPLY_SELECTION, [index, selected])

    def on_change(self, elem: ElementHandle) -> None:
        if elem is not None:
            elem.evaluate(scripts.DISPATCH_CHANGE)

    def on_blur(self, elem: ElementHandle) -> None:
        if elem is not None:
            elem.evaluate(scripts.DISPATCH_BLUR)

    def click(self, elem: ElementHandle) -> None:
        if elem is not None:
            elem.evaluate(scripts.DISPATCH_CLICK)

    def input(self, elem: ElementHandle, value: Any) -> None:  # noqa: ANN401
        """Clear element and type value key by key."""
        if elem is None:
            return
        text = "" if value is None else str(value)
        current = elem.evaluate(scripts.GET_VALUE) or ""
        if current == "" and text == "":
            return

        elem.focus()
        if text == "":
            keyboard = self.page.keyboard
            keyboard.press("ControlOrMeta+KeyA")
            keyboard.press("Delete")
            return

        if current != "":
            elem.evaluate(scripts.CLEAR_VALUE)
        elem.type(text)

    def _selector_state(self, selector: str) -> tuple[bool, bool]:
        found, visible = self.page.evaluate(scripts.SELECTOR_STATE, selector)
        return bool(found), bool(visible)

    def _sleep(self, seconds: float) -> None:
        # Waiting through the page keeps Playwright events flowing.
        if self.browser is None:
            time.sleep(seconds)
        else:
            self.page.wait_for_timeout(seconds * 1000)

    # ========================================================================
    # Navigation
    # ========================================================================

    def _open(self, url: str) -> None:
        # Load completion is awaited by the armed listener.
        try:
            self.page.goto(url, wait_until="commit", timeout=self.default_timeout)
        except PlaywrightTimeoutError as exc:
            raise WaitTimeoutError(f"Navigation timeout ({self.default_timeout}ms): {url}") from exc

    def _arm_load_listener(self) -> LoadListener:
        return PageLoadListener(self, self.page)

    def _acquire_document(self) -> None:
        self.document = self.page.evaluate_handle(scripts.DOCUMENT_ELEMENT).as_element()
        if self.document is None:
            raise PageError("View document not found")

    def _apply_polyfills(self) -> None:
        self.page.evaluate(scripts.SCOPE_POLYFILL)

    def get_content(self) -> str:
        return self.page.content()

    def screenshot(self, path: str) -> None:
        """Save screenshot of the page."""
        self.browser.take_screenshot(path)

    # ========================================================================
    # HTTP
    # ========================================================================

    def http_req(
        self,
        method: str,
        url: str,
        data: Any = None,  # noqa: ANN401
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        return self.http.request(method, url, data, headers)

    # ========================================================================
    # Reporting
    # ========================================================================

    def _render_result(self, record: ResultRecord) -> None:
        status = "[green]OK[/green]" if record.ok else "[red]FAIL[/red]"
        self.console.print(
            f"{escape(f'[{self.counter_text()}]')} {escape(str(record.descr))}: "
            f"{status} {escape(record.message)}"
        )
        if record.error is not None:
            _LOGGER.error("%s", record.message, exc_info=record.error)

    def set_block(self, title: str, category: int | str) -> None:
        self.console.print(f" {escape(title)} ", style=BLOCK_STYLES.get(category, ""))

    def set_duration(self, duration: int) -> None:
        self.console.print(f"Duration of tests: {format_time(duration)}")

    # ========================================================================
    # Run
    # ========================================================================

    def run(
        self,
        app: TestApplication,
        story: str | None = None,
        validate_content: ContentValidator | None = None,
        route_handler: RouteHandler | None = None,
    ) -> int:
        """Run all tests of the application in a new browser.

        :param app: application under test
        :param story: name of the single story to run, None for all
        :param validate_content: called with page HTML after navigation
        :param route_handler: returns the view class for a loaded URL
        :return: process exit code, 0 when every result passed
        """
        res = 1
        self._story = story
        try:
            self.setup(app, validate_content, route_handler)
            app.init()

            if self.browser is None:
                self.browser = PlaywrightBrowser(
                    browser=self.config.browser,
                    headless=self.config.headless,
                    timeout=self.config.timeout,
                    viewport=self.config.viewport,
                )
            self.browser.start()
            if self.config.permissions:
                parts = urlsplit(self.base_url())
                self.browser.grant_permissions(
                    f"{parts.scheme}://{parts.netloc}", self.config.permissions
                )
            self.page.on("pageerror", self._page_error_handler)

            self.add_result("Test initialization", True)

            self.run_tests()
            res = 0 if self.results.passed else 1
        except Exception as exc:  # noqa: BLE001
            self.add_result(exc)

        if res != 0:
            self._report_failure()

        self.close()
        self.console.print(
            f"Total: {self.results.total} Passed: {self.results.ok} Failed: {self.results.fail}"
        )
        return res

    def _report_failure(self) -> None:
        if self.browser is None:
            return
        try:
            _LOGGER.error("Page URL: %s", self.url())
            if self.config and self.config.error_screenshot:
                self.screenshot(self.config.error_screenshot)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to capture failure details: %s", exc)

    def close(self) -> None:
        """Close browser and HTTP session."""
        if self.browser is not None:
            self.browser.close()
            self.browser = None
        self.http.close()
