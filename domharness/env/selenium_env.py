"""Environment manipulating the page document directly through Selenium.

Elements are Selenium ``WebElement`` objects. Every operation runs as a
script on the live document, so events are dispatched directly instead of
being injected as trusted OS input, and HTTP requests are issued by the
page itself with ``fetch``. Results are collected into an HTML results
table.
"""

from __future__ import annotations

import html
import logging
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence
from urllib.parse import parse_qs, urlsplit

from selenium import webdriver
from selenium.common.exceptions import (
    InvalidSelectorException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver.common.by import By

from domharness.env.environment import Environment, ResultRecord
from domharness.exceptions import ConfigurationError, PageError, WaitTimeoutError
from domharness.lib import scripts
from domharness.lib.http import HttpResponse, prepare_request
from domharness.lib.navigation import LoadListener
from domharness.lib.utils import format_time

if TYPE_CHECKING:
    from selenium.webdriver.remote.webdriver import WebDriver
    from selenium.webdriver.remote.webelement import WebElement

    from domharness.application import TestApplication
    from domharness.config import HarnessConfig
    from domharness.env.environment import ContentValidator, RouteHandler, TestResults

_LOGGER = logging.getLogger(__name__)


class DocumentLoadListener(LoadListener):
    """Load listener based on a marker stored in the current window.

    The marker is set before the navigation action; a complete document
    without the marker is the newly loaded one.
    """

    def __init__(self, environment: SeleniumEnvironment) -> None:
        self._environment = environment
        self._token = uuid.uuid4().hex
        self._closed = False
        environment.run_script(scripts.ARM_LOAD_MARKER, self._token)

    def is_loaded(self) -> bool:
        if self._closed:
            return False
        self._environment.check_page_error()
        try:
            return bool(self._environment.run_script(scripts.LOAD_STATE, self._token))
        except WebDriverException as exc:
            _LOGGER.debug("Document not ready: %s", exc.msg)
            return False

    def close(self) -> None:
        self._closed = True


class SeleniumEnvironment(Environment):
    """Test environment backed by a Selenium WebDriver."""

    def __init__(self, config: HarnessConfig | None = None, driver: WebDriver | None = None) -> None:
        """Initialize Selenium environment.

        :param config: test run configuration
        :param driver: WebDriver to use, created from config on start() if None
        """
        super().__init__(config)
        self.driver = driver
        self.document: WebElement | None = None
        self._owns_driver = False
        self._report_rows: list[str] = []
        self._duration = ""

    # ========================================================================
    # Driver
    # ========================================================================

    def start(self) -> None:
        """Create the WebDriver if needed and install page error collection."""
        if self.driver is None:
            self.driver = self._create_driver()
            self._owns_driver = True

        if hasattr(self.driver, "execute_cdp_cmd"):
            # Collect errors raised while a new document loads.
            self.driver.execute_cdp_cmd(
                "Page.addScriptToEvaluateOnNewDocument",
                {"source": f"({scripts.ERROR_COLLECTOR})();"},
            )
        _LOGGER.info("Selenium environment started")

    def _create_driver(self) -> WebDriver:
        browser = self.config.browser if self.config else "chrome"
        headless = self.config.headless if self.config else True

        if browser in ("chrome", "chromium"):
            options = webdriver.ChromeOptions()
            if headless:
                options.add_argument("--headless=new")
            driver = webdriver.Chrome(options=options)
        elif browser == "firefox":
            options = webdriver.FirefoxOptions()
            if headless:
                options.add_argument("-headless")
            driver = webdriver.Firefox(options=options)
        else:
            raise ConfigurationError(f"Unsupported browser: {browser}")

        if self.config and self.config.viewport:
            driver.set_window_size(self.config.viewport["width"], self.config.viewport["height"])
        _LOGGER.info("WebDriver started (browser=%s, headless=%s)", browser, headless)
        return driver

    def close(self) -> None:
        """Quit the WebDriver if this environment created it."""
        if self.driver is not None and self._owns_driver:
            try:
                self.driver.quit()
                _LOGGER.info("WebDriver closed")
            except WebDriverException as exc:
                _LOGGER.warning("Error closing WebDriver: %s", exc.msg)
            self.driver = None
            self._owns_driver = False

    def run_script(self, function_source: str, *args: Any) -> Any:  # noqa: ANN401
        """Call a page function with the given arguments."""
        return self.driver.execute_script(scripts.as_script(function_source), *args)

    def url(self) -> str:
        return self.driver.current_url

    def get_selected_story(self) -> str | None:
        """Return story from config or from the base URL 'story' query value."""
        story = super().get_selected_story()
        if story or not self.config:
            return story
        values = parse_qs(urlsplit(self.config.base_url).query).get("story")
        return values[0] if values else None

    # ========================================================================
    # DOM
    # ========================================================================

    def query(self, selector: str, parent: Any = None) -> WebElement | None:  # noqa: ANN401
        found = self.query_all(selector, parent)
        return found[0] if found else None

    def query_all(self, selector: str, parent: Any = None) -> list[WebElement]:  # noqa: ANN401
        if not isinstance(selector, str):
            return []
        root = self.driver if parent is None else parent
        try:
            return list(root.find_elements(By.CSS_SELECTOR, selector))
        except InvalidSelectorException as exc:
            raise ConfigurationError(f"Invalid selector specified: {selector}") from exc

    def closest(self, elem: WebElement, selector: str) -> WebElement | None:
        if elem is None or not isinstance(selector, str):
            return None
        return self.run_script(scripts.CLOSEST, elem, selector)

    def parent_node(self, elem: WebElement) -> WebElement | None:
        if elem is None:
            return None
        return self.run_script(scripts.PARENT_NODE, elem)

    def attr(self, elem: WebElement, name: str) -> str | None:
        if elem is None or not isinstance(name, str):
            return None
        return elem.get_dom_attribute(name)

    def has_attr(self, elem: WebElement, name: str) -> bool:
        if elem is None or not isinstance(name, str):
            return False
        return bool(self.run_script(scripts.HAS_ATTRIBUTE, elem, name))

    def has_class(self, elem: WebElement, name: str) -> bool:
        if elem is None or not isinstance(name, str):
            return False
        return bool(self.run_script(scripts.HAS_CLASS, elem, name))

    def evaluate_visibility(self, elems: Sequence[WebElement | None]) -> list[bool]:
        if not elems:
            return []
        return [bool(item) for item in self.run_script(scripts.VISIBILITY_BATCH, list(elems))]

    def _element_visible(self, elem: WebElement, recursive: bool) -> bool:
        return self.run_script(scripts.VISIBILITY, elem, recursive is True)

    def _read_property(self, elem: WebElement, segments: list[str]) -> tuple[bool, Any]:
        found, value = self.run_script(scripts.PROPERTY_PATH, elem, segments)
        return bool(found), value

    def _read_global(self, segments: list[str]) -> tuple[bool, Any]:
        found, value = self.run_script(scripts.GLOBAL_PATH, segments)
        return bool(found), value

    # ========================================================================
    # Input
    # ========================================================================

    def _select_options(self, elem: WebElement) -> dict | None:
        return self.run_script(scripts.SELECT_OPTIONS, elem)

    def _apply_selection(self, elem: WebElement, index: int, selected: bool) -> None:
        self.run_script(scripts.APPLY_SELECTION, elem, [index, selected])

    def on_change(self, elem: WebElement) -> None:
        if elem is not None:
            self.run_script(scripts.DISPATCH_CHANGE, elem)

    def on_blur(self, elem: WebElement) -> None:
        if elem is not None:
            self.run_script(scripts.DISPATCH_BLUR, elem)

    def click(self, elem: WebElement) -> None:
        if elem is not None:
            self.run_script(scripts.DISPATCH_CLICK, elem)

    def input(self, elem: WebElement, value: Any) -> None:  # noqa: ANN401
        """Set value one character at a time, firing input for each step."""
        if elem is None:
            return
        text = "" if value is None else str(value)
        current = self.run_script(scripts.GET_VALUE, elem) or ""
        if current == "" and text == "":
            return

        if text == "":
            self.run_script(scripts.DISPATCH_INPUT, elem, "")
            return

        for end in range(1, len(text) + 1):
            self.run_script(scripts.DISPATCH_INPUT, elem, text[:end])

    def _selector_state(self, selector: str) -> tuple[bool, bool]:
        found, visible = self.run_script(scripts.SELECTOR_STATE, selector)
        return bool(found), bool(visible)

    # ========================================================================
    # Navigation
    # ========================================================================

    def _open(self, url: str) -> None:
        try:
            self.driver.get(url)
        except TimeoutException as exc:
            raise WaitTimeoutError(f"Navigation timeout ({self.default_timeout}ms): {url}") from exc

    def _arm_load_listener(self) -> LoadListener:
        return DocumentLoadListener(self)

    def _acquire_document(self) -> None:
        self.document = self.run_script(scripts.DOCUMENT_ELEMENT)
        if self.document is None:
            raise PageError("View document not found")

    def _apply_polyfills(self) -> None:
        self.run_script(scripts.ERROR_COLLECTOR)
        self.run_script(scripts.SCOPE_POLYFILL)

    def _collect_page_errors(self) -> None:
        try:
            errors = self.run_script(scripts.TAKE_ERRORS)
        except WebDriverException:
            # The document is being replaced.
            return
        for message in errors or []:
            self.on_page_error(message)

    def get_content(self) -> str:
        return self.run_script(scripts.DOCUMENT_CONTENT) or ""

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
        """Send request with fetch from inside the page."""
        prepared = prepare_request(method, data, headers)
        options: dict[str, Any] = {
            "method": prepared.method.upper(),
            "headers": prepared.headers,
        }
        if prepared.body is not None:
            options["body"] = prepared.body

        _LOGGER.debug("fetch %s %s", options["method"], url)
        res = self.driver.execute_async_script(scripts.FETCH, url, options)
        if not res or "error" in res:
            raise ConnectionError(f"Request to {url} failed: {(res or {}).get('error')}")

        return HttpResponse(
            status=res["status"],
            headers=dict(res["headers"]),
            body=res["body"],
            url=res["url"],
        )

    # ========================================================================
    # Reporting
    # ========================================================================

    def _render_result(self, record: ResultRecord) -> None:
        status = "OK" if record.ok else "FAIL"
        _LOGGER.info("[%s] %s: %s %s", self.counter_text(), record.descr, status, record.message)
        if record.error is not None:
            _LOGGER.error("%s", record.message, exc_info=record.error)

        self._report_rows.append(
            "<tr>"
            f"<td>{html.escape(str(record.descr))}</td>"
            f"<td>{status}</td>"
            f"<td>{html.escape(record.message)}</td>"
            "</tr>"
        )

    def set_block(self, title: str, category: int | str) -> None:
        _LOGGER.info("== %s ==", title)
        self._report_rows.append(
            f'<tr class="res-block-{html.escape(str(category))}">'
            f'<td colspan="3">{html.escape(title)}</td></tr>'
        )

    def set_duration(self, duration: int) -> None:
        self._duration = format_time(duration)
        _LOGGER.info("Duration of tests: %s", self._duration)

    def render_report(self) -> str:
        """Return the results table as an HTML document."""
        counters = (
            '<table class="test-tbl counter-tbl"><tr>'
            f'<th class="title">Total</th><th>{html.escape(self.counter_text())}</th>'
            f'<th class="title">Ok</th><th>{self.results.ok}</th>'
            f'<th class="title">Fail</th><th>{self.results.fail}</th>'
            f'<th class="duration">{self._duration}</th>'
            "</tr></table>"
        )
        rows = "\n".join(self._report_rows)
        return (
            "<!DOCTYPE html>\n<html><head><meta charset=\"utf-8\"><title>Test results</title></head>\n"
            f"<body>\n{counters}\n<table class=\"test-results\">\n{rows}\n</table>\n</body></html>\n"
        )

    def write_report(self, path: str | Path) -> None:
        """Write the HTML results table to a file."""
        report_path = Path(path)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(self.render_report(), encoding="utf-8")
        _LOGGER.info("Report saved: %s", report_path)

    # ========================================================================
    # Run
    # ========================================================================

    def run(
        self,
        app: TestApplication,
        validate_content: ContentValidator | None = None,
        route_handler: RouteHandler | None = None,
    ) -> TestResults:
        """Run all tests of the application.

        Failures are recorded as results; the WebDriver is quit at the end
        if this environment created it.

        :return: result counters of the run
        """
        try:
            self.setup(app, validate_content, route_handler)
            app.init()
            self.start()

            self.add_result("Test initialization", True)
            self.run_tests()
        except Exception as exc:  # noqa: BLE001
            self.add_result(exc)
        finally:
            if self.config and self.config.report_file:
                self.write_report(self.config.report_file)
            self.close()

        return self.results
