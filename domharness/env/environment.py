"""Capability interface implemented by every test environment.

An environment hides where the page under test lives. Views, components
and tests only talk to this interface: DOM queries, property reads,
visibility, input simulation, navigation, waits, HTTP requests and the
result reporting sink.

Element handles are backend specific and opaque to callers.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Sequence

from domharness.exceptions import ConfigurationError, HarnessError, PageError
from domharness.lib.navigation import LoadListener, Navigator
from domharness.lib.utils import PropertyPath, plan_selection
from domharness.lib.wait import (
    WaitResult,
    selector_state_met,
    validate_selector_options,
    wait_for,
)

if TYPE_CHECKING:
    from domharness.application import TestApplication
    from domharness.config import HarnessConfig
    from domharness.lib.http import HttpResponse

_LOGGER = logging.getLogger(__name__)

# Route handler: (environment, url) -> view class
RouteHandler = Callable[["Environment", str], type]
ContentValidator = Callable[[str], object]


@dataclass
class TestResults:
    """Running result counters of a test run."""

    __test__ = False

    total: int = 0
    ok: int = 0
    fail: int = 0
    expected: int = 0

    @property
    def passed(self) -> bool:
        """True if no result failed."""
        return self.fail == 0


@dataclass
class ResultRecord:
    """One reported result."""

    descr: str | None
    ok: bool
    message: str = ""
    error: BaseException | None = None


class Environment(ABC):
    """Base class of the Selenium and Playwright environments."""

    def __init__(self, config: HarnessConfig | None = None) -> None:
        """Initialize environment.

        :param config: test run configuration, may also come from the app
        :type config: HarnessConfig | None
        """
        self.config = config
        self.app: TestApplication | None = None
        self.results = TestResults()
        self.validate_content: ContentValidator | None = None
        self.route_handler: RouteHandler | None = None
        self._start_time = 0.0
        self._page_error: PageError | None = None
        self.navigator = Navigator(
            arm_listener=self._arm_load_listener,
            acquire_document=self._acquire_document,
            apply_polyfills=self._apply_polyfills,
            on_loaded=self.on_navigate,
            wait=lambda condition, timeout, polling: wait_for(
                condition, timeout, polling, sleep=self._sleep
            ),
        )

    # ========================================================================
    # Setup
    # ========================================================================

    @property
    def default_timeout(self) -> int:
        """Wait timeout in milliseconds."""
        return self.config.timeout if self.config else 30000

    @property
    def default_polling(self) -> int:
        """Polling interval in milliseconds."""
        return self.config.polling if self.config else 200

    def base_url(self) -> str:
        """Return URL of the application under test."""
        if not self.config:
            raise ConfigurationError("Invalid config: test URL not found")
        return self.config.base_url

    def reset_results(self) -> None:
        """Reset result counters."""
        expected = self.config.tests_expected if self.config else 0
        self.results = TestResults(expected=expected)

    def setup(
        self,
        app: TestApplication,
        validate_content: ContentValidator | None = None,
        route_handler: RouteHandler | None = None,
    ) -> None:
        """Bind application and navigation hooks to the environment.

        :param app: application under test
        :param validate_content: called with page HTML after each navigation
        :param route_handler: returns the view class for a loaded URL
        :raises ConfigurationError: on invalid app or config
        """
        if app is None:
            raise ConfigurationError("Invalid App")
        if callable(validate_content):
            self.validate_content = validate_content
        if callable(route_handler):
            self.route_handler = route_handler

        self.app = app
        app.environment = self
        if getattr(app, "config", None) is not None:
            self.config = app.config
        if self.config is None:
            raise ConfigurationError("Invalid config: test URL not found")

        self.reset_results()

    # ========================================================================
    # Navigation
    # ========================================================================

    def on_navigate(self) -> None:
        """Validate loaded content and build the view for the new URL."""
        if callable(self.validate_content):
            self.validate_content(self.get_content())

        if not callable(self.route_handler):
            raise ConfigurationError("Route handler not set")

        url = self.url()
        view_class = self.route_handler(self, url)
        if view_class is None:
            raise ConfigurationError(f"No view for URL: {url}")

        _LOGGER.debug("Route %s -> %s", url, view_class.__name__)
        self.app.view = view_class(environment=self)
        self.app.view.parse()

    def navigation(self, action: Callable[[], object]) -> None:
        """Run action triggering a page load and wait for the new view.

        :param action: callable starting the navigation
        :raises ConfigurationError: if action is not callable
        :raises WaitTimeoutError: if the page does not load in time
        :raises PageError: if the page reports a runtime error
        """
        self.navigator.navigate(action, self.default_timeout, self.default_polling)
        _LOGGER.info("Navigation complete: %s", self.url())

    def go_to(self, url: str) -> None:
        """Navigate to URL."""
        self.navigation(lambda: self._open(url))

    # ========================================================================
    # Page errors
    # ========================================================================

    def on_page_error(self, error: Any) -> None:  # noqa: ANN401
        """Record runtime error raised by the page.

        The error is reported as a failing result and re-raised by the next
        wait or navigation check.
        """
        page_error = error if isinstance(error, PageError) else PageError(str(error))
        _LOGGER.error("Page error: %s", page_error)
        self.add_result(page_error)
        if self._page_error is None:
            self._page_error = page_error

    def check_page_error(self) -> None:
        """Raise pending page error, if any.

        :raises PageError: the first error reported since the last check
        """
        self._collect_page_errors()
        if self._page_error is not None:
            error, self._page_error = self._page_error, None
            raise error

    def _collect_page_errors(self) -> None:
        """Pull runtime errors the page recorded since the last call."""

    # ========================================================================
    # Waits
    # ========================================================================

    def wait_for(
        self,
        condition: Callable[[], WaitResult | None],
        timeout: int | None = None,
        polling: int | None = None,
    ) -> Any:  # noqa: ANN401
        """Poll condition until it returns a WaitResult.

        :param condition: callable returning WaitResult when met
        :param timeout: limit in milliseconds, config default if None
        :param polling: check interval in milliseconds, config default if None
        :return: payload of the WaitResult
        :raises WaitTimeoutError: when timeout expires first
        :raises PageError: when the page reports a runtime error
        """
        if not callable(condition):
            raise ConfigurationError("Invalid condition specified")

        def checked() -> WaitResult | None:
            self.check_page_error()
            return condition()

        return wait_for(
            checked,
            self.default_timeout if timeout is None else timeout,
            self.default_polling if polling is None else polling,
            sleep=self._sleep,
        )

    def wait_for_function(
        self,
        condition: Callable[[], Any],
        timeout: int | None = None,
        polling: int | None = None,
    ) -> Any:  # noqa: ANN401
        """Wait until condition returns a truthy value and return it."""
        if not callable(condition):
            raise ConfigurationError("Invalid condition specified")

        def wrapped() -> WaitResult | None:
            res = condition()
            return WaitResult(res) if res else None

        return self.wait_for(wrapped, timeout=timeout, polling=polling)

    def wait(self, condition: str | Callable[[], Any], **options: Any) -> Any:  # noqa: ANN401
        """Wait for selector state or for a function to return truthy."""
        if isinstance(condition, str):
            return self.wait_for_selector(condition, **options)
        if callable(condition):
            return self.wait_for_function(condition, **options)
        raise ConfigurationError("Invalid type of condition")

    def wait_for_selector(
        self,
        selector: str,
        timeout: int | None = None,
        visible: bool = False,
        hidden: bool = False,
    ) -> Any:  # noqa: ANN401
        """Wait until the selector becomes visible or hidden.

        Exactly one of visible and hidden must be set. A missing element
        counts as hidden.

        :return: element handle (None when waiting for a missing element)
        :raises ConfigurationError: on invalid selector or options
        :raises WaitTimeoutError: when timeout expires first
        """
        validate_selector_options(selector, visible, hidden)

        def condition() -> WaitResult | None:
            found, elem_visible = self._selector_state(selector)
            if selector_state_met(found, elem_visible, visible, hidden):
                return WaitResult(found)
            return None

        found = self.wait_for(condition, timeout=timeout)
        return self.query(selector) if found else None

    def timeout(self, ms: Any) -> None:  # noqa: ANN401
        """Pause for the given count of milliseconds."""
        try:
            delay = int(ms)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Invalid timeout specified") from exc
        self._sleep(delay / 1000)

    def _sleep(self, seconds: float) -> None:
        time.sleep(seconds)

    # ========================================================================
    # Shared DOM operations
    # ========================================================================

    def is_visible(self, elem: Any, recursive: bool = False) -> bool:  # noqa: ANN401
        """Return visibility of element.

        :param elem: element handle or element id
        :param recursive: also require every ancestor to be visible
        :return: False if the element can not be resolved
        """
        target = self.query(f"#{elem}") if isinstance(elem, str) else elem
        if target is None:
            return False
        return bool(self._element_visible(target, recursive))

    def prop(self, elem: Any, path: str) -> Any:  # noqa: ANN401
        """Read a dotted property path of element, None if not found."""
        if elem is None or not isinstance(path, str):
            return None
        found, value = self._read_property(elem, PropertyPath(path).segments)
        return value if found else None

    def global_(self, path: str) -> Any:  # noqa: ANN401
        """Read a dotted property path of the page window, None if not found."""
        found, value = self._read_global(PropertyPath(path).segments)
        return value if found else None

    def select(self, elem: Any, value: Any, additive: bool = True) -> None:  # noqa: ANN401
        """Select option of a select control by value and fire change.

        :param elem: select element handle
        :param value: option value
        :param additive: selected flag for an option of a multi-select
        :raises ConfigurationError: if elem is not a select control
        :raises NotFoundError: if no option has the value
        """
        if elem is None:
            raise ConfigurationError("Invalid select element")
        options = self._select_options(elem)
        if options is None:
            raise ConfigurationError("Invalid select element")

        index, selected = plan_selection(
            options["values"], options["multiple"], value, additive
        )
        self._apply_selection(elem, index, selected)
        self.on_change(elem)

    def check(self, elem: Any) -> None:  # noqa: ANN401
        """Click checkbox/radio element and fire change."""
        self.click(elem)
        self.on_change(elem)

    # ========================================================================
    # Reporting
    # ========================================================================

    def add_result(self, descr: str | BaseException | None, res: Any = None) -> None:  # noqa: ANN401
        """Record a test result.

        :param descr: description, or an exception for a failing result
        :param res: truthy for a passed result
        """
        record = ResultRecord(descr=descr, ok=bool(res))
        if isinstance(descr, BaseException):
            record.error = descr
            record.descr = getattr(descr, "descr", None)
            record.ok = False
            record.message = str(descr)

        self.results.total += 1
        if record.ok:
            self.results.ok += 1
        else:
            self.results.fail += 1

        self._render_result(record)

    def counter_text(self) -> str:
        """Return 'total' or 'total/expected' text."""
        if self.results.expected:
            return f"{self.results.total}/{self.results.expected}"
        return str(self.results.total)

    def test(self, descr: str, action: Callable[[], Any]) -> Any:  # noqa: ANN401
        """Run action and record its result under descr.

        An exception raised by the action is tagged with ``descr`` and
        propagated.
        """
        try:
            res = action()
        except Exception as exc:
            exc.descr = descr
            raise
        self.add_result(descr, res)
        return res

    # ========================================================================
    # Run lifecycle
    # ========================================================================

    def get_selected_story(self) -> str | None:
        """Return name of the single story to run, None to run all."""
        return self.config.story if self.config else None

    def before_run(self) -> None:
        """Start measuring test duration."""
        self._start_time = time.monotonic()

    def after_run(self) -> None:
        """Report duration and check the count of results."""
        self.set_duration(int((time.monotonic() - self._start_time) * 1000))

        total, expected = self.results.total, self.results.expected
        if not self.get_selected_story() and expected and total != expected:
            _LOGGER.warning("Unexpected count of tests: %d. Expected %d", total, expected)
            self.set_block(f"Unexpected count of tests: {total}. Expected {expected}", "warn")

    def run_tests(self) -> None:
        """Run the application's tests between before_run and after_run."""
        if self.app is None:
            raise HarnessError("Environment is not initialized")

        self.before_run()
        self.app.start_tests()
        self.after_run()

    # ========================================================================
    # Backend interface
    # ========================================================================

    @abstractmethod
    def url(self) -> str:
        """Return current page URL."""
        raise NotImplementedError

    @abstractmethod
    def query(self, selector: str, parent: Any = None) -> Any:  # noqa: ANN401
        """Return first element matching selector under parent or None."""
        raise NotImplementedError

    @abstractmethod
    def query_all(self, selector: str, parent: Any = None) -> list[Any]:
        """Return all elements matching selector under parent."""
        raise NotImplementedError

    @abstractmethod
    def closest(self, elem: Any, selector: str) -> Any:  # noqa: ANN401
        """Return closest ancestor-or-self matching selector or None."""
        raise NotImplementedError

    @abstractmethod
    def parent_node(self, elem: Any) -> Any:  # noqa: ANN401
        """Return parent element or None."""
        raise NotImplementedError

    @abstractmethod
    def attr(self, elem: Any, name: str) -> str | None:  # noqa: ANN401
        """Return attribute value or None."""
        raise NotImplementedError

    @abstractmethod
    def has_attr(self, elem: Any, name: str) -> bool:  # noqa: ANN401
        """Return True if element has the attribute."""
        raise NotImplementedError

    @abstractmethod
    def has_class(self, elem: Any, name: str) -> bool:  # noqa: ANN401
        """Return True if element has the CSS class."""
        raise NotImplementedError

    @abstractmethod
    def evaluate_visibility(self, elems: Sequence[Any]) -> list[bool]:
        """Resolve recursive visibility of many elements in one round-trip."""
        raise NotImplementedError

    @abstractmethod
    def input(self, elem: Any, value: Any) -> None:  # noqa: ANN401
        """Simulate text entry into element."""
        raise NotImplementedError

    @abstractmethod
    def click(self, elem: Any) -> None:  # noqa: ANN401
        """Dispatch click to element."""
        raise NotImplementedError

    @abstractmethod
    def on_change(self, elem: Any) -> None:  # noqa: ANN401
        """Dispatch change notification to element."""
        raise NotImplementedError

    @abstractmethod
    def on_blur(self, elem: Any) -> None:  # noqa: ANN401
        """Dispatch blur notification to element."""
        raise NotImplementedError

    @abstractmethod
    def http_req(
        self,
        method: str,
        url: str,
        data: Any = None,  # noqa: ANN401
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """Send HTTP request."""
        raise NotImplementedError

    @abstractmethod
    def get_content(self) -> str:
        """Return HTML of the current page."""
        raise NotImplementedError

    @abstractmethod
    def set_block(self, title: str, category: int | str) -> None:
        """Report start of a block of results."""
        raise NotImplementedError

    @abstractmethod
    def set_duration(self, duration: int) -> None:
        """Report test duration in milliseconds."""
        raise NotImplementedError

    @abstractmethod
    def _render_result(self, record: ResultRecord) -> None:
        raise NotImplementedError

    @abstractmethod
    def _element_visible(self, elem: Any, recursive: bool) -> bool:  # noqa: ANN401
        raise NotImplementedError

    @abstractmethod
    def _read_property(self, elem: Any, segments: list[str]) -> tuple[bool, Any]:  # noqa: ANN401
        raise NotImplementedError

    @abstractmethod
    def _read_global(self, segments: list[str]) -> tuple[bool, Any]:
        raise NotImplementedError

    @abstractmethod
    def _select_options(self, elem: Any) -> dict | None:  # noqa: ANN401
        raise NotImplementedError

    @abstractmethod
    def _apply_selection(self, elem: Any, index: int, selected: bool) -> None:  # noqa: ANN401
        raise NotImplementedError

    @abstractmethod
    def _selector_state(self, selector: str) -> tuple[bool, bool]:
        raise NotImplementedError

    @abstractmethod
    def _open(self, url: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def _arm_load_listener(self) -> LoadListener:
        raise NotImplementedError

    @abstractmethod
    def _acquire_document(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def _apply_polyfills(self) -> None:
        raise NotImplementedError
