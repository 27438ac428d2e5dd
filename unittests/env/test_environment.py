"""Unit tests for the shared Environment behaviour."""

from unittest.mock import Mock

import pytest

from domharness.application import TestApplication
from domharness.exceptions import (
    ConfigurationError,
    NotFoundError,
    PageError,
    WaitTimeoutError,
)
from domharness.lib.navigation import NavigationState
from domharness.lib.wait import WaitResult
from domharness.view.view import TestView


class TestResultsReporting:
    """Test add_result(), test() and counters."""

    def test_add_result_counts(self, env):
        env.add_result("first", True)
        env.add_result("second", False)
        env.add_result("third", 1)

        assert (env.results.total, env.results.ok, env.results.fail) == (3, 2, 1)
        assert [record.ok for record in env.rendered] == [True, False, True]

    def test_exception_is_failing_result(self, env):
        env.add_result(ValueError("broken value"))

        record = env.rendered[0]
        assert not record.ok
        assert record.message == "broken value"
        assert isinstance(record.error, ValueError)
        assert env.results.fail == 1

    def test_test_records_action_result(self, env):
        assert env.test("Check sum", lambda: 2 + 2 == 4) is True

        assert env.rendered[0].descr == "Check sum"
        assert env.rendered[0].ok

    def test_test_tags_error_with_description(self, env):
        def action():
            raise AssertionError("values differ")

        with pytest.raises(AssertionError) as exc_info:
            env.test("Check values", action)

        assert exc_info.value.descr == "Check values"
        assert env.results.total == 0

        env.add_result(exc_info.value)
        assert env.rendered[0].descr == "Check values"

    def test_counter_text(self, env, config):
        config.tests_expected = 10
        env.reset_results()
        env.add_result("one", True)

        assert env.counter_text() == "1/10"

    def test_counter_text_without_expected(self, env):
        env.add_result("one", True)

        assert env.counter_text() == "1"


class TestRunLifecycle:
    """Test setup() and the before/after run hooks."""

    def test_setup_binds_application(self, env, config):
        app = TestApplication(config)

        env.setup(app)

        assert app.environment is env
        assert env.app is app

    def test_setup_without_app(self, env):
        with pytest.raises(ConfigurationError):
            env.setup(None)

    def test_setup_without_config(self, env):
        bare = type(env)()

        with pytest.raises(ConfigurationError, match="test URL not found"):
            bare.setup(TestApplication())

    def test_run_tests_reports_duration(self, env, config):
        app = TestApplication(config)
        app.start_tests = Mock()
        env.setup(app)

        env.run_tests()

        app.start_tests.assert_called_once_with()
        assert len(env.durations) == 1
        assert env.blocks == []

    def test_unexpected_count_warning(self, env, config):
        config.tests_expected = 3
        app = TestApplication(config)
        app.start_tests = lambda: env.add_result("only", True)
        env.setup(app)

        env.run_tests()

        assert env.blocks == [("Unexpected count of tests: 1. Expected 3", "warn")]

    def test_no_count_warning_for_single_story(self, env, config):
        config.tests_expected = 3
        config.story = "login"
        app = TestApplication(config)
        app.start_tests = lambda: None
        env.setup(app)

        env.run_tests()

        assert env.blocks == []


class TestWaits:
    """Test the wait helpers built on the polling engine."""

    def test_wait_for_returns_payload(self, env):
        assert env.wait_for(lambda: WaitResult("ready")) == "ready"

    def test_wait_for_times_out(self, env):
        with pytest.raises(WaitTimeoutError):
            env.wait_for(lambda: None, timeout=30, polling=10)

    def test_wait_for_invalid_condition(self, env):
        with pytest.raises(ConfigurationError):
            env.wait_for("ready")

    def test_wait_for_function(self, env):
        values = iter([0, "", "done"])

        assert env.wait_for_function(lambda: next(values)) == "done"

    def test_wait_dispatches_on_condition_type(self, env, element):
        elem = env.add("#ok", element("ok"))

        assert env.wait("#ok", visible=True) is elem
        assert env.wait(lambda: 5) == 5
        with pytest.raises(ConfigurationError):
            env.wait(42)

    def test_wait_for_selector_conflicting_options(self, env):
        with pytest.raises(ConfigurationError):
            env.wait_for_selector("#item", visible=True, hidden=True)

        assert env.selector_checks == 0

    def test_wait_for_selector_requires_one_option(self, env):
        with pytest.raises(ConfigurationError):
            env.wait_for_selector("#item")

        assert env.selector_checks == 0

    def test_wait_for_selector_visible(self, env, element):
        elem = env.add("#item", element("item"))

        assert env.wait_for_selector("#item", visible=True) is elem

    def test_wait_for_selector_hidden_missing_element(self, env):
        assert env.wait_for_selector("#item", hidden=True) is None
        assert env.selector_checks == 1

    def test_wait_for_selector_visible_timeout(self, env, element):
        env.add("#item", element("item", visible=False))

        with pytest.raises(WaitTimeoutError):
            env.wait_for_selector("#item", timeout=30, visible=True)

    def test_timeout_invalid(self, env):
        with pytest.raises(ConfigurationError):
            env.timeout("later")

    def test_wait_raises_pending_page_error(self, env):
        env.on_page_error("Uncaught ReferenceError: x is not defined")

        with pytest.raises(PageError, match="ReferenceError"):
            env.wait_for(lambda: WaitResult(True))

        assert env.results.fail == 1
        assert env.wait_for(lambda: WaitResult(True)) is True


class TestDomOperations:
    """Test DOM operations shared by all backends."""

    def test_is_visible_by_id(self, env, element):
        parent = element("parent", visible=False)
        env.add("#child", element("child", parent=parent))

        assert env.is_visible("child") is True
        assert env.is_visible("child", recursive=True) is False
        assert env.is_visible("missing") is False
        assert env.is_visible(None) is False

    def test_prop(self, env, element):
        elem = element("input", props={"dataset": {"id": "15"}})

        assert env.prop(elem, "dataset.id") == "15"
        assert env.prop(elem, "dataset.name") is None
        assert env.prop(None, "value") is None

    def test_global(self, env):
        env.globals = {"app": {"model": {"ready": True}}}

        assert env.global_("app.model.ready") is True
        assert env.global_("app.view") is None

    def test_select_single(self, env, element):
        elem = element("select", options={"multiple": False, "values": ["1", "2"]})

        env.select(elem, "2", additive=False)

        assert env.events == [("select", elem, 1, True), ("change", elem)]

    def test_select_multiple_deselect(self, env, element):
        elem = element("select", options={"multiple": True, "values": ["1", "2"]})

        env.select(elem, "1", additive=False)

        assert env.events[0] == ("select", elem, 0, False)

    def test_select_missing_value(self, env, element):
        elem = element("select", options={"multiple": False, "values": ["1"]})

        with pytest.raises(NotFoundError):
            env.select(elem, "3")

        assert env.events == []

    def test_select_not_a_select(self, env, element):
        with pytest.raises(ConfigurationError):
            env.select(element("div"), "1")

    def test_check(self, env, element):
        elem = element("checkbox")

        env.check(elem)

        assert env.events == [("click", elem), ("change", elem)]


class MainView(TestView):
    def parse_content(self):
        return {"title": self.environment.query("h1").props["textContent"]}


class TestNavigation:
    """Test navigation() and the post navigation hook."""

    def setup_method(self, method):
        self.validated = []

    def _setup(self, env, config, element):
        env.add("h1", element("h1", props={"textContent": "Main"}))
        app = TestApplication(config)
        env.setup(
            app,
            validate_content=self.validated.append,
            route_handler=lambda environment, url: MainView,
        )
        return app

    def test_go_to_builds_view(self, env, config, element):
        app = self._setup(env, config, element)

        env.go_to("http://test.local/app/main")

        assert isinstance(app.view, MainView)
        assert app.view.location == "http://test.local/app/main"
        assert app.view.content == {"title": "Main"}
        assert self.validated == ["<html><body>http://test.local/app/main</body></html>"]
        assert env.events == [("acquire",), ("polyfills",)]
        assert env.listeners[0].closed
        assert env.navigator.state is NavigationState.IDLE

    def test_navigation_action_must_be_callable(self, env, config, element):
        self._setup(env, config, element)

        with pytest.raises(ConfigurationError):
            env.navigation("http://test.local/")

    def test_navigation_without_route_handler(self, env, config):
        env.setup(TestApplication(config))

        with pytest.raises(ConfigurationError, match="Route handler not set"):
            env.go_to("http://test.local/app/")

    def test_page_error_rejects_navigation(self, env, config, element):
        self._setup(env, config, element)
        env.load_error = "Uncaught TypeError: boom"

        with pytest.raises(PageError, match="boom"):
            env.go_to("http://test.local/app/")

        assert env.navigator.state is NavigationState.FAILED
        assert env.listeners[0].closed
        assert env.results.fail == 1

    def test_navigation_timeout(self, env, config, element):
        self._setup(env, config, element)

        with pytest.raises(WaitTimeoutError):
            env.navigation(lambda: None)

        assert env.listeners[0].closed
