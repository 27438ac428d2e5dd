"""Unit tests for stories, scenario selection and the task runner."""

from unittest.mock import Mock

import pytest

from domharness.application import Runner, TestApplication
from domharness.exceptions import ConfigurationError, HarnessError, NotFoundError
from domharness.story import Scenario, TestStory


class RecordingStory(TestStory):
    calls = []

    def before_run(self):
        self.calls.append("before")

    def run(self):
        self.calls.append("run")
        self.environment.add_result("story test", True)

    def after_run(self):
        self.calls.append("after")


class FailingStory(RecordingStory):
    def run(self):
        self.calls.append("run")
        raise AssertionError("story failed")


class TestScenario:
    """Test story registration and selection."""

    def setup_method(self, method):
        RecordingStory.calls = []

    def test_full_scenario_runs_in_order(self, env):
        order = []
        scenario = Scenario(env, {
            "first": lambda environment: order.append("first"),
            "second": lambda environment: order.append("second"),
        })

        scenario.run()

        assert order == ["first", "second"]
        assert env.blocks == [("Running full test scenario", 1)]

    def test_selected_story(self, env, config):
        config.story = "second"
        first = Mock()
        second = Mock()
        scenario = Scenario(env, {"first": first, "second": second})

        scenario.run()

        first.assert_not_called()
        second.assert_called_once_with(env)
        assert env.blocks == [("Running 'second' test story", 1)]

    def test_unknown_story(self, env, config):
        config.story = "third"
        scenario = Scenario(env, {"first": Mock(), "second": Mock()})

        with pytest.raises(NotFoundError, match="Available test stories: first, second"):
            scenario.run()

    def test_story_class_hooks(self, env):
        Scenario(env, {"recording": RecordingStory}).run()

        assert RecordingStory.calls == ["before", "run", "after"]
        assert env.results.ok == 1

    def test_failing_story_is_recorded_and_next_runs(self, env):
        after = Mock()
        Scenario(env, {"failing": FailingStory, "after": after}).run()

        assert FailingStory.calls == ["before", "run", "after"]
        assert env.results.fail == 1
        assert env.rendered[0].message == "story failed"
        after.assert_called_once_with(env)

    def test_invalid_story(self, env):
        scenario = Scenario(env)

        with pytest.raises(ConfigurationError):
            scenario.add_story("broken", "not callable")
        with pytest.raises(ConfigurationError):
            scenario.add_story("", Mock())


class TestApplicationStart:
    """Test TestApplication defaults."""

    def test_start_tests_runs_scenario(self):
        app = TestApplication()
        app.scenario = Mock()

        app.start_tests()

        app.scenario.run.assert_called_once_with()

    def test_start_tests_without_scenario(self):
        with pytest.raises(HarnessError):
            TestApplication().start_tests()


class TestRunner:
    """Test sequential task runner."""

    def test_run_tasks_in_order(self):
        runner = Runner()
        runner.add_task(lambda: "no data")
        runner.add_task(lambda data: data * 2, 21)

        assert runner.run() == ["no data", 42]
        assert runner.tasks == []

    def test_run_tasks_from_mappings(self):
        runner = Runner()

        res = runner.run_tasks([
            {"action": lambda data: data + 1, "data": 1},
            {"action": lambda: 0},
        ])

        assert res == [2, 0]

    def test_run_group(self):
        assert Runner().run_group(lambda value: value.upper(), ["a", "b"]) == ["A", "B"]

    def test_invalid_task(self):
        with pytest.raises(ConfigurationError):
            Runner().add_task("not callable")

    @pytest.mark.parametrize("tasks", ["abc", {"action": print}, None])
    def test_invalid_tasks(self, tasks):
        with pytest.raises(ConfigurationError):
            Runner().add_tasks(tasks)

    def test_invalid_group_data(self):
        with pytest.raises(ConfigurationError):
            Runner().add_group(print, "abc")
