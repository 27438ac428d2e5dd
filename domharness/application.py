"""Application under test and sequential task runner."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from domharness.exceptions import ConfigurationError, HarnessError

if TYPE_CHECKING:
    from domharness.config import HarnessConfig
    from domharness.env.environment import Environment
    from domharness.story import Scenario
    from domharness.view.view import TestView

_LOGGER = logging.getLogger(__name__)


class TestApplication:
    """Entry point of a test suite.

    Subclasses set up their scenario in ``init()`` and run it from
    ``start_tests()``; the environment is bound by ``Environment.setup()``.
    """

    __test__ = False

    def __init__(self, config: HarnessConfig | None = None) -> None:
        self.config = config
        self.environment: Environment | None = None
        self.view: TestView | None = None
        self.scenario: Scenario | None = None

    def init(self) -> None:
        """Prepare the application before the browser starts."""

    def start_tests(self) -> None:
        """Run the scenario."""
        if self.scenario is None:
            raise HarnessError("Scenario is not set")
        self.scenario.run()


@dataclass
class Task:
    """Action with its argument."""

    action: Callable[..., Any]
    data: Any = None

    def __call__(self) -> Any:  # noqa: ANN401
        return self.action() if self.data is None else self.action(self.data)


class Runner:
    """Runs queued tasks one after another."""

    def __init__(self) -> None:
        self.tasks: list[Task] = []

    def add_task(self, action: Callable[..., Any], data: Any = None) -> None:  # noqa: ANN401
        if not callable(action):
            raise ConfigurationError("Invalid action specified")
        self.tasks.append(Task(action, data))

    def add_tasks(self, tasks: Iterable[Mapping[str, Any]]) -> None:
        """Queue tasks given as ``{"action": ..., "data": ...}`` mappings."""
        if isinstance(tasks, (str, bytes, Mapping)) or not isinstance(tasks, Iterable):
            raise ConfigurationError("Invalid tasks specified. List is expected")
        for item in tasks:
            self.add_task(item.get("action"), item.get("data"))

    def run(self) -> list[Any]:
        """Run queued tasks and clear the queue.

        :return: results of the tasks in order
        """
        tasks, self.tasks = self.tasks, []
        _LOGGER.debug("Running %d task(s)", len(tasks))
        return [task() for task in tasks]

    def run_tasks(self, tasks: Iterable[Mapping[str, Any]]) -> list[Any]:
        self.add_tasks(tasks)
        return self.run()

    def add_group(self, action: Callable[..., Any], group_data: Iterable[Any]) -> None:
        """Queue action once for every item of group_data."""
        if isinstance(group_data, (str, bytes, Mapping)) or not isinstance(group_data, Iterable):
            raise ConfigurationError("Invalid group data specified. List is expected")
        for data in group_data:
            self.add_task(action, data)

    def run_group(self, action: Callable[..., Any], group_data: Iterable[Any]) -> list[Any]:
        self.add_group(action, group_data)
        return self.run()
