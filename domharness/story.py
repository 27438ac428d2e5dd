"""Test stories and the scenario selecting which of them to run."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Union

from domharness.exceptions import ConfigurationError, NotFoundError

if TYPE_CHECKING:
    from domharness.env.environment import Environment

_LOGGER = logging.getLogger(__name__)


class TestStory:
    """Group of tests with setup and teardown steps."""

    __test__ = False

    def __init__(self, environment: Environment) -> None:
        self.environment = environment

    @classmethod
    def execute(cls, environment: Environment) -> None:
        """Create story and run it between before_run and after_run.

        after_run is called even when run fails.
        """
        instance = cls(environment)
        instance.before_run()
        try:
            instance.run()
        finally:
            instance.after_run()

    def before_run(self) -> None:
        pass

    def run(self) -> None:
        pass

    def after_run(self) -> None:
        pass


# Story: TestStory subclass or a callable taking the environment
Story = Union[type, Callable[["Environment"], object]]


class Scenario:
    """Ordered registry of named stories."""

    def __init__(self, environment: Environment, stories: dict[str, Story] | None = None) -> None:
        self.environment = environment
        self._stories: dict[str, Story] = {}
        for name, story in (stories or {}).items():
            self.add_story(name, story)

    def add_story(self, name: str, story: Story) -> None:
        if not isinstance(name, str) or not name:
            raise ConfigurationError("Invalid story name")
        if not callable(story):
            raise ConfigurationError(f"Invalid story: {name}")
        self._stories[name] = story

    def story_names(self) -> list[str]:
        return list(self._stories)

    def get_story(self, name: str) -> Story:
        """Return story by name.

        :raises NotFoundError: naming the available stories
        """
        if name not in self._stories:
            available = ", ".join(self.story_names()) or "none"
            raise NotFoundError(f"Invalid story name: {name}. Available test stories: {available}")
        return self._stories[name]

    def run_story(self, name: str) -> None:
        """Run one story, recording its failure as a result."""
        story = self.get_story(name)
        _LOGGER.info("Running story: %s", name)
        try:
            if isinstance(story, type) and issubclass(story, TestStory):
                story.execute(self.environment)
            else:
                story(self.environment)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.error("Story '%s' failed: %s", name, exc)
            self.environment.add_result(exc)

    def run(self) -> None:
        """Run the selected story, or every story in registration order."""
        selected = self.environment.get_selected_story()
        if selected:
            self.get_story(selected)
            self.environment.set_block(f"Running '{selected}' test story", 1)
            self.run_story(selected)
            return

        self.environment.set_block("Running full test scenario", 1)
        for name in self.story_names():
            self.run_story(name)
