"""Page level test view."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from domharness.exceptions import ConfigurationError
from domharness.view.component import TestComponent

if TYPE_CHECKING:
    from domharness.env.environment import Environment

_LOGGER = logging.getLogger(__name__)


class TestView(TestComponent):
    """Component covering the whole page.

    Views are created by the environment's route handler after every
    navigation and parsed right away.

    Attributes:
        location: URL of the page when the view was last parsed
    """

    __test__ = False

    def __init__(self, environment: Environment) -> None:
        if environment is None:
            raise ConfigurationError("Invalid environment specified")
        super().__init__(environment=environment)
        self.location: str | None = None

    def parse(self) -> None:
        self.location = self.environment.url()
        _LOGGER.debug("Parsing %s at %s", type(self).__name__, self.location)
        super().parse()
