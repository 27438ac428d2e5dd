"""Browser/DOM end-to-end test harness."""

from domharness.application import Runner, TestApplication
from domharness.config import HarnessConfig
from domharness.env import Environment, PlaywrightEnvironment, SeleniumEnvironment
from domharness.exceptions import (
    ConfigurationError,
    HarnessError,
    MismatchError,
    NotFoundError,
    PageError,
    PathNotFoundError,
    WaitTimeoutError,
)
from domharness.lib.compare import ANY, deep_meet, exact_meet
from domharness.lib.wait import WaitResult
from domharness.story import Scenario, TestStory
from domharness.view import TestComponent, TestView

__version__ = "1.0.0"

__all__ = [
    "ANY",
    "ConfigurationError",
    "Environment",
    "HarnessConfig",
    "HarnessError",
    "MismatchError",
    "NotFoundError",
    "PageError",
    "PathNotFoundError",
    "PlaywrightEnvironment",
    "Runner",
    "Scenario",
    "SeleniumEnvironment",
    "TestApplication",
    "TestComponent",
    "TestStory",
    "TestView",
    "WaitResult",
    "WaitTimeoutError",
    "deep_meet",
    "exact_meet",
]
