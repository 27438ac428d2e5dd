"""Test environments."""

from domharness.env.environment import Environment, ResultRecord, TestResults
from domharness.env.playwright_env import PlaywrightEnvironment
from domharness.env.selenium_env import SeleniumEnvironment

__all__ = [
    "Environment",
    "PlaywrightEnvironment",
    "ResultRecord",
    "SeleniumEnvironment",
    "TestResults",
]
