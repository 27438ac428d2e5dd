"""Test run configuration."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from domharness.exceptions import ConfigurationError
from domharness.lib.wait import DEFAULT_POLLING, DEFAULT_TIMEOUT

_LOGGER = logging.getLogger(__name__)


@dataclass
class HarnessConfig:
    """Settings of a test run.

    Attributes:
        base_url: URL of the application under test
        tests_expected: expected count of results, 0 to skip the check
        headless: run the browser without a window
        browser: browser engine name
        timeout: default wait/navigation timeout in milliseconds
        polling: default polling interval in milliseconds
        permissions: browser permissions granted to the base URL origin
        error_screenshot: screenshot path written when the run fails
        report_file: HTML report path (Selenium environment)
        story: name of the single story to run
        viewport: browser viewport size as ``{"width": .., "height": ..}``
    """

    base_url: str
    tests_expected: int = 0
    headless: bool = True
    browser: str = "chromium"
    timeout: int = DEFAULT_TIMEOUT
    polling: int = DEFAULT_POLLING
    permissions: list[str] = field(default_factory=list)
    error_screenshot: str | None = None
    report_file: str | None = None
    story: str | None = None
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1920, "height": 1080})

    def __post_init__(self) -> None:
        if not isinstance(self.base_url, str) or not self.base_url:
            raise ConfigurationError("Invalid config: test URL not found")
        if not isinstance(self.tests_expected, int) or self.tests_expected < 0:
            raise ConfigurationError("Invalid config: 'tests_expected' must be a non-negative integer")
        if self.timeout <= 0 or self.polling <= 0:
            raise ConfigurationError("Invalid config: 'timeout' and 'polling' must be positive")
        if isinstance(self.permissions, str):
            self.permissions = [self.permissions]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HarnessConfig:
        """Create config from a mapping.

        :param data: config values
        :raises ConfigurationError: on unknown keys or invalid values
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError("Invalid config: mapping expected")

        known = {item.name for item in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Invalid config: unknown option(s) {', '.join(unknown)}")
        if "base_url" not in data:
            raise ConfigurationError("Invalid config: test URL not found")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> HarnessConfig:
        """Load config from a YAML file.

        :param path: path to the YAML file
        :raises FileNotFoundError: if the file does not exist
        :raises ConfigurationError: on invalid content
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        _LOGGER.info("Loading config from: %s", config_path)
        with config_path.open() as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Invalid config file {path}: {exc}") from exc
        return cls.from_dict(data)
