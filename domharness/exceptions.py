"""Exceptions raised by the DOM test harness."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domharness.lib.compare import MismatchResult


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigurationError(HarnessError, ValueError):
    """Invalid arguments, options or configuration.

    Raised before any browser round-trip is started.
    """


class NotFoundError(HarnessError, LookupError):
    """A named item (option value, control, story) does not exist."""


class MismatchError(HarnessError, AssertionError):
    """Actual state differs from the expected one."""

    def __init__(self, message: str, result: MismatchResult | None = None) -> None:
        """Initialize mismatch error.

        :param message: error message
        :type message: str
        :param result: structured description of the failing leaf
        :type result: MismatchResult | None
        """
        super().__init__(message)
        self.result = result


class PathNotFoundError(MismatchError, NotFoundError):
    """Expected path is absent from the actual tree."""


class WaitTimeoutError(HarnessError, TimeoutError):
    """Polling wait or navigation did not complete in time."""


class PageError(HarnessError):
    """Runtime error reported by the page under test."""
