"""Polling wait engine shared by all environments."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from domharness.exceptions import ConfigurationError, WaitTimeoutError

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30000
DEFAULT_POLLING = 200


@dataclass(frozen=True)
class WaitResult:
    """Truthy wrapper returned by a wait condition once it is met.

    The wrapper keeps falsy payloads (``None``, ``0``, ``""``) usable as
    wait results.
    """

    value: Any = None

    def __bool__(self) -> bool:
        return True


Condition = Callable[[], Optional[WaitResult]]


def wait_for(
    condition: Condition,
    timeout: int = DEFAULT_TIMEOUT,
    polling: int = DEFAULT_POLLING,
    *,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Any:  # noqa: ANN401
    """Poll condition until it returns a WaitResult or timeout expires.

    Checks run strictly one after another; the first check runs without
    delay. A result produced after the deadline is discarded and no check
    starts once the deadline has passed.

    :param condition: callable returning WaitResult when met, falsy otherwise
    :param timeout: hard limit in milliseconds
    :param polling: delay between checks in milliseconds
    :param sleep: delay function taking seconds
    :param clock: monotonic clock returning seconds
    :return: payload of the WaitResult
    :raises ConfigurationError: on invalid condition or intervals, or when
        the condition returns a truthy value other than WaitResult
    :raises WaitTimeoutError: when timeout expires first
    """
    if not callable(condition):
        raise ConfigurationError("Invalid condition specified")
    if timeout < 0 or polling <= 0:
        raise ConfigurationError("Invalid wait options specified")

    deadline = clock() + timeout / 1000
    attempts = 0
    while True:
        attempts += 1
        res = condition()
        if clock() > deadline:
            break
        if res:
            if not isinstance(res, WaitResult):
                raise ConfigurationError("Condition must return WaitResult")
            _LOGGER.debug("Wait condition met after %d attempt(s)", attempts)
            return res.value

        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(polling / 1000, remaining))
        if clock() >= deadline:
            break

    _LOGGER.debug("Wait timed out after %d attempt(s)", attempts)
    raise WaitTimeoutError(f"Wait timeout ({timeout}ms)")


def validate_selector_options(selector: Any, visible: bool, hidden: bool) -> None:  # noqa: ANN401
    """Check wait_for_selector arguments.

    :raises ConfigurationError: if selector is not a string or if not
        exactly one of visible/hidden is set
    """
    if not isinstance(selector, str):
        raise ConfigurationError("Invalid selector specified")
    if bool(visible) == bool(hidden):
        raise ConfigurationError(
            "Invalid options specified: exactly one of 'visible' or 'hidden' is required"
        )


def selector_state_met(found: bool, elem_visible: bool, visible: bool, hidden: bool) -> bool:
    """Tell whether a selector's current state satisfies the wait."""
    if not found:
        return bool(hidden)
    return (visible and elem_visible) or (hidden and not elem_visible)
