"""Navigation state machine shared by all environments.

A navigation arms a one-shot load listener before triggering the action
that changes the page, so the load can never happen before somebody
listens for it::

    IDLE -> AWAITING_LOAD -> DOCUMENT_ACQUIRED -> POLYFILLS_APPLIED
         -> ROUTE_RESOLVED -> IDLE

Any failing step moves to FAILED and the error propagates to the caller.
The listener is closed in every case.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable

from domharness.exceptions import ConfigurationError
from domharness.lib.wait import WaitResult, wait_for

_LOGGER = logging.getLogger(__name__)


class NavigationState(Enum):
    """States of a navigation."""

    IDLE = "idle"
    AWAITING_LOAD = "awaiting_load"
    DOCUMENT_ACQUIRED = "document_acquired"
    POLYFILLS_APPLIED = "polyfills_applied"
    ROUTE_RESOLVED = "route_resolved"
    FAILED = "failed"


class LoadListener(ABC):
    """One-shot page load signal armed before a navigation action."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Return True once the new page finished loading.

        May raise PageError if the page reported a runtime error.
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Deregister the listener."""
        raise NotImplementedError


class Navigator:
    """Run navigations through the load synchronization states.

    Backends provide the steps as callables; the order and failure
    handling live here.
    """

    def __init__(
        self,
        arm_listener: Callable[[], LoadListener],
        acquire_document: Callable[[], None],
        apply_polyfills: Callable[[], None],
        on_loaded: Callable[[], None],
        wait: Callable[..., object] = wait_for,
    ) -> None:
        """Initialize navigator.

        :param arm_listener: creates and registers a LoadListener
        :param acquire_document: re-acquires the document handle
        :param apply_polyfills: installs page helpers needed by the harness
        :param on_loaded: post-navigation hook (validation, route, parse)
        :param wait: polling function with the ``wait_for`` signature
        """
        self._arm_listener = arm_listener
        self._acquire_document = acquire_document
        self._apply_polyfills = apply_polyfills
        self._on_loaded = on_loaded
        self._wait = wait
        self.state = NavigationState.IDLE

    def _set_state(self, state: NavigationState) -> None:
        _LOGGER.debug("Navigation state: %s -> %s", self.state.value, state.value)
        self.state = state

    def navigate(self, action: Callable[[], object], timeout: int, polling: int) -> None:
        """Run action and wait for the page it loads to be ready.

        :param action: callable triggering the navigation
        :param timeout: load timeout in milliseconds
        :param polling: load check interval in milliseconds
        :raises ConfigurationError: if action is not callable
        :raises WaitTimeoutError: if the page does not load in time
        :raises PageError: if the page reports a runtime error while loading
        """
        if not callable(action):
            raise ConfigurationError("Wrong action specified")

        listener = self._arm_listener()
        self._set_state(NavigationState.AWAITING_LOAD)
        try:
            action()
            self._wait(
                lambda: WaitResult(True) if listener.is_loaded() else None,
                timeout,
                polling,
            )

            self._acquire_document()
            self._set_state(NavigationState.DOCUMENT_ACQUIRED)

            self._apply_polyfills()
            self._set_state(NavigationState.POLYFILLS_APPLIED)

            self._on_loaded()
            self._set_state(NavigationState.ROUTE_RESOLVED)
        except Exception:
            self._set_state(NavigationState.FAILED)
            raise
        finally:
            listener.close()

        self._set_state(NavigationState.IDLE)
