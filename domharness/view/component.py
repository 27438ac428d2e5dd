"""Base test component.

A component parses a region of the page into a ``content`` mapping of
named controls and derives an application level ``model`` from it. Tests
describe the expected state as a partial mapping and call
``check_state()``; comparison of nested containers is delegated to
:func:`domharness.lib.compare.deep_meet`.

Content values may be:
    - primitives (str, int, bool, ...)
    - nested ``TestComponent`` instances
    - value holders, plain dicts like ``{"elem": handle, "value": "text"}``
    - lists of any of the above

Value holders and components get a ``visible`` field on parse, resolved
for all of them in a single backend round-trip.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, Callable

from domharness.exceptions import ConfigurationError, HarnessError, MismatchError
from domharness.lib.compare import (
    ANY,
    ComparableNode,
    CompareResult,
    MismatchResult,
    deep_meet,
    raise_mismatch,
    values_equal,
)
from domharness.lib.utils import NOT_FOUND, PropertyPath, is_sequence

if TYPE_CHECKING:
    from domharness.env.environment import Environment

_LOGGER = logging.getLogger(__name__)

_HOLDER_VALUE = PropertyPath("content.value")


def node_elem(node: Any) -> Any:  # noqa: ANN401
    """Return element handle of a content node or None."""
    if isinstance(node, Mapping):
        return node.get("elem")
    return getattr(node, "elem", None)


def holder_value(node: Any) -> Any:  # noqa: ANN401
    """Return the primitive value a content node stands for.

    Components and holders with a ``content`` mapping provide
    ``content.value``, plain holders provide ``value``; primitives stand
    for themselves.
    """
    if isinstance(node, ComparableNode):
        content = node.content
        return content.get("value") if isinstance(content, Mapping) else None
    if isinstance(node, Mapping):
        value = _HOLDER_VALUE.resolve(node)
        if value is NOT_FOUND:
            return node.get("value")
        return value
    return node


def _child(controls: Any, name: str) -> Any:  # noqa: ANN401
    if isinstance(controls, ComparableNode):
        controls = controls.content
    if isinstance(controls, Mapping):
        return controls.get(name)
    return getattr(controls, name, None)


class TestComponent(ComparableNode):
    """Base class of page components.

    Attributes:
        parent: component or view this component belongs to
        elem: root element handle
        environment: environment used to read the page
        content: parsed controls, replaced on every parse()
        model: application level state built from content
        expected_state: default expected state of check_state()
    """

    __test__ = False

    expected_state: Mapping[str, Any] | None = None

    def __init__(
        self,
        parent: Any = None,  # noqa: ANN401
        elem: Any = None,  # noqa: ANN401
        environment: Environment | None = None,
    ) -> None:
        """Initialize component.

        :param parent: parent component or view
        :param elem: root element handle
        :param environment: environment, taken from parent if None
        """
        self.parent = parent
        self.elem = elem
        self.environment = environment or getattr(parent, "environment", None)
        self.content: dict[str, Any] | None = None
        self.model: dict[str, Any] = {}

    @classmethod
    def create(cls, parent: Any, elem: Any, *args: Any, **kwargs: Any) -> TestComponent | None:  # noqa: ANN401
        """Create and parse component, None if elem is not found.

        :raises ConfigurationError: if parent is missing
        """
        if not elem:
            return None
        if parent is None:
            raise ConfigurationError("Invalid parent specified")

        instance = cls(parent, elem, *args, **kwargs)
        instance.parse()
        return instance

    def is_visible(self, item: Any) -> bool:  # noqa: ANN401
        """Return True if item's element is visible up to the document root."""
        elem = node_elem(item)
        if elem is None or self.environment is None:
            return False
        return self.environment.is_visible(elem, recursive=True)

    # ========================================================================
    # Parsing
    # ========================================================================

    def parse_content(self) -> dict[str, Any]:
        return {}

    def post_parse(self) -> None:
        """Hook called after content is parsed."""

    def build_model(self, content: Mapping[str, Any]) -> dict[str, Any]:  # noqa: ARG002
        return {}

    def get_expected_state(self, model: Mapping[str, Any] | None = None) -> dict[str, Any]:  # noqa: ARG002
        """Return expected state for the model."""
        return {}

    def update_model(self) -> None:
        self.model = self.build_model(self.content)

    def parse(self) -> None:
        """Refresh content, visibility and model from the page."""
        self.content = self.parse_content()
        self.post_parse()
        self.resolve_content_visibility()
        self.update_model()

    def resolve_content_visibility(self) -> None:
        """Set ``visible`` of every content node that does not have it yet."""
        pending: list[tuple[MutableMapping, Any]] = []
        for node in (self.content or {}).values():
            target = node.content if isinstance(node, ComparableNode) else node
            if not isinstance(target, MutableMapping) or "visible" in target:
                continue
            pending.append((target, node_elem(node)))

        if not pending:
            return
        if self.environment is None:
            raise HarnessError("Environment is not set")

        visibility = self.environment.evaluate_visibility([elem for _, elem in pending])
        for (target, _), visible in zip(pending, visibility):
            target["visible"] = bool(visible)

    # ========================================================================
    # Actions
    # ========================================================================

    def is_action_available(self, action: Any) -> bool:  # noqa: ANN401
        return (
            isinstance(action, str)
            and not action.startswith("_")
            and callable(getattr(self, action, None))
        )

    def run_action(self, action: str, data: Any = None) -> Any:  # noqa: ANN401
        """Call the method named by action, passing data if given."""
        if not self.is_action_available(action):
            raise ConfigurationError("Invalid action specified")

        method = getattr(self, action)
        return method() if data is None else method(data)

    def perform_action(self, action: Callable[[], Any]) -> None:
        """Run action against a parsed component and parse again."""
        if not callable(action):
            raise ConfigurationError("Wrong action specified")

        if self.content is None:
            self.parse()

        action()

        self.parse()

    def run_test_action(self, action: Callable[[], Any], model: Mapping[str, Any] | None = None) -> bool:
        """Perform action and check the state expected for model."""
        expected = self.get_expected_state(self.model if model is None else model)

        self.perform_action(action)

        return self.check_state(expected)

    # ========================================================================
    # State checks
    # ========================================================================

    def check_values(
        self,
        expected: Mapping[str, Any],
        path: str = "",
        ret: bool = False,
    ) -> CompareResult:
        if not isinstance(expected, Mapping):
            raise ConfigurationError("Invalid expected state object")

        content = self.content or {}
        res: CompareResult = True
        for name, expected_value in expected.items():
            if expected_value is ANY:
                continue
            key = str(name)
            if name not in content:
                res = MismatchResult(key)
                break

            control = content[name]
            if isinstance(expected_value, Mapping) or is_sequence(expected_value):
                res = deep_meet(control, expected_value, ret=True)
                if res is not True:
                    res = res.prefixed(key)
                    break
            else:
                value = holder_value(control)
                if not values_equal(value, expected_value):
                    res = MismatchResult(key, value, expected_value)
                    break

        if res is not True and not ret:
            raise_mismatch(res, path)
        return res

    def check_visibility(self, controls: Any, expected: Mapping[str, Any] | None) -> bool:  # noqa: ANN401
        """Compare visibility of controls with a mask of booleans.

        Example::

            controls = {"name": {"elem": e1}, "group": {"item": {"elem": e2}}}
            expected = {"name": True, "group": {"item": True, "other": False}}

        A control expected to be invisible may also be missing.

        :raises ConfigurationError: if controls is None
        :raises MismatchError: on the first control with other visibility
        """
        if controls is None:
            raise ConfigurationError("Wrong parameters")
        if expected is None or expected is ANY:
            return True

        for name, expected_visible in expected.items():
            control = _child(controls, name)
            if isinstance(expected_visible, Mapping):
                self.check_visibility(control, expected_visible)
                continue

            actual_visible = control is not None and self.is_visible(control)
            if actual_visible != bool(expected_visible):
                raise MismatchError(
                    f'Not expected visibility({actual_visible}) of "{name}" control',
                    MismatchResult(str(name), actual_visible, bool(expected_visible)),
                )

        return True

    def check_state(self, expected: Mapping[str, Any] | None = None) -> bool:
        """Check content against expected state.

        :param expected: expected state, ``expected_state`` if None
        :raises ConfigurationError: if there is no expected state
        :raises MismatchError: on the first mismatch
        """
        state = self.expected_state if expected is None else expected
        if state is None:
            raise ConfigurationError("Invalid expected state object")

        self.check_values(state)
        _LOGGER.debug("%s state matched", type(self).__name__)
        return True

