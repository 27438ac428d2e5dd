"""Structural comparison of actual UI state against expected state.

Expected trees are partial: only the keys present in the expected mapping
are checked, and the ``ANY`` sentinel matches whatever is found. Failures
are described by a ``MismatchResult`` whose key is the path of the failing
leaf, dotted for mapping keys and indexed for sequence items::

    >>> deep_meet({"a": {"b": [1, 2]}}, {"a": {"b": [1, 3]}}, ret=True)
    MismatchResult(key='a.b[1]', value=2, expected=3)
"""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Union

from domharness.exceptions import MismatchError, PathNotFoundError
from domharness.lib.utils import is_nan, is_number, is_sequence


class _Sentinel:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Expected value matching anything, including a missing key.
ANY = _Sentinel("ANY")

# Placeholder for the value fields of a path-only mismatch.
MISSING = _Sentinel("MISSING")


@dataclasses.dataclass(frozen=True)
class MismatchResult:
    """Failing leaf of a comparison."""

    key: str
    value: Any = MISSING
    expected: Any = MISSING

    @property
    def has_values(self) -> bool:
        """False when the path itself was not found."""
        return self.expected is not MISSING

    def prefixed(self, prefix: str) -> MismatchResult:
        """Return a copy with the key nested under prefix."""
        return dataclasses.replace(self, key=join_path(prefix, self.key))


CompareResult = Union[bool, MismatchResult]


class ComparableNode(ABC):
    """Content node defining its own comparison against expected state."""

    content: Any = None

    @abstractmethod
    def check_values(
        self,
        expected: Mapping[str, Any],
        path: str = "",
        ret: bool = False,
    ) -> CompareResult:
        """Compare own content with expected mapping.

        :param expected: expected state of the node
        :param path: path of the node, used in error messages
        :param ret: return the mismatch instead of raising
        :return: True or MismatchResult with a key relative to the node
        """
        raise NotImplementedError


def join_path(prefix: str, key: str) -> str:
    """Join two mismatch path parts."""
    if not prefix:
        return key
    if not key:
        return prefix
    if key.startswith("["):
        return f"{prefix}{key}"
    return f"{prefix}.{key}"


def values_equal(actual: Any, expected: Any) -> bool:  # noqa: ANN401
    """Strict primitive equality.

    NaN equals NaN, booleans only equal booleans, int and float compare by
    value, everything else requires the same type.
    """
    if is_nan(actual) or is_nan(expected):
        return is_nan(actual) and is_nan(expected)
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual is expected
    if is_number(actual) and is_number(expected):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def _is_structured(value: Any) -> bool:  # noqa: ANN401
    return isinstance(value, Mapping) or is_sequence(value)


def _meet(actual: Any, expected: Any) -> CompareResult:  # noqa: ANN401, PLR0911
    if expected is ANY:
        return True

    if isinstance(actual, ComparableNode) and isinstance(expected, Mapping):
        return actual.check_values(expected, ret=True)

    if not _is_structured(expected):
        if values_equal(actual, expected):
            return True
        return MismatchResult("", actual, expected)

    if actual is expected:
        return True

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return MismatchResult("", actual, expected)

        for key, expected_value in expected.items():
            if expected_value is ANY:
                continue
            if key not in actual:
                return MismatchResult(str(key))

            res = _meet(actual[key], expected_value)
            if res is not True:
                return res.prefixed(str(key))
        return True

    if not is_sequence(actual):
        return MismatchResult("", actual, expected)
    if len(actual) != len(expected):
        return MismatchResult("length", len(actual), len(expected))

    for index, (actual_item, expected_item) in enumerate(zip(actual, expected)):
        res = _meet(actual_item, expected_item)
        if res is not True:
            return res.prefixed(f"[{index}]")
    return True


def raise_mismatch(result: MismatchResult, path: str = "") -> None:
    """Raise the error describing a mismatch.

    :param result: mismatch to report
    :param path: prefix of the mismatch key
    :raises MismatchError: for a value mismatch
    :raises PathNotFoundError: for a missing path
    """
    full = result.prefixed(path)
    if full.has_values:
        msg = (
            f'Not expected value "{full.value}" for ({full.key}) '
            f'"{full.expected}" is expected'
        )
        raise MismatchError(msg, full)
    raise PathNotFoundError(f"Path ({full.key}) not found", full)


def deep_meet(actual: Any, expected: Any, ret: bool = False) -> CompareResult:  # noqa: ANN401
    """Check that actual satisfies the partial expected tree.

    :param actual: actual value tree
    :param expected: expected (partial) value tree
    :param ret: return a MismatchResult instead of raising
    :return: True on match, MismatchResult on mismatch when ret is set
    :raises MismatchError: on mismatch when ret is not set
    """
    res = _meet(actual, expected)
    if res is not True and not ret:
        raise_mismatch(res)
    return res


def _exact(actual: Any, expected: Any) -> CompareResult:  # noqa: ANN401, PLR0911
    if actual is ANY or expected is ANY:
        return True if actual is expected else MismatchResult("", actual, expected)

    if isinstance(expected, Mapping) or isinstance(actual, Mapping):
        if not (isinstance(expected, Mapping) and isinstance(actual, Mapping)):
            return MismatchResult("", actual, expected)
        for key in expected:
            if key not in actual:
                return MismatchResult(str(key))
        for key in actual:
            if key not in expected:
                return MismatchResult(str(key), actual[key])
        for key, expected_value in expected.items():
            res = _exact(actual[key], expected_value)
            if res is not True:
                return res.prefixed(str(key))
        return True

    if is_sequence(expected) or is_sequence(actual):
        if not (is_sequence(expected) and is_sequence(actual)):
            return MismatchResult("", actual, expected)
        if len(actual) != len(expected):
            return MismatchResult("length", len(actual), len(expected))
        for index, (actual_item, expected_item) in enumerate(zip(actual, expected)):
            res = _exact(actual_item, expected_item)
            if res is not True:
                return res.prefixed(f"[{index}]")
        return True

    if values_equal(actual, expected):
        return True
    return MismatchResult("", actual, expected)


def exact_meet(actual: Any, expected: Any, ret: bool = False) -> CompareResult:  # noqa: ANN401
    """Check that actual is exactly equal to expected.

    Unlike ``deep_meet`` both sides must have the same keys and ``ANY``
    only matches ``ANY``.

    :param actual: actual value tree
    :param expected: expected value tree
    :param ret: return a MismatchResult instead of raising
    :return: True on match, MismatchResult on mismatch when ret is set
    :raises MismatchError: on mismatch when ret is not set
    """
    res = _exact(actual, expected)
    if res is not True and not ret:
        if not res.has_values and res.value is not MISSING:
            raise MismatchError(f"Unexpected path ({res.key})", res)
        raise_mismatch(res)
    return res
