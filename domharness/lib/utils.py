"""Small helpers shared by the environments and views."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from domharness.exceptions import ConfigurationError, NotFoundError


class _NotFound:
    """Marker for a property path that does not resolve."""

    _instance = None

    def __new__(cls) -> _NotFound:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


class PropertyPath:
    """Dotted property path, e.g. ``"dataset.id"`` or ``"content.value"``.

    Lookup is total: a missing or null segment yields ``NOT_FOUND``
    instead of raising.
    """

    def __init__(self, path: str) -> None:
        """Parse a dotted path.

        :param path: dotted property path
        :type path: str
        :raises ConfigurationError: on a non-string path or an empty segment
        """
        if not isinstance(path, str):
            raise ConfigurationError("Invalid property path")
        self.path = path
        self.segments: list[str] = path.split(".") if path else []
        if any(not segment for segment in self.segments):
            raise ConfigurationError(f"Invalid property path: '{path}'")

    def __repr__(self) -> str:
        return f"PropertyPath({self.path!r})"

    def resolve(self, obj: Any) -> Any:  # noqa: ANN401
        """Walk the path on a Python object.

        Mapping items are looked up by key, everything else by attribute.

        :param obj: root object
        :return: resolved value or ``NOT_FOUND``
        """
        current = obj
        for segment in self.segments:
            if current is None:
                return NOT_FOUND
            if isinstance(current, Mapping):
                if segment not in current:
                    return NOT_FOUND
                current = current[segment]
            elif hasattr(current, segment):
                current = getattr(current, segment)
            else:
                return NOT_FOUND
        return current


def is_number(value: Any) -> bool:  # noqa: ANN401
    """Return True for int/float values, booleans excluded."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_nan(value: Any) -> bool:  # noqa: ANN401
    """Return True if value is a float NaN."""
    return isinstance(value, float) and math.isnan(value)


def is_sequence(value: Any) -> bool:  # noqa: ANN401
    """Return True for list-like values (strings and bytes excluded)."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def plan_selection(
    option_values: Sequence[str],
    multiple: bool,
    value: Any,  # noqa: ANN401
    additive: bool = True,
) -> tuple[int, bool]:
    """Decide which option of a select control to change.

    :param option_values: values of the control's options in order
    :param multiple: True for a multi-select control
    :param value: value of the option to select
    :param additive: selected flag applied to the option of a multi-select
    :return: option index and the selected flag to apply; for a single
        select the flag is always True (the option becomes the selection)
    :raises ConfigurationError: if value is None
    :raises NotFoundError: if no option has the value
    """
    if value is None:
        raise ConfigurationError("Invalid value")

    target = str(value)
    for index, option_value in enumerate(option_values):
        if option_value == target:
            return index, (bool(additive) if multiple else True)

    raise NotFoundError(f"Value not found: {target}")


def lead_zero(value: Any) -> str:  # noqa: ANN401
    """Convert number to string, prepending zero to values below 10."""
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("Invalid value") from exc

    return f"0{number}" if number < 10 else str(number)


def format_time(ms: Any) -> str:  # noqa: ANN401
    """Format duration in milliseconds as HH:MM:SS."""
    try:
        total = int(ms)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError("Invalid time value specified") from exc

    hours = total // 3_600_000
    minutes = (total % 3_600_000) // 60_000
    seconds = (total % 60_000) // 1000
    return f"{lead_zero(hours)}:{lead_zero(minutes)}:{lead_zero(seconds)}"
