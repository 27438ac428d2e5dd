"""Unit tests for structural comparison in compare.py."""

import math

import pytest

from domharness.exceptions import MismatchError, PathNotFoundError
from domharness.lib.compare import (
    ANY,
    MISSING,
    ComparableNode,
    MismatchResult,
    deep_meet,
    exact_meet,
    join_path,
    values_equal,
)


class Node(ComparableNode):
    """Comparable node matching any expected mapping with a 'name' key."""

    def __init__(self, name):
        self.content = {"name": name}
        self.calls = []

    def check_values(self, expected, path="", ret=False):
        self.calls.append(expected)
        if expected.get("name") == self.content["name"]:
            return True
        return MismatchResult("name", self.content["name"], expected.get("name"))


class TestDeepMeet:
    """Test deep_meet() on partial expected trees."""

    def test_equal_trees_match(self):
        actual = {"a": 1, "b": {"c": [1, 2, {"d": "x"}]}}
        assert deep_meet(actual, {"a": 1, "b": {"c": [1, 2, {"d": "x"}]}}) is True

    def test_extra_actual_keys_are_ignored(self):
        assert deep_meet({"a": 1, "b": 2, "c": 3}, {"b": 2}) is True

    @pytest.mark.parametrize("value", [0, "", None, [1], {"a": 1}, math.nan])
    def test_any_matches_everything(self, value):
        assert deep_meet(value, ANY) is True

    def test_any_value_skips_missing_key(self):
        assert deep_meet({"a": 1}, {"a": 1, "b": ANY}) is True

    def test_missing_key_gives_path_only_result(self):
        res = deep_meet({"a": {"b": 1}}, {"a": {"c": 1}}, ret=True)

        assert res.key == "a.c"
        assert res.value is MISSING
        assert res.expected is MISSING
        assert not res.has_values

    def test_missing_key_raises_path_not_found(self):
        with pytest.raises(PathNotFoundError, match=r"Path \(a.c\) not found"):
            deep_meet({"a": {"b": 1}}, {"a": {"c": 1}})

    def test_nested_mismatch_path(self):
        res = deep_meet({"a": {"b": {"c": 1}}}, {"a": {"b": {"c": 2}}}, ret=True)

        assert res == MismatchResult("a.b.c", 1, 2)

    def test_mismatch_message_names_path_and_values(self):
        with pytest.raises(MismatchError) as exc_info:
            deep_meet({"a": {"b": "x"}}, {"a": {"b": "y"}})

        assert str(exc_info.value) == 'Not expected value "x" for (a.b) "y" is expected'
        assert exc_info.value.result.key == "a.b"

    def test_nan_equals_nan(self):
        assert deep_meet(math.nan, math.nan) is True
        assert deep_meet(math.nan, 5, ret=True) is not True
        assert deep_meet(5, math.nan, ret=True) is not True

    def test_length_mismatch_reported_before_items(self):
        res = deep_meet({"field": [1, 2]}, {"field": [1, 2, 3]}, ret=True)

        assert res == MismatchResult("field.length", 2, 3)

    def test_top_level_length_mismatch(self):
        res = deep_meet([9, 2], [1, 2, 3], ret=True)

        assert res == MismatchResult("length", 2, 3)

    def test_sequence_item_path(self):
        res = deep_meet({"a": {"b": [1, 2]}}, {"a": {"b": [1, 3]}}, ret=True)

        assert res.key == "a.b[1]"

    def test_structured_expected_against_primitive(self):
        res = deep_meet({"a": 1}, {"a": {"b": 1}}, ret=True)

        assert res == MismatchResult("a", 1, {"b": 1})

    def test_sequence_expected_against_mapping(self):
        res = deep_meet({"a": {"0": 1}}, {"a": [1]}, ret=True)

        assert res.key == "a"

    def test_same_object_matches(self):
        shared = {"a": [1, 2, 3]}
        assert deep_meet(shared, shared) is True

    def test_strict_equality(self):
        assert deep_meet({"a": "1"}, {"a": 1}, ret=True) is not True
        assert deep_meet({"a": 1}, {"a": True}, ret=True) is not True
        assert deep_meet({"a": 1.0}, {"a": 1}) is True
        assert deep_meet({"a": None}, {"a": None}) is True

    def test_comparable_node_delegation(self):
        node = Node("x")

        assert deep_meet({"item": node}, {"item": {"name": "x"}}) is True
        assert node.calls == [{"name": "x"}]

    def test_comparable_node_mismatch_prefixed(self):
        res = deep_meet({"items": [Node("x")]}, {"items": [{"name": "y"}]}, ret=True)

        assert res == MismatchResult("items[0].name", "x", "y")


class TestExactMeet:
    """Test exact_meet() symmetric comparison."""

    def test_equal_trees(self):
        assert exact_meet({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]}) is True

    def test_extra_actual_key_fails(self):
        with pytest.raises(MismatchError, match=r"Unexpected path \(b\)"):
            exact_meet({"a": 1, "b": 2}, {"a": 1})

    def test_missing_key_fails(self):
        with pytest.raises(PathNotFoundError):
            exact_meet({"a": 1}, {"a": 1, "b": 2})

    def test_any_only_matches_any(self):
        assert exact_meet({"a": ANY}, {"a": ANY}) is True
        assert exact_meet({"a": 1}, {"a": ANY}, ret=True) is not True


class TestHelpers:
    """Test path joining and primitive equality."""

    @pytest.mark.parametrize(
        ("prefix", "key", "expected"),
        [
            ("", "a", "a"),
            ("a", "", "a"),
            ("a", "b", "a.b"),
            ("a", "[0]", "a[0]"),
            ("a", "[0].b", "a[0].b"),
        ],
    )
    def test_join_path(self, prefix, key, expected):
        assert join_path(prefix, key) == expected

    def test_values_equal(self):
        assert values_equal(True, True)
        assert not values_equal(1, True)
        assert not values_equal(0, False)
        assert values_equal(2, 2.0)
        assert not values_equal("a", b"a")
