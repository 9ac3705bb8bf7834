"""Unit tests for the leveled build order and closure models."""

from __future__ import annotations

import pytest

from stage_planner.domain.models import BuildAlsoResult, LeveledBuildOrder
from stage_planner.errors import MalformedInputError


def test_levels_are_normalized_to_sorted_tuples() -> None:
    order = LeveledBuildOrder({3: ["c"], 1: ["a", "b"]})  # type: ignore[dict-item]

    assert list(order.levels) == [1, 3]
    assert order.levels[1] == ("a", "b")
    assert order.depth == 3
    assert order.level(2) == ()
    assert order.level_of("c") == 3
    assert order.level_of("z") is None
    assert order.projects() == ("a", "b", "c")


def test_json_mapping_uses_string_keys_and_skips_empty_levels() -> None:
    order = LeveledBuildOrder({1: ("a",), 2: (), 3: ("b",)})

    assert order.to_json_mapping() == {"1": ["a"], "3": ["b"]}
    assert order.depth == 3


def test_trailing_empty_level_does_not_count_towards_depth() -> None:
    assert LeveledBuildOrder({1: ("a",), 2: ()}).depth == 1


def test_from_json_mapping_accepts_lists_and_bare_strings() -> None:
    order = LeveledBuildOrder.from_json_mapping({"2": "lib", "1": ["core", "util"]})

    assert order.levels == {1: ("core", "util"), 2: ("lib",)}


@pytest.mark.parametrize(
    "payload",
    [
        {"one": ["a"]},
        {"-1": ["a"]},
        {"1": [1]},
        {"1": {"a": 1}},
        ["a"],
    ],
)
def test_from_json_mapping_rejects_malformed_documents(payload: object) -> None:
    with pytest.raises(MalformedInputError):
        LeveledBuildOrder.from_json_mapping(payload)  # type: ignore[arg-type]


def test_level_zero_and_duplicate_assignments_are_rejected() -> None:
    with pytest.raises(MalformedInputError, match="integers >= 1"):
        LeveledBuildOrder({0: ("a",)})
    with pytest.raises(MalformedInputError, match="more than one level"):
        LeveledBuildOrder({1: ("a",), 2: ("a",)})
    with pytest.raises(MalformedInputError):
        LeveledBuildOrder.from_json_mapping({"0": ["a"]})


def test_build_also_result_merges_in_first_seen_order() -> None:
    result = BuildAlsoResult(
        selected=("b", "a"),
        build_also={"b": ("c", "d"), "a": ("d", "e")},
    )

    assert result.projects == ("b", "a", "c", "d", "e")
    assert result.added == ("c", "d", "e")


def test_from_json_mapping_rejects_keys_naming_the_same_level() -> None:
    with pytest.raises(MalformedInputError, match="duplicate level 1"):
        LeveledBuildOrder.from_json_mapping({"1": ["a"], "01": ["b"]})


@pytest.mark.parametrize("key", ["²", "١", "1.0", " 1"])
def test_from_json_mapping_accepts_only_ascii_digit_keys(key: str) -> None:
    with pytest.raises(MalformedInputError, match="is not a positive integer"):
        LeveledBuildOrder.from_json_mapping({key: ["a"]})
