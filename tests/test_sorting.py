from __future__ import annotations

import pytest

from report_snapshot.engine import apply_sort
from report_snapshot.engine.sorting import column_type
from report_snapshot.errors import SortRuleError
from report_snapshot.models import SortDirection, SortRule


def test_empty_sorts_keep_input_order() -> None:
    rows = [{"v": 3}, {"v": 1}, {"v": 2}]
    assert apply_sort(rows, []) == rows
    assert apply_sort(rows, None) == rows


def test_descending_sort_is_stable() -> None:
    a, b, c = {"score": 3, "tag": "a"}, {"score": 1}, {"score": 3, "tag": "c"}
    out = apply_sort([a, b, c], [{"attributeKey": "score", "direction": "desc"}])
    assert out == [a, c, b]
    assert out[0] is a and out[1] is c


def test_secondary_key_breaks_ties() -> None:
    rows = [
        {"id": 1, "grade": "8th", "score": 10},
        {"id": 2, "grade": "7th", "score": 10},
        {"id": 3, "grade": "7th", "score": 30},
        {"id": 4, "grade": "8th", "score": 20},
    ]
    sorts = [
        SortRule(attribute_key="grade", direction=SortDirection.ASC),
        {"attributeKey": "score", "direction": "desc"},
    ]
    assert [r["id"] for r in apply_sort(rows, sorts)] == [3, 2, 4, 1]


def test_missing_values_sort_last_in_both_directions() -> None:
    rows = [{"id": 1}, {"id": 2, "v": 2}, {"id": 3, "v": None}, {"id": 4, "v": 5}]
    asc = apply_sort(rows, [{"attributeKey": "v", "direction": "asc"}])
    desc = apply_sort(rows, [{"attributeKey": "v", "direction": "desc"}])
    assert [r["id"] for r in asc] == [2, 4, 1, 3]
    assert [r["id"] for r in desc] == [4, 2, 1, 3]


def test_mixed_type_values_sort_after_the_column_type() -> None:
    rows = [{"id": 1, "v": "n/a"}, {"id": 2, "v": 9}, {"id": 3, "v": 1}, {"id": 4, "v": float("nan")}]
    out = apply_sort(rows, [{"attributeKey": "v", "direction": "desc"}])
    assert [r["id"] for r in out] == [2, 3, 1, 4]


def test_column_type_prefers_most_common_class() -> None:
    rows = [{"v": "a"}, {"v": "b"}, {"v": 1}, {}]
    assert column_type(rows, "v") == "text"
    assert column_type([{"v": 1}, {"v": "a"}], "v") == "number"
    assert column_type([{}], "v") is None


def test_sort_is_idempotent_and_does_not_modify_input() -> None:
    rows = [{"k": "b", "n": 2}, {"k": "a", "n": 2}, {"k": "b", "n": 1}, {"n": 0}]
    original = list(rows)
    sorts = [{"attributeKey": "n", "direction": "asc"}, {"attributeKey": "k", "direction": "desc"}]
    once = apply_sort(rows, sorts)
    assert apply_sort(once, sorts) == once
    assert rows == original


def test_direction_is_case_insensitive() -> None:
    out = apply_sort([{"v": 1}, {"v": 2}], [{"attributeKey": "v", "direction": "DESC"}])
    assert [r["v"] for r in out] == [2, 1]


def test_invalid_direction_is_rejected() -> None:
    with pytest.raises(SortRuleError):
        apply_sort([{"v": 1}], [{"attributeKey": "v", "direction": "sideways"}])
