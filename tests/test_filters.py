from __future__ import annotations

import pytest

from report_snapshot.engine import apply_filters, strict_equals
from report_snapshot.errors import FilterRuleError
from report_snapshot.models import FilterOperator, FilterRule


ROWS = [
    {"id": 1, "grade": "7th", "score": 10, "school": "Lincoln MS"},
    {"id": 2, "grade": "8th", "score": 20, "school": "Jefferson MS"},
    {"id": 3, "grade": "7th", "score": 30, "school": "lincoln ms"},
    {"id": 4, "score": "40"},
]


def _ids(rows) -> list[int]:
    return [r["id"] for r in rows]


def test_empty_filters_return_rows_unchanged() -> None:
    assert apply_filters(ROWS, []) == ROWS
    assert apply_filters(ROWS, None) == ROWS
    assert apply_filters(ROWS, []) is not ROWS


def test_equals_keeps_matching_rows_in_order() -> None:
    rows = [{"grade": "7th"}, {"grade": "8th"}, {"grade": "7th", "x": 1}]
    out = apply_filters(rows, [{"attributeKey": "grade", "operator": "equals", "value": "7th"}])
    assert out == [rows[0], rows[2]]
    assert out[0] is rows[0]


def test_equals_is_type_aware() -> None:
    rows = [{"id": 1, "v": 5}, {"id": 2, "v": "5"}, {"id": 3, "v": 5.0}, {"id": 4, "v": True}]
    out = apply_filters(rows, [{"attributeKey": "v", "operator": "equals", "value": 5}])
    assert _ids(out) == [1, 3]

    out = apply_filters(rows, [{"attributeKey": "v", "operator": "equals", "value": True}])
    assert _ids(out) == [4]


def test_strict_equals_never_mixes_bool_and_numbers() -> None:
    assert strict_equals(1, 1.0)
    assert not strict_equals(1, True)
    assert not strict_equals("1", 1)
    assert strict_equals("a", "a")


def test_contains_is_case_insensitive() -> None:
    out = apply_filters(ROWS, [{"attributeKey": "school", "operator": "contains", "value": "LINCOLN"}])
    assert _ids(out) == [1, 3]


def test_contains_matches_text_form_of_numbers() -> None:
    out = apply_filters(ROWS, [{"attributeKey": "score", "operator": "contains", "value": "0"}])
    assert _ids(out) == [1, 2, 3, 4]


def test_range_is_inclusive_and_open_ended() -> None:
    rule = {"attributeKey": "score", "operator": "range", "value": [20, 30]}
    assert _ids(apply_filters(ROWS, [rule])) == [2, 3]

    lower_only = {"attributeKey": "score", "operator": "range", "value": {"min": 25}}
    assert _ids(apply_filters(ROWS, [lower_only])) == [3, 4]

    upper_only = {"attributeKey": "score", "operator": "range", "value": [None, 10]}
    assert _ids(apply_filters(ROWS, [upper_only])) == [1]


def test_range_skips_non_numeric_values() -> None:
    rows = [{"id": 1, "v": "abc"}, {"id": 2, "v": 3}]
    out = apply_filters(rows, [{"attributeKey": "v", "operator": "range", "value": [0, 10]}])
    assert _ids(out) == [2]


def test_in_operator_uses_membership() -> None:
    out = apply_filters(ROWS, [{"attributeKey": "grade", "operator": "in", "value": ["8th", "9th"]}])
    assert _ids(out) == [2]

    out = apply_filters(ROWS, [{"attributeKey": "score", "operator": "in", "value": {10, 30}}])
    assert _ids(out) == [1, 3]


def test_missing_attribute_never_matches() -> None:
    rules = [{"attributeKey": "grade", "operator": "contains", "value": ""}]
    assert _ids(apply_filters(ROWS, rules)) == [1, 2, 3]

    rows = [{"id": 1, "grade": None}, {"id": 2, "grade": "7th"}]
    assert _ids(apply_filters(rows, [{"attributeKey": "grade", "operator": "in", "value": [None, "7th"]}])) == [2]


def test_rules_are_anded() -> None:
    rules = [
        FilterRule(attribute_key="grade", operator=FilterOperator.EQUALS, value="7th"),
        {"attributeKey": "score", "operator": "range", "value": [15, None]},
    ]
    assert _ids(apply_filters(ROWS, rules)) == [3]


def test_input_rows_are_not_modified() -> None:
    rows = [dict(r) for r in ROWS]
    apply_filters(rows, [{"attributeKey": "grade", "operator": "equals", "value": "7th"}])
    assert rows == ROWS


@pytest.mark.parametrize(
    "rule",
    [
        {"attributeKey": "grade", "operator": "startswith", "value": "7"},
        {"attributeKey": "", "operator": "equals", "value": "7"},
        {"attributeKey": "score", "operator": "range", "value": 5},
        {"attributeKey": "score", "operator": "range", "value": ["low", "high"]},
        {"attributeKey": "grade", "operator": "in", "value": "7th"},
        "grade=7th",
    ],
)
def test_invalid_rules_are_rejected(rule) -> None:
    with pytest.raises(FilterRuleError):
        apply_filters(ROWS, [rule])
