from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence, Union

from pydantic import ValidationError

from ..errors import FilterRuleError
from ..models import FilterOperator, FilterRule
from ..utils import as_number, as_text, is_missing, is_number

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
RuleLike = Union[FilterRule, Mapping[str, Any]]
Predicate = Callable[[Any, Any], bool]


def strict_equals(left: Any, right: Any) -> bool:
    """
    Type-aware equality: numbers compare numerically, a bool only equals a
    bool, and a string never equals a number.
    """
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if is_number(left) and is_number(right):
        return left == right
    if type(left) is not type(right) and not (isinstance(left, str) and isinstance(right, str)):
        return False
    return left == right


def _equals(actual: Any, expected: Any) -> bool:
    return strict_equals(actual, expected)


def _contains(actual: Any, expected: Any) -> bool:
    if expected is None:
        return False
    return as_text(expected).lower() in as_text(actual).lower()


def _bounds(expected: Any) -> tuple[Any, Any]:
    if isinstance(expected, Mapping):
        return expected.get("min"), expected.get("max")
    lo, hi = expected
    return lo, hi


def _range(actual: Any, expected: Any) -> bool:
    v = as_number(actual)
    if v is None:
        return False
    # Bounds were checked numeric when the rule was validated.
    lo, hi = _bounds(expected)
    if lo is not None and v < as_number(lo):
        return False
    if hi is not None and v > as_number(hi):
        return False
    return True


def _in(actual: Any, expected: Any) -> bool:
    return any(strict_equals(actual, candidate) for candidate in expected)


_OPERATORS: dict[FilterOperator, Predicate] = {
    FilterOperator.EQUALS: _equals,
    FilterOperator.CONTAINS: _contains,
    FilterOperator.RANGE: _range,
    FilterOperator.IN: _in,
}


def coerce_filter_rule(rule: RuleLike) -> FilterRule:
    if isinstance(rule, FilterRule):
        return rule
    if not isinstance(rule, Mapping):
        raise FilterRuleError(f"Filter rule must be a mapping, got {type(rule).__name__}.")
    try:
        return FilterRule.model_validate(dict(rule))
    except ValidationError as e:
        raise FilterRuleError(f"Invalid filter rule {dict(rule)!r}: {e}") from e


def row_matches(row: Row, rule: FilterRule) -> bool:
    """A row missing the attribute never matches."""
    if is_missing(row, rule.attribute_key):
        return False
    predicate = _OPERATORS[rule.operator]
    return predicate(row[rule.attribute_key], rule.value)


def apply_filters(rows: Sequence[Row], filters: Sequence[RuleLike] | None) -> list[Row]:
    """
    Keep rows matching every rule (AND). The output is a stable subsequence
    of the input; an empty rule list returns all rows.
    """
    if not filters:
        return list(rows)

    rules = [coerce_filter_rule(f) for f in filters]
    out = [row for row in rows if all(row_matches(row, rule) for rule in rules)]
    logger.debug("apply_filters: %d rule(s), %d -> %d rows", len(rules), len(rows), len(out))
    return out
