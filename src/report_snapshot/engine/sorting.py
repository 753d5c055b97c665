from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ..errors import SortRuleError
from ..models import SortDirection, SortRule
from ..utils import is_missing, is_number

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
SortLike = Union[SortRule, Mapping[str, Any]]

# Tie order when two type classes are equally common in a column.
_TYPE_PRIORITY = ("number", "text", "bool")


def coerce_sort_rule(rule: SortLike) -> SortRule:
    if isinstance(rule, SortRule):
        return rule
    if not isinstance(rule, Mapping):
        raise SortRuleError(f"Sort rule must be a mapping, got {type(rule).__name__}.")
    try:
        return SortRule.model_validate(dict(rule))
    except ValidationError as e:
        raise SortRuleError(f"Invalid sort rule {dict(rule)!r}: {e}") from e


def _type_class(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "bool"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "text"
    return None


def column_type(rows: Sequence[Row], key: str) -> Optional[str]:
    """Most common type class among present values of key."""
    counts: Counter[str] = Counter()
    for row in rows:
        if is_missing(row, key):
            continue
        cls = _type_class(row[key])
        if cls is not None:
            counts[cls] += 1
    if not counts:
        return None
    return max(_TYPE_PRIORITY, key=lambda c: (counts.get(c, 0), -_TYPE_PRIORITY.index(c)))


def _sort_pass(rows: list[Row], rule: SortRule) -> list[Row]:
    key = rule.attribute_key
    ctype = column_type(rows, key)
    comparable: list[Row] = []
    tail: list[Row] = []
    for row in rows:
        if ctype is not None and not is_missing(row, key) and _type_class(row[key]) == ctype:
            comparable.append(row)
        else:
            tail.append(row)
    # sorted() with reverse=True keeps equal elements in their original order.
    comparable = sorted(comparable, key=lambda r: r[key], reverse=rule.direction == SortDirection.DESC)
    return comparable + tail


def apply_sort(rows: Sequence[Row], sorts: Sequence[SortLike] | None) -> list[Row]:
    """
    Stable multi-key sort. The first rule is the primary key. Missing values
    and values of a different type than the column sort last in either
    direction. The input sequence is not modified.
    """
    out = list(rows)
    if not sorts:
        return out

    rules = [coerce_sort_rule(s) for s in sorts]
    # One stable pass per key, least significant first.
    for rule in reversed(rules):
        out = _sort_pass(out, rule)
    logger.debug("apply_sort: %d key(s) over %d rows", len(rules), len(out))
    return out
