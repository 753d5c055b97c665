from __future__ import annotations

import logging
import operator as op
from typing import Any, Callable, Mapping, Sequence, Union

from pydantic import ValidationError

from ..errors import FilterRuleError
from ..models import Connector, Expression, ExpressionOperator
from ..utils import as_number, as_text, is_missing

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
ExpressionLike = Union[Expression, Mapping[str, Any]]

_COMPARATORS: dict[ExpressionOperator, Callable[[Any, Any], bool]] = {
    ExpressionOperator.EQ: op.eq,
    ExpressionOperator.NE: op.ne,
    ExpressionOperator.GT: op.gt,
    ExpressionOperator.LT: op.lt,
    ExpressionOperator.GE: op.ge,
    ExpressionOperator.LE: op.le,
}


def coerce_expression(expr: ExpressionLike) -> Expression:
    if isinstance(expr, Expression):
        return expr
    if not isinstance(expr, Mapping):
        raise FilterRuleError(f"Expression must be a mapping, got {type(expr).__name__}.")
    try:
        return Expression.model_validate(dict(expr))
    except ValidationError as e:
        raise FilterRuleError(f"Invalid expression {dict(expr)!r}: {e}") from e


def evaluate_expression(row: Row, expr: Expression) -> bool:
    """
    Numeric comparison when both sides read as numbers, otherwise a
    case-insensitive text comparison. A missing attribute never matches.
    """
    if is_missing(row, expr.attribute) or expr.value is None:
        return False
    actual = row[expr.attribute]

    if expr.operator == ExpressionOperator.CONTAINS:
        return as_text(expr.value).lower() in as_text(actual).lower()

    compare = _COMPARATORS[expr.operator]
    left_n, right_n = as_number(actual), as_number(expr.value)
    if left_n is not None and right_n is not None:
        return compare(left_n, right_n)
    return compare(as_text(actual).lower(), as_text(expr.value).lower())


def apply_expressions(rows: Sequence[Row], expressions: Sequence[ExpressionLike] | None) -> list[Row]:
    """
    Keep rows for which the expression chain holds. Connectors are applied
    left to right with no precedence: a AND b OR c == (a AND b) OR c.
    The connector of the first expression is ignored.
    """
    if not expressions:
        return list(rows)

    exprs = [coerce_expression(e) for e in expressions]

    def _keep(row: Row) -> bool:
        result = evaluate_expression(row, exprs[0])
        for expr in exprs[1:]:
            current = evaluate_expression(row, expr)
            if expr.connector == Connector.OR:
                result = result or current
            else:
                result = result and current
        return result

    out = [row for row in rows if _keep(row)]
    logger.debug("apply_expressions: %d expression(s), %d -> %d rows", len(exprs), len(rows), len(out))
    return out
