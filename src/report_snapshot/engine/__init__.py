"""Deterministic row transformations: attribute filters, expressions, multi-key sort, summary metrics."""

from .expressions import apply_expressions, evaluate_expression
from .filters import apply_filters, row_matches, strict_equals
from .metrics import compute_metrics, round_half_up, row_attributes
from .sorting import apply_sort

__all__ = [
    "apply_expressions",
    "apply_filters",
    "apply_sort",
    "compute_metrics",
    "evaluate_expression",
    "round_half_up",
    "row_attributes",
    "row_matches",
    "strict_equals",
]
