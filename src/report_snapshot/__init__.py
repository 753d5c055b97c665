"""Report snapshot engine: deterministic filter/sort/trend pipeline and versioned snapshots."""

from .engine import apply_expressions, apply_filters, apply_sort, compute_metrics
from .models import CURRENT_SNAPSHOT_VERSION, DEFAULT_TREND_METHOD
from .snapshot import build_snapshot, migrate_snapshot, normalize_snapshot, preview_report, preview_rows
from .trends import score_series

__version__ = "0.1.0"

__all__ = [
    "CURRENT_SNAPSHOT_VERSION",
    "DEFAULT_TREND_METHOD",
    "apply_expressions",
    "apply_filters",
    "apply_sort",
    "build_snapshot",
    "compute_metrics",
    "migrate_snapshot",
    "normalize_snapshot",
    "preview_report",
    "preview_rows",
    "score_series",
]
