from __future__ import annotations


class ReportSnapshotError(Exception):
    """Base class for errors raised by the report snapshot engine."""


class FilterRuleError(ReportSnapshotError, ValueError):
    """Raised when a filter rule or expression is malformed."""


class SortRuleError(ReportSnapshotError, ValueError):
    """Raised when a sort rule is malformed."""


class TrendSeriesError(ReportSnapshotError, ValueError):
    """Raised when a trend series contains non-numeric points."""


class TrendConfigError(ReportSnapshotError, ValueError):
    """Raised when a trend configuration violates the contract."""


class UnknownTrendMethodError(ReportSnapshotError, LookupError):
    """Raised when a trend scoring method is not registered.

    This is a configuration error and is never replaced by a default method:
    a silently substituted method would persist a wrong confidence score.
    """

    def __init__(self, method: str, available: list[str]) -> None:
        self.method = method
        self.available = list(available)
        listed = ", ".join(self.available) or "none"
        super().__init__(f"Unknown trend method '{method}'. Available methods: {listed}.")


class SnapshotShapeError(ReportSnapshotError, ValueError):
    """Raised when a stored snapshot is not structurally valid for its declared version."""


class SnapshotBuildError(ReportSnapshotError, ValueError):
    """Raised when first-time snapshot construction receives invalid input."""
