"""Snapshot construction and the version migration chain."""

from .builder import PipelineResult, PreviewResult, build_snapshot, preview_report, preview_rows, run_pipeline
from .migrations import (
    MIGRATIONS,
    migrate_snapshot,
    needs_migration,
    normalize_snapshot,
    snapshot_version,
    validate_current,
)

__all__ = [
    "MIGRATIONS",
    "PipelineResult",
    "PreviewResult",
    "build_snapshot",
    "migrate_snapshot",
    "needs_migration",
    "normalize_snapshot",
    "preview_report",
    "preview_rows",
    "run_pipeline",
    "snapshot_version",
    "validate_current",
]
