from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Mapping, Optional

from ..errors import SnapshotShapeError, TrendSeriesError
from ..models import CURRENT_SNAPSHOT_VERSION, DEFAULT_TREND_METHOD
from ..trends.scoring import DEFAULT_REGISTRY, TrendScorerRegistry
from ..utils import is_number

logger = logging.getLogger(__name__)

Snapshot = dict[str, Any]
MigrationStep = Callable[[Snapshot, TrendScorerRegistry], Snapshot]


# Defaults introduced by the 1 -> 2 upgrade. Constants, never read from settings.
def v2_trend_config_defaults() -> dict[str, Any]:
    return {
        "variables": [],
        "enabledCalc": False,
        "enabledDisplay": True,
        "method": DEFAULT_TREND_METHOD,
        "thresholdPct": 2,
    }


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def snapshot_version(raw: Any) -> Optional[int]:
    """Declared version of a snapshot-shaped value, or None if it has none."""
    if not isinstance(raw, Mapping):
        return None
    version = raw.get("version")
    return version if _is_int(version) and version >= 1 else None


def _check_envelope(raw: Any) -> int:
    if not isinstance(raw, Mapping):
        raise SnapshotShapeError(f"Snapshot must be an object, got {type(raw).__name__}.")
    version = snapshot_version(raw)
    if version is None:
        raise SnapshotShapeError(f"Snapshot version must be a positive integer, got {raw.get('version')!r}.")
    if version > CURRENT_SNAPSHOT_VERSION:
        raise SnapshotShapeError(
            f"Snapshot version {version} is newer than the supported version {CURRENT_SNAPSHOT_VERSION}."
        )
    if not isinstance(raw.get("config"), Mapping):
        raise SnapshotShapeError("Snapshot 'config' must be an object.")
    if not isinstance(raw.get("results"), Mapping):
        raise SnapshotShapeError("Snapshot 'results' must be an object.")
    return version


def _require_version(snapshot: Snapshot, expected: int) -> None:
    if snapshot.get("version") != expected:
        raise SnapshotShapeError(
            f"Migration step for version {expected} applied to version {snapshot.get('version')!r}."
        )


def _list_of_objects(value: Any, label: str, *, required: bool = False) -> list[dict[str, Any]]:
    if value is None and not required:
        return []
    if not isinstance(value, list):
        raise SnapshotShapeError(f"'{label}' must be a list.")
    for i, item in enumerate(value):
        if not isinstance(item, Mapping):
            raise SnapshotShapeError(f"'{label}[{i}]' must be an object.")
    return [dict(item) for item in value]


def _count_filters(filters: Any) -> int:
    # Version 1 stored equality filters as {attribute: value}; "All" meant unset.
    if filters is None:
        return 0
    if isinstance(filters, list):
        return len(filters)
    if isinstance(filters, Mapping):
        return sum(1 for v in filters.values() if v not in (None, "", "All"))
    raise SnapshotShapeError("'config.filters' must be a list or an object.")


def _has_score(trend: Mapping[str, Any]) -> bool:
    score = trend.get("confidenceScore")
    return is_number(score) and 0 <= score <= 100


# ---- Upgrade steps ----------------------------------------------------------


def _upgrade_v1_to_v2(snapshot: Snapshot, registry: TrendScorerRegistry) -> Snapshot:
    """
    Version 2 introduces:
    - config.trendConfig (method defaults to delta_halves)
    - results.explainability, derived from the stored results
    - trendData[].confidenceScore, computed with the configured method
    """
    _require_version(snapshot, 1)
    config = dict(snapshot["config"])
    results = dict(snapshot["results"])

    trend_config = config.get("trendConfig")
    if trend_config is None:
        trend_config = {}
    if not isinstance(trend_config, Mapping):
        raise SnapshotShapeError("'config.trendConfig' must be an object.")
    trend_config = {**v2_trend_config_defaults(), **trend_config}
    if trend_config["method"] is None:
        trend_config["method"] = DEFAULT_TREND_METHOD
    method = trend_config["method"]
    if not isinstance(method, str):
        raise SnapshotShapeError("'config.trendConfig.method' must be a string.")

    rows = _list_of_objects(results.get("filteredTableData"), "results.filteredTableData")
    trends = _list_of_objects(results.get("trendData"), "results.trendData")

    scored: list[dict[str, Any]] = []
    for i, trend in enumerate(trends):
        if not _has_score(trend):
            try:
                # UnknownTrendMethodError is a configuration error and propagates.
                trend["confidenceScore"] = registry.score(trend.get("series"), method)
            except TrendSeriesError as e:
                raise SnapshotShapeError(f"'results.trendData[{i}].series': {e}") from e
        scored.append(trend)

    row_count = len(rows)
    explainability: dict[str, Any] = {
        "outputRowCount": row_count,
        "filtersApplied": _count_filters(config.get("filters")),
        "trendsScored": len(scored),
        "inputRowCount": row_count,
        "afterFilterCount": row_count,
        "afterExpressionCount": row_count,
        "droppedByStep": {"filters": 0, "expressions": 0, "sorting": 0},
    }
    existing = results.get("explainability")
    if existing is not None:
        if not isinstance(existing, Mapping):
            raise SnapshotShapeError("'results.explainability' must be an object.")
        explainability.update(existing)
        explainability["outputRowCount"] = row_count

    config["trendConfig"] = trend_config
    results.update({"filteredTableData": rows, "trendData": scored, "explainability": explainability})
    out = dict(snapshot)
    out.update({"version": 2, "config": config, "results": results})
    return out


# Keyed by source version. Adding version N+1 means adding one step for N.
MIGRATIONS: dict[int, MigrationStep] = {
    1: _upgrade_v1_to_v2,
}


# ---- Current-version validation ---------------------------------------------


def validate_current(snapshot: Snapshot) -> Snapshot:
    """Structural check of a current-version snapshot. Returns it unchanged."""
    _require_version(snapshot, CURRENT_SNAPSHOT_VERSION)
    config = snapshot["config"]
    results = snapshot["results"]

    if not isinstance(config.get("trendConfig"), Mapping):
        raise SnapshotShapeError("'config.trendConfig' must be an object.")
    rows = _list_of_objects(results.get("filteredTableData"), "results.filteredTableData", required=True)
    trends = _list_of_objects(results.get("trendData"), "results.trendData", required=True)
    for i, trend in enumerate(trends):
        if not _has_score(trend):
            raise SnapshotShapeError(f"'results.trendData[{i}].confidenceScore' must be a number in [0, 100].")

    explainability = results.get("explainability")
    if not isinstance(explainability, Mapping):
        raise SnapshotShapeError("'results.explainability' must be an object.")
    output_rows = explainability.get("outputRowCount")
    if not _is_int(output_rows) or output_rows != len(rows):
        raise SnapshotShapeError(
            f"'results.explainability.outputRowCount' ({output_rows!r}) does not match {len(rows)} filtered rows."
        )
    return snapshot


# ---- Entry points -------------------------------------------------------------


def migrate_snapshot(raw: Any, *, registry: TrendScorerRegistry | None = None) -> Snapshot:
    """
    Upgrade a snapshot of any known version to the current version.

    Raises SnapshotShapeError for malformed input and UnknownTrendMethodError
    when a missing score would need an unregistered method. The input is
    never modified.
    """
    reg = registry or DEFAULT_REGISTRY
    version = _check_envelope(raw)
    snapshot: Snapshot = copy.deepcopy(dict(raw))

    while version < CURRENT_SNAPSHOT_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise SnapshotShapeError(f"No migration registered from version {version}.")
        snapshot = step(snapshot, reg)
        if snapshot.get("version") != version + 1:
            raise SnapshotShapeError(f"Migration from version {version} produced version {snapshot.get('version')!r}.")
        logger.debug("Migrated snapshot from version %d to %d", version, version + 1)
        version += 1

    return validate_current(snapshot)


def normalize_snapshot(raw: Any, *, registry: TrendScorerRegistry | None = None) -> Optional[Snapshot]:
    """
    Return a current-version snapshot, or None when the input is not a
    structurally valid snapshot. Never partially migrated.

    Normalizing a current snapshot returns an equal copy.
    """
    try:
        return migrate_snapshot(raw, registry=registry)
    except SnapshotShapeError as e:
        logger.warning("Rejected snapshot: %s", e)
        return None


def needs_migration(raw: Any) -> bool:
    version = snapshot_version(raw)
    return version is not None and version < CURRENT_SNAPSHOT_VERSION
