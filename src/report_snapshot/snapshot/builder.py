from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from ..engine import apply_expressions, apply_filters, apply_sort, compute_metrics
from ..errors import SnapshotBuildError, TrendConfigError, TrendSeriesError
from ..models import (
    CURRENT_SNAPSHOT_VERSION,
    DroppedByStep,
    Explainability,
    ReportConfig,
    ReportMetrics,
    ReportSnapshot,
    SnapshotResults,
    TrendConfig,
    TrendDatum,
)
from ..trends.compute import compute_trend_data, score_trends
from ..trends.config import validate_trend_config
from ..trends.scoring import DEFAULT_REGISTRY, TrendScorerRegistry

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
ConfigLike = Union[ReportConfig, Mapping[str, Any]]


@dataclass(frozen=True)
class PipelineResult:
    """Rows after each pipeline stage (filters -> expressions -> sort)."""
    input_rows: list[Row]
    after_filters: list[Row]
    after_expressions: list[Row]
    output_rows: list[Row]


def coerce_config(config: ConfigLike) -> ReportConfig:
    if isinstance(config, ReportConfig):
        return config
    if not isinstance(config, Mapping):
        raise SnapshotBuildError(f"Report config must be an object, got {type(config).__name__}.")
    try:
        return ReportConfig.model_validate(dict(config))
    except ValidationError as e:
        raise SnapshotBuildError(f"Invalid report config: {e}") from e


def run_pipeline(rows: Sequence[Row], config: ReportConfig) -> PipelineResult:
    input_rows = list(rows)
    after_filters = apply_filters(input_rows, config.filters)
    after_expressions = apply_expressions(after_filters, config.expressions)
    output_rows = apply_sort(after_expressions, config.sorts)
    return PipelineResult(
        input_rows=input_rows,
        after_filters=after_filters,
        after_expressions=after_expressions,
        output_rows=output_rows,
    )


def preview_rows(rows: Sequence[Row], config: ConfigLike, *, limit: Optional[int] = None) -> list[Row]:
    """Live wizard preview: filters, expressions and sort, no trends."""
    out = run_pipeline(rows, coerce_config(config)).output_rows
    return out if limit is None else out[:limit]


@dataclass(frozen=True)
class PreviewResult:
    rows: list[Row]
    metrics: ReportMetrics


def preview_report(
    rows: Sequence[Row],
    config: ConfigLike,
    *,
    attributes: Optional[Sequence[str]] = None,
    limit: Optional[int] = None,
) -> PreviewResult:
    """
    Preview rows plus summary metrics over the whole filtered result.
    attributes defaults to every key present in the input rows.
    """
    result = run_pipeline(rows, coerce_config(config))
    metrics = compute_metrics(result.output_rows, result.input_rows, attributes)
    shown = result.output_rows if limit is None else result.output_rows[:limit]
    return PreviewResult(rows=shown, metrics=metrics)


def explain(result: PipelineResult, config: ReportConfig, trends_scored: int) -> Explainability:
    return Explainability(
        output_row_count=len(result.output_rows),
        filters_applied=len(config.filters),
        trends_scored=trends_scored,
        input_row_count=len(result.input_rows),
        after_filter_count=len(result.after_filters),
        after_expression_count=len(result.after_expressions),
        dropped_by_step=DroppedByStep(
            filters=len(result.input_rows) - len(result.after_filters),
            expressions=len(result.after_filters) - len(result.after_expressions),
            sorting=len(result.after_expressions) - len(result.output_rows),
        ),
    )


def build_snapshot(
    config: ConfigLike,
    rows: Sequence[Row],
    *,
    trend_series: Optional[Sequence[Mapping[str, Any]]] = None,
    attributes: Optional[Sequence[str]] = None,
    generated_at: Optional[str] = None,
    registry: TrendScorerRegistry | None = None,
) -> dict[str, Any]:
    """
    Build a current-version snapshot directly from a config and raw rows.

    trend_series: raw {trendId, series} items to score; when omitted, trends
    are computed from the filtered rows for the configured variables.
    attributes: when given, trend variables must be among them.

    Derived fields (confidenceScore, explainability) are always computed
    here and never taken from the caller.
    """
    reg = registry or DEFAULT_REGISTRY
    cfg = coerce_config(config)

    try:
        trend_config = validate_trend_config(
            cfg.trend_config.model_dump(by_alias=True, mode="json", exclude_unset=True), attributes, registry=reg
        )
    except TrendConfigError as e:
        raise SnapshotBuildError(f"Invalid trend config: {e}") from e
    cfg = cfg.model_copy(update={"trend_config": TrendConfig.model_validate(trend_config)})

    result = run_pipeline(rows, cfg)

    try:
        if trend_series is not None:
            trend_data = score_trends(trend_series, trend_config["method"], registry=reg)
        else:
            trend_data = compute_trend_data(
                result.output_rows,
                trend_config,
                initiative_id=cfg.initiative_id,
                report_name=cfg.report_name,
                registry=reg,
            )
    except TrendSeriesError as e:
        raise SnapshotBuildError(f"Invalid trend input: {e}") from e

    snapshot = ReportSnapshot(
        version=CURRENT_SNAPSHOT_VERSION,
        config=cfg,
        results=SnapshotResults(
            filtered_table_data=[dict(r) for r in result.output_rows],
            trend_data=[TrendDatum.model_validate(t) for t in trend_data],
            explainability=explain(result, cfg, len(trend_data)),
        ),
        generated_at=generated_at,
    )
    logger.info(
        "Built snapshot for initiative %s: %d/%d rows, %d trend(s)",
        cfg.initiative_id,
        len(result.output_rows),
        len(result.input_rows),
        len(trend_data),
    )
    return snapshot.to_dict()
