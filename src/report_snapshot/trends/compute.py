from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from ..errors import TrendSeriesError
from ..models import DEFAULT_TREND_METHOD, TrendDatum
from ..utils import as_number, resolve_attribute_key, stable_digest
from .scoring import DEFAULT_REGISTRY, TrendScorerRegistry, coerce_series, normalized, split_halves

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]


def make_trend_id(*, initiative_id: Optional[int], report_name: str, variable: str) -> str:
    """Deterministic id: the same initiative, report and variable always yield the same id."""
    digest = stable_digest({"initiativeId": initiative_id, "reportName": report_name, "variable": variable})
    return "TRD-" + digest[:10].upper()


def extract_series(rows: Sequence[Row], variable: str) -> list[float]:
    """Numeric readings of a variable in row order; unreadable cells are skipped."""
    series: list[float] = []
    for row in rows:
        key = resolve_attribute_key(row, variable)
        if key is None:
            continue
        v = as_number(row[key])
        if v is not None:
            series.append(v)
    return series


def change_pct(series: Sequence[float]) -> float:
    """Percent change of the second-half mean over the first-half mean (0 when undefined)."""
    if len(series) < 2:
        return 0.0
    first, second = split_halves(normalized(series))
    m1 = math.fsum(first) / len(first)
    m2 = math.fsum(second) / len(second)
    if m1 == 0:
        return 0.0
    pct = (m2 - m1) / abs(m1) * 100.0
    return pct if math.isfinite(pct) else 0.0


def classify_direction(pct: float, threshold_pct: float) -> str:
    if abs(pct) < threshold_pct or pct == 0:
        return "flat"
    return "up" if pct > 0 else "down"


def compute_trend_data(
    rows: Sequence[Row],
    trend_config: Mapping[str, Any],
    *,
    initiative_id: Optional[int] = None,
    report_name: str = "",
    registry: TrendScorerRegistry | None = None,
) -> list[dict[str, Any]]:
    """
    One scored trend per configured variable, in configuration order.
    trend_config is expected to be normalized by validate_trend_config.
    """
    if not trend_config.get("enabledCalc", True):
        return []

    reg = registry or DEFAULT_REGISTRY
    method = str(trend_config.get("method") or DEFAULT_TREND_METHOD)
    threshold = float(trend_config.get("thresholdPct", 0.0))

    out: list[dict[str, Any]] = []
    for variable in trend_config.get("variables") or []:
        series = extract_series(rows, variable)
        pct = change_pct(series)
        datum = TrendDatum(
            trend_id=make_trend_id(initiative_id=initiative_id, report_name=report_name, variable=variable),
            series=series,
            confidence_score=reg.score(series, method),
            variable=variable,
            method=method,
            point_count=len(series),
            change_pct=pct,
            direction=classify_direction(pct, threshold),
        )
        out.append(datum.model_dump(by_alias=True, mode="json", exclude_none=True))
    logger.debug("compute_trend_data: %d trend(s) with method %s", len(out), method)
    return out


def score_trends(
    raw_trends: Sequence[Mapping[str, Any]],
    method: str = DEFAULT_TREND_METHOD,
    *,
    registry: TrendScorerRegistry | None = None,
) -> list[dict[str, Any]]:
    """
    Score caller-supplied trend series. Any confidenceScore already present
    is discarded and recomputed from the series.
    """
    reg = registry or DEFAULT_REGISTRY
    out: list[dict[str, Any]] = []
    for i, raw in enumerate(raw_trends):
        if not isinstance(raw, Mapping):
            raise TrendSeriesError(f"trend[{i}] must be an object.")
        trend_id = raw.get("trendId")
        if not isinstance(trend_id, str) or not trend_id.strip():
            raise TrendSeriesError(f"trend[{i}].trendId must be a non-empty string.")
        series = coerce_series(raw.get("series"))
        payload = {k: v for k, v in raw.items() if k not in ("confidenceScore", "series")}
        payload["series"] = series
        payload["confidenceScore"] = reg.score(series, method)
        try:
            datum = TrendDatum.model_validate(payload)
        except ValidationError as e:
            raise TrendSeriesError(f"trend[{i}] is invalid: {e}") from e
        out.append(datum.model_dump(by_alias=True, mode="json", exclude_none=True))
    return out
