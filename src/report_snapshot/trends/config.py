from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from ..config import load_settings
from ..errors import TrendConfigError
from ..models import DEFAULT_TREND_METHOD
from ..utils import is_number
from .scoring import DEFAULT_REGISTRY, TrendScorerRegistry


def default_trend_config(threshold_pct: float | None = None) -> dict[str, Any]:
    if threshold_pct is None:
        threshold_pct = load_settings().default_threshold_pct
    return {
        "variables": [],
        "enabledCalc": True,
        "enabledDisplay": True,
        "method": DEFAULT_TREND_METHOD,
        "thresholdPct": threshold_pct,
    }


def validate_trend_config(
    obj: Any,
    attributes: Optional[Iterable[str]] = None,
    *,
    registry: TrendScorerRegistry | None = None,
    max_variables: int | None = None,
) -> dict[str, Any]:
    """Validate and normalize a trend configuration.

    Returns a normalized dict. Raises TrendConfigError on violations and
    UnknownTrendMethodError when the method is not registered.

    None is accepted and normalized to the defaults.
    """
    reg = registry or DEFAULT_REGISTRY
    settings = load_settings()
    limit = max_variables if max_variables is not None else settings.max_trend_variables
    normalized = default_trend_config(settings.default_threshold_pct)

    if obj is None:
        return normalized
    if not isinstance(obj, Mapping):
        raise TrendConfigError("trendConfig must be an object (mapping).")

    variables = obj.get("variables")
    if variables is None:
        variables = []
    if not isinstance(variables, list):
        raise TrendConfigError("'variables' must be a list.")
    seen: list[str] = []
    for i, v in enumerate(variables):
        if not isinstance(v, str) or not v.strip():
            raise TrendConfigError(f"variables[{i}] must be a non-empty string.")
        if v in seen:
            raise TrendConfigError(f"variables[{i}] duplicates '{v}'.")
        seen.append(v)
    if len(seen) > limit:
        raise TrendConfigError(f"At most {limit} trend variables are allowed (got {len(seen)}).")
    if attributes is not None:
        allowed = set(attributes)
        unknown = [v for v in seen if v not in allowed]
        if unknown:
            raise TrendConfigError(f"Trend variables not in the initiative attributes: {unknown}")

    method = obj.get("method")
    if method is None:
        method = DEFAULT_TREND_METHOD
    if not isinstance(method, str):
        raise TrendConfigError("'method' must be a string.")
    reg.get_scorer(method)

    threshold = obj.get("thresholdPct")
    if threshold is None:
        threshold = normalized["thresholdPct"]
    if not is_number(threshold) or threshold < 0:
        raise TrendConfigError("'thresholdPct' must be a non-negative number.")

    flags: dict[str, bool] = {}
    for flag in ("enabledCalc", "enabledDisplay"):
        v = obj.get(flag)
        if v is None:
            v = normalized[flag]
        if not isinstance(v, bool):
            raise TrendConfigError(f"'{flag}' must be a boolean.")
        flags[flag] = v

    # Keep unrecognized keys; the normalized ones win.
    out: dict[str, Any] = dict(obj)
    out.update(flags)
    out.update({"variables": seen, "method": method, "thresholdPct": float(threshold)})
    return out
