from __future__ import annotations

import math
from typing import Any, Callable, Sequence

import numpy as np

from ..errors import TrendSeriesError, UnknownTrendMethodError
from ..models import DEFAULT_TREND_METHOD
from ..utils import is_number

NEUTRAL_SCORE = 50.0
MIN_POINTS = 2

Scorer = Callable[[list[float]], float]


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def _mean(values: Sequence[float]) -> float:
    return math.fsum(values) / len(values)


def normalized(series: Sequence[float]) -> list[float]:
    """Series divided by its largest magnitude, so every point lies in [-1, 1]."""
    peak = max((abs(x) for x in series), default=0.0)
    if peak == 0:
        return list(series)
    return [x / peak for x in series]


def split_halves(series: Sequence[float]) -> tuple[list[float], list[float]]:
    """Two contiguous halves; with an odd length the extra point goes to the second half."""
    mid = len(series) // 2
    return list(series[:mid]), list(series[mid:])


def delta_halves(series: list[float]) -> float:
    """
    Compare the means of the two halves of the series.

        delta       = mean(second) - mean(first)
        scale       = mean(|x|) over the whole series
        magnitude   = min(|delta| / scale, 1)
        consistency = share of consecutive steps moving in the direction of delta
        score       = 50 + sign(delta) * 50 * magnitude * (0.5 + 0.5 * consistency)

    A flat or all-zero series scores 50. The score only depends on ratios, so
    it is computed on the normalized series.
    """
    series = normalized(series)
    first, second = split_halves(series)
    delta = _mean(second) - _mean(first)
    scale = math.fsum(abs(x) for x in series) / len(series)
    if scale == 0 or delta == 0:
        return NEUTRAL_SCORE

    magnitude = min(abs(delta) / scale, 1.0)
    direction = _sign(delta)
    steps = [b - a for a, b in zip(series, series[1:])]
    consistency = sum(1 for s in steps if _sign(s) == direction) / len(steps)

    score = NEUTRAL_SCORE + direction * 50.0 * magnitude * (0.5 + 0.5 * consistency)
    return _clamp(score, 0.0, 100.0)


def linear_slope(series: list[float]) -> float:
    """
    Least-squares line through (i, x_i). The fitted change over the series,
    relative to mean(|x|) and clamped to [-1, 1], is weighted by 0.5 + 0.5 * r^2.
    """
    y = np.asarray(normalized(series), dtype=float)
    x = np.arange(len(y), dtype=float)
    scale = float(np.mean(np.abs(y)))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    if scale == 0 or ss_tot == 0:
        return NEUTRAL_SCORE

    slope, intercept = np.polyfit(x, y, 1)
    fitted = slope * x + intercept
    ss_res = float(np.sum((y - fitted) ** 2))
    r2 = _clamp(1.0 - ss_res / ss_tot, 0.0, 1.0)

    relative = _clamp(float(slope) * (len(y) - 1) / scale, -1.0, 1.0)
    score = NEUTRAL_SCORE + 50.0 * relative * (0.5 + 0.5 * r2)
    return _clamp(score, 0.0, 100.0)


def coerce_series(series: Any) -> list[float]:
    if series is None:
        return []
    if isinstance(series, (str, bytes)) or not isinstance(series, Sequence):
        raise TrendSeriesError(f"Trend series must be a sequence of numbers, got {type(series).__name__}.")
    out: list[float] = []
    for i, point in enumerate(series):
        if not is_number(point):
            raise TrendSeriesError(f"series[{i}] is not a finite number: {point!r}")
        try:
            out.append(float(point))
        except OverflowError as e:
            raise TrendSeriesError(f"series[{i}] is out of the float range.") from e
    return out


class TrendScorerRegistry:
    """
    Dispatch table of trend scoring methods.

    Method names map to explicitly registered scorers; looking up a name that
    was never registered raises UnknownTrendMethodError.
    """

    def __init__(self) -> None:
        self._scorers: dict[str, Scorer] = {}
        self._metadata: dict[str, dict[str, object]] = {}
        self._register_builtin()

    def _register_builtin(self) -> None:
        self.register(
            name="delta_halves",
            scorer=delta_halves,
            metadata={
                "description": "Mean of the second half against the first half, weighted by step consistency.",
                "min_points": MIN_POINTS,
            },
        )
        self.register(
            name="linear_slope",
            scorer=linear_slope,
            metadata={
                "description": "Least-squares slope relative to the series level, weighted by fit quality.",
                "min_points": MIN_POINTS,
            },
        )

    def register(self, *, name: str, scorer: Scorer, metadata: dict[str, object] | None = None) -> None:
        if not name:
            raise ValueError("Trend method name must be provided.")
        if not callable(scorer):
            raise TypeError(f"Scorer for '{name}' must be callable.")
        meta = dict(metadata or {})
        min_points = int(meta.get("min_points", MIN_POINTS))
        if min_points < MIN_POINTS:
            raise ValueError(f"min_points for '{name}' must be at least {MIN_POINTS}.")
        self._scorers[name] = scorer
        self._metadata[name] = {
            "name": name,
            "description": str(meta.get("description", scorer.__doc__ or "").strip()),
            "min_points": min_points,
            "neutral_score": NEUTRAL_SCORE,
            "default": name == DEFAULT_TREND_METHOD,
        }

    def list_methods(self) -> list[str]:
        return sorted(self._scorers.keys())

    def has_method(self, name: str) -> bool:
        return name in self._scorers

    def get_scorer(self, name: str) -> Scorer:
        try:
            return self._scorers[name]
        except KeyError as exc:
            raise UnknownTrendMethodError(name, self.list_methods()) from exc

    def describe_method(self, name: str) -> dict[str, object]:
        if name not in self._metadata:
            raise UnknownTrendMethodError(name, self.list_methods())
        return dict(self._metadata[name])

    def score(self, series: Any, method: str = DEFAULT_TREND_METHOD) -> float:
        """
        Confidence score in [0, 100]. Fewer points than the method's min_points
        (two by default) is "insufficient data" and scores 50; the method is
        still checked first.
        """
        scorer = self.get_scorer(method)
        points = coerce_series(series)
        if len(points) < self._metadata[method]["min_points"]:
            return NEUTRAL_SCORE
        return _clamp(float(scorer(points)), 0.0, 100.0)


DEFAULT_REGISTRY = TrendScorerRegistry()


def score_series(series: Any, method: str = DEFAULT_TREND_METHOD, registry: TrendScorerRegistry | None = None) -> float:
    return (registry or DEFAULT_REGISTRY).score(series, method)
