from .compute import compute_trend_data, extract_series, make_trend_id, score_trends
from .config import default_trend_config, validate_trend_config
from .scoring import (
    DEFAULT_REGISTRY,
    NEUTRAL_SCORE,
    TrendScorerRegistry,
    delta_halves,
    linear_slope,
    score_series,
)

__all__ = [
    "DEFAULT_REGISTRY",
    "NEUTRAL_SCORE",
    "TrendScorerRegistry",
    "compute_trend_data",
    "default_trend_config",
    "delta_halves",
    "extract_series",
    "linear_slope",
    "make_trend_id",
    "score_series",
    "score_trends",
    "validate_trend_config",
]
