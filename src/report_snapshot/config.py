from __future__ import annotations

import logging
import os
from dataclasses import dataclass

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings read from the environment.

    log_level: REPORT_SNAPSHOT_LOG_LEVEL (CLI only; the library never configures logging)
    max_trend_variables: REPORT_SNAPSHOT_MAX_TREND_VARIABLES
    default_threshold_pct: REPORT_SNAPSHOT_DEFAULT_THRESHOLD_PCT
    """
    log_level: str = "WARNING"
    max_trend_variables: int = 5
    default_threshold_pct: float = 2.0


def _get_positive_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        v = int(raw)
        return v if v > 0 else default
    except ValueError:
        return default


def _get_non_negative_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        v = float(raw)
        return v if v >= 0 else default
    except ValueError:
        return default


def _get_log_level(name: str, default: str) -> str:
    raw = (os.environ.get(name) or "").strip().upper()
    return raw if raw in _LOG_LEVELS else default


def load_settings() -> Settings:
    return Settings(
        log_level=_get_log_level("REPORT_SNAPSHOT_LOG_LEVEL", "WARNING"),
        max_trend_variables=_get_positive_int("REPORT_SNAPSHOT_MAX_TREND_VARIABLES", 5),
        default_threshold_pct=_get_non_negative_float("REPORT_SNAPSHOT_DEFAULT_THRESHOLD_PCT", 2.0),
    )


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging for CLI use."""
    s = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, s.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
