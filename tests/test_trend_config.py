from __future__ import annotations

import pytest

from report_snapshot.errors import TrendConfigError, UnknownTrendMethodError
from report_snapshot.trends import validate_trend_config


def test_none_is_normalized_to_defaults() -> None:
    assert validate_trend_config(None) == {
        "variables": [],
        "enabledCalc": True,
        "enabledDisplay": True,
        "method": "delta_halves",
        "thresholdPct": 2.0,
    }


def test_valid_config_is_normalized() -> None:
    out = validate_trend_config(
        {"variables": ["A", "B"], "method": "linear_slope", "thresholdPct": 3, "note": "kept"},
        ["A", "B", "C"],
    )
    assert out["variables"] == ["A", "B"]
    assert out["method"] == "linear_slope"
    assert out["thresholdPct"] == 3.0
    assert out["enabledCalc"] is True
    assert out["note"] == "kept"


def test_too_many_variables_are_rejected() -> None:
    names = ["A", "B", "C", "D", "E", "F"]
    with pytest.raises(TrendConfigError) as ei:
        validate_trend_config({"variables": names}, names)
    assert "At most 5" in str(ei.value)


def test_variable_limit_follows_settings(monkeypatch) -> None:
    monkeypatch.setenv("REPORT_SNAPSHOT_MAX_TREND_VARIABLES", "2")
    with pytest.raises(TrendConfigError):
        validate_trend_config({"variables": ["A", "B", "C"]})
    assert validate_trend_config({"variables": ["A", "B", "C"]}, max_variables=3)["variables"] == ["A", "B", "C"]


def test_variables_must_be_known_attributes() -> None:
    with pytest.raises(TrendConfigError):
        validate_trend_config({"variables": ["Height"]}, ["Grade", "Score"])


@pytest.mark.parametrize(
    "cfg",
    [
        "delta_halves",
        {"variables": "Score"},
        {"variables": ["Score", "Score"]},
        {"variables": [""]},
        {"method": 3},
        {"thresholdPct": -1},
        {"thresholdPct": "2"},
        {"enabledCalc": "yes"},
    ],
)
def test_invalid_configs_are_rejected(cfg) -> None:
    with pytest.raises(TrendConfigError):
        validate_trend_config(cfg)


def test_unknown_method_is_a_configuration_error() -> None:
    with pytest.raises(UnknownTrendMethodError):
        validate_trend_config({"method": "moving_average"})
