from __future__ import annotations

import json

import pytest

from report_snapshot import build_snapshot, normalize_snapshot, preview_rows
from report_snapshot.errors import SnapshotBuildError, UnknownTrendMethodError
from report_snapshot.models import ReportConfig
from report_snapshot.trends import score_series


ROWS = [
    {"id": 1, "grade": "7th", "score": 10, "attendanceRate": "80%"},
    {"id": 2, "grade": "7th", "score": 20, "attendanceRate": "82%"},
    {"id": 3, "grade": "8th", "score": 30, "attendanceRate": "85%"},
    {"id": 4, "grade": "8th", "score": 40, "attendanceRate": "90%"},
    {"id": 5, "grade": "7th", "attendanceRate": "70%"},
]


def _config(**overrides) -> dict:
    cfg = {
        "initiativeId": 1,
        "reportName": "R1",
        "filters": [{"attributeKey": "grade", "operator": "equals", "value": "7th"}],
        "expressions": [{"attribute": "attendanceRate", "operator": ">", "value": 75}],
        "sorts": [{"attributeKey": "score", "direction": "desc"}],
        "trendConfig": {"variables": ["Score", "Attendance Rate"], "method": "delta_halves", "thresholdPct": 2},
    }
    cfg.update(overrides)
    return cfg


def test_build_runs_filters_expressions_and_sort() -> None:
    snap = build_snapshot(_config(), ROWS)
    assert snap["version"] == 2
    assert [r["id"] for r in snap["results"]["filteredTableData"]] == [2, 1]
    exp = snap["results"]["explainability"]
    assert exp == {
        "outputRowCount": 2,
        "filtersApplied": 1,
        "trendsScored": 2,
        "inputRowCount": 5,
        "afterFilterCount": 3,
        "afterExpressionCount": 2,
        "droppedByStep": {"filters": 2, "expressions": 1, "sorting": 0},
    }


def test_build_computes_trends_from_filtered_rows() -> None:
    snap = build_snapshot(_config(), ROWS)
    trends = snap["results"]["trendData"]
    assert [t["variable"] for t in trends] == ["Score", "Attendance Rate"]
    # rows are sorted by score desc before trends are extracted
    assert trends[0]["series"] == [20.0, 10.0]
    assert trends[0]["confidenceScore"] == score_series([20, 10])
    assert trends[0]["direction"] == "down"


def test_supplied_trend_series_are_rescored() -> None:
    raw = [{"trendId": "TRD-9", "series": [1, 2, 3, 4], "confidenceScore": 1}]
    snap = build_snapshot(_config(), ROWS, trend_series=raw)
    trends = snap["results"]["trendData"]
    assert trends == [{"trendId": "TRD-9", "series": [1.0, 2.0, 3.0, 4.0], "confidenceScore": score_series([1, 2, 3, 4])}]
    assert snap["results"]["explainability"]["trendsScored"] == 1


def test_build_output_is_reproducible_and_normalizes_unchanged() -> None:
    first = build_snapshot(_config(), ROWS)
    second = build_snapshot(_config(), list(ROWS))
    assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)
    assert normalize_snapshot(first) == first


def test_build_records_generated_at_only_when_given() -> None:
    assert "generatedAt" not in build_snapshot(_config(), ROWS)
    snap = build_snapshot(_config(), ROWS, generated_at="2024-05-01T00:00:00+00:00")
    assert snap["generatedAt"] == "2024-05-01T00:00:00+00:00"


def test_config_is_persisted_in_camel_case_with_defaults() -> None:
    snap = build_snapshot({"initiativeId": 7}, ROWS)
    cfg = snap["config"]
    assert cfg["initiativeId"] == 7
    assert cfg["filters"] == [] and cfg["sorts"] == [] and cfg["expressions"] == []
    assert cfg["trendConfig"]["method"] == "delta_halves"
    assert cfg["trendConfig"]["enabledCalc"] is True
    assert snap["results"]["filteredTableData"] == ROWS
    assert snap["results"]["trendData"] == []


def test_in_filter_sets_are_persisted_in_stable_order() -> None:
    cfg = _config(filters=[{"attributeKey": "grade", "operator": "in", "value": {"8th", "7th"}}], expressions=[])
    snap = build_snapshot(cfg, ROWS)
    assert snap["config"]["filters"][0]["value"] == ["7th", "8th"]
    assert snap["results"]["explainability"]["outputRowCount"] == 5


def test_model_config_is_accepted() -> None:
    cfg = ReportConfig.model_validate(_config())
    assert build_snapshot(cfg, ROWS) == build_snapshot(_config(), ROWS)


def test_trend_variables_must_be_known_attributes() -> None:
    with pytest.raises(SnapshotBuildError):
        build_snapshot(_config(), ROWS, attributes=["Grade"])


@pytest.mark.parametrize(
    "cfg",
    [
        {"reportName": "missing id"},
        {"initiativeId": 0},
        {"initiativeId": 1, "sorts": [{"attributeKey": "score", "direction": "up"}]},
        {"initiativeId": 1, "trendConfig": {"variables": ["A", "B", "C", "D", "E", "F"]}},
        "config",
    ],
)
def test_invalid_configs_raise_build_error(cfg) -> None:
    with pytest.raises(SnapshotBuildError):
        build_snapshot(cfg, ROWS)


@pytest.mark.parametrize(
    "trend",
    [
        {"trendId": "T", "series": "1,2"},
        {"trendId": "T", "series": [1, 2], "pointCount": "many"},
        {"trendId": "T", "series": [1, 10**400]},
    ],
)
def test_bad_trend_series_raise_build_error(trend) -> None:
    with pytest.raises(SnapshotBuildError):
        build_snapshot(_config(), ROWS, trend_series=[trend])


def test_unknown_trend_method_is_not_defaulted() -> None:
    with pytest.raises(UnknownTrendMethodError):
        build_snapshot(_config(trendConfig={"method": "moving_average"}), ROWS)


def test_preview_rows_limits_output() -> None:
    rows = preview_rows(ROWS, _config(expressions=[]), limit=2)
    assert [r["id"] for r in rows] == [2, 1]
    assert [r["id"] for r in preview_rows(ROWS, {"initiativeId": 1})] == [1, 2, 3, 4, 5]
