from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .utils import as_number

CURRENT_SNAPSHOT_VERSION = 2
DEFAULT_TREND_METHOD = "delta_halves"


class FilterOperator(str, Enum):
    """Attribute filter operators. All rules in a config are ANDed."""
    EQUALS = "equals"
    CONTAINS = "contains"
    RANGE = "range"
    IN = "in"


class ExpressionOperator(str, Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    CONTAINS = "contains"


class Connector(str, Enum):
    AND = "AND"
    OR = "OR"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class _CamelModel(BaseModel):
    # Persisted snapshots use camelCase keys; unknown keys pass through.
    model_config = ConfigDict(populate_by_name=True, extra="allow")


def _stable_collection(values: Any) -> list[Any]:
    return sorted(values, key=lambda v: (type(v).__name__, str(v)))


class FilterRule(_CamelModel):
    """
    One attribute-scoped predicate.

    value shapes by operator:
    - equals / contains: scalar
    - range: [min, max] or {"min": ..., "max": ...}; a None bound is unbounded
    - in: list / tuple / set of candidate values
    """
    attribute_key: str = Field(alias="attributeKey", min_length=1)
    operator: FilterOperator
    value: Any = None

    @model_validator(mode="after")
    def check_value_shape(self) -> "FilterRule":
        if self.operator == FilterOperator.RANGE:
            v = self.value
            if isinstance(v, dict):
                if not set(v.keys()) <= {"min", "max"}:
                    raise ValueError("range value mapping accepts only 'min' and 'max'.")
                bounds = [v.get("min"), v.get("max")]
            elif isinstance(v, (list, tuple)) and len(v) == 2:
                bounds = list(v)
            else:
                raise ValueError("range value must be a [min, max] pair or a {'min', 'max'} mapping.")
            for b in bounds:
                if b is not None and as_number(b) is None:
                    raise ValueError(f"range bound is not numeric: {b!r}")
        elif self.operator == FilterOperator.IN:
            if not isinstance(self.value, (list, tuple, set, frozenset)):
                raise ValueError("in value must be a list or set of candidate values.")
        return self

    @field_serializer("value")
    def serialize_value(self, value: Any) -> Any:
        # Sets have no stable iteration order; persist them sorted.
        if isinstance(value, (set, frozenset)):
            return _stable_collection(value)
        return value


class Expression(_CamelModel):
    """A boolean expression evaluated left-to-right with its connector."""
    attribute: str = Field(min_length=1)
    operator: ExpressionOperator
    value: Any = None
    connector: Connector = Connector.AND

    @field_validator("connector", mode="before")
    @classmethod
    def upper_connector(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class SortRule(_CamelModel):
    attribute_key: str = Field(alias="attributeKey", min_length=1)
    direction: SortDirection = SortDirection.ASC

    @field_validator("direction", mode="before")
    @classmethod
    def lower_direction(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class TrendConfig(_CamelModel):
    method: str = DEFAULT_TREND_METHOD
    variables: list[str] = Field(default_factory=list)
    enabled_calc: bool = Field(default=True, alias="enabledCalc")
    enabled_display: bool = Field(default=True, alias="enabledDisplay")
    threshold_pct: float = Field(default=2.0, alias="thresholdPct", ge=0)


class ReportConfig(_CamelModel):
    """
    What the user asked for. Immutable once a snapshot is taken.

    filters: ANDed attribute predicates, insertion order
    expressions: boolean expressions with AND/OR connectors
    sorts: sort keys, primary key first
    """
    initiative_id: int = Field(alias="initiativeId", gt=0)
    report_name: str = Field(default="", alias="reportName")
    description: str = ""
    filters: list[FilterRule] = Field(default_factory=list)
    expressions: list[Expression] = Field(default_factory=list)
    sorts: list[SortRule] = Field(default_factory=list)
    trend_config: TrendConfig = Field(default_factory=TrendConfig, alias="trendConfig")


class TrendDatum(_CamelModel):
    """
    A scored trend. confidence_score is derived from the series, never supplied.
    """
    trend_id: str = Field(alias="trendId")
    series: list[float] = Field(default_factory=list)
    confidence_score: float = Field(alias="confidenceScore", ge=0, le=100)
    variable: Optional[str] = None
    method: Optional[str] = None
    point_count: Optional[int] = Field(default=None, alias="pointCount")
    change_pct: Optional[float] = Field(default=None, alias="changePct")
    direction: Optional[str] = None


class DroppedByStep(_CamelModel):
    filters: int = 0
    expressions: int = 0
    sorting: int = 0


class Explainability(_CamelModel):
    """Derived metadata describing how a result was produced."""
    output_row_count: int = Field(alias="outputRowCount", ge=0)
    filters_applied: int = Field(alias="filtersApplied", ge=0)
    trends_scored: int = Field(alias="trendsScored", ge=0)
    input_row_count: int = Field(default=0, alias="inputRowCount", ge=0)
    after_filter_count: int = Field(default=0, alias="afterFilterCount", ge=0)
    after_expression_count: int = Field(default=0, alias="afterExpressionCount", ge=0)
    dropped_by_step: DroppedByStep = Field(default_factory=DroppedByStep, alias="droppedByStep")


class ReportMetrics(_CamelModel):
    """Summary of a preview: row counts, match rate, per-attribute averages or category counts."""
    total_rows: int = Field(alias="totalRows", ge=0)
    total_rows_unfiltered: int = Field(alias="totalRowsUnfiltered", ge=0)
    filter_match_rate: float = Field(alias="filterMatchRate", ge=0)
    numeric_averages: dict[str, float] = Field(default_factory=dict, alias="numericAverages")
    category_counts: dict[str, dict[str, int]] = Field(default_factory=dict, alias="categoryCounts")


class SnapshotResults(_CamelModel):
    filtered_table_data: list[dict[str, Any]] = Field(default_factory=list, alias="filteredTableData")
    trend_data: list[TrendDatum] = Field(default_factory=list, alias="trendData")
    explainability: Explainability

    @model_validator(mode="after")
    def check_row_count(self) -> "SnapshotResults":
        if self.explainability.output_row_count != len(self.filtered_table_data):
            raise ValueError("explainability.outputRowCount must equal the number of filtered rows.")
        return self


class ReportSnapshot(_CamelModel):
    """
    Closed, self-describing artifact: rendering it never re-queries the data source.
    """
    version: int = CURRENT_SNAPSHOT_VERSION
    config: ReportConfig
    results: SnapshotResults
    generated_at: Optional[str] = Field(default=None, alias="generatedAt")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
