"""Data contracts shared by the dashboard layer."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AggregationFunction(str, Enum):
    SUM = "sum"
    MEAN = "mean"
    MIN = "min"
    MAX = "max"
    COUNT = "count"
    N_UNIQUE = "n_unique"
    MEDIAN = "median"
    STD = "std"


class ChartKind(str, Enum):
    BAR = "bar"
    PIE = "pie"
    LINE = "line"


# Per-column metadata reported by /summary/
class ColumnMeta(BaseModel):
    column: str
    # backend dtype tag (Utf8, Int64, Float64, Boolean, Date ...)
    dtype: str
    missing: int = Field(ge=0)
    unique: int = Field(ge=0)


# columns length is expected to equal num_columns; not enforced here
class Summary(BaseModel):
    num_rows: int = Field(ge=0)
    num_columns: int = Field(ge=0)
    columns: List[ColumnMeta] = Field(default_factory=list)


class UploadResponse(BaseModel):
    message: str = ""
    columns: List[str] = Field(default_factory=list)


class AggregationRequest(BaseModel):
    categorical_column: str
    continuous_column: str
    aggregation_function: AggregationFunction = AggregationFunction.MEAN

    @field_validator("categorical_column", "continuous_column")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("column name must not be empty")
        return value

    def query_params(self) -> Dict[str, str]:
        return {
            "cat_col": self.categorical_column,
            "con_col": self.continuous_column,
            "agg_func": self.aggregation_function.value,
        }


class AggregationResult(BaseModel):
    """Aggregation payload as returned by /aggregate/.

    Fields are untyped; shape checks live in the result validator.
    """

    model_config = ConfigDict(extra="allow")

    # echoed categorical column
    group_by: Any = None
    # {continuous_column: aggregation_function}
    aggregate: Any = Field(default_factory=dict)
    # {column: [values]}
    data: Any = Field(default_factory=dict)

    def continuous_column(self) -> Optional[str]:
        if isinstance(self.aggregate, dict) and self.aggregate:
            return str(next(iter(self.aggregate)))
        return None


# Plotly-ready chart description, recomputed on every render
class ChartSpec(BaseModel):
    kind: ChartKind
    # one Plotly trace (type, data arrays, styling)
    series: Dict[str, Any]
    # Plotly layout
    layout: Dict[str, Any]
    # Plotly display config
    config: Dict[str, Any] = Field(default_factory=dict)
