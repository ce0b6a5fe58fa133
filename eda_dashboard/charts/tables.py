"""Tabular views of the summary and aggregation result."""
from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, Dict, List

import pandas as pd

from eda_dashboard.models.contracts import AggregationResult, Summary

_SUMMARY_COLUMNS = ["column", "dtype", "missing", "unique"]


def result_frame(result: AggregationResult | Mapping, group_key: str, value_key: str) -> pd.DataFrame:
    """Two-column frame (group, value) in backend order; keys come from validation."""
    data = result.data if isinstance(result, AggregationResult) else result.get("data")
    return pd.DataFrame(
        {
            group_key: pd.Series(list(data[group_key]), dtype=object),
            value_key: pd.Series(list(data[value_key]), dtype=object),
        },
        columns=[group_key, value_key],
    )


def summary_frame(summary: Summary) -> pd.DataFrame:
    rows = [meta.model_dump() for meta in summary.columns]
    return pd.DataFrame(rows, columns=_SUMMARY_COLUMNS)


def _jsonable(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if hasattr(value, "item"):
        return _jsonable(value.item())
    return value


def frame_payload(frame: pd.DataFrame) -> Dict[str, List[Any]]:
    """{columns, rows} with plain Python values; NaN/inf become None."""
    rows = [[_jsonable(cell) for cell in row] for row in frame.itertuples(index=False, name=None)]
    return {"columns": [str(col) for col in frame.columns], "rows": rows}
