"""Column classification from backend summary metadata.

Only columns with well-defined grouping (string-like) or averaging (numeric)
semantics are offered; any other dtype (boolean, date, unknown tags) is left
out of both candidate lists.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from eda_dashboard.models.contracts import Summary


class DtypeClass(str, Enum):
    CATEGORICAL = "categorical"
    NUMERIC = "numeric"
    UNCLASSIFIED = "unclassified"


_CATEGORICAL_DTYPES = frozenset({"String", "Utf8", "Categorical"})
_NUMERIC_DTYPES = frozenset({"Int64", "Int32", "Int16", "Int8", "Float64", "Float32"})


@dataclass
class ColumnCandidates:
    categorical: List[str] = field(default_factory=list)
    numeric: List[str] = field(default_factory=list)


def classify_dtype(dtype: object) -> DtypeClass:
    """Map a backend dtype tag to its class; unknown tags are unclassified."""
    if not isinstance(dtype, str):
        return DtypeClass.UNCLASSIFIED
    if dtype in _CATEGORICAL_DTYPES:
        return DtypeClass.CATEGORICAL
    if dtype in _NUMERIC_DTYPES:
        return DtypeClass.NUMERIC
    return DtypeClass.UNCLASSIFIED


def classify(summary: Optional[Summary], fallback_columns: Sequence[str]) -> ColumnCandidates:
    # Before a summary exists every uploaded column is offered for both roles.
    if summary is None:
        return ColumnCandidates(categorical=list(fallback_columns), numeric=list(fallback_columns))

    candidates = ColumnCandidates()
    for meta in summary.columns:
        dtype_class = classify_dtype(meta.dtype)
        if dtype_class is DtypeClass.CATEGORICAL:
            candidates.categorical.append(meta.column)
        elif dtype_class is DtypeClass.NUMERIC:
            candidates.numeric.append(meta.column)
    return candidates
