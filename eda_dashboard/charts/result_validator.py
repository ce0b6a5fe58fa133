"""Shape validation for /aggregate/ responses.

Every chart kind and the result table read ``result.data`` only after
``validate`` has returned a successful outcome.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from eda_dashboard.errors import MalformedReason, MalformedResult
from eda_dashboard.models.contracts import AggregationResult


@dataclass(frozen=True)
class ValidationOutcome:
    ok: bool
    group_key: Optional[str] = None
    value_key: Optional[str] = None
    reason: Optional[MalformedReason] = None

    @classmethod
    def success(cls, group_key: str, value_key: str) -> "ValidationOutcome":
        return cls(ok=True, group_key=group_key, value_key=value_key)

    @classmethod
    def failure(cls, reason: MalformedReason) -> "ValidationOutcome":
        return cls(ok=False, reason=reason)


def _read_field(result: Any, name: str) -> Any:
    if isinstance(result, AggregationResult):
        return getattr(result, name)
    if isinstance(result, Mapping):
        return result.get(name)
    return None


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def validate(result: Any) -> ValidationOutcome:
    """Check an aggregation result and return the keys to index ``data`` with.

    Accepts a parsed ``AggregationResult`` or the raw JSON mapping. Never raises.
    """
    group_key = _read_field(result, "group_by")
    if not isinstance(group_key, str) or not group_key:
        return ValidationOutcome.failure(MalformedReason.MISSING_GROUP_KEY)

    data = _read_field(result, "data")
    if not isinstance(data, Mapping):
        return ValidationOutcome.failure(MalformedReason.MISSING_VALUE_KEY)

    # More than one non-group key is tolerated: the first one wins.
    # JSON object keys are strings; any other key cannot be indexed as a column name.
    value_key = next((key for key in data if key != group_key), None)
    if not isinstance(value_key, str):
        return ValidationOutcome.failure(MalformedReason.MISSING_VALUE_KEY)

    categories = data.get(group_key)
    values = data.get(value_key)
    if not _is_sequence(categories) or not _is_sequence(values):
        return ValidationOutcome.failure(MalformedReason.NOT_ARRAY)

    if len(categories) != len(values):
        return ValidationOutcome.failure(MalformedReason.LENGTH_MISMATCH)

    return ValidationOutcome.success(group_key, value_key)


def require_valid(result: Any) -> Tuple[str, str]:
    """Like ``validate`` but raises ``MalformedResult`` on failure."""
    outcome = validate(result)
    if not outcome.ok:
        raise MalformedResult(outcome.reason)
    return outcome.group_key, outcome.value_key
