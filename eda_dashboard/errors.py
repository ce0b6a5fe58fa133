"""Error taxonomy for the dashboard layer."""
from __future__ import annotations

from enum import Enum
from typing import Optional


class MalformedReason(str, Enum):
    MISSING_GROUP_KEY = "missing_group_key"
    MISSING_VALUE_KEY = "missing_value_key"
    NOT_ARRAY = "not_array"
    LENGTH_MISMATCH = "length_mismatch"


_REASON_MESSAGES = {
    MalformedReason.MISSING_GROUP_KEY: "Error: Invalid data structure for visualization",
    MalformedReason.MISSING_VALUE_KEY: "Error: Invalid data structure for visualization",
    MalformedReason.NOT_ARRAY: "Error: Invalid data format for visualization",
    MalformedReason.LENGTH_MISMATCH: "Error: Data length mismatch",
}


def reason_message(reason: MalformedReason) -> str:
    """User-facing inline message for a validator failure."""
    return _REASON_MESSAGES[reason]


class EdaDashboardError(Exception):
    """Base class for every recoverable dashboard failure."""

    code = "EDA_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UploadRejected(EdaDashboardError):
    """The selected file failed the local MIME-type check; nothing was sent."""

    code = "UPLOAD_REJECTED"


class IncompleteAggregationForm(EdaDashboardError):
    """Categorical or continuous column not chosen; no request was sent."""

    code = "INCOMPLETE_FORM"


class RequestFailed(EdaDashboardError):
    """The backend answered with a non-2xx status."""

    code = "REQUEST_FAILED"

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class NetworkError(EdaDashboardError):
    """The request could not complete (no response)."""

    code = "NETWORK_ERROR"


class MalformedResult(EdaDashboardError):
    code = "MALFORMED_RESULT"

    def __init__(self, reason: MalformedReason) -> None:
        super().__init__(reason_message(reason))
        self.reason = reason
