"""HTTP client for the EDA backend (/upload/, /summary/, /aggregate/)."""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from eda_dashboard.config.settings import get_settings
from eda_dashboard.errors import NetworkError, RequestFailed
from eda_dashboard.models.contracts import AggregationRequest, Summary, UploadResponse
from eda_dashboard.utils.logging import log_event

NETWORK_ERROR_MESSAGE = "Network error occurred"


class BackendClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.timeout = settings.request_timeout_sec if timeout is None else timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, fallback_detail: str, **kwargs: Any) -> Any:
        try:
            response = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            log_event("backend.network_error", {"path": path, "error": str(exc)}, level="warning")
            raise NetworkError(NETWORK_ERROR_MESSAGE) from exc

        if not response.ok:
            detail = _error_detail(response) or fallback_detail
            log_event(
                "backend.request_failed",
                {"path": path, "status_code": response.status_code, "detail": detail},
                level="warning",
            )
            raise RequestFailed(detail, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise RequestFailed(f"{fallback_detail}: response is not JSON", status_code=response.status_code) from exc

    def upload(self, filename: str, content: bytes, content_type: str = "text/csv") -> UploadResponse:
        body = self._request(
            "POST",
            "/upload/",
            "Upload failed",
            files={"file": (filename, content, content_type)},
        )
        return _parse(UploadResponse, body, "Upload failed")

    def fetch_summary(self) -> Summary:
        body = self._request("GET", "/summary/", "Summary request failed")
        return _parse(Summary, body, "Summary request failed")

    def aggregate(self, request: AggregationRequest) -> Dict[str, Any]:
        """Raw aggregation payload; shape checks are left to the result validator."""
        return self._request(
            "GET",
            "/aggregate/",
            "Aggregation request failed",
            params=request.query_params(),
        )


def _error_detail(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("detail"):
        detail = body["detail"]
        return detail if isinstance(detail, str) else str(detail)
    return None


def _parse(model, body: Any, fallback_detail: str):
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise RequestFailed(f"{fallback_detail}: unexpected response shape") from exc
