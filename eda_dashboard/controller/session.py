"""Session/view controller.

Owns one ``DashboardState`` and drives upload -> summary -> aggregation ->
render. Backend failures never end the session: upload failures land in
``upload_message``, summary/aggregation failures in a transient ``notice``,
and the last good state is kept.
"""
from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from eda_dashboard.api.backend_client import BackendClient
from eda_dashboard.charts import chart_adapter, tables
from eda_dashboard.charts.column_classifier import ColumnCandidates, classify
from eda_dashboard.charts.result_validator import validate
from eda_dashboard.config.settings import Settings, get_settings
from eda_dashboard.errors import (
    IncompleteAggregationForm,
    NetworkError,
    RequestFailed,
    UploadRejected,
    reason_message,
)
from eda_dashboard.models.contracts import (
    AggregationFunction,
    AggregationRequest,
    AggregationResult,
    ChartKind,
    ChartSpec,
    Summary,
)
from eda_dashboard.utils.logging import log_event, new_request_id


class UploadStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    UPLOAD_SUCCEEDED = "upload_succeeded"
    UPLOAD_FAILED = "upload_failed"


@dataclass
class SelectedFile:
    filename: str
    content: bytes
    content_type: str


@dataclass
class AggregationForm:
    categorical_column: str = ""
    continuous_column: str = ""
    aggregation_function: AggregationFunction = AggregationFunction.MEAN


@dataclass
class DashboardState:
    session_id: str = field(default_factory=new_request_id)
    file: Optional[SelectedFile] = None
    upload_status: UploadStatus = UploadStatus.IDLE
    upload_message: str = ""
    columns: List[str] = field(default_factory=list)
    summary: Optional[Summary] = None
    form: AggregationForm = field(default_factory=AggregationForm)
    aggregation_result: Optional[AggregationResult] = None
    # request that produced aggregation_result
    applied_request: Optional[AggregationRequest] = None
    chart_kind: ChartKind = ChartKind.BAR
    show_chart: bool = True
    loading: bool = False
    notice: Optional[str] = None
    latest_token: int = 0


@dataclass
class RenderedChart:
    spec: Optional[ChartSpec] = None
    error: Optional[str] = None
    visible: bool = True


@dataclass
class RenderedTable:
    columns: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)
    error: Optional[str] = None


class DashboardController:
    def __init__(
        self,
        client: Optional[BackendClient] = None,
        *,
        settings: Optional[Settings] = None,
        state: Optional[DashboardState] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or BackendClient(
            self.settings.backend_url,
            timeout=self.settings.request_timeout_sec,
        )
        self.state = state or DashboardState()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # upload
    # ------------------------------------------------------------------
    def select_file(self, filename: str, content: bytes, content_type: Optional[str]) -> DashboardState:
        if (content_type or "") not in self.settings.accepted_upload_types:
            log_event(
                "upload.rejected",
                {"session_id": self.state.session_id, "filename": filename, "content_type": content_type},
            )
            raise UploadRejected("Please select a valid CSV file")
        self.state.file = SelectedFile(filename=filename, content=content, content_type=content_type)
        self.state.upload_status = UploadStatus.IDLE
        self.state.upload_message = ""
        return self.state

    def upload(self) -> DashboardState:
        state = self.state
        if state.file is None:
            raise UploadRejected("Please select a file first")
        if state.upload_status is UploadStatus.UPLOADING:
            return state

        state.upload_status = UploadStatus.UPLOADING
        log_event("upload.start", {"session_id": state.session_id, "filename": state.file.filename})
        try:
            response = self.client.upload(state.file.filename, state.file.content, state.file.content_type)
        except (RequestFailed, NetworkError) as exc:
            state.upload_status = UploadStatus.UPLOAD_FAILED
            state.upload_message = exc.message
            log_event("upload.failed", {"session_id": state.session_id, "error": exc.message}, level="warning")
            return state

        state.upload_status = UploadStatus.UPLOAD_SUCCEEDED
        state.upload_message = response.message
        state.columns = list(response.columns)
        # a new dataset invalidates everything derived from the previous one
        with self._lock:
            state.latest_token += 1
        state.summary = None
        state.aggregation_result = None
        state.applied_request = None
        log_event("upload.succeeded", {"session_id": state.session_id, "column_count": len(state.columns)})
        self._fetch_summary()
        return state

    def _fetch_summary(self) -> None:
        state = self.state
        state.loading = True
        try:
            state.summary = self.client.fetch_summary()
            log_event(
                "summary.fetched",
                {"session_id": state.session_id, "num_rows": state.summary.num_rows, "num_columns": state.summary.num_columns},
            )
        except RequestFailed as exc:
            state.notice = f"Error fetching summary: {exc.detail}"
            log_event("summary.failed", {"session_id": state.session_id, "error": exc.detail}, level="warning")
        except NetworkError:
            state.notice = "Network error occurred while fetching summary"
            log_event("summary.failed", {"session_id": state.session_id, "error": "network"}, level="warning")
        finally:
            state.loading = False

    # ------------------------------------------------------------------
    # aggregation
    # ------------------------------------------------------------------
    def column_candidates(self) -> ColumnCandidates:
        return classify(self.state.summary, self.state.columns)

    def set_aggregation_form(
        self,
        categorical_column: Optional[str] = None,
        continuous_column: Optional[str] = None,
        aggregation_function: Optional[AggregationFunction | str] = None,
    ) -> AggregationForm:
        form = self.state.form
        if categorical_column is not None:
            form.categorical_column = categorical_column
        if continuous_column is not None:
            form.continuous_column = continuous_column
        if aggregation_function is not None:
            form.aggregation_function = AggregationFunction(aggregation_function)
        return form

    def build_request(self) -> AggregationRequest:
        form = self.state.form
        try:
            return AggregationRequest(
                categorical_column=form.categorical_column,
                continuous_column=form.continuous_column,
                aggregation_function=form.aggregation_function,
            )
        except ValidationError as exc:
            raise IncompleteAggregationForm("Please select both categorical and continuous columns") from exc

    def begin_aggregation(self) -> int:
        with self._lock:
            self.state.latest_token += 1
            return self.state.latest_token

    def complete_aggregation(self, token: int, payload: Any, request: Optional[AggregationRequest] = None) -> bool:
        """Store the payload if ``token`` is still the latest; returns whether it was applied."""
        with self._lock:
            if token != self.state.latest_token:
                log_event(
                    "aggregation.stale_dropped",
                    {"session_id": self.state.session_id, "token": token, "latest_token": self.state.latest_token},
                )
                return False
            self.state.aggregation_result = _to_result(payload)
            self.state.applied_request = request
            return True

    def perform_aggregation(self) -> DashboardState:
        state = self.state
        request = self.build_request()
        token = self.begin_aggregation()
        request_id = new_request_id()
        log_event(
            "aggregation.start",
            {"session_id": state.session_id, "request_id": request_id, "token": token, **request.query_params()},
        )

        state.loading = True
        try:
            payload = self.client.aggregate(request)
            applied = self.complete_aggregation(token, payload, request)
            log_event("aggregation.completed", {"request_id": request_id, "applied": applied})
        except RequestFailed as exc:
            state.notice = f"Error performing aggregation: {exc.detail}"
            log_event("aggregation.failed", {"request_id": request_id, "error": exc.detail}, level="warning")
        except NetworkError:
            state.notice = "Network error occurred during aggregation"
            log_event("aggregation.failed", {"request_id": request_id, "error": "network"}, level="warning")
        finally:
            state.loading = False
        return state

    # ------------------------------------------------------------------
    # view
    # ------------------------------------------------------------------
    def set_chart_kind(self, kind: ChartKind | str) -> ChartKind:
        self.state.chart_kind = ChartKind(kind)
        return self.state.chart_kind

    def toggle_chart(self) -> bool:
        self.state.show_chart = not self.state.show_chart
        return self.state.show_chart

    def dismiss_notice(self) -> None:
        self.state.notice = None

    def render_chart(self, kind: Optional[ChartKind | str] = None) -> RenderedChart:
        state = self.state
        result = state.aggregation_result
        if result is None:
            return RenderedChart(visible=state.show_chart)

        outcome = validate(result)
        if not outcome.ok:
            log_event(
                "render.malformed",
                {"session_id": state.session_id, "view": "chart", "reason": outcome.reason.value},
                level="warning",
            )
            return RenderedChart(error=reason_message(outcome.reason), visible=state.show_chart)

        spec = chart_adapter.adapt(
            result,
            outcome.group_key,
            outcome.value_key,
            ChartKind(kind) if kind is not None else state.chart_kind,
            self._applied_function(),
            height=self.settings.chart_height,
            rotate_threshold=self.settings.bar_rotate_threshold,
        )
        return RenderedChart(spec=spec, visible=state.show_chart)

    def render_result_table(self) -> RenderedTable:
        result = self.state.aggregation_result
        if result is None:
            return RenderedTable()
        outcome = validate(result)
        if not outcome.ok:
            log_event(
                "render.malformed",
                {"session_id": self.state.session_id, "view": "table", "reason": outcome.reason.value},
                level="warning",
            )
            return RenderedTable(error=reason_message(outcome.reason))
        payload = tables.frame_payload(tables.result_frame(result, outcome.group_key, outcome.value_key))
        return RenderedTable(columns=payload["columns"], rows=payload["rows"])

    def render_summary_table(self) -> RenderedTable:
        if self.state.summary is None:
            return RenderedTable()
        payload = tables.frame_payload(tables.summary_frame(self.state.summary))
        return RenderedTable(columns=payload["columns"], rows=payload["rows"])

    def render_summary_chart(self) -> Optional[ChartSpec]:
        return chart_adapter.adapt_missing_values(self.state.summary)

    def _applied_function(self) -> str:
        request = self.state.applied_request
        function = request.aggregation_function if request is not None else self.state.form.aggregation_function
        return function.value

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe view of the state for the dashboard API."""
        state = self.state
        candidates = self.column_candidates()
        return {
            "session_id": state.session_id,
            "filename": state.file.filename if state.file else None,
            "upload_status": state.upload_status.value,
            "upload_message": state.upload_message,
            "columns": list(state.columns),
            "summary": state.summary.model_dump() if state.summary else None,
            "candidates": {"categorical": candidates.categorical, "numeric": candidates.numeric},
            "form": {
                "categorical_column": state.form.categorical_column,
                "continuous_column": state.form.continuous_column,
                "aggregation_function": state.form.aggregation_function.value,
            },
            "aggregation_result": state.aggregation_result.model_dump() if state.aggregation_result else None,
            "chart_kind": state.chart_kind.value,
            "show_chart": state.show_chart,
            "loading": state.loading,
            "notice": state.notice,
        }


def _to_result(payload: Any) -> AggregationResult:
    if isinstance(payload, AggregationResult):
        return payload
    if isinstance(payload, Mapping):
        return AggregationResult.model_validate(dict(payload))
    # non-object body: keep it so validation reports the failure at render time
    return AggregationResult(data=payload)
