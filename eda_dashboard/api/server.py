from __future__ import annotations

import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from eda_dashboard.charts.chart_adapter import figure_json
from eda_dashboard.config.settings import get_settings
from eda_dashboard.controller.session import DashboardController
from eda_dashboard.errors import EdaDashboardError, IncompleteAggregationForm, UploadRejected
from eda_dashboard.models.contracts import AggregationFunction, ChartKind
from eda_dashboard.utils.logging import log_event

app = FastAPI(title="EDA Dashboard API")

origins = list(get_settings().cors_allow_origins)
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

router = APIRouter()

_CONTROLLER: DashboardController | None = None


def get_controller() -> DashboardController:
    global _CONTROLLER
    if _CONTROLLER is None:
        _CONTROLLER = DashboardController()
    return _CONTROLLER


class AggregateRequestBody(BaseModel):
    categorical_column: str = ""
    continuous_column: str = ""
    aggregation_function: AggregationFunction = AggregationFunction.MEAN


class ChartKindBody(BaseModel):
    kind: ChartKind


def _sanitize_non_finite(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, dict):
        return {str(k): _sanitize_non_finite(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize_non_finite(item) for item in value]
    return value


def _error(status_code: int, exc: EdaDashboardError) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # e.g. "body.aggregation_function: Input should be ..."
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid value')}"
        for error in exc.errors()
    )
    log_event("request.invalid", {"path": request.url.path, "message": message}, level="warning")
    return JSONResponse(status_code=422, content={"detail": {"code": "INVALID_REQUEST", "message": message}})


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


@router.get("/state")
def read_state(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    return _sanitize_non_finite(controller.snapshot())


@router.post("/upload")
def upload_file(
    file: UploadFile = File(...),
    controller: DashboardController = Depends(get_controller),
) -> Dict[str, Any]:
    content = file.file.read()
    try:
        controller.select_file(file.filename or "upload.csv", content, file.content_type)
    except UploadRejected as exc:
        raise _error(415, exc) from exc
    controller.upload()
    return _sanitize_non_finite(controller.snapshot())


@router.get("/columns")
def read_columns(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    candidates = controller.column_candidates()
    return {"categorical": candidates.categorical, "numeric": candidates.numeric}


@router.post("/aggregate")
def aggregate(
    body: AggregateRequestBody,
    controller: DashboardController = Depends(get_controller),
) -> Dict[str, Any]:
    controller.set_aggregation_form(
        categorical_column=body.categorical_column,
        continuous_column=body.continuous_column,
        aggregation_function=body.aggregation_function,
    )
    try:
        controller.perform_aggregation()
    except IncompleteAggregationForm as exc:
        raise _error(422, exc) from exc
    return _sanitize_non_finite(controller.snapshot())


@router.get("/chart")
def read_chart(
    kind: Optional[ChartKind] = None,
    controller: DashboardController = Depends(get_controller),
) -> Dict[str, Any]:
    rendered = controller.render_chart(kind)
    spec = rendered.spec
    return _sanitize_non_finite(
        {
            "kind": (kind or controller.state.chart_kind).value,
            "visible": rendered.visible,
            "chart": spec.model_dump(mode="json") if spec else None,
            "figure": figure_json(spec) if spec else None,
            "error": rendered.error,
        }
    )


@router.post("/chart/kind")
def update_chart_kind(
    body: ChartKindBody,
    controller: DashboardController = Depends(get_controller),
) -> Dict[str, Any]:
    return {"chart_kind": controller.set_chart_kind(body.kind).value}


@router.post("/chart/toggle")
def toggle_chart(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    return {"show_chart": controller.toggle_chart()}


@router.get("/table")
def read_table(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    table = controller.render_result_table()
    return _sanitize_non_finite({"columns": table.columns, "rows": table.rows, "error": table.error})


@router.get("/summary-table")
def read_summary_table(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    table = controller.render_summary_table()
    return {"columns": table.columns, "rows": table.rows, "error": table.error}


@router.get("/summary-chart")
def read_summary_chart(controller: DashboardController = Depends(get_controller)) -> Optional[Dict[str, Any]]:
    spec = controller.render_summary_chart()
    if spec is None:
        return None
    return {"chart": spec.model_dump(mode="json"), "figure": figure_json(spec)}


@router.post("/notice/dismiss")
def dismiss_notice(controller: DashboardController = Depends(get_controller)) -> Dict[str, Any]:
    controller.dismiss_notice()
    log_event("notice.dismissed", {"session_id": controller.state.session_id})
    return {"notice": None}


app.include_router(router, prefix="/dashboard", tags=["dashboard"])
