from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from eda_dashboard.api.server import app, get_controller
from eda_dashboard.config.settings import load_settings
from eda_dashboard.controller.session import DashboardController
from eda_dashboard.models.contracts import Summary, UploadResponse


class _FakeBackend:
    def __init__(self, payload: dict) -> None:
        self.payload = payload

    def upload(self, filename, content, content_type="text/csv"):
        return UploadResponse(message="File uploaded successfully", columns=["city", "sales"])

    def fetch_summary(self):
        return Summary.model_validate(
            {
                "num_rows": 6,
                "num_columns": 2,
                "columns": [
                    {"column": "city", "dtype": "Utf8", "missing": 0, "unique": 6},
                    {"column": "sales", "dtype": "Float64", "missing": 2, "unique": 6},
                ],
            }
        )

    def aggregate(self, request):
        return self.payload


_CITIES = ["A", "B", "C", "D", "E", "F"]


@pytest.fixture
def controller():
    payload = {
        "group_by": "city",
        "aggregate": {"sales": "sum"},
        "data": {"city": _CITIES, "sales": [1.0, 2.0, float("nan"), 4.0, 5.0, 6.0]},
    }
    instance = DashboardController(_FakeBackend(payload), settings=load_settings())
    app.dependency_overrides[get_controller] = lambda: instance
    yield instance
    app.dependency_overrides.clear()


@pytest.fixture
def client(controller) -> TestClient:
    return TestClient(app)


def _upload(client: TestClient, content_type: str = "text/csv"):
    return client.post("/dashboard/upload", files={"file": ("data.csv", b"city,sales\nA,1\n", content_type)})


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_upload_returns_state_with_summary(client: TestClient) -> None:
    response = _upload(client)

    assert response.status_code == 200
    body = response.json()
    assert body["upload_status"] == "upload_succeeded"
    assert body["summary"]["num_rows"] == 6
    assert client.get("/dashboard/columns").json() == {"categorical": ["city"], "numeric": ["sales"]}


def test_upload_rejects_non_csv(client: TestClient) -> None:
    response = _upload(client, content_type="application/pdf")

    assert response.status_code == 415
    assert response.json()["detail"]["code"] == "UPLOAD_REJECTED"


def test_aggregate_requires_both_columns(client: TestClient) -> None:
    _upload(client)

    response = client.post("/dashboard/aggregate", json={"categorical_column": "city"})

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "INCOMPLETE_FORM"


def test_unknown_enum_values_use_dashboard_error_shape(client: TestClient) -> None:
    _upload(client)

    aggregate = client.post(
        "/dashboard/aggregate",
        json={"categorical_column": "city", "continuous_column": "sales", "aggregation_function": "mode"},
    )
    chart = client.get("/dashboard/chart", params={"kind": "scatter"})

    for response, field in ((aggregate, "aggregation_function"), (chart, "kind")):
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "INVALID_REQUEST"
        assert field in detail["message"]


def test_aggregate_then_render_chart_and_table(client: TestClient) -> None:
    _upload(client)
    response = client.post(
        "/dashboard/aggregate",
        json={"categorical_column": "city", "continuous_column": "sales", "aggregation_function": "sum"},
    )
    assert response.status_code == 200
    assert response.json()["aggregation_result"]["data"]["sales"][2] is None

    chart = client.get("/dashboard/chart").json()
    assert chart["error"] is None
    assert chart["chart"]["kind"] == "bar"
    assert chart["chart"]["layout"]["xaxis"]["tickangle"] == -45
    assert chart["chart"]["layout"]["title"]["text"] == "sum(sales) by city"
    assert chart["figure"]["data"][0]["type"] == "bar"

    pie = client.get("/dashboard/chart", params={"kind": "pie"}).json()
    assert pie["chart"]["series"]["labels"] == _CITIES

    table = client.get("/dashboard/table").json()
    assert table["columns"] == ["city", "sales"]
    assert table["rows"][2] == ["C", None]


def test_chart_before_aggregation_is_empty(client: TestClient) -> None:
    body = client.get("/dashboard/chart").json()

    assert body["chart"] is None
    assert body["error"] is None


def test_malformed_result_is_reported_inline(client: TestClient, controller) -> None:
    controller.client.payload = {"group_by": "city", "aggregate": {"sales": "sum"}, "data": {"city": ["A"]}}
    _upload(client)
    client.post("/dashboard/aggregate", json={"categorical_column": "city", "continuous_column": "sales"})

    chart = client.get("/dashboard/chart").json()
    table = client.get("/dashboard/table").json()

    assert chart["chart"] is None
    assert chart["error"] == "Error: Invalid data structure for visualization"
    assert table["error"] == chart["error"]


def test_summary_chart_and_view_controls(client: TestClient) -> None:
    assert client.get("/dashboard/summary-chart").json() is None
    _upload(client)

    summary_chart = client.get("/dashboard/summary-chart").json()
    assert summary_chart["chart"]["series"]["x"] == ["sales"]

    assert client.post("/dashboard/chart/kind", json={"kind": "line"}).json() == {"chart_kind": "line"}
    assert client.post("/dashboard/chart/toggle").json() == {"show_chart": False}
    assert client.get("/dashboard/state").json()["chart_kind"] == "line"
    assert client.post("/dashboard/notice/dismiss").json() == {"notice": None}
    assert client.get("/dashboard/summary-table").json()["rows"][0] == ["city", "Utf8", 0, 6]
