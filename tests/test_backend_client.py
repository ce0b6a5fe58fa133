from __future__ import annotations

import json

import pytest
import requests

from eda_dashboard.api.backend_client import NETWORK_ERROR_MESSAGE, BackendClient
from eda_dashboard.errors import NetworkError, RequestFailed
from eda_dashboard.models.contracts import AggregationFunction, AggregationRequest


def _response(status_code: int, body) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
    return response


class _FakeSession:
    def __init__(self, response=None, exc: Exception | None = None) -> None:
        self.response = response
        self.exc = exc
        self.calls: list[dict] = []

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response


def test_upload_posts_multipart_file() -> None:
    session = _FakeSession(_response(200, {"message": "File uploaded successfully", "columns": ["city", "sales"]}))
    client = BackendClient("http://backend:8000/", timeout=5, session=session)

    result = client.upload("data.csv", b"city,sales\nA,1\n")

    assert result.message == "File uploaded successfully"
    assert result.columns == ["city", "sales"]
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://backend:8000/upload/"
    assert call["files"]["file"] == ("data.csv", b"city,sales\nA,1\n", "text/csv")
    assert call["timeout"] == 5


def test_fetch_summary_parses_column_meta() -> None:
    body = {
        "num_rows": 3,
        "num_columns": 1,
        "columns": [{"column": "city", "dtype": "Utf8", "missing": 0, "unique": 3}],
    }
    client = BackendClient("http://backend", session=_FakeSession(_response(200, body)))

    summary = client.fetch_summary()

    assert summary.num_rows == 3
    assert summary.columns[0].dtype == "Utf8"


def test_aggregate_sends_query_params_and_returns_raw_payload() -> None:
    body = {"group_by": "city", "aggregate": {"sales": "sum"}, "data": {"city": ["A"], "sales": [1, 2]}}
    session = _FakeSession(_response(200, body))
    client = BackendClient("http://backend", session=session)
    request = AggregationRequest(
        categorical_column="city name",
        continuous_column="sales",
        aggregation_function=AggregationFunction.SUM,
    )

    payload = client.aggregate(request)

    assert payload == body
    assert session.calls[0]["url"] == "http://backend/aggregate/"
    assert session.calls[0]["params"] == {"cat_col": "city name", "con_col": "sales", "agg_func": "sum"}


def test_non_2xx_surfaces_detail_verbatim() -> None:
    client = BackendClient("http://backend", session=_FakeSession(_response(400, {"detail": "Column 'x' not found"})))

    with pytest.raises(RequestFailed) as excinfo:
        client.aggregate(AggregationRequest(categorical_column="x", continuous_column="y"))

    assert excinfo.value.detail == "Column 'x' not found"
    assert excinfo.value.status_code == 400


def test_non_2xx_without_detail_uses_endpoint_fallback() -> None:
    client = BackendClient("http://backend", session=_FakeSession(_response(500, b"<html>oops</html>")))

    with pytest.raises(RequestFailed) as excinfo:
        client.upload("data.csv", b"")

    assert excinfo.value.detail == "Upload failed"


def test_transport_failure_raises_network_error() -> None:
    session = _FakeSession(exc=requests.ConnectionError("refused"))
    client = BackendClient("http://backend", session=session)

    with pytest.raises(NetworkError) as excinfo:
        client.fetch_summary()

    assert excinfo.value.message == NETWORK_ERROR_MESSAGE


def test_unexpected_summary_shape_is_request_failed() -> None:
    client = BackendClient("http://backend", session=_FakeSession(_response(200, {"num_rows": -1})))

    with pytest.raises(RequestFailed):
        client.fetch_summary()
