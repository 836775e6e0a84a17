"""ApiResponse envelope helpers."""

from starlette.requests import Request

from src.rwa_common.response import error_response, request_id_of, success_response


def _request(request_id: str | None = None) -> Request:
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": []})
    if request_id is not None:
        request.state.request_id = request_id
    return request


class TestRequestId:
    def test_taken_from_request_state(self) -> None:
        assert request_id_of(_request("req_abc")) == "req_abc"

    def test_fresh_when_middleware_did_not_run(self) -> None:
        assert request_id_of(_request()).startswith("req_")
        assert request_id_of(None) != request_id_of(None)


def test_success_envelope() -> None:
    resp = success_response({"x": 1}, _request("req_1"))
    assert (resp.code, resp.message, resp.data, resp.request_id) == (0, "success", {"x": 1}, "req_1")


def test_error_envelope_has_no_data() -> None:
    resp = error_response(3001, "Asset not found", _request("req_2"))
    assert resp.data is None
    assert resp.code == 3001
    assert resp.request_id == "req_2"
