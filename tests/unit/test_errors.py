"""Tests for rwa_common.errors and rwa_common.response."""

from src.rwa_common.errors import (
    AppError,
    AssetNotFoundError,
    AssetSyncError,
    ChainRpcError,
    DividendNotFoundError,
    InternalError,
    InvalidQueryError,
    RateLimitError,
)
from src.rwa_common.response import error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_custom_http_status(self) -> None:
        err = AppError(code=3002, message="bad", http_status=422)
        assert err.http_status == 422

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1, message="x"), Exception)


class TestSpecificErrors:
    def test_asset_not_found(self) -> None:
        err = AssetNotFoundError("MintXYZ")
        assert err.code == 3001
        assert err.http_status == 404
        assert "MintXYZ" in err.message

    def test_invalid_query(self) -> None:
        err = InvalidQueryError("wallet is not a valid public key")
        assert err.code == 3002
        assert err.http_status == 422
        assert "wallet" in err.message

    def test_dividend_not_found(self) -> None:
        err = DividendNotFoundError("DivPda")
        assert err.code == 5001
        assert err.http_status == 404

    def test_chain_rpc_error(self) -> None:
        err = ChainRpcError("getTransaction", {"code": -32000})
        assert err.code == 7001
        assert err.http_status == 502
        assert "getTransaction" in err.message

    def test_asset_sync_error(self) -> None:
        err = AssetSyncError("timeout")
        assert err.code == 7002
        assert err.http_status == 502

    def test_rate_limit(self) -> None:
        err = RateLimitError()
        assert err.code == 9001
        assert err.http_status == 429

    def test_internal_default_message(self) -> None:
        err = InternalError()
        assert err.code == 9002
        assert err.message == "Internal server error"


class TestApiResponse:
    def test_success(self) -> None:
        resp = success_response({"mint": "abc"})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"mint": "abc"}

    def test_error(self) -> None:
        resp = error_response(3001, "Asset not found: abc")
        assert resp.code == 3001
        assert resp.data is None

    def test_serialization_keys(self) -> None:
        d = success_response([]).model_dump()
        assert set(d) == {"code", "message", "data", "timestamp", "request_id"}
        assert d["request_id"].startswith("req_")
