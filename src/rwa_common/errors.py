"""Unified error codes and custom exceptions.

Error code ranges:
  3xxx: Asset
  5xxx: Dividend
  7xxx: Chain / upstream
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 3xxx: Asset ---

class AssetNotFoundError(AppError):
    def __init__(self, mint: str) -> None:
        super().__init__(3001, f"Asset not found: {mint}", 404)


class InvalidQueryError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3002, f"Invalid query: {detail}", 422)


# --- 5xxx: Dividend ---

class DividendNotFoundError(AppError):
    def __init__(self, pda: str) -> None:
        super().__init__(5001, f"Dividend not found: {pda}", 404)


# --- 7xxx: Chain ---

class ChainRpcError(AppError):
    def __init__(self, method: str, detail: object) -> None:
        super().__init__(7001, f"RPC {method} failed: {detail}", 502)


class AssetSyncError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(7002, f"Asset synchronization failed: {detail}", 502)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
