"""Envelope returned by every endpoint, error handler and the rate limiter.

{
    "code": 0,           // 0 on success, otherwise an AppError code
    "message": "success",
    "data": { ... },     // null on error
    "timestamp": "...",  // UTC, ISO 8601
    "request_id": "..."  // same value as the X-Request-ID header
}
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field
from starlette.requests import Request


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    request_id: str = Field(default_factory=new_request_id)


def request_id_of(request: Request | None) -> str:
    """The id RequestLogMiddleware stored on the request, or a fresh one."""
    if request is not None:
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            return request_id
    return new_request_id()


def success_response(data: Any = None, request: Request | None = None) -> ApiResponse:
    return ApiResponse(data=data, request_id=request_id_of(request))


def error_response(code: int, message: str, request: Request | None = None) -> ApiResponse:
    return ApiResponse(code=code, message=message, request_id=request_id_of(request))
