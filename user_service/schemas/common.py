"""
The response envelope shared by every endpoint.

Successful responses look like:
    {"code": 0, "message": "success", "data": {...}}

Errors use the same shape with the HTTP status as "code" (see
user_service.exceptions), so clients can always read the same three keys.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")

SUCCESS_CODE = 0


class ApiResponse(BaseModel, Generic[T]):
    code: int = SUCCESS_CODE
    message: str = "success"
    data: T | None = None


def ok(data=None, message: str = "success") -> ApiResponse:
    return ApiResponse(code=SUCCESS_CODE, message=message, data=data)
