from pydantic import BaseModel
from typing import Any, Optional


class ApiResponse(BaseModel):
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    reason: Optional[str] = None


def ok(data: Any = None):
    return ApiResponse(success=True, data=data)


def fail(error: str, reason: Optional[str] = None):
    return ApiResponse(success=False, error=error, reason=reason)
