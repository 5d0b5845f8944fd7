"""Common schemas: the {success, data | error} envelope every endpoint returns."""
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorBody(BaseModel):
    """Error part of the envelope."""

    code: str = Field(..., description="Machine readable error code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Extra context")


class ApiResponse(BaseModel, Generic[T]):
    """Standard response envelope."""

    success: bool = True
    data: Optional[T] = None
    error: Optional[ErrorBody] = None


def ok(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def error_envelope(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body = ErrorBody(code=code, message=message, details=details or None)
    return {"success": False, "error": body.model_dump(exclude_none=True)}
