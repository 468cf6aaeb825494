"""
Common schemas used across the API.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for API models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(BaseModel, Generic[T]):
    """Generic success envelope."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Error envelope."""

    success: bool = False
    error: str = Field(description="Error type/code")
    message: Any = Field(description="Human-readable error message(s)")
    statusCode: int = Field(description="HTTP status code")
    request_id: Optional[str] = Field(default=None, description="Request correlation id")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    database: str = "connected"
    timestamp: datetime


class MessageResponse(BaseModel):
    success: bool = True
    message: str
