"""
Error envelope construction for the exception handlers.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse

from expense_tracker.core.logging import get_request_id
from expense_tracker.schemas.common import ErrorResponse


def error_response(
    status_code: int,
    error: str,
    message: Any,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        statusCode=status_code,
        request_id=get_request_id(),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)
