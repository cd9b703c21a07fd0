"""
Response utilities for the SSO bridge.
Provides standardized response formatting.
"""

from typing import Any

from fastapi.responses import JSONResponse


def create_error_response(
    error: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error: Error code string
        message: Human-readable error message
        status_code: HTTP status code
        details: Optional additional error details

    Returns:
        JSONResponse with error payload
    """
    content = {
        "error": error,
        "message": message,
    }
    if details:
        content["details"] = details

    return JSONResponse(status_code=status_code, content=content)


def create_success_response(
    data: Any,
    message: str | None = None,
    status_code: int = 200,
) -> JSONResponse:
    """
    Create a success response in the issuer-compatible envelope.

    Args:
        data: Response payload, placed under ``data``
        message: Optional human-readable message
        status_code: HTTP status code (default 200)

    Returns:
        JSONResponse shaped ``{"status", "data", "message"?}``
    """
    content: dict[str, Any] = {"status": status_code, "data": data}
    if message:
        content["message"] = message
    return JSONResponse(status_code=status_code, content=content)
