"""Application exception types."""

from typing import Any

from portfolio_api.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to the ``{"error": ...}`` payload."""

    def __init__(self, status_code: int, message: str, details: Any | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(error=message, details=details)
        super().__init__(message)


__all__ = ["ApiError"]
