"""
Standardized error response system.

Provides consistent error responses across all API endpoints.
"""
import uuid
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class ErrorCode:
    """Standard error codes."""

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_PASSWORD = "INVALID_PASSWORD"

    # Authentication/Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOO_MANY_ATTEMPTS = "TOO_MANY_ATTEMPTS"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"
    EMAIL_ALREADY_TAKEN = "EMAIL_ALREADY_TAKEN"
    CONFLICT = "CONFLICT"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorResponse:
    """Standard error response format."""

    @staticmethod
    def create(
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> JSONResponse:
        """
        Create a standardized error response.

        Args:
            code: Machine-readable error code
            message: Human-readable error message
            status_code: HTTP status code
            details: Additional error details (optional)
            request_id: Request correlation ID (optional)
            headers: Extra response headers, e.g. Retry-After (optional)

        Returns:
            JSONResponse with standard error format
        """
        error_data: Dict[str, Any] = {
            "error": {
                "code": code,
                "message": message,
            }
        }

        if details:
            error_data["error"]["details"] = details

        if request_id:
            error_data["error"]["request_id"] = request_id

        return JSONResponse(status_code=status_code, content=error_data, headers=headers)


class HTTPError(HTTPException):
    """
    Enhanced HTTPException with standard error response format.

    Usage:
        raise HTTPError(
            status_code=404,
            code=ErrorCode.NOT_FOUND,
            message="Purchase not found",
            details={"id": "..."}
        )
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(status_code=status_code, detail=message, headers=headers)


async def http_error_handler(request: Request, exc: HTTPError) -> JSONResponse:
    """
    Handle HTTPError exceptions and return standardized error response.

    This should be added to FastAPI exception handlers.
    """
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))

    return ErrorResponse.create(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
        headers=exc.headers,
    )


# Convenience functions for common errors

def not_found(resource: str, details: Optional[Dict[str, Any]] = None) -> HTTPError:
    """Create a 404 NOT_FOUND error."""
    return HTTPError(
        status_code=status.HTTP_404_NOT_FOUND,
        code=ErrorCode.NOT_FOUND,
        message=f"{resource} not found",
        details=details,
    )


def unauthorized(
    message: str = "Unauthorized",
    code: str = ErrorCode.UNAUTHORIZED,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPError:
    """Create a 401 error."""
    return HTTPError(
        status_code=status.HTTP_401_UNAUTHORIZED,
        code=code,
        message=message,
        details=details,
    )


def forbidden(
    message: str = "Forbidden",
    code: str = ErrorCode.FORBIDDEN,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPError:
    """Create a 403 error."""
    return HTTPError(
        status_code=status.HTTP_403_FORBIDDEN,
        code=code,
        message=message,
        details=details,
    )


def too_many_attempts(message: str, retry_after: int) -> HTTPError:
    """Create a 403 TOO_MANY_ATTEMPTS error with a Retry-After header."""
    return HTTPError(
        status_code=status.HTTP_403_FORBIDDEN,
        code=ErrorCode.TOO_MANY_ATTEMPTS,
        message=message,
        details={"retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


def validation_error(
    message: str,
    code: str = ErrorCode.VALIDATION_ERROR,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPError:
    """Create a 400 error."""
    return HTTPError(
        status_code=status.HTTP_400_BAD_REQUEST,
        code=code,
        message=message,
        details=details,
    )


def conflict(
    message: str,
    code: str = ErrorCode.CONFLICT,
    details: Optional[Dict[str, Any]] = None,
) -> HTTPError:
    """Create a 409 error."""
    return HTTPError(
        status_code=status.HTTP_409_CONFLICT,
        code=code,
        message=message,
        details=details,
    )
