"""Custom middleware for request validation and error handling."""

import logging
import uuid
from typing import Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


def _error_body(code: str, message: str, request_id: str) -> dict:
    return {"error": {"code": code, "message": message, "request_id": request_id}}


class RequestValidationMiddleware(BaseHTTPMiddleware):
    """Middleware for request validation and security checks.

    Enforces:
    - Request size limits
    - Content-Type validation for POST/PUT/PATCH with a body
    - Request ID generation
    """

    def __init__(
        self,
        app: ASGIApp,
        max_request_size: int = 1024 * 1024,  # 1 MB default
        enforce_content_type: bool = True,
    ) -> None:
        super().__init__(app)
        self.max_request_size = max_request_size
        self.enforce_content_type = enforce_content_type

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and apply validation."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        content_length = request.headers.get("content-length")
        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                size = 0
            if size > self.max_request_size:
                logger.warning("Request too large: %d bytes", size)
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content=_error_body(
                        "REQUEST_TOO_LARGE",
                        f"Request too large. Maximum size is {self.max_request_size} bytes",
                        request_id,
                    ),
                    headers={"X-Request-ID": request_id},
                )

        if (
            self.enforce_content_type
            and request.method in {"POST", "PUT", "PATCH"}
            and content_length not in (None, "0")
        ):
            content_type = request.headers.get("content-type", "")
            if not content_type.startswith("application/json"):
                logger.warning("Invalid Content-Type: %s", content_type)
                return JSONResponse(
                    status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
                    content=_error_body(
                        "INVALID_CONTENT_TYPE",
                        "Content-Type must be application/json",
                        request_id,
                    ),
                    headers={"X-Request-ID": request_id},
                )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ErrorResponseMiddleware(BaseHTTPMiddleware):
    """Middleware to standardize error responses.

    Catches exceptions and returns consistent error response format.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and handle errors."""
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", "unknown")

            logger.exception("Request error: %s %s", request.method, request.url.path)

            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
            code = "INTERNAL_ERROR"

            if isinstance(e, HTTPException):
                status_code = e.status_code
                detail = str(e.detail)
                code = "HTTP_ERROR"
            elif isinstance(e, RequestValidationError):
                status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
                detail = "Validation error"
                code = "VALIDATION_ERROR"
            elif isinstance(e, IntegrityError):
                status_code = status.HTTP_409_CONFLICT
                detail = "Data integrity error (duplicate or foreign key violation)"
                code = "CONFLICT"
            elif isinstance(e, OperationalError):
                status_code = status.HTTP_503_SERVICE_UNAVAILABLE
                detail = "Database operation failed"
                code = "SERVICE_UNAVAILABLE"
            else:
                detail = "An unexpected error occurred"

            return JSONResponse(
                content=_error_body(code, detail, request_id),
                status_code=status_code,
                headers={"X-Request-ID": request_id},
            )
