"""
Error Handling Middleware

Provides consistent, informative error responses across the learner API.

Features:
- Standardized error response format
- Correlation IDs for log tracking
- Sanitized responses (hides internal details unless debug is on)
- Error taxonomy shared by the services and the HTTP layer

Usage:
    from fluentpath.middleware.error_handling import (
        ErrorHandlingMiddleware,
        NotFoundError,
    )

    # Add middleware to app
    app.add_middleware(ErrorHandlingMiddleware)

    # Raise from a service
    raise NotFoundError("Lesson not found", details={"lesson_id": lesson_id})

Error taxonomy:
    Business errors are deterministic; the caller has to change the request:
        - NotFoundError          404  referenced lesson/exercise/course missing
        - NotEnrolledError       403  action requires an enrollment
        - AlreadyCompletedError  409  duplicate lesson completion
        - InvalidInputError      422  out-of-range score/time_spent, missing answer

    Infrastructure errors are persistence failures. They are logged at ERROR
    and may be retried by the caller:
        - InfrastructureError    503

Exception flow:
    Request → ErrorHandlingMiddleware.dispatch()
                  │
                  └─ try:
                        await call_next(request)  ← route + services run here
                     except ServiceError:  ← structured JSON response
                     except Exception:     ← sanitized 500 response

    HTTPException is re-raised for FastAPI's built-in handler.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Schema
# =============================================================================


class ErrorResponse(BaseModel):
    """Standardized error response."""

    error: str  # Error code (e.g., "not_enrolled")
    message: str  # Human-readable message
    error_id: str  # For log correlation
    details: Optional[dict] = None  # Additional context (debug only)
    timestamp: datetime


# =============================================================================
# Custom Exceptions
# =============================================================================


class ServiceError(Exception):
    """
    Base exception for service errors.

    Provides consistent error handling with:
    - HTTP status code
    - Error code for categorization
    - Optional details for debugging

    Example:
        raise ServiceError("Something went wrong", status_code=500)
    """

    status_code: int = 500
    error_code: str = "service_error"

    def __init__(
        self,
        message: str,
        status_code: int = None,
        error_code: str = None,
        details: dict = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        if error_code:
            self.error_code = error_code
        self.details = details

    @property
    def is_business_error(self) -> bool:
        """True for deterministic 4xx errors the caller must correct."""
        return self.status_code < 500


class NotFoundError(ServiceError):
    """
    Resource not found error.

    Raised when a referenced lesson, exercise or course doesn't exist.
    """

    status_code = 404
    error_code = "not_found"


class NotEnrolledError(ServiceError):
    """
    Enrollment required.

    Raised when completing a lesson or reading a skill tree for a course
    the learner has not enrolled in.
    """

    status_code = 403
    error_code = "not_enrolled"


class AlreadyCompletedError(ServiceError):
    """
    Duplicate lesson completion.

    Raised when a progress snapshot already exists for (learner, lesson),
    including when a concurrent request won the race.
    """

    status_code = 409
    error_code = "already_completed"


class InvalidInputError(ServiceError):
    """
    Input validation error.

    Raised when score, time spent, quality or answer are out of range
    or missing.
    """

    status_code = 422
    error_code = "invalid_input"


class InfrastructureError(ServiceError):
    """
    Persistence layer failure.

    Never a business outcome; the caller may retry because every core
    operation is idempotent or guarded by a uniqueness check.
    """

    status_code = 503
    error_code = "infrastructure_error"


# =============================================================================
# Error Handling Middleware
# =============================================================================


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    - Catches unhandled exceptions
    - Logs with correlation ID
    - Returns consistent error format
    - Hides internal details in production
    """

    def __init__(self, app, debug: bool = False):
        """
        Initialize middleware.

        Args:
            app: FastAPI/Starlette application
            debug: Whether to include details and stack traces in responses
        """
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        """Process request and handle any errors."""
        error_id = str(uuid4())[:8]

        try:
            response = await call_next(request)
            return response

        except HTTPException:
            # Let FastAPI handle HTTP exceptions
            raise

        except ServiceError as e:
            log = logger.warning if e.is_business_error else logger.error
            log(
                f"[{error_id}] {e.error_code}: {e.message}",
                extra={
                    "error_id": error_id,
                    "error_code": e.error_code,
                    "path": request.url.path,
                    "method": request.method,
                    "details": e.details,
                },
            )

            return JSONResponse(
                status_code=e.status_code,
                content=_error_content(
                    e.error_code,
                    e.message,
                    error_id,
                    e.details if self.debug else None,
                ),
            )

        except Exception as e:
            # Log full traceback for unexpected errors
            logger.error(
                f"[{error_id}] Unhandled error: {type(e).__name__}: {e}",
                extra={
                    "error_id": error_id,
                    "path": request.url.path,
                    "method": request.method,
                    "traceback": traceback.format_exc(),
                },
            )

            details = None
            if self.debug:
                details = {
                    "exception": type(e).__name__,
                    "message": str(e),
                    "traceback": traceback.format_exc(),
                }

            return JSONResponse(
                status_code=500,
                content=_error_content(
                    "internal_server_error",
                    "An unexpected error occurred",
                    error_id,
                    details,
                ),
            )


# =============================================================================
# Setup Function
# =============================================================================


def setup_error_handling(app: FastAPI, debug: bool = False) -> None:
    """
    Configure error handling on the FastAPI app.

    Args:
        app: FastAPI application instance
        debug: Whether to include details in responses
    """
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
    logger.info(f"Error handling middleware enabled (debug={debug})")


# =============================================================================
# Helper Functions
# =============================================================================


def _error_content(
    error_code: str,
    message: str,
    error_id: str,
    details: Optional[dict],
) -> dict:
    return {
        "error": error_code,
        "message": message,
        "error_id": error_id,
        "details": details,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
