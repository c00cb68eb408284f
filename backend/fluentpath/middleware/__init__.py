"""
Middleware Package

Provides FastAPI middleware and the service error taxonomy.

Usage:
    from fluentpath.middleware import setup_error_handling, NotFoundError
"""

from fluentpath.middleware.error_handling import (
    AlreadyCompletedError,
    ErrorHandlingMiddleware,
    InfrastructureError,
    InvalidInputError,
    NotEnrolledError,
    NotFoundError,
    ServiceError,
    setup_error_handling,
)

__all__ = [
    "AlreadyCompletedError",
    "ErrorHandlingMiddleware",
    "InfrastructureError",
    "InvalidInputError",
    "NotEnrolledError",
    "NotFoundError",
    "ServiceError",
    "setup_error_handling",
]
