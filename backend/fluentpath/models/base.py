"""
Strict Base Models for API Request/Response Validation

Base classes with strict validation settings that harden the API contract
between the learner API and its clients.

    API Request → StrictRequest (extra="forbid") → Route Handler
    Service result → StrictResponse (extra="ignore") → DataResponse → API Response

Every successful response body is wrapped as {"data": <payload>}.
"""

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class StrictRequest(BaseModel):
    """
    Base model for API request bodies with strict validation.

    Features:
        - extra="forbid": Unknown fields raise 422 Unprocessable Entity
        - validate_default=True: Validates default values
        - str_strip_whitespace=True: Trims whitespace from strings
        - from_attributes=True: Allows ORM model conversion
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
        from_attributes=True,
    )


class StrictResponse(BaseModel):
    """
    Base model for API response bodies.

    Features:
        - extra="ignore": Silently ignores extra fields (DB may have more columns)
        - validate_default=True: Validates default values
        - from_attributes=True: Allows ORM model conversion

    Example:
        >>> EnrollmentResponse.model_validate(db_enrollment)
    """

    model_config = ConfigDict(
        extra="ignore",
        validate_default=True,
        from_attributes=True,
    )


class DataResponse(BaseModel, Generic[T]):
    """
    Success envelope shared by all learner endpoints.

    Example:
        @router.get("/items", response_model=DataResponse[list[ItemResponse]])
        async def list_items():
            return DataResponse(data=items)
    """

    data: T


class ErrorDetail(StrictResponse):
    """
    Standardized error response detail.

    Matches the error format from the error_handling middleware.
    """

    error: str  # Error code (e.g., "not_enrolled")
    message: str  # Human-readable message
    error_id: str  # Correlation ID for log lookup
    details: Optional[dict] = None  # Additional context
    timestamp: datetime
