"""
Common API Response Schemas

Provides standardized error responses and pagination models for consistent API behavior.
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Error Response Models
# ============================================================================

class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400)
        - TENANT_REQUIRED: Company header missing or invalid (400)
        - DUPLICATE_ERROR: Duplicate resource (400)
        - INVALID_STATE: Operation not allowed in current state (400)
        - PERMISSION_DENIED: Protected resource (403)
        - NOT_FOUND: Resource not found (404)
        - CONFLICT: Resource conflict (409)
        - INVALID_YIELD: Recipe yield is zero or negative (422)
        - CYCLE_DETECTED: Sub-recipe cycle (422)
        - UNIT_MISMATCH: Same material in incompatible units (422)
        - DATABASE_ERROR: Database operation failed (500)
        - INTERNAL_ERROR: Unexpected internal error (500)

    Example:
        {
            "error": "CYCLE_DETECTED",
            "message": "Sub-recipe cycle detected: Massa A -> Massa B -> Massa A",
            "details": {"chain": [3, 5, 3], "rule": "acyclic_bom"},
            "timestamp": "2026-03-02T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context for debugging"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the error occurred (UTC)"
    )


# ============================================================================
# Pagination Models
# ============================================================================

class PaginationParams(BaseModel):
    """Offset-based pagination parameters for list endpoints."""
    offset: int = Field(default=0, ge=0, description="Number of records to skip")
    limit: int = Field(default=50, ge=1, le=500, description="Maximum number of records to return (1-500)")

    @field_validator('limit')
    @classmethod
    def validate_limit(cls, v: int) -> int:
        """Ensure limit is within acceptable range."""
        return min(max(v, 1), 500)


class PaginationMeta(BaseModel):
    """Pagination metadata included in list responses."""
    total: int = Field(..., description="Total number of records matching the query")
    offset: int = Field(..., description="Current offset (number of records skipped)")
    limit: int = Field(..., description="Maximum records per page")
    returned: int = Field(..., description="Number of records in this response")


T = TypeVar('T')


class ListResponse(BaseModel, Generic[T]):
    """
    Standardized list response wrapper with pagination.

    Example:
        {
            "items": [...],
            "pagination": {"total": 150, "offset": 0, "limit": 50, "returned": 50}
        }
    """
    items: List[T] = Field(..., description="List of items")
    pagination: PaginationMeta = Field(..., description="Pagination metadata")


class MessageResponse(BaseModel):
    """Simple message response for operations that don't return data."""
    message: str = Field(..., description="Operation result message")
