"""
Response envelope shared by every endpoint.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Generic, TypeVar, List
from datetime import datetime

# Generic type for response data
T = TypeVar('T')


class Metadata(BaseModel):
    """Standard metadata for API responses."""
    statusCode: int = Field(..., description="HTTP status code")
    errors: List[str] = Field(default_factory=list, description="List of error messages")
    executionTime: float = Field(..., description="Request execution time in seconds")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Response timestamp")


class StandardResponse(BaseModel, Generic[T]):
    """Standard API response wrapper."""
    data: T = Field(..., description="Response data")
    metadata: Metadata = Field(..., description="Response metadata")
    success: int = Field(..., description="Success indicator (1 for success, 0 for failure)")


class ErrorResponse(BaseModel):
    """Error response schema."""
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class SuccessResponse(BaseModel):
    """Success response schema."""
    message: str = Field(..., description="Success message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional success details")
