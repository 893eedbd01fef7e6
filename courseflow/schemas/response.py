from pydantic import BaseModel, Field
from typing import Generic, TypeVar, Optional, Any, Dict

DataType = TypeVar("DataType")

class APIResponse(BaseModel, Generic[DataType]):
    """Envelope for every successful response."""
    success: bool = Field(True, description="Always true for successful responses.")
    message: str = Field(..., description="A human-readable message about the response.")
    data: Optional[DataType] = Field(None, description="The payload, if any.")

class ErrorDetail(BaseModel):
    code: str = Field(..., description="Error code for client handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Developer-facing context, omitted in production")

class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
    timestamp: str = Field(..., description="ISO 8601 timestamp of error")
    path: str = Field(..., description="Request path that caused the error")
    request_id: Optional[str] = Field(None, description="Unique request identifier for debugging")
