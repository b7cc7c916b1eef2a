# taskboard/models/api_common.py

from typing import List, Optional

from pydantic import BaseModel, Field


class StatusResponse(BaseModel):
    """Generic response describing the outcome of an operation."""
    status: str = Field(..., description="Overall status (e.g. 'ok', 'deleted')")
    message: Optional[str] = Field(None, description="Optional descriptive message.")


class DetailResponse(BaseModel):
    """Error body: every domain failure carries a human-readable detail."""
    detail: str = Field(..., description="Error message.")


class ErrorDetail(BaseModel):
    field: Optional[str] = None  # dotted path of the offending field
    message: str


class ValidationErrorResponse(BaseModel):
    """Body of a 400 caused by an invalid request payload."""
    detail: str = "Validation Error"
    errors: List[ErrorDetail]
