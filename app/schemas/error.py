"""
Error response schemas for the Carlora API.

Every failed form submission answers with the same body shape:
``{"error": "<user-facing message>", "details": [...]}`` where ``details`` is
only present for validation failures.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.forms import ValidationIssue


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Please check your input and try again"],
    )
    details: Optional[List[ValidationIssue]] = Field(
        None, description="Field-level problems, for validation errors only"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Please check your input and try again",
                "details": [
                    {"field": "email", "message": "Please enter a valid email address"}
                ],
            }
        }
    )


# Common error responses for OpenAPI documentation
SUBMISSION_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input or rejected submission"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Email delivery failed"},
}
