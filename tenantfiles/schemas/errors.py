"""Error response schema shared by all endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error response schema.

    Used for all error responses (4xx, 5xx) across the API.
    """

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["missing_tenant", "object_not_found", "empty_file"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Header X-Tenant-ID is required"],
    )
    details: dict | list | None = Field(
        None,
        description="Additional error context (constraint reason, validation errors)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error": "missing_tenant",
                    "message": "Header X-Tenant-ID is required",
                },
                {
                    "error": "create_constraints_violation",
                    "message": "Account violates a database constraint",
                    "details": {"reason": "UNIQUE constraint failed: accounts.login"},
                },
            ]
        }
    )
