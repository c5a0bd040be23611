"""Error response schemas."""

from datetime import datetime

from pydantic import Field

from src.domain.models.base import utc_now
from src.presentation.schemas.common import CamelModel, UtcTimestamp


class ErrorResponse(CamelModel):
    """Standard error response schema.

    ``validationErrors`` is present only for validation failures and maps
    each offending field to its messages.
    """

    timestamp: UtcTimestamp = Field(..., description="When the error occurred (UTC)")
    status: int = Field(..., description="HTTP status code")
    error: str = Field(..., description="HTTP reason phrase")
    message: str = Field(..., description="Human-readable error message")
    validation_errors: dict[str, list[str]] | None = Field(
        None, description="Per-field validation messages"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "timestamp": "2024-01-15T10:30:00.000Z",
                    "status": 404,
                    "error": "Not Found",
                    "message": "User with ID 123 not found",
                },
                {
                    "timestamp": "2024-01-15T10:30:00.000Z",
                    "status": 400,
                    "error": "Bad Request",
                    "message": "Validation failed",
                    "validationErrors": {"email": ["Email must be a valid email address"]},
                },
            ]
        }
    }

    def to_body(self) -> dict:
        """Dump as a JSON-ready dict, omitting ``validationErrors`` when absent."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def build(
        cls,
        status: int,
        error: str,
        message: str,
        validation_errors: dict[str, list[str]] | None = None,
        timestamp: datetime | None = None,
    ) -> "ErrorResponse":
        return cls(
            timestamp=timestamp or utc_now(),
            status=status,
            error=error,
            message=message,
            validation_errors=validation_errors,
        )
