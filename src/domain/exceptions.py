"""Domain-specific exceptions for business logic errors.

This module defines the exception hierarchy for domain errors, providing
consistent error handling across the application layer. Each exception maps
to exactly one HTTP status in the presentation layer.
"""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain-related errors.

    Provides a consistent interface for domain exceptions with error codes
    and optional contextual details.

    Attributes:
        code: Machine-readable error code
        message: Human-readable error message
        details: Optional additional error context (dict or list)
    """

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | list[Any] | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error description
            details: Optional additional context about the error
        """
        self.message = message
        self.details = details
        super().__init__(self.message)


class EntityNotFoundError(DomainException):
    """Raised when a requested entity does not exist or is soft-deleted.

    Use this exception when database queries return no active results for
    requested entities (e.g., user not found by id, email or username).
    """

    code = "ENTITY_NOT_FOUND"

    @classmethod
    def for_id(cls, entity: str, entity_id: int) -> "EntityNotFoundError":
        """Build the not-found error for a lookup by primary key."""
        return cls(f"{entity} with ID {entity_id} not found", details={"id": entity_id})

    @classmethod
    def for_field(cls, entity: str, field: str, value: Any) -> "EntityNotFoundError":
        """Build the not-found error for a lookup by an arbitrary field."""
        return cls(f"{entity} with {field} '{value}' not found", details={field: value})


class AlreadyExistsError(DomainException):
    """Raised when a unique field value is already held by another active entity.

    Attributes:
        field: Name of the conflicting field (e.g. ``email``)
        value: Conflicting value
    """

    code = "ALREADY_EXISTS"

    def __init__(self, entity: str, field: str, value: Any) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{entity} with {field} '{value}' already exists", details={"field": field})


class ValidationError(DomainException):
    """Raised when input data fails business validation rules.

    Use this exception for domain-level validation failures, such as
    invalid business logic constraints or data format issues.

    Attributes:
        field_errors: Mapping of field name to the list of messages for that
            field. Empty when the failure is not attributable to a field.
    """

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field_errors: dict[str, list[str]] | None = None,
        details: dict[str, Any] | list[Any] | None = None,
    ) -> None:
        self.field_errors = field_errors or {}
        super().__init__(message, details)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        """Build a validation error attributed to a single field."""
        return cls("Validation failed", field_errors={field: [message]})


class ConcurrencyConflictError(DomainException):
    """Raised when an optimistic version check fails.

    Another transaction modified the entity between read and write. Nothing
    was written; the caller may reload and retry.
    """

    code = "CONCURRENCY_CONFLICT"


class LockTimeoutError(DomainException):
    """Raised when a pessimistic row lock could not be acquired in time."""

    code = "LOCK_TIMEOUT"
