"""User filtering using FilterSet."""

from datetime import datetime
from typing import Self

from pydantic import model_validator

from src.domain.exceptions import ValidationError
from src.domain.models.base import as_utc
from src.domain.models.user import User
from src.infrastructure.filtering.filterset import (
    CharFilter,
    DateTimeFilter,
    FilterSet,
    SearchFilter,
)


class UserFilterSet(FilterSet):
    """Declarative filters for User model.

    Soft-deleted users are never returned. Text filters ignore case; the
    ``*_exact`` variants are case-sensitive.

    Example query:
        GET /api/users/search?q=smith&created_after=2024-01-01T00:00:00Z&page=0&size=20
    """

    model = User

    # Free-text search across every text column
    q: str | None = SearchFilter(
        fields=("email", "username", "first_name", "last_name"),
        description="Search email, username, first and last name (case-insensitive)",
    )

    # String filters with case-insensitive search
    email: str | None = CharFilter(
        lookup="icontains",
        description="Search by email (case-insensitive substring match)",
    )
    username: str | None = CharFilter(
        lookup="icontains",
        description="Search by username (case-insensitive substring match)",
    )
    first_name: str | None = CharFilter(
        lookup="icontains",
        description="Search by first name (case-insensitive substring match)",
    )
    last_name: str | None = CharFilter(
        lookup="icontains",
        description="Search by last name (case-insensitive substring match)",
    )
    name: str | None = SearchFilter(
        fields=("first_name", "last_name"),
        description="Search first or last name (case-insensitive substring match)",
    )

    # Exact match alternatives
    email_exact: str | None = CharFilter(
        field_name="email",
        lookup="exact",
        description="Filter by exact email",
    )
    username_exact: str | None = CharFilter(
        field_name="username",
        lookup="exact",
        description="Filter by exact username",
    )

    # DateTime range filters
    created_after: datetime | None = DateTimeFilter(
        field_name="created_at",
        lookup="gte",
        description="Show users created at or after this date (ISO 8601)",
    )
    created_before: datetime | None = DateTimeFilter(
        field_name="created_at",
        lookup="lte",
        description="Show users created at or before this date (ISO 8601)",
    )
    updated_after: datetime | None = DateTimeFilter(
        field_name="updated_at",
        lookup="gte",
        description="Show users updated at or after this date (ISO 8601)",
    )
    updated_before: datetime | None = DateTimeFilter(
        field_name="updated_at",
        lookup="lte",
        description="Show users updated at or before this date (ISO 8601)",
    )
    last_login_after: datetime | None = DateTimeFilter(
        field_name="last_login_at",
        lookup="gte",
        description="Show users who logged in at or after this date (ISO 8601)",
    )

    @model_validator(mode="after")
    def check_ranges(self) -> Self:
        """Reject ranges whose start is after their end."""
        errors: dict[str, list[str]] = {}
        for field, start, end in (
            ("createdAt", self.created_after, self.created_before),
            ("updatedAt", self.updated_after, self.updated_before),
        ):
            if start is not None and end is not None and as_utc(start) > as_utc(end):
                errors[field] = ["Start date must not be after end date"]
        if errors:
            raise ValidationError("Validation failed", field_errors=errors)
        return self
