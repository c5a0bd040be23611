"""User API request and response schemas.

This module defines Pydantic models for user-related API operations,
including validation rules, serialization, and OpenAPI documentation examples.
Bodies use camelCase names (``firstName``, ``isActive``...).
"""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field, field_validator, validate_email

from src.app.mappers.user_mapper import NewUser, UserChanges
from src.app.usecases import UserStats
from src.domain.models.user import User
from src.domain.pagination import Page
from src.infrastructure.constants import PaginationDefaults, ValidationLimits
from src.presentation.schemas.common import CamelModel, UtcTimestamp


def _check_email(value: str) -> str:
    if not value.strip():
        raise ValueError("Email is required")
    if len(value) > ValidationLimits.MAX_EMAIL_LENGTH:
        raise ValueError(f"Email must not exceed {ValidationLimits.MAX_EMAIL_LENGTH} characters")
    try:
        validate_email(value)
    except ValueError:
        raise ValueError("Email must be a valid email address") from None
    return value


def _check_username(value: str) -> str:
    if not value.strip():
        raise ValueError("Username is required")
    if not ValidationLimits.MIN_USERNAME_LENGTH <= len(value) <= ValidationLimits.MAX_USERNAME_LENGTH:
        raise ValueError(
            f"Username must be between {ValidationLimits.MIN_USERNAME_LENGTH} "
            f"and {ValidationLimits.MAX_USERNAME_LENGTH} characters"
        )
    return value


def _check_password(value: str) -> str:
    if not value.strip():
        raise ValueError("Password is required")
    if not ValidationLimits.MIN_PASSWORD_LENGTH <= len(value) <= ValidationLimits.MAX_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be between {ValidationLimits.MIN_PASSWORD_LENGTH} "
            f"and {ValidationLimits.MAX_PASSWORD_LENGTH} characters"
        )
    return value


def _check_name(value: str | None, label: str) -> str | None:
    if value is not None and len(value) > ValidationLimits.MAX_NAME_LENGTH:
        raise ValueError(f"{label} must not exceed {ValidationLimits.MAX_NAME_LENGTH} characters")
    return value


class UserCreate(CamelModel):
    """Request schema for creating a new user.

    Identity, timestamps, version and the active flag are assigned by the
    service; if a client sends them they are ignored.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "email": "john.doe@example.com",
                    "username": "johndoe",
                    "password": "s3cret-passw0rd",
                    "firstName": "John",
                    "lastName": "Doe",
                },
            ]
        }
    )

    email: str = Field(..., description="Email address", json_schema_extra={"format": "email"})
    username: str = Field(..., description="Username (3-50 characters)")
    password: str = Field(..., description="Password (8-255 characters), stored hashed")
    first_name: str | None = Field(None, description="First name (max 100 characters)")
    last_name: str | None = Field(None, description="Last name (max 100 characters)")

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _check_username(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password(v)

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str | None) -> str | None:
        return _check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str | None) -> str | None:
        return _check_name(v, "Last name")

    def to_new_user(self) -> NewUser:
        return NewUser(
            email=self.email,
            username=self.username,
            password=self.password,
            first_name=self.first_name,
            last_name=self.last_name,
        )


class UserUpdate(CamelModel):
    """Request schema for updating an existing user.

    All fields are optional. Omitted or null fields keep their stored value;
    blank email, username or password are treated as omitted.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"firstName": "Johnny"},
                {"email": "new.address@example.com", "password": "an0ther-secret"},
            ]
        }
    )

    email: str | None = Field(None, description="New email address", json_schema_extra={"format": "email"})
    username: str | None = Field(None, description="New username (3-50 characters)")
    password: str | None = Field(None, description="New password (8-255 characters)")
    first_name: str | None = Field(None, description="New first name (max 100 characters)")
    last_name: str | None = Field(None, description="New last name (max 100 characters)")

    @field_validator("email", "username", "password", mode="before")
    @classmethod
    def blank_as_omitted(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str | None) -> str | None:
        return None if v is None else _check_email(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str | None) -> str | None:
        return None if v is None else _check_username(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        return None if v is None else _check_password(v)

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str | None) -> str | None:
        return _check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str | None) -> str | None:
        return _check_name(v, "Last name")

    def to_changes(self) -> UserChanges:
        return UserChanges(
            email=self.email,
            username=self.username,
            password=self.password,
            first_name=self.first_name,
            last_name=self.last_name,
        )


class UserResponse(CamelModel):
    """Response schema for user data.

    The password hash and the version counter are never exposed.
    Timestamps are rendered in UTC with millisecond precision.
    """

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "examples": [
                {
                    "id": 1,
                    "email": "john.doe@example.com",
                    "username": "johndoe",
                    "firstName": "John",
                    "lastName": "Doe",
                    "isActive": True,
                    "createdAt": "2024-01-15T10:30:00.000Z",
                    "updatedAt": "2024-01-15T10:30:00.000Z",
                    "lastLoginAt": None,
                }
            ]
        },
    )

    id: int = Field(..., description="User identifier")
    email: str
    username: str
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool = Field(..., description="False once the user is soft-deleted")
    created_at: UtcTimestamp = Field(..., description="Creation timestamp (UTC)")
    updated_at: UtcTimestamp = Field(..., description="Last modification timestamp (UTC)")
    last_login_at: UtcTimestamp | None = Field(None, description="Most recent login (UTC)")

    @classmethod
    def from_entity(cls, user: User) -> "UserResponse":
        return cls.model_validate(user)


class UserPageResponse(CamelModel):
    """One page of users plus the metadata needed to navigate."""

    items: list[UserResponse] = Field(..., description="Users in current page")
    page: int = Field(..., description="Zero-based page index")
    size: int = Field(..., description="Requested page size")
    total_elements: int = Field(..., description="Number of matching users across all pages")
    total_pages: int = Field(..., description="Number of pages at this size")

    @classmethod
    def from_page(cls, page: Page[User]) -> "UserPageResponse":
        return cls(
            items=[UserResponse.from_entity(user) for user in page.items],
            page=page.page,
            size=page.size,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
        )


class UserStatusUpdate(CamelModel):
    """Request body for switching a user's active flag."""

    active: bool = Field(..., description="True to activate, False to deactivate")


class UserLoginRecord(CamelModel):
    """Request body for recording a login; ``at`` defaults to now."""

    at: datetime | None = Field(None, description="Login time (ISO 8601), not in the future")


class BatchDeleteRequest(CamelModel):
    """Request schema for soft-deleting several users at once."""

    model_config = ConfigDict(json_schema_extra={"examples": [{"ids": [1, 2, 3]}]})

    ids: list[int] = Field(
        ...,
        min_length=1,
        max_length=PaginationDefaults.MAX_BATCH_SIZE,
        description="User ids to delete (1-100)",
    )


class BatchDeleteResponse(CamelModel):
    """Number of users actually deleted by a batch request."""

    deleted: int = Field(..., description="Users that were active and are now deleted")


class UserStatsResponse(CamelModel):
    """Aggregate user counts."""

    active_users: int = Field(..., description="Active users overall")
    created_in_range: int = Field(..., description="Active users created within [start, end]")
    start: UtcTimestamp
    end: UtcTimestamp

    @classmethod
    def from_stats(cls, stats: UserStats) -> "UserStatsResponse":
        return cls(
            active_users=stats.active_users,
            created_in_range=stats.created_in_range,
            start=stats.start,
            end=stats.end,
        )
