"""User domain model.

This module defines the User entity: unique email and username, a stored
password hash, optional names and the last login timestamp.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from src.domain.exceptions import ValidationError
from src.domain.models.base import BaseEntity, as_utc
from src.infrastructure.constants import ValidationLimits


class User(BaseEntity):
    """User entity representing a system account.

    Attributes:
        id: Integer primary key assigned by the database
        email: Unique email address (matched exactly, case-sensitive)
        username: Unique username, 3-50 characters
        password_hash: Salted one-way hash of the password (never serialized)
        first_name: Optional given name
        last_name: Optional family name
        last_login_at: Timestamp of the most recent login, never in the future
        is_active: Soft delete flag
        created_at: Entity creation timestamp
        updated_at: Last modification timestamp
        version: Optimistic lock counter

    Constraints:
        - uq_users_email / uq_users_username enforce uniqueness at storage level
        - is_active is indexed for the active-only filter applied to almost every query
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(ValidationLimits.MAX_EMAIL_LENGTH),
        nullable=False,
        comment="User email address",
    )
    username: Mapped[str] = mapped_column(
        String(ValidationLimits.MAX_USERNAME_LENGTH),
        nullable=False,
        comment="Unique username identifier",
    )
    password_hash: Mapped[str] = mapped_column(
        "password",
        String(ValidationLimits.MAX_PASSWORD_HASH_LENGTH),
        nullable=False,
        comment="Salted password hash",
    )
    first_name: Mapped[str | None] = mapped_column(
        String(ValidationLimits.MAX_NAME_LENGTH),
        nullable=True,
        comment="User's first name (optional)",
    )
    last_name: Mapped[str | None] = mapped_column(
        String(ValidationLimits.MAX_NAME_LENGTH),
        nullable=True,
        comment="User's last name (optional)",
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp of the most recent login",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
    )

    @validates("last_login_at")
    def validate_last_login_at(self, _key: str, value: datetime | None) -> datetime | None:
        """Reject login timestamps in the future.

        Args:
            _key: Field name being validated (last_login_at)
            value: Timestamp to assign

        Returns:
            The unchanged timestamp

        Raises:
            ValidationError: If the timestamp is after the current time
        """
        if value is None:
            return value
        if as_utc(value) > datetime.now(UTC):
            raise ValidationError.for_field("lastLoginAt", "Last login date cannot be in the future")
        return value

    def __repr__(self) -> str:
        """Generate string representation showing user identification details."""
        return f"<User(id={self.id}, username={self.username}, email={self.email})>"
