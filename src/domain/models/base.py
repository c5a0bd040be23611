"""Base entity classes for domain models with soft delete support.

This module defines the foundational entity classes used across all domain models,
providing common fields (ID, timestamps, version) and flag-based soft delete
functionality.
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdentityType = BigInteger().with_variant(Integer(), "sqlite")


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize to aware UTC; naive values are taken to be UTC already.

    SQLite drops tzinfo on round-trip, so values read back from it are naive.
    """
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy ORM models."""


class BaseEntity(Base):
    """Base entity with identity keys, audit timestamps, version and soft delete.

    All domain entities inherit from this class, gaining:
    - Auto-incremented integer primary keys assigned by the database
    - Audit timestamps (created_at, updated_at) set by the repository on save
    - An optimistic-lock ``version`` counter, starting at 0
    - Soft delete support through the ``is_active`` flag

    Note:
        The version counter is maintained by the repository with an explicit
        compare-and-swap UPDATE, not by SQLAlchemy's ``version_id_col``, so
        that bulk status updates can bypass it.
    """

    __abstract__ = True

    id: Mapped[int] = mapped_column(
        IdentityType,
        primary_key=True,
        autoincrement=True,
        comment="Primary key assigned by the database",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
        comment="Soft delete flag (False when the row is deleted)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="Timestamp of entity creation",
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="Timestamp of last modification",
    )
    version: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="Optimistic lock counter, incremented on every update",
    )

    @property
    def is_deleted(self) -> bool:
        """Check whether entity is soft-deleted.

        Returns:
            True if entity has been soft-deleted, False otherwise
        """
        return not self.is_active

    @property
    def is_new(self) -> bool:
        """True until the entity has been persisted and assigned an id."""
        return self.id is None

    def soft_delete(self) -> None:
        """Mark entity as deleted by clearing the active flag."""
        self.is_active = False

    def restore(self) -> None:
        """Restore soft-deleted entity by setting the active flag.

        Makes the entity visible in normal queries again.
        """
        self.is_active = True

    def __repr__(self) -> str:
        """Generate string representation showing entity type, ID, and deletion status."""
        status = "deleted" if self.is_deleted else "active"
        return f"<{self.__class__.__name__}(id={self.id}, status={status})>"
