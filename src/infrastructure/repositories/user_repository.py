"""User repository for database operations.

This module implements user-specific database queries: lookups by the unique
user fields, existence checks and login bookkeeping.
"""

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.exceptions import ValidationError
from src.domain.interfaces import IUserRepository
from src.domain.models.base import as_utc
from src.domain.models.user import User
from src.domain.pagination import Page, PageRequest
from src.infrastructure.constants import LockDefaults
from src.infrastructure.filtering.specifications import Specification, UserSpecifications
from src.infrastructure.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User], IUserRepository[User]):
    """User-specific repository implementing IUserRepository interface.

    Email and username comparisons are exact (case-sensitive). Generic
    persistence (save, soft delete, paging, specification search) is
    inherited from BaseRepository.
    """

    def __init__(
        self,
        session: AsyncSession,
        lock_timeout_ms: int = LockDefaults.LOCK_TIMEOUT_MS,
    ) -> None:
        """Initialize user repository with database session.

        Args:
            session: Active async SQLAlchemy session
            lock_timeout_ms: Lock wait bound for find_by_id_with_lock
        """
        super().__init__(session, User, lock_timeout_ms)

    async def find_active_by_email(self, email: str) -> User | None:
        """Retrieve user by email address (excludes soft-deleted users).

        Args:
            email: User's email address

        Returns:
            User instance if found and active, None otherwise
        """
        return await self._first(self._select_active().where(User.email == email))

    async def find_active_by_username(self, username: str) -> User | None:
        """Get user by username (excludes soft-deleted users).

        Args:
            username: Username

        Returns:
            User if found and active, None otherwise
        """
        return await self._first(self._select_active().where(User.username == username))

    async def find_active_by_email_or_username(self, identifier: str) -> User | None:
        """Get the active user whose email or username equals ``identifier``."""
        if not identifier.strip():
            return None
        spec = UserSpecifications.is_active_only() & UserSpecifications.has_email_or_username(
            identifier
        )
        return await self._first(spec.apply(self._select(), User))

    async def find_by_email_including_deleted(self, email: str) -> User | None:
        """Get user by email regardless of the active flag (admin/audit)."""
        return await self._first(self._select().where(User.email == email))

    async def exists_active_by_email(self, email: str) -> bool:
        return await self._exists(User.email == email, User.is_active.is_(True))

    async def exists_active_by_username(self, username: str) -> bool:
        return await self._exists(User.username == username, User.is_active.is_(True))

    async def update_last_login_at(self, id: int, timestamp: datetime) -> int:
        """Record a login time without touching the version.

        Args:
            id: User identifier
            timestamp: Login time; must not be in the future

        Returns:
            Number of rows matched

        Raises:
            ValidationError: If the timestamp is in the future
        """
        timestamp = as_utc(timestamp)
        if timestamp > datetime.now(UTC):
            raise ValidationError.for_field("lastLoginAt", "Last login date cannot be in the future")
        return await self._bulk_update(User.id == id, last_login_at=timestamp)

    async def count_active_created_between(self, start: datetime, end: datetime) -> int:
        """Count active users created in [start, end]."""
        return await self.count(
            UserSpecifications.is_active_only() & UserSpecifications.created_between(start, end)
        )

    async def find_recently_active(self, since: datetime, page_request: PageRequest) -> Page[User]:
        """Page through active users whose last login is at or after ``since``."""
        spec = Specification.all_of(
            UserSpecifications.is_active_only(),
            UserSpecifications.has_logged_in(),
            UserSpecifications.last_login_after(since),
        )
        return await self.find(spec, page_request)
