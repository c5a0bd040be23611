"""Repository and service interfaces defining data access contracts.

This module defines abstract interfaces for repositories and the password
hasher, establishing the contract between the domain and infrastructure
layers. These interfaces enable dependency inversion and facilitate testing
with mock implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from src.domain.pagination import Page, PageRequest


if TYPE_CHECKING:
    from src.infrastructure.filtering.specifications import Specification
else:
    Specification = Any

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base repository interface for entity persistence with soft delete support.

    Defines the standard data access contract for all repositories. Implementations
    handle data persistence while the domain layer remains infrastructure-agnostic.
    Every ``*_active_*`` method ignores soft-deleted rows.

    Type Parameters:
        T: Entity type managed by this repository
    """

    @abstractmethod
    async def find_active_by_id(self, id: int) -> T | None:
        """Retrieve an active entity by its identifier.

        Args:
            id: Entity's identifier

        Returns:
            Entity instance if found and active, None otherwise
        """

    @abstractmethod
    async def find_by_id_including_deleted(self, id: int) -> T | None:
        """Retrieve an entity by identifier regardless of its active flag."""

    @abstractmethod
    async def find_by_id_with_lock(self, id: int) -> T | None:
        """Retrieve an active entity and hold a row lock until the transaction ends.

        Args:
            id: Entity's identifier

        Returns:
            Locked entity instance, or None when no active row exists

        Raises:
            LockTimeoutError: If the lock could not be acquired within the timeout
        """

    @abstractmethod
    async def list_active(self, page_request: PageRequest) -> Page[T]:
        """Retrieve one page of active entities.

        Args:
            page_request: Page index, size and sort order

        Returns:
            Page of entities with total-count metadata
        """

    @abstractmethod
    async def list_active_all(self) -> list[T]:
        """Retrieve every active entity, newest first.

        Note:
            Unbounded. Intended for small tables and administrative exports.
        """

    @abstractmethod
    async def save(self, entity: T) -> T:
        """Insert a new entity or update an existing one.

        New entities get their audit timestamps set and ``version`` 0.
        Existing entities are written with a compare-and-swap on ``version``.

        Args:
            entity: Entity instance to persist

        Returns:
            The persisted entity with generated fields populated

        Raises:
            ConcurrencyConflictError: If the stored version no longer matches
            sqlalchemy.exc.IntegrityError: If a unique constraint is violated
        """

    @abstractmethod
    async def soft_delete_by_id(self, id: int) -> int:
        """Clear the active flag of one active entity.

        Returns:
            Number of rows changed (0 or 1)
        """

    @abstractmethod
    async def soft_delete_by_ids(self, ids: Sequence[int]) -> int:
        """Clear the active flag of several entities.

        Returns:
            Number of rows changed; already-deleted or missing ids are skipped
        """

    @abstractmethod
    async def restore_by_id(self, id: int) -> int:
        """Set the active flag of one soft-deleted entity.

        Returns:
            Number of rows changed (0 or 1)
        """

    @abstractmethod
    async def update_active_status(self, id: int, active: bool) -> int:
        """Set the active flag directly, without the version check.

        Returns:
            Number of rows matched
        """

    @abstractmethod
    async def count_active(self) -> int:
        """Count active entities."""

    @abstractmethod
    async def find(self, specification: "Specification", page_request: PageRequest) -> Page[T]:
        """Find entities matching a composed specification, one page at a time.

        Args:
            specification: Combined predicate built from Specification objects
            page_request: Page index, size and sort order

        Returns:
            Page of matching entities

        Example:
            ```python
            spec = UserSpecifications.is_active_only() & UserSpecifications.has_username_containing("ali")
            page = await repository.find(spec, PageRequest(page=0, size=20))
            ```
        """

    @abstractmethod
    async def count(self, specification: "Specification") -> int:
        """Count entities matching a specification without pagination.

        Works with the same Specification as find() for consistent filtering.
        """


class IUserRepository(IRepository[T]):
    """User-specific repository interface extending base repository operations.

    Adds lookups by the unique user fields and login bookkeeping.
    """

    @abstractmethod
    async def find_active_by_email(self, email: str) -> T | None:
        """Retrieve an active user by exact email address.

        Args:
            email: User's email address (case-sensitive)

        Returns:
            User instance if found, None otherwise
        """

    @abstractmethod
    async def find_active_by_username(self, username: str) -> T | None:
        """Retrieve an active user by exact username."""

    @abstractmethod
    async def find_active_by_email_or_username(self, identifier: str) -> T | None:
        """Retrieve an active user whose email or username equals the identifier."""

    @abstractmethod
    async def find_by_email_including_deleted(self, email: str) -> T | None:
        """Retrieve a user by email regardless of its active flag."""

    @abstractmethod
    async def exists_active_by_email(self, email: str) -> bool:
        """Check whether an active user holds the email, without loading it."""

    @abstractmethod
    async def exists_active_by_username(self, username: str) -> bool:
        """Check whether an active user holds the username, without loading it."""

    @abstractmethod
    async def update_last_login_at(self, id: int, timestamp: datetime) -> int:
        """Record a login time directly, without the version check.

        Raises:
            ValidationError: If the timestamp is in the future
        """

    @abstractmethod
    async def count_active_created_between(self, start: datetime, end: datetime) -> int:
        """Count active users created in the inclusive range [start, end]."""

    @abstractmethod
    async def find_recently_active(self, since: datetime, page_request: PageRequest) -> Page[T]:
        """Retrieve active users whose last login is at or after ``since``."""


class IPasswordHasher(ABC):
    """One-way password transform.

    Implementations produce salted digests: hashing the same input twice
    yields different outputs, and no operation recovers the input.
    """

    @abstractmethod
    def hash(self, raw_password: str) -> str:
        """Return a salted digest of the raw password."""

    @abstractmethod
    def verify(self, raw_password: str, password_hash: str) -> bool:
        """Check a raw password against a stored digest.

        Returns:
            True on match, False otherwise (never raises on mismatch)
        """
