"""User use cases implementing business logic.

Every use case runs inside exactly one Unit of Work: mutations commit or roll
back as a whole, reads run in a read-only unit that never commits.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import NoReturn

from sqlalchemy.exc import IntegrityError

from src.app.mappers.user_mapper import NewUser, UserChanges, apply_changes, to_entity
from src.domain.exceptions import AlreadyExistsError, EntityNotFoundError, ValidationError
from src.domain.interfaces import IPasswordHasher, IUserRepository
from src.domain.models.base import as_utc, utc_now
from src.domain.models.user import User
from src.domain.pagination import Page, PageRequest
from src.infrastructure.constants import PaginationDefaults
from src.infrastructure.filtering.user_filterset import UserFilterSet
from src.infrastructure.logging.config import get_logger
from src.infrastructure.persistence.unit_of_work import IUnitOfWork


logger = get_logger(__name__)

UnitOfWorkFactory = Callable[..., IUnitOfWork]

ENTITY = "User"


# ============================================================================
# Shared rules
# ============================================================================


async def ensure_email_available(users: IUserRepository[User], email: str) -> None:
    """Raise AlreadyExistsError if an active user holds the email."""
    if await users.exists_active_by_email(email):
        raise AlreadyExistsError(ENTITY, "email", email)


async def ensure_username_available(users: IUserRepository[User], username: str) -> None:
    """Raise AlreadyExistsError if an active user holds the username."""
    if await users.exists_active_by_username(username):
        raise AlreadyExistsError(ENTITY, "username", username)


# Storage constraint -> public field. Constraint names come first; the
# ``table.column`` form is what SQLite reports instead.
_UNIQUE_FIELDS = (
    ("uq_users_email", "email"),
    ("uq_users_username", "username"),
    ("users.email", "email"),
    ("users.username", "username"),
)


def _violated_field(error: IntegrityError) -> str | None:
    """Field whose unique constraint was violated, or None if unknown.

    asyncpg exposes the constraint name on the driver exception chained to
    ``error.orig``. Otherwise only the constraint identity in the message is
    matched, never the offending value, which may contain any text.
    """
    cause = getattr(error.orig, "__cause__", None)
    constraint = getattr(cause, "constraint_name", None)
    message = str(error.orig if error.orig is not None else error)
    for marker, field in _UNIQUE_FIELDS:
        if constraint == marker:
            return field
    if constraint is not None:
        return None
    for marker, field in _UNIQUE_FIELDS:
        if f'"{marker}"' in message or message.endswith(marker):
            return field
    return None


def raise_already_exists(error: IntegrityError, email: str | None, username: str | None) -> NoReturn:
    """Translate a unique-constraint violation into AlreadyExistsError.

    The storage constraint is authoritative; this covers the race where two
    requests pass the existence pre-check at the same time, and emails or
    usernames still held by soft-deleted users.

    Raises:
        AlreadyExistsError: Naming the violated field
        IntegrityError: The original error, when it is not a user uniqueness violation
    """
    field = _violated_field(error)
    if field == "email":
        raise AlreadyExistsError(ENTITY, "email", email) from error
    if field == "username":
        raise AlreadyExistsError(ENTITY, "username", username) from error
    raise error


async def _require_active(users: IUserRepository[User], user_id: int) -> User:
    user = await users.find_active_by_id(user_id)
    if user is None:
        raise EntityNotFoundError.for_id(ENTITY, user_id)
    return user


# ============================================================================
# Create
# ============================================================================


class CreateUserUseCase:
    """Use case for creating a new user."""

    def __init__(self, uow_factory: UnitOfWorkFactory, password_hasher: IPasswordHasher) -> None:
        self._uow_factory = uow_factory
        self._hasher = password_hasher

    async def execute(self, new_user: NewUser) -> User:
        """Execute the use case.

        Args:
            new_user: Validated create record

        Returns:
            The created user entity (active, version 0)

        Raises:
            AlreadyExistsError: If an active user has the email, or else the username
        """
        try:
            async with self._uow_factory() as uow:
                await ensure_email_available(uow.users, new_user.email)
                await ensure_username_available(uow.users, new_user.username)

                user = to_entity(new_user, self._hasher.hash(new_user.password))
                created = await uow.users.save(user)
        except IntegrityError as e:
            raise_already_exists(e, new_user.email, new_user.username)

        logger.info("user_created", user_id=created.id, username=created.username)
        return created


# ============================================================================
# Reads
# ============================================================================


class GetUserUseCase:
    """Use case for getting an active user by ID."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, user_id: int) -> User:
        """Execute the use case.

        Args:
            user_id: The ID of the user to retrieve

        Returns:
            The user entity

        Raises:
            EntityNotFoundError: If no active user has the ID
        """
        async with self._uow_factory(read_only=True) as uow:
            return await _require_active(uow.users, user_id)


class GetUserByEmailUseCase:
    """Use case for getting an active user by exact email."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, email: str) -> User:
        async with self._uow_factory(read_only=True) as uow:
            user = await uow.users.find_active_by_email(email)
        if user is None:
            raise EntityNotFoundError.for_field(ENTITY, "email", email)
        return user


class GetUserByUsernameUseCase:
    """Use case for getting an active user by exact username."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, username: str) -> User:
        async with self._uow_factory(read_only=True) as uow:
            user = await uow.users.find_active_by_username(username)
        if user is None:
            raise EntityNotFoundError.for_field(ENTITY, "username", username)
        return user


class LookupUserUseCase:
    """Use case for resolving a login identifier that is either an email or a username."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, identifier: str) -> User:
        async with self._uow_factory(read_only=True) as uow:
            user = await uow.users.find_active_by_email_or_username(identifier)
        if user is None:
            raise EntityNotFoundError.for_field(ENTITY, "email or username", identifier)
        return user


class ListUsersUseCase:
    """Use case for listing active users one page at a time."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, page_request: PageRequest) -> Page[User]:
        """Execute the use case.

        Args:
            page_request: Page index, size and sort order

        Returns:
            Page of active users with total-count metadata
        """
        async with self._uow_factory(read_only=True) as uow:
            return await uow.users.list_active(page_request)


class ListAllUsersUseCase:
    """Use case for listing every active user without paging.

    Unbounded; kept for small deployments and exports.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self) -> list[User]:
        async with self._uow_factory(read_only=True) as uow:
            return await uow.users.list_active_all()


class ListRecentlyActiveUsersUseCase:
    """Use case for listing active users who logged in since a given time."""

    DEFAULT_WINDOW = timedelta(days=30)

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, page_request: PageRequest, since: datetime | None = None) -> Page[User]:
        """Page through users whose last login is at or after ``since`` (default: 30 days ago)."""
        since = as_utc(since) if since else utc_now() - self.DEFAULT_WINDOW
        async with self._uow_factory(read_only=True) as uow:
            return await uow.users.find_recently_active(since, page_request)


class SearchUsersUseCase:
    """Use case for searching active users with a UserFilterSet."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, filterset: UserFilterSet, page_request: PageRequest) -> Page[User]:
        """Search users matching the filters.

        Args:
            filterset: Filter criteria (soft-deleted users are always excluded)
            page_request: Page index, size and sort order

        Returns:
            Page of matching users with total-count metadata
        """
        async with self._uow_factory(read_only=True) as uow:
            return await uow.users.find(filterset.to_specification(), page_request)


class CheckEmailExistsUseCase:
    """Use case answering whether an active user holds an email."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, email: str) -> bool:
        if not email or not email.strip():
            return False
        async with self._uow_factory(read_only=True) as uow:
            return await uow.users.exists_active_by_email(email)


class CheckUsernameExistsUseCase:
    """Use case answering whether an active user holds a username."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, username: str) -> bool:
        if not username or not username.strip():
            return False
        async with self._uow_factory(read_only=True) as uow:
            return await uow.users.exists_active_by_username(username)


class GetUserIncludingDeletedUseCase:
    """Administrative lookup that also sees soft-deleted users."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, user_id: int) -> User:
        async with self._uow_factory(read_only=True) as uow:
            user = await uow.users.find_by_id_including_deleted(user_id)
        if user is None:
            raise EntityNotFoundError.for_id(ENTITY, user_id)
        return user

    async def execute_by_email(self, email: str) -> User:
        async with self._uow_factory(read_only=True) as uow:
            user = await uow.users.find_by_email_including_deleted(email)
        if user is None:
            raise EntityNotFoundError.for_field(ENTITY, "email", email)
        return user


@dataclass(frozen=True)
class UserStats:
    """Aggregate user counts.

    Attributes:
        active_users: Number of active users
        created_in_range: Active users created within [start, end]
        start: Range start
        end: Range end
    """

    active_users: int
    created_in_range: int
    start: datetime
    end: datetime


class GetUserStatsUseCase:
    """Use case for counting active users, overall and created within a range."""

    DEFAULT_WINDOW = timedelta(days=30)

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, start: datetime | None = None, end: datetime | None = None) -> UserStats:
        """Execute the use case.

        Args:
            start: Range start (defaults to 30 days before ``end``)
            end: Range end (defaults to now)

        Returns:
            Aggregate counts

        Raises:
            ValidationError: If start is after end
        """
        end = as_utc(end) if end else utc_now()
        start = as_utc(start) if start else end - self.DEFAULT_WINDOW
        if start > end:
            raise ValidationError.for_field("start", "Start date must not be after end date")

        async with self._uow_factory(read_only=True) as uow:
            active = await uow.users.count_active()
            created = await uow.users.count_active_created_between(start, end)
        return UserStats(active_users=active, created_in_range=created, start=start, end=end)


# ============================================================================
# Mutations
# ============================================================================


class UpdateUserUseCase:
    """Use case for partially updating an existing user."""

    def __init__(self, uow_factory: UnitOfWorkFactory, password_hasher: IPasswordHasher) -> None:
        self._uow_factory = uow_factory
        self._hasher = password_hasher

    async def execute(self, user_id: int, changes: UserChanges, lock: bool = False) -> User:
        """Execute the use case.

        Only provided fields change. Email and username are re-checked for
        uniqueness only when they differ from the stored value (email first).
        A non-empty password is hashed; otherwise the stored hash is kept.

        Args:
            user_id: ID of the user to update
            changes: Partial update
            lock: Load the row with a pessimistic lock before merging

        Returns:
            The updated user entity (version incremented)

        Raises:
            EntityNotFoundError: If no active user has the ID
            AlreadyExistsError: If a new email or username is held by another active user
            ConcurrencyConflictError: If the user changed since it was read
            LockTimeoutError: If ``lock`` is set and the lock was not granted in time
        """
        try:
            async with self._uow_factory() as uow:
                if lock:
                    user = await uow.users.find_by_id_with_lock(user_id)
                    if user is None:
                        raise EntityNotFoundError.for_id(ENTITY, user_id)
                else:
                    user = await _require_active(uow.users, user_id)

                if changes.email and changes.email != user.email:
                    await ensure_email_available(uow.users, changes.email)
                if changes.username and changes.username != user.username:
                    await ensure_username_available(uow.users, changes.username)

                password_hash = self._hasher.hash(changes.password) if changes.password else None
                apply_changes(user, changes, password_hash)
                updated = await uow.users.save(user)
        except IntegrityError as e:
            raise_already_exists(e, changes.email, changes.username)

        logger.info("user_updated", user_id=updated.id, version=updated.version)
        return updated


class DeleteUserUseCase:
    """Use case for soft deleting a user.

    This clears the active flag. The user is excluded from normal queries but
    can be restored later.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, user_id: int) -> None:
        """Execute the soft delete use case.

        Args:
            user_id: ID of the user to soft delete

        Raises:
            EntityNotFoundError: If user is not found or already deleted
        """
        async with self._uow_factory() as uow:
            await _require_active(uow.users, user_id)
            if await uow.users.soft_delete_by_id(user_id) == 0:
                raise EntityNotFoundError.for_id(ENTITY, user_id)

        logger.info("user_deleted", user_id=user_id)


class DeleteUsersUseCase:
    """Use case for soft deleting several users in one transaction."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, user_ids: Sequence[int]) -> int:
        """Execute the batch soft delete.

        Missing and already-deleted ids are skipped.

        Args:
            user_ids: IDs to delete (1 to MAX_BATCH_SIZE, duplicates ignored)

        Returns:
            Number of users that were deleted

        Raises:
            ValidationError: If the id list is empty or too long
        """
        unique_ids = list(dict.fromkeys(user_ids))
        if not unique_ids:
            raise ValidationError.for_field("ids", "At least one id is required")
        if len(unique_ids) > PaginationDefaults.MAX_BATCH_SIZE:
            raise ValidationError.for_field(
                "ids", f"Cannot delete more than {PaginationDefaults.MAX_BATCH_SIZE} users at once"
            )

        async with self._uow_factory() as uow:
            deleted = await uow.users.soft_delete_by_ids(unique_ids)

        logger.info("users_deleted", requested=len(unique_ids), deleted=deleted)
        return deleted


class RestoreUserUseCase:
    """Use case for restoring a soft-deleted user.

    This sets the active flag again, making the user available in normal
    queries. The version is not changed.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, user_id: int) -> User:
        """Execute the restore use case.

        Args:
            user_id: ID of the user to restore

        Returns:
            The restored user entity

        Raises:
            EntityNotFoundError: If no user has the ID
            ValidationError: If the user is not deleted
            AlreadyExistsError: If another active user now holds the email or username
        """
        async with self._uow_factory() as uow:
            user = await uow.users.find_by_id_including_deleted(user_id)
            if user is None:
                raise EntityNotFoundError.for_id(ENTITY, user_id)
            if user.is_active:
                raise ValidationError.for_field("id", f"User with ID {user_id} is not deleted")

            await ensure_email_available(uow.users, user.email)
            await ensure_username_available(uow.users, user.username)

            if await uow.users.restore_by_id(user_id) == 0:
                raise EntityNotFoundError.for_id(ENTITY, user_id)
            restored = await _require_active(uow.users, user_id)

        logger.info("user_restored", user_id=user_id)
        return restored


class SetUserActiveStatusUseCase:
    """Administrative status switch that bypasses the version check."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, user_id: int, active: bool) -> User:
        """Set the active flag of a user directly.

        Raises:
            EntityNotFoundError: If no user has the ID
            AlreadyExistsError: If activating would duplicate an active email or username
        """
        async with self._uow_factory() as uow:
            user = await uow.users.find_by_id_including_deleted(user_id)
            if user is None:
                raise EntityNotFoundError.for_id(ENTITY, user_id)
            if active and not user.is_active:
                await ensure_email_available(uow.users, user.email)
                await ensure_username_available(uow.users, user.username)

            await uow.users.update_active_status(user_id, active)
            updated = await uow.users.find_by_id_including_deleted(user_id)

        logger.info("user_status_changed", user_id=user_id, active=active)
        return updated  # type: ignore[return-value]


class RecordUserLoginUseCase:
    """Use case for recording a successful login time."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, user_id: int, at: datetime | None = None) -> User:
        """Set ``last_login_at`` without touching the version.

        Args:
            user_id: ID of the user who logged in
            at: Login time (defaults to now)

        Raises:
            EntityNotFoundError: If no active user has the ID
            ValidationError: If ``at`` is in the future
        """
        async with self._uow_factory() as uow:
            await _require_active(uow.users, user_id)
            await uow.users.update_last_login_at(user_id, at or utc_now())
            user = await _require_active(uow.users, user_id)

        logger.info("user_login_recorded", user_id=user_id)
        return user
