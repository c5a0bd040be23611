"""Base repository implementation for common entity operations.

This module provides a generic repository base class implementing standard
persistence operations with optimistic locking and flag-based soft delete,
eliminating boilerplate code across entity-specific repositories.
"""

from collections.abc import Sequence
from datetime import timedelta
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import Select, exists, func, inspect, select, text, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domain.exceptions import ConcurrencyConflictError, LockTimeoutError
from src.domain.interfaces import IRepository
from src.domain.models.base import BaseEntity, as_utc, utc_now
from src.domain.pagination import Page, PageRequest, SortDirection
from src.infrastructure.constants import LockDefaults
from src.infrastructure.logging.config import get_logger


if TYPE_CHECKING:
    from src.infrastructure.filtering.specifications import Specification
else:
    Specification = Any

logger = get_logger(__name__)

# Columns a caller may never overwrite through save()
_MANAGED_COLUMNS = frozenset({"id", "created_at", "updated_at", "version"})


T = TypeVar("T", bound=BaseEntity)


class BaseRepository(IRepository[T]):
    """Generic repository with optimistic locking and soft delete support.

    Implements the repository pattern with reusable database operations for
    any entity type. Read queries exclude soft-deleted records unless the
    method name says otherwise, and always repopulate identity-map instances
    so that bulk UPDATE statements issued earlier in the same session are
    visible.

    Type Parameters:
        T: Entity type extending BaseEntity

    Attributes:
        _session: SQLAlchemy async session for database operations
        _model: Entity model class for type-safe queries
        _lock_timeout_ms: Maximum wait for pessimistic row locks
    """

    def __init__(
        self,
        session: AsyncSession,
        model: type[T],
        lock_timeout_ms: int = LockDefaults.LOCK_TIMEOUT_MS,
    ) -> None:
        """Initialize repository with session and model type.

        Args:
            session: Active async database session
            model: SQLAlchemy model class for entity type
            lock_timeout_ms: Lock wait bound used by find_by_id_with_lock
        """
        self._session = session
        self._model = model
        self._lock_timeout_ms = lock_timeout_ms

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def _select(self) -> Select:  # type: ignore[type-arg]
        return select(self._model).execution_options(populate_existing=True)

    def _select_active(self) -> Select:  # type: ignore[type-arg]
        return self._select().where(self._model.is_active.is_(True))

    def _order_by(self, query: Select, page_request: PageRequest) -> Select:  # type: ignore[type-arg]
        clauses = []
        for sort in page_request.sort:
            column = getattr(self._model, sort.field)
            clauses.append(column.desc() if sort.direction is SortDirection.DESC else column.asc())
        # Tie-break on id so pages never overlap
        last = page_request.sort[-1].direction if page_request.sort else SortDirection.ASC
        clauses.append(self._model.id.desc() if last is SortDirection.DESC else self._model.id.asc())
        return query.order_by(*clauses)

    async def _first(self, query: Select) -> T | None:  # type: ignore[type-arg]
        result = await self._session.execute(query)
        return result.scalars().first()

    async def _page(self, query: Select, page_request: PageRequest) -> Page[T]:  # type: ignore[type-arg]
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = (await self._session.execute(count_query)).scalar_one()

        paged = self._order_by(query, page_request).offset(page_request.offset).limit(page_request.size)
        result = await self._session.execute(paged)
        return Page(
            items=list(result.scalars().all()),
            page=page_request.page,
            size=page_request.size,
            total_elements=total,
        )

    async def _exists(self, *criteria: Any) -> bool:
        result = await self._session.execute(select(exists().where(*criteria)))
        return bool(result.scalar())

    async def _bulk_update(self, *criteria: Any, **values: Any) -> int:
        statement = (
            update(self._model)
            .where(*criteria)
            .values({getattr(self._model, key): value for key, value in values.items()})
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(statement)
        return result.rowcount  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_active_by_id(self, id: int) -> T | None:
        """Retrieve an active entity by identifier.

        Args:
            id: Entity identifier

        Returns:
            Entity instance if found and active, None otherwise
        """
        return await self._first(self._select_active().where(self._model.id == id))

    async def find_by_id_including_deleted(self, id: int) -> T | None:
        """Retrieve an entity by identifier, ignoring the active flag."""
        return await self._first(self._select().where(self._model.id == id))

    async def find_by_id_with_lock(self, id: int) -> T | None:
        """Retrieve an active entity with ``SELECT ... FOR UPDATE``.

        On PostgreSQL the wait is bounded with ``SET LOCAL lock_timeout``, so
        it applies to the current transaction only. Other dialects lock
        without a bound (SQLite serializes writers anyway).

        Raises:
            LockTimeoutError: If the lock was not granted in time
        """
        dialect = self._session.get_bind().dialect.name
        try:
            if dialect == "postgresql":
                await self._session.execute(
                    text(f"SET LOCAL lock_timeout = '{int(self._lock_timeout_ms)}ms'")
                )
            return await self._first(
                self._select_active().where(self._model.id == id).with_for_update()
            )
        except DBAPIError as e:
            code = getattr(e.orig, "sqlstate", None) or getattr(e.orig, "pgcode", None)
            if code == LockDefaults.POSTGRES_LOCK_NOT_AVAILABLE or "lock timeout" in str(e).lower():
                logger.warning(
                    "row_lock_timeout",
                    entity=self._model.__name__,
                    entity_id=id,
                    timeout_ms=self._lock_timeout_ms,
                )
                raise LockTimeoutError(
                    f"Could not lock {self._model.__name__} {id} within {self._lock_timeout_ms} ms"
                ) from e
            raise

    async def list_active(self, page_request: PageRequest) -> Page[T]:
        """Retrieve one page of active entities with total-count metadata."""
        return await self._page(self._select_active(), page_request)

    async def list_active_all(self) -> list[T]:
        """Retrieve every active entity, newest first (unbounded)."""
        query = self._select_active().order_by(self._model.created_at.desc(), self._model.id.desc())
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def count_active(self) -> int:
        """Count active entities."""
        result = await self._session.execute(
            select(func.count()).select_from(self._model).where(self._model.is_active.is_(True))
        )
        return result.scalar_one()

    async def find(self, specification: "Specification", page_request: PageRequest) -> Page[T]:
        """Find entities matching a specification, one page at a time.

        The specification is applied as given; callers that must hide
        soft-deleted rows include an active-only predicate (FilterSet does
        this by default).

        Args:
            specification: Combined predicate
            page_request: Page index, size and sort order

        Returns:
            Page of matching entities
        """
        query = specification.apply(self._select(), self._model)
        return await self._page(query, page_request)

    async def count(self, specification: "Specification") -> int:
        """Count entities matching a specification."""
        query = specification.apply(select(func.count()).select_from(self._model), self._model)
        result = await self._session.execute(query)
        return result.scalar_one()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save(self, entity: T) -> T:
        """Insert a new entity or write an existing one with a version check.

        Inserts set ``created_at == updated_at`` and ``version = 0``.
        Updates run a single ``UPDATE ... WHERE id = :id AND version = :v``
        that also increments the version and moves ``updated_at`` strictly
        forward; the instance is then refreshed from the database.

        Args:
            entity: Entity to persist

        Returns:
            The persisted entity

        Raises:
            ConcurrencyConflictError: If no row matched the expected version
        """
        if entity.is_new:
            return await self._insert(entity)
        return await self._update_versioned(entity)

    async def _insert(self, entity: T) -> T:
        now = utc_now()
        entity.created_at = now
        entity.updated_at = now
        entity.version = 0
        if entity.is_active is None:
            entity.is_active = True

        self._session.add(entity)
        # Ensure DB state is synchronized so generated fields are available
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def _update_versioned(self, entity: T) -> T:
        expected_version = entity.version
        now = utc_now()
        previous = as_utc(entity.updated_at) if entity.updated_at else None
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)

        values: dict[Any, Any] = {
            getattr(self._model, attr.key): getattr(entity, attr.key)
            for attr in inspect(self._model).column_attrs
            if attr.key not in _MANAGED_COLUMNS
        }
        values[self._model.version] = self._model.version + 1
        values[self._model.updated_at] = now
        statement = (
            update(self._model)
            .where(self._model.id == entity.id, self._model.version == expected_version)
            .values(values)
            .execution_options(synchronize_session=False)
        )

        with self._session.no_autoflush:
            result = await self._session.execute(statement)

        if result.rowcount == 0:  # type: ignore[attr-defined]
            logger.warning(
                "optimistic_lock_conflict",
                entity=self._model.__name__,
                entity_id=entity.id,
                expected_version=expected_version,
            )
            raise ConcurrencyConflictError(
                f"{self._model.__name__} with ID {entity.id} was modified by another transaction",
                details={"id": entity.id, "expected_version": expected_version},
            )

        # Reload persisted state and discard the in-memory modifications
        await self._session.refresh(entity)
        return entity

    async def soft_delete_by_id(self, id: int) -> int:
        """Clear the active flag of one active entity.

        Returns:
            1 if the entity was active and is now deleted, 0 otherwise
        """
        return await self.soft_delete_by_ids([id])

    async def soft_delete_by_ids(self, ids: Sequence[int]) -> int:
        """Clear the active flag of every active entity in ``ids``.

        The version is not incremented; ``updated_at`` is refreshed.

        Returns:
            Number of rows changed
        """
        if not ids:
            return 0
        return await self._bulk_update(
            self._model.id.in_(list(ids)),
            self._model.is_active.is_(True),
            is_active=False,
            updated_at=utc_now(),
        )

    async def restore_by_id(self, id: int) -> int:
        """Set the active flag of one soft-deleted entity.

        Returns:
            1 if the entity was deleted and is now active, 0 otherwise
        """
        return await self._bulk_update(
            self._model.id == id,
            self._model.is_active.is_(False),
            is_active=True,
            updated_at=utc_now(),
        )

    async def update_active_status(self, id: int, active: bool) -> int:
        """Set the active flag directly, bypassing the version check.

        Returns:
            Number of rows matched (0 when the id does not exist)
        """
        return await self._bulk_update(self._model.id == id, is_active=active, updated_at=utc_now())
