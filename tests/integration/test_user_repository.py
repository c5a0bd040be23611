"""Integration tests for UserRepository on an in-memory SQLite database.

Test Organization:
- TestSave: Insert and versioned update
- TestOptimisticLocking: Stale writes are rejected
- TestSoftDelete: Flag-based delete, restore and status bulk updates
- TestLookups: Exact lookups by unique fields
- TestPaging: Offset paging and client sort order
- TestSpecificationQueries: find/count with specifications
- TestLoginBookkeeping: last login updates and recency queries
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.domain.exceptions import ConcurrencyConflictError, ValidationError
from src.domain.models.base import as_utc, utc_now
from src.domain.models.user import User
from src.domain.pagination import PageRequest, Sort, SortDirection
from src.infrastructure.filtering.specifications import UserSpecifications
from src.infrastructure.repositories.user_repository import UserRepository
from tests.factories import persist, user_factory


async def set_created_at(session: AsyncSession, user: User, moment: datetime) -> None:
    """Backdate a persisted user (save() always stamps the current time)."""
    await session.execute(update(User).where(User.id == user.id).values(created_at=moment))
    await session.commit()


# ============================================================================
# Save
# ============================================================================


class TestSave:
    """Test insert and update through save()."""

    async def test_insert_assigns_id_and_initial_state(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test a new user gets an id, version 0 and equal timestamps.

        Arrange: Transient user
        Act: Save and commit
        Assert: Store-managed fields are initialized
        """
        # Arrange
        user = user_factory(version=7, is_active=True)

        # Act
        saved = await user_repository.save(user)
        await db_session.commit()

        # Assert
        assert saved.id is not None
        assert saved.version == 0
        assert saved.is_active is True
        assert saved.created_at == saved.updated_at

    async def test_ids_are_unique_and_increasing(self, db_session: AsyncSession) -> None:
        first, second = await persist(db_session, user_factory(), user_factory())

        assert second.id > first.id

    async def test_update_increments_version_and_moves_updated_at(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test each save bumps the version and strictly advances updated_at."""
        # Arrange
        (user,) = await persist(db_session, user_factory())
        created_at = as_utc(user.created_at)
        previous = as_utc(user.updated_at)

        # Act & Assert
        for expected_version in (1, 2, 3):
            user.first_name = f"Name{expected_version}"
            user = await user_repository.save(user)
            await db_session.commit()

            assert user.version == expected_version
            assert as_utc(user.updated_at) > previous
            assert as_utc(user.created_at) == created_at
            previous = as_utc(user.updated_at)

    async def test_update_cannot_overwrite_managed_columns(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test created_at supplied by a caller is ignored on update."""
        # Arrange
        (user,) = await persist(db_session, user_factory())
        original = as_utc(user.created_at)

        # Act
        user.created_at = datetime(2000, 1, 1, tzinfo=UTC)
        user = await user_repository.save(user)
        await db_session.commit()

        # Assert
        assert as_utc(user.created_at) == original


# ============================================================================
# Optimistic Locking
# ============================================================================


class TestOptimisticLocking:
    """Test version-checked writes."""

    async def test_concurrent_update_is_rejected(
        self, db_session: AsyncSession, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test the second of two writers holding version N fails.

        Arrange: Two sessions load the same user at version 0
        Act: First writer saves and commits, then the second saves
        Assert: Second write raises ConcurrencyConflictError; row keeps the first write
        """
        # Arrange
        (user,) = await persist(db_session, user_factory())
        async with session_factory() as first, session_factory() as second:
            mine = await UserRepository(first).find_active_by_id(user.id)
            theirs = await UserRepository(second).find_active_by_id(user.id)

            # Act
            mine.first_name = "First"
            await UserRepository(first).save(mine)
            await first.commit()

            theirs.first_name = "Second"
            with pytest.raises(ConcurrencyConflictError):
                await UserRepository(second).save(theirs)
            await second.rollback()

        # Assert
        async with session_factory() as check:
            stored = await UserRepository(check).find_active_by_id(user.id)
        assert stored.first_name == "First"
        assert stored.version == 1

    async def test_stale_version_is_rejected(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test saving with an outdated version changes nothing."""
        # Arrange
        (user,) = await persist(db_session, user_factory())
        user.version = 5
        user.first_name = "Stale"

        # Act
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await user_repository.save(user)

        # Assert
        assert exc_info.value.details == {"id": user.id, "expected_version": 5}


# ============================================================================
# Soft Delete
# ============================================================================


class TestSoftDelete:
    """Test flag-based delete and its bulk variants."""

    async def test_soft_delete_hides_user(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test a deleted user is invisible to active lookups but kept in storage.

        Arrange: Persisted user
        Act: Soft delete twice
        Assert: First call changes one row, second none; version unchanged
        """
        # Arrange
        (user,) = await persist(db_session, user_factory())

        # Act
        first = await user_repository.soft_delete_by_id(user.id)
        second = await user_repository.soft_delete_by_id(user.id)
        await db_session.commit()

        # Assert
        assert (first, second) == (1, 0)
        assert await user_repository.find_active_by_id(user.id) is None
        stored = await user_repository.find_by_id_including_deleted(user.id)
        assert stored.is_active is False
        assert stored.version == 0

    async def test_soft_delete_by_ids_counts_only_active(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test batch delete skips deleted and unknown ids."""
        # Arrange
        a, b, c = await persist(db_session, user_factory(), user_factory(), user_factory())
        await user_repository.soft_delete_by_id(c.id)

        # Act
        deleted = await user_repository.soft_delete_by_ids([a.id, b.id, c.id, 9999])
        await db_session.commit()

        # Assert
        assert deleted == 2
        assert await user_repository.count_active() == 0

    async def test_restore_only_affects_deleted_users(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        # Arrange
        (user,) = await persist(db_session, user_factory())

        # Act & Assert
        assert await user_repository.restore_by_id(user.id) == 0
        await user_repository.soft_delete_by_id(user.id)
        assert await user_repository.restore_by_id(user.id) == 1
        assert (await user_repository.find_active_by_id(user.id)).version == 0

    async def test_update_active_status_bypasses_version(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test the status switch updates regardless of version and touches updated_at."""
        # Arrange
        (user,) = await persist(db_session, user_factory())
        before = as_utc(user.updated_at)

        # Act
        changed = await user_repository.update_active_status(user.id, False)
        missing = await user_repository.update_active_status(424242, False)

        # Assert
        stored = await user_repository.find_by_id_including_deleted(user.id)
        assert (changed, missing) == (1, 0)
        assert stored.is_active is False
        assert as_utc(stored.updated_at) >= before
        assert stored.version == 0


# ============================================================================
# Lookups
# ============================================================================


class TestLookups:
    """Test exact lookups by unique fields."""

    async def test_lookups_are_exact_and_case_sensitive(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test email and username matching is exact."""
        # Arrange
        await persist(db_session, user_factory(email="alice@example.com", username="alice"))

        # Act & Assert
        assert (await user_repository.find_active_by_email("alice@example.com")).username == "alice"
        assert await user_repository.find_active_by_email("ALICE@example.com") is None
        assert await user_repository.find_active_by_username("Alice") is None
        assert await user_repository.exists_active_by_username("alice") is True
        assert await user_repository.exists_active_by_email("bob@example.com") is False

    async def test_email_or_username_lookup(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        await persist(db_session, user_factory(email="carol@example.com", username="carol"))

        by_email = await user_repository.find_active_by_email_or_username("carol@example.com")
        by_username = await user_repository.find_active_by_email_or_username("carol")

        assert by_email.id == by_username.id

    async def test_blank_identifier_matches_nobody(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test a blank identifier never falls back to matching every user."""
        await persist(db_session, user_factory())

        assert await user_repository.find_active_by_email_or_username("   ") is None

    async def test_deleted_users_are_only_visible_to_admin_lookups(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test active lookups and existence checks ignore deleted users."""
        # Arrange
        (user,) = await persist(db_session, user_factory(email="gone@example.com"))
        await user_repository.soft_delete_by_id(user.id)

        # Act & Assert
        assert await user_repository.find_active_by_email("gone@example.com") is None
        assert await user_repository.exists_active_by_email("gone@example.com") is False
        found = await user_repository.find_by_email_including_deleted("gone@example.com")
        assert found.id == user.id

    async def test_find_by_id_with_lock_returns_active_user(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test the locking lookup behaves like find_active_by_id on SQLite."""
        (user,) = await persist(db_session, user_factory())

        locked = await user_repository.find_by_id_with_lock(user.id)

        assert locked.id == user.id


# ============================================================================
# Paging
# ============================================================================


class TestPaging:
    """Test offset paging and sort order."""

    async def test_pages_through_active_users(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test page 1 of size 2 over five users sorted by username.

        Arrange: Five active users and one deleted
        Act: Request the second page
        Assert: Third and fourth usernames, total of five, three pages
        """
        # Arrange
        users = await persist(db_session, *(user_factory(username=f"member{i}") for i in range(5)))
        (deleted,) = await persist(db_session, user_factory(username="member9"))
        await user_repository.soft_delete_by_id(deleted.id)
        request = PageRequest(page=1, size=2, sort=(Sort("username", SortDirection.ASC),))

        # Act
        page = await user_repository.list_active(request)

        # Assert
        assert [u.username for u in page.items] == ["member2", "member3"]
        assert page.total_elements == len(users)
        assert page.total_pages == 3
        assert page.has_next is True

    async def test_default_sort_is_newest_first(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        first, second = await persist(db_session, user_factory(), user_factory())

        page = await user_repository.list_active(PageRequest())

        assert [u.id for u in page.items] == [second.id, first.id]

    async def test_page_past_the_end_is_empty(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        await persist(db_session, user_factory())

        page = await user_repository.list_active(PageRequest(page=3, size=10))

        assert page.items == []
        assert page.total_elements == 1

    async def test_list_active_all_is_unpaged(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        await persist(db_session, *(user_factory() for _ in range(25)))

        assert len(await user_repository.list_active_all()) == 25


# ============================================================================
# Specification Queries
# ============================================================================


class TestSpecificationQueries:
    """Test find() and count() with specifications."""

    async def test_find_with_combined_specification(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test AND/OR combinations run against the database."""
        # Arrange
        await persist(
            db_session,
            user_factory(username="annabel", first_name="Anna"),
            user_factory(username="joanne", last_name="Hanna"),
            user_factory(username="bob", first_name="Bob"),
        )
        spec = UserSpecifications.is_active_only() & UserSpecifications.has_name_containing("ANN")

        # Act
        page = await user_repository.find(spec, PageRequest(sort=(Sort("username"),)))

        # Assert
        assert [u.username for u in page.items] == ["annabel", "joanne"]
        assert await user_repository.count(spec) == 2

    async def test_substring_search_escapes_wildcards(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test % and _ in a search term are matched literally."""
        await persist(db_session, user_factory(username="per_cent"), user_factory(username="percent"))

        page = await user_repository.find(
            UserSpecifications.has_username_containing("r_c"), PageRequest()
        )

        assert [u.username for u in page.items] == ["per_cent"]

    async def test_created_between_is_inclusive(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test both bounds of a creation range are included."""
        # Arrange
        start = datetime(2024, 1, 1, tzinfo=UTC)
        end = datetime(2024, 1, 31, tzinfo=UTC)
        inside, on_start, before = await persist(
            db_session, user_factory(), user_factory(), user_factory()
        )
        await set_created_at(db_session, inside, datetime(2024, 1, 15, tzinfo=UTC))
        await set_created_at(db_session, on_start, start)
        await set_created_at(db_session, before, start - timedelta(seconds=1))

        # Act
        count = await user_repository.count(UserSpecifications.created_between(start, end))

        # Assert
        assert count == 2
        assert await user_repository.count_active_created_between(start, end) == 2


# ============================================================================
# Login Bookkeeping
# ============================================================================


class TestLoginBookkeeping:
    """Test last login updates."""

    async def test_update_last_login_keeps_version(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test recording a login does not bump the version."""
        # Arrange
        (user,) = await persist(db_session, user_factory())
        moment = utc_now() - timedelta(minutes=1)

        # Act
        changed = await user_repository.update_last_login_at(user.id, moment)

        # Assert
        stored = await user_repository.find_active_by_id(user.id)
        assert changed == 1
        assert as_utc(stored.last_login_at) == moment
        assert stored.version == 0

    async def test_future_login_is_rejected(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        (user,) = await persist(db_session, user_factory())

        with pytest.raises(ValidationError):
            await user_repository.update_last_login_at(user.id, utc_now() + timedelta(hours=1))

    async def test_find_recently_active(
        self, user_repository: UserRepository, db_session: AsyncSession
    ) -> None:
        """Test only users who logged in since the cutoff are returned."""
        # Arrange
        recent, old, never = await persist(
            db_session, user_factory(), user_factory(), user_factory()
        )
        await user_repository.update_last_login_at(recent.id, utc_now() - timedelta(days=1))
        await user_repository.update_last_login_at(old.id, utc_now() - timedelta(days=60))

        # Act
        page = await user_repository.find_recently_active(
            utc_now() - timedelta(days=30), PageRequest()
        )

        # Assert
        assert [u.id for u in page.items] == [recent.id]
