"""User API endpoints.

Fixed paths (``/all``, ``/search``, ``/email/...``) are registered before
``/{user_id}`` so they are never captured as an id.
"""

from datetime import datetime
from typing import Annotated, Any

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query, Response, status

from src.app.usecases.user_usecases import (
    CheckEmailExistsUseCase,
    CheckUsernameExistsUseCase,
    CreateUserUseCase,
    DeleteUsersUseCase,
    DeleteUserUseCase,
    GetUserByEmailUseCase,
    GetUserByUsernameUseCase,
    GetUserIncludingDeletedUseCase,
    GetUserStatsUseCase,
    GetUserUseCase,
    ListAllUsersUseCase,
    ListRecentlyActiveUsersUseCase,
    ListUsersUseCase,
    LookupUserUseCase,
    RecordUserLoginUseCase,
    RestoreUserUseCase,
    SearchUsersUseCase,
    SetUserActiveStatusUseCase,
    UpdateUserUseCase,
)
from src.container import Container
from src.infrastructure.filtering.user_filterset import UserFilterSet
from src.presentation.api.dependencies import PageRequestDep
from src.presentation.schemas.error import ErrorResponse
from src.presentation.schemas.user import (
    BatchDeleteRequest,
    BatchDeleteResponse,
    UserCreate,
    UserLoginRecord,
    UserPageResponse,
    UserResponse,
    UserStatsResponse,
    UserStatusUpdate,
    UserUpdate,
)


router = APIRouter(prefix="/users", tags=["users"])

UserId = Annotated[int, Path(description="User identifier")]

_ERROR_DESCRIPTIONS = {
    status.HTTP_400_BAD_REQUEST: "Invalid request data",
    status.HTTP_404_NOT_FOUND: "User not found",
    status.HTTP_409_CONFLICT: "Email or username already taken, or the user changed concurrently",
    status.HTTP_503_SERVICE_UNAVAILABLE: "Row lock not granted in time",
}


def _errors(*codes: int) -> dict[int | str, dict[str, Any]]:
    """OpenAPI ``responses`` entries for the listed error codes plus 500."""
    responses: dict[int | str, dict[str, Any]] = {
        code: {"description": _ERROR_DESCRIPTIONS[code], "model": ErrorResponse} for code in codes
    }
    responses[status.HTTP_500_INTERNAL_SERVER_ERROR] = {
        "description": "Internal server error",
        "model": ErrorResponse,
    }
    return responses


# ============================================================================
# Collection
# ============================================================================


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create User",
    description="Create a new user. The password is stored hashed and never returned.",
    responses=_errors(status.HTTP_400_BAD_REQUEST, status.HTTP_409_CONFLICT),
)
@inject
async def create_user(
    input: UserCreate,
    use_case: Annotated[CreateUserUseCase, Depends(Provide[Container.use_cases.create_user])],
) -> UserResponse:
    """Create a new user.

    Args:
        input: User creation data
        use_case: Injected use case instance

    Returns:
        Created user data
    """
    user = await use_case.execute(input.to_new_user())
    return UserResponse.from_entity(user)


@router.get(
    "",
    response_model=UserPageResponse,
    summary="List Users",
    description="Page through active users. `sort` is `field,direction` and may be repeated.",
    responses=_errors(status.HTTP_400_BAD_REQUEST),
)
@inject
async def list_users(
    page_request: PageRequestDep,
    use_case: Annotated[ListUsersUseCase, Depends(Provide[Container.use_cases.list_users])],
) -> UserPageResponse:
    """List active users, one page at a time.

    Args:
        page_request: Page index, size and sort order from the query string
        use_case: Injected use case instance

    Returns:
        Page of users with total-count metadata
    """
    page = await use_case.execute(page_request)
    return UserPageResponse.from_page(page)


@router.get(
    "/all",
    response_model=list[UserResponse],
    summary="List All Users",
    description="Every active user, unpaged. Intended for small deployments and tooling.",
    responses=_errors(),
)
@inject
async def list_all_users(
    use_case: Annotated[ListAllUsersUseCase, Depends(Provide[Container.use_cases.list_all_users])],
) -> list[UserResponse]:
    users = await use_case.execute()
    return [UserResponse.from_entity(user) for user in users]


@router.get(
    "/search",
    response_model=UserPageResponse,
    summary="Search Users with Flexible Filters",
    description="""
Search active users with query-parameter filters.

**Filter Examples:**
- Free text: `?q=smith`
- By field: `?username=john&email=example.com`
- Date range: `?created_after=2024-01-01T00:00:00Z&created_before=2024-12-31T23:59:59Z`
- Any instead of all: `?first_name=ann&last_name=ann&match=any`

Text filters are case-insensitive substring matches unless marked as "exact".
Soft-deleted users are never returned.
    """,
    responses=_errors(status.HTTP_400_BAD_REQUEST),
)
@inject
async def search_users(
    page_request: PageRequestDep,
    use_case: Annotated[SearchUsersUseCase, Depends(Provide[Container.use_cases.search_users])],
    filters: Annotated[UserFilterSet, Depends()],
) -> UserPageResponse:
    """Search users with flexible filters.

    Examples:
        # Find users by email domain
        GET /api/users/search?email=@company.com

        # Get recently created users, newest first
        GET /api/users/search?created_after=2024-01-01T00:00:00Z&sort=createdAt,desc

    Args:
        page_request: Page index, size and sort order
        use_case: Injected SearchUsersUseCase instance
        filters: FilterSet populated from query parameters

    Returns:
        Page of users matching the filters
    """
    page = await use_case.execute(filterset=filters, page_request=page_request)
    return UserPageResponse.from_page(page)


@router.get(
    "/stats",
    response_model=UserStatsResponse,
    summary="User Statistics",
    description="Active user count, and active users created within `[start, end]` (default: last 30 days).",
    responses=_errors(status.HTTP_400_BAD_REQUEST),
)
@inject
async def get_user_stats(
    use_case: Annotated[GetUserStatsUseCase, Depends(Provide[Container.use_cases.get_user_stats])],
    start: Annotated[datetime | None, Query(description="Range start (ISO 8601)")] = None,
    end: Annotated[datetime | None, Query(description="Range end (ISO 8601)")] = None,
) -> UserStatsResponse:
    stats = await use_case.execute(start=start, end=end)
    return UserStatsResponse.from_stats(stats)


@router.get(
    "/recently-active",
    response_model=UserPageResponse,
    summary="Recently Active Users",
    description="Active users whose last login is at or after `since` (default: 30 days ago).",
    responses=_errors(status.HTTP_400_BAD_REQUEST),
)
@inject
async def list_recently_active_users(
    page_request: PageRequestDep,
    use_case: Annotated[
        ListRecentlyActiveUsersUseCase,
        Depends(Provide[Container.use_cases.list_recently_active_users]),
    ],
    since: Annotated[datetime | None, Query(description="Earliest login time (ISO 8601)")] = None,
) -> UserPageResponse:
    page = await use_case.execute(page_request, since=since)
    return UserPageResponse.from_page(page)


@router.post(
    "/batch-delete",
    response_model=BatchDeleteResponse,
    summary="Delete Several Users",
    description="Soft-delete up to 100 users in one transaction. Unknown or already deleted ids are skipped.",
    responses=_errors(status.HTTP_400_BAD_REQUEST),
)
@inject
async def delete_users(
    input: BatchDeleteRequest,
    use_case: Annotated[DeleteUsersUseCase, Depends(Provide[Container.use_cases.delete_users])],
) -> BatchDeleteResponse:
    deleted = await use_case.execute(input.ids)
    return BatchDeleteResponse(deleted=deleted)


# ============================================================================
# Lookups by unique field
# ============================================================================


@router.get(
    "/lookup/{identifier}",
    response_model=UserResponse,
    summary="Get User by Email or Username",
    responses=_errors(status.HTTP_404_NOT_FOUND),
)
@inject
async def lookup_user(
    identifier: Annotated[str, Path(description="Email address or username")],
    use_case: Annotated[LookupUserUseCase, Depends(Provide[Container.use_cases.lookup_user])],
) -> UserResponse:
    return UserResponse.from_entity(await use_case.execute(identifier))


@router.get(
    "/email/{email}",
    response_model=UserResponse,
    summary="Get User by Email",
    responses=_errors(status.HTTP_404_NOT_FOUND),
)
@inject
async def get_user_by_email(
    email: Annotated[str, Path(description="Exact email address")],
    use_case: Annotated[
        GetUserByEmailUseCase, Depends(Provide[Container.use_cases.get_user_by_email])
    ],
) -> UserResponse:
    return UserResponse.from_entity(await use_case.execute(email))


@router.get(
    "/username/{username}",
    response_model=UserResponse,
    summary="Get User by Username",
    responses=_errors(status.HTTP_404_NOT_FOUND),
)
@inject
async def get_user_by_username(
    username: Annotated[str, Path(description="Exact username")],
    use_case: Annotated[
        GetUserByUsernameUseCase, Depends(Provide[Container.use_cases.get_user_by_username])
    ],
) -> UserResponse:
    return UserResponse.from_entity(await use_case.execute(username))


@router.get(
    "/exists/email/{email}",
    response_model=bool,
    summary="Check Email Taken",
    description="True if an active user holds the email.",
    responses=_errors(),
)
@inject
async def email_exists(
    email: str,
    use_case: Annotated[
        CheckEmailExistsUseCase, Depends(Provide[Container.use_cases.check_email_exists])
    ],
) -> bool:
    return await use_case.execute(email)


@router.get(
    "/exists/username/{username}",
    response_model=bool,
    summary="Check Username Taken",
    description="True if an active user holds the username.",
    responses=_errors(),
)
@inject
async def username_exists(
    username: str,
    use_case: Annotated[
        CheckUsernameExistsUseCase, Depends(Provide[Container.use_cases.check_username_exists])
    ],
) -> bool:
    return await use_case.execute(username)


# ============================================================================
# Admin views (soft-deleted users included)
# ============================================================================


@router.get(
    "/admin/email/{email}",
    response_model=UserResponse,
    summary="Get User by Email (including deleted)",
    responses=_errors(status.HTTP_404_NOT_FOUND),
)
@inject
async def get_user_by_email_including_deleted(
    email: str,
    use_case: Annotated[
        GetUserIncludingDeletedUseCase,
        Depends(Provide[Container.use_cases.get_user_including_deleted]),
    ],
) -> UserResponse:
    return UserResponse.from_entity(await use_case.execute_by_email(email))


@router.get(
    "/admin/{user_id}",
    response_model=UserResponse,
    summary="Get User (including deleted)",
    responses=_errors(status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND),
)
@inject
async def get_user_including_deleted(
    user_id: UserId,
    use_case: Annotated[
        GetUserIncludingDeletedUseCase,
        Depends(Provide[Container.use_cases.get_user_including_deleted]),
    ],
) -> UserResponse:
    return UserResponse.from_entity(await use_case.execute(user_id))


# ============================================================================
# Single user
# ============================================================================


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get User",
    description="Get an active user by ID",
    responses=_errors(status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND),
)
@inject
async def get_user(
    user_id: UserId,
    use_case: Annotated[GetUserUseCase, Depends(Provide[Container.use_cases.get_user])],
) -> UserResponse:
    """Get user by ID.

    Args:
        user_id: User ID
        use_case: Injected use case instance

    Returns:
        User data
    """
    return UserResponse.from_entity(await use_case.execute(user_id))


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update User",
    description="""
Partially update a user. Omitted or null fields keep their stored value;
blank email, username or password are ignored.

Set `lock=true` to update under a row lock; if the lock is not granted in
time the request fails with 503.
    """,
    responses=_errors(
        status.HTTP_400_BAD_REQUEST,
        status.HTTP_404_NOT_FOUND,
        status.HTTP_409_CONFLICT,
        status.HTTP_503_SERVICE_UNAVAILABLE,
    ),
)
@inject
async def update_user(
    user_id: UserId,
    input: UserUpdate,
    use_case: Annotated[UpdateUserUseCase, Depends(Provide[Container.use_cases.update_user])],
    lock: Annotated[bool, Query(description="Take a pessimistic row lock")] = False,
) -> UserResponse:
    """Update user.

    Args:
        user_id: User ID
        input: Fields to change
        use_case: Injected use case instance
        lock: Load the row with SELECT ... FOR UPDATE first

    Returns:
        Updated user data
    """
    user = await use_case.execute(user_id, input.to_changes(), lock=lock)
    return UserResponse.from_entity(user)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete User",
    description="Soft-delete a user. Deleting an already deleted user returns 404.",
    responses=_errors(status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND),
)
@inject
async def delete_user(
    user_id: UserId,
    use_case: Annotated[DeleteUserUseCase, Depends(Provide[Container.use_cases.delete_user])],
) -> None:
    """Soft delete user.

    Args:
        user_id: User ID
        use_case: Injected use case instance
    """
    await use_case.execute(user_id)


@router.post(
    "/{user_id}/restore",
    response_model=UserResponse,
    summary="Restore User",
    description="Reactivate a soft-deleted user, provided its email and username are still free.",
    responses=_errors(
        status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND, status.HTTP_409_CONFLICT
    ),
)
@inject
async def restore_user(
    user_id: UserId,
    use_case: Annotated[RestoreUserUseCase, Depends(Provide[Container.use_cases.restore_user])],
) -> UserResponse:
    """Restore soft-deleted user.

    Args:
        user_id: User ID
        use_case: Injected use case instance

    Returns:
        Restored user data
    """
    return UserResponse.from_entity(await use_case.execute(user_id))


@router.patch(
    "/{user_id}/status",
    response_model=UserResponse,
    summary="Set User Status",
    description="Activate or deactivate a user without touching its other fields.",
    responses=_errors(
        status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND, status.HTTP_409_CONFLICT
    ),
)
@inject
async def set_user_status(
    user_id: UserId,
    input: UserStatusUpdate,
    use_case: Annotated[
        SetUserActiveStatusUseCase, Depends(Provide[Container.use_cases.set_user_active_status])
    ],
) -> UserResponse:
    return UserResponse.from_entity(await use_case.execute(user_id, input.active))


@router.post(
    "/{user_id}/last-login",
    response_model=UserResponse,
    summary="Record Login",
    description="Record a login time (default: now). Future times are rejected.",
    responses=_errors(status.HTTP_400_BAD_REQUEST, status.HTTP_404_NOT_FOUND),
)
@inject
async def record_user_login(
    user_id: UserId,
    use_case: Annotated[
        RecordUserLoginUseCase, Depends(Provide[Container.use_cases.record_user_login])
    ],
    input: UserLoginRecord | None = None,
) -> UserResponse:
    at = input.at if input is not None else None
    return UserResponse.from_entity(await use_case.execute(user_id, at))
