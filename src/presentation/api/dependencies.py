"""Common API dependencies for paging and sorting."""

from typing import Annotated

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Query

from src.container import Container
from src.domain.pagination import PageRequest, parse_sort
from src.infrastructure.config import Settings
from src.infrastructure.constants import USER_SORTABLE_FIELDS


@inject
async def get_page_request(
    settings: Annotated[Settings, Depends(Provide[Container.config])],
    page: Annotated[int, Query(description="Zero-based page index")] = 0,
    size: Annotated[
        int | None, Query(description="Page size (default 20, max 100)")
    ] = None,
    sort: Annotated[
        list[str] | None,
        Query(description="Sort key as `field,direction`; repeatable (default `createdAt,desc`)"),
    ] = None,
) -> PageRequest:
    """Build a PageRequest from ``page``, ``size`` and ``sort`` query parameters.

    Range checks happen in PageRequest itself so that a negative page or an
    oversized page yields the same 400 envelope as any other validation error.

    Example:
        ```python
        # GET /api/users?page=1&size=50&sort=username,asc&sort=createdAt,desc
        ```

    Raises:
        ValidationError: If page, size or sort are out of range or unknown
    """
    return PageRequest(
        page=page,
        size=settings.default_page_size if size is None else size,
        sort=parse_sort(sort, USER_SORTABLE_FIELDS),
    )


PageRequestDep = Annotated[PageRequest, Depends(get_page_request)]
