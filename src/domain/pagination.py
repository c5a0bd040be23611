"""Offset-based pagination with client-selected sort order."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Generic, TypeVar

from src.domain.exceptions import ValidationError
from src.infrastructure.constants import PaginationDefaults


class SortDirection(StrEnum):
    """Sort direction for a single order-by key."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Sort:
    """One order-by key.

    Attributes:
        field: Entity attribute name (already mapped from the public name)
        direction: Ascending or descending
    """

    field: str
    direction: SortDirection = SortDirection.ASC


DEFAULT_SORT = (Sort("created_at", SortDirection.DESC),)


@dataclass(frozen=True)
class PageRequest:
    """Requested page of a result set.

    Attributes:
        page: Zero-based page index
        size: Number of items per page (1..MAX_PAGE_SIZE)
        sort: Order-by keys, applied in order
    """

    page: int = 0
    size: int = PaginationDefaults.DEFAULT_PAGE_SIZE
    sort: tuple[Sort, ...] = field(default=DEFAULT_SORT)

    def __post_init__(self) -> None:
        errors: dict[str, list[str]] = {}
        if self.page < 0:
            errors["page"] = ["Page index must not be negative"]
        if not 1 <= self.size <= PaginationDefaults.MAX_PAGE_SIZE:
            errors["size"] = [f"Page size must be between 1 and {PaginationDefaults.MAX_PAGE_SIZE}"]
        if errors:
            raise ValidationError("Validation failed", field_errors=errors)

    @property
    def offset(self) -> int:
        """Number of rows to skip before this page."""
        return self.page * self.size


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results with total-count metadata.

    Attributes:
        items: Items on this page
        page: Zero-based page index
        size: Requested page size
        total_elements: Number of matching items across all pages
    """

    items: list[T]
    page: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        """Number of pages needed to hold all matching items."""
        if self.size <= 0:
            return 0
        return math.ceil(self.total_elements / self.size)

    @property
    def has_next(self) -> bool:
        """Whether another page follows this one."""
        return self.page + 1 < self.total_pages


def parse_sort(values: Iterable[str] | None, allowed: Mapping[str, str]) -> tuple[Sort, ...]:
    """Parse ``field[,direction]`` sort parameters against a whitelist.

    Args:
        values: Raw sort parameters, e.g. ``["createdAt,desc", "username"]``
        allowed: Public field name -> entity attribute mapping

    Returns:
        Parsed sort keys, or the default (created_at descending) when empty

    Raises:
        ValidationError: If a field is not sortable or a direction is unknown

    Example:
        >>> parse_sort(["username,asc"], {"username": "username"})
        (Sort(field='username', direction=<SortDirection.ASC: 'asc'>),)
    """
    sorts: list[Sort] = []
    for raw in values or ():
        if not raw or not raw.strip():
            continue
        name, _, direction = (part.strip() for part in raw.partition(","))
        if name not in allowed:
            raise ValidationError.for_field("sort", f"Cannot sort by '{name}'")
        try:
            parsed = SortDirection(direction.lower()) if direction else SortDirection.ASC
        except ValueError as e:
            raise ValidationError.for_field(
                "sort", f"Sort direction must be 'asc' or 'desc', got '{direction}'"
            ) from e
        sorts.append(Sort(allowed[name], parsed))
    return tuple(sorts) or DEFAULT_SORT
