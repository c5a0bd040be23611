"""Declarative filtering system inspired by sqlalchemy_filterset and Django REST framework.

This module provides a simple, declarative way to define filters for SQLAlchemy
models. A FilterSet turns its populated fields into a ``Specification`` that
repositories apply to their queries.

Example:
    class UserFilterSet(FilterSet):
        model = User

        email: str | None = CharFilter(lookup='icontains')
        username: str | None = CharFilter(lookup='exact')
        created_after: datetime | None = DateTimeFilter(field_name='created_at', lookup='gte')

    # Usage in endpoint
    @router.get("/users/search")
    async def search_users(filters: Annotated[UserFilterSet, Depends()]):
        page = await repository.find(filters.to_specification(), page_request)
"""

from datetime import datetime
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field
from sqlalchemy import func, or_

from src.domain.models.base import as_utc
from src.infrastructure.filtering.specifications import Specification


# ============================================================================
# Filter Descriptor
# ============================================================================


class FilterDescriptor:
    """Descriptor that stores filter metadata."""

    def __init__(
        self,
        *,
        field_name: str | None = None,
        lookup: str = "exact",
        description: str | None = None,
        search_fields: tuple[str, ...] = (),
    ):
        self.field_name = field_name
        self.lookup = lookup
        self.description = description
        self.search_fields = search_fields

    def get_filter_expression(self, column: Any, value: Any) -> Any:  # type: ignore
        """Build SQLAlchemy filter expression."""
        if value is None:
            return None

        # Map lookup types to SQLAlchemy operations
        if self.lookup == "exact":
            return column == value
        if self.lookup == "iexact":
            return func.lower(column) == func.lower(value)
        if self.lookup == "contains":
            return column.contains(value, autoescape=True)
        if self.lookup == "icontains":
            return column.icontains(value, autoescape=True)
        if self.lookup == "istartswith":
            return column.istartswith(value, autoescape=True)
        if self.lookup == "gt":
            return column > value
        if self.lookup == "gte":
            return column >= value
        if self.lookup == "lt":
            return column < value
        if self.lookup == "lte":
            return column <= value
        if self.lookup == "in":
            return column.in_(value)
        if self.lookup == "notin":
            return column.not_in(value)
        if self.lookup == "isnull":
            return column.is_(None) if value else column.is_not(None)
        raise ValueError(f"Unknown lookup type: {self.lookup}")

    def to_specification(self, value: Any) -> Specification | None:
        """Wrap the filter expression for ``value`` in a Specification.

        Returns:
            None when the value is empty (the filter is inactive)
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        if isinstance(value, str):
            value = value.strip()
        elif isinstance(value, datetime):
            value = as_utc(value)
        if self.lookup == "search":
            fields = self.search_fields
            return Specification(
                lambda m: or_(*(getattr(m, f).icontains(value, autoescape=True) for f in fields)),
                f"search({', '.join(fields)}) ~ {value!r}",
            )
        field_name = self.field_name
        return Specification(
            lambda m: self.get_filter_expression(getattr(m, field_name), value),
            f"{field_name} {self.lookup} {value!r}",
        )


# ============================================================================
# Filter Functions (syntactic sugar)
# ============================================================================


def _filter_field(descriptor: FilterDescriptor) -> Any:
    return Field(
        default=None,
        description=descriptor.description,
        json_schema_extra={"_filter": descriptor},
    )


def CharFilter(
    *,
    field_name: str | None = None,
    lookup: str = "exact",
    description: str | None = None,
) -> Any:
    """Create a character/string filter.

    Args:
        field_name: Model field name (defaults to filter attribute name)
        lookup: Lookup type (exact, icontains, istartswith, etc.)
        description: Field description for OpenAPI docs

    Returns:
        Field with filter metadata
    """
    return _filter_field(
        FilterDescriptor(field_name=field_name, lookup=lookup, description=description)
    )


def DateTimeFilter(
    *,
    field_name: str | None = None,
    lookup: str = "exact",
    description: str | None = None,
) -> Any:
    """Create a datetime filter."""
    return _filter_field(
        FilterDescriptor(field_name=field_name, lookup=lookup, description=description)
    )


def SearchFilter(
    *,
    fields: tuple[str, ...],
    description: str | None = None,
) -> Any:
    """Create a free-text filter matching any of several columns.

    The term matches when any listed column contains it, ignoring case.

    Args:
        fields: Model field names searched with OR
        description: Field description for OpenAPI docs

    Returns:
        Field with filter metadata

    Examples:
        q = SearchFilter(fields=("email", "username"))
    """
    return _filter_field(
        FilterDescriptor(lookup="search", description=description, search_fields=fields)
    )


# ============================================================================
# FilterSet Base Class
# ============================================================================


class FilterSet(BaseModel):
    """Base class for declarative filtersets.

    Simply inherit from this class and define your filters as class attributes.
    Populated filters are combined with AND by default, or with OR when
    ``match`` is ``"any"``. Soft-deleted rows are excluded regardless of
    ``match``.

    Example:
        class UserFilterSet(FilterSet):
            model = User

            email: str | None = CharFilter(lookup='icontains')
            username: str | None = CharFilter(lookup='exact')

        spec = UserFilterSet(email="@example.com").to_specification()
    """

    model: ClassVar[type | None] = None  # Override in subclass

    match: Literal["all", "any"] = Field(
        default="all",
        description="Combine filters with AND ('all') or OR ('any')",
    )

    def _filter_specifications(self) -> list[Specification]:
        specs: list[Specification] = []
        for field_name, field_info in self.__class__.model_fields.items():
            json_extra = field_info.json_schema_extra or {}
            descriptor = json_extra.get("_filter") if isinstance(json_extra, dict) else None
            if not isinstance(descriptor, FilterDescriptor):
                continue
            if descriptor.field_name is None and descriptor.lookup != "search":
                descriptor.field_name = field_name
            spec = descriptor.to_specification(getattr(self, field_name, None))
            if spec is not None:
                specs.append(spec)
        return specs

    def to_specification(self, *, exclude_deleted: bool = True) -> Specification:
        """Combine all populated filters into a single Specification.

        Args:
            exclude_deleted: If True, restrict to rows whose ``is_active`` flag is set

        Returns:
            Combined specification (matches everything when no filter is set)
        """
        if self.model is None:
            raise ValueError("model class variable must be set")

        specs = self._filter_specifications()
        combine = Specification.any_of if self.match == "any" else Specification.all_of
        combined = combine(*specs)

        if exclude_deleted and hasattr(self.model, "is_active"):
            combined = Specification(lambda m: m.is_active.is_(True), "is_active") & combined
        return combined

    def is_valid(self) -> bool:
        """Check if filterset has any active filters.

        Returns:
            True if any filters are applied
        """
        return bool(self._filter_specifications())
