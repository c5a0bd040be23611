"""Declarative filtering and composable specifications for SQLAlchemy models."""

from src.infrastructure.filtering.filterset import (
    CharFilter,
    DateTimeFilter,
    FilterSet,
    SearchFilter,
)
from src.infrastructure.filtering.specifications import Specification, UserSpecifications


__all__ = [
    "CharFilter",
    "DateTimeFilter",
    "FilterSet",
    "SearchFilter",
    "Specification",
    "UserSpecifications",
]
