"""Composable query predicates for SQLAlchemy models.

A ``Specification`` wraps a pure function from a model class to a SQL
boolean expression. Specifications combine with ``&`` (AND), ``|`` (OR) and
``~`` (NOT) and are turned into a WHERE clause only when a query is built.

Example:
    spec = UserSpecifications.is_active_only() & (
        UserSpecifications.has_first_name_containing("ann")
        | UserSpecifications.has_last_name_containing("ann")
    )
    query = spec.apply(select(User), User)
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, false, not_, or_, true

from src.domain.exceptions import ValidationError
from src.domain.models.base import as_utc


Predicate = Callable[[Any], ColumnElement[bool]]


class Specification:
    """A deferred, composable WHERE-clause fragment."""

    def __init__(self, predicate: Predicate, description: str = "") -> None:
        self._predicate = predicate
        self.description = description

    def to_expression(self, model: type) -> ColumnElement[bool]:
        """Build the SQL expression for the given model class."""
        return self._predicate(model)

    def apply(self, query: Select, model: type) -> Select:  # type: ignore[type-arg]
        """Restrict a select statement with this specification."""
        return query.where(self.to_expression(model))

    def __and__(self, other: "Specification") -> "Specification":
        return Specification(
            lambda m: and_(self.to_expression(m), other.to_expression(m)),
            f"({self.description} AND {other.description})",
        )

    def __or__(self, other: "Specification") -> "Specification":
        return Specification(
            lambda m: or_(self.to_expression(m), other.to_expression(m)),
            f"({self.description} OR {other.description})",
        )

    def __invert__(self) -> "Specification":
        return Specification(lambda m: not_(self.to_expression(m)), f"NOT {self.description}")

    def __repr__(self) -> str:
        return f"<Specification {self.description or '?'}>"

    @classmethod
    def always_true(cls) -> "Specification":
        """Match every row."""
        return cls(lambda _m: true(), "TRUE")

    @classmethod
    def always_false(cls) -> "Specification":
        """Match no row."""
        return cls(lambda _m: false(), "FALSE")

    @classmethod
    def all_of(cls, *specs: "Specification | None") -> "Specification":
        """AND together the given specifications, skipping None.

        An empty argument list matches everything.
        """
        present = [spec for spec in specs if spec is not None]
        if not present:
            return cls.always_true()
        combined = present[0]
        for spec in present[1:]:
            combined = combined & spec
        return combined

    @classmethod
    def any_of(cls, *specs: "Specification | None") -> "Specification":
        """OR together the given specifications, skipping None.

        An empty argument list matches everything, so that an absent
        criterion never narrows a query.
        """
        present = [spec for spec in specs if spec is not None]
        if not present:
            return cls.always_true()
        combined = present[0]
        for spec in present[1:]:
            combined = combined | spec
        return combined


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _ensure_ordered(field: str, start: datetime, end: datetime) -> None:
    if as_utc(start) > as_utc(end):
        raise ValidationError.for_field(field, "Start date must not be after end date")


class UserSpecifications:
    """Factory functions for User predicates.

    Blank or None criteria produce ``always_true`` so optional query
    parameters can be combined without special-casing. Exact matches are
    case-sensitive; ``*_containing`` and search predicates are not.
    """

    # -- exact matches -------------------------------------------------------

    @staticmethod
    def has_id(user_id: int | None) -> Specification:
        if user_id is None:
            return Specification.always_true()
        return Specification(lambda m: m.id == user_id, f"id = {user_id}")

    @staticmethod
    def has_id_in(ids: Sequence[int] | None) -> Specification:
        if not ids:
            return Specification.always_true()
        values = list(ids)
        return Specification(lambda m: m.id.in_(values), f"id IN {values}")

    @staticmethod
    def has_id_not_in(ids: Sequence[int] | None) -> Specification:
        if not ids:
            return Specification.always_true()
        values = list(ids)
        return Specification(lambda m: m.id.not_in(values), f"id NOT IN {values}")

    @staticmethod
    def has_email(email: str | None) -> Specification:
        if _blank(email):
            return Specification.always_true()
        return Specification(lambda m: m.email == email, f"email = {email!r}")

    @staticmethod
    def has_username(username: str | None) -> Specification:
        if _blank(username):
            return Specification.always_true()
        return Specification(lambda m: m.username == username, f"username = {username!r}")

    @staticmethod
    def has_first_name(first_name: str | None) -> Specification:
        if _blank(first_name):
            return Specification.always_true()
        return Specification(lambda m: m.first_name == first_name, f"first_name = {first_name!r}")

    @staticmethod
    def has_last_name(last_name: str | None) -> Specification:
        if _blank(last_name):
            return Specification.always_true()
        return Specification(lambda m: m.last_name == last_name, f"last_name = {last_name!r}")

    @staticmethod
    def has_email_or_username(identifier: str | None) -> Specification:
        """Exact match on either unique field."""
        if _blank(identifier):
            return Specification.always_true()
        return UserSpecifications.has_email(identifier) | UserSpecifications.has_username(identifier)

    # -- case-insensitive substring matches ------------------------------------

    @staticmethod
    def _containing(attr: str, value: str | None) -> Specification:
        if _blank(value):
            return Specification.always_true()
        term = value.strip()  # type: ignore[union-attr]
        return Specification(
            lambda m: getattr(m, attr).icontains(term, autoescape=True),
            f"{attr} ~ {term!r}",
        )

    @staticmethod
    def has_email_containing(value: str | None) -> Specification:
        return UserSpecifications._containing("email", value)

    @staticmethod
    def has_username_containing(value: str | None) -> Specification:
        return UserSpecifications._containing("username", value)

    @staticmethod
    def has_first_name_containing(value: str | None) -> Specification:
        return UserSpecifications._containing("first_name", value)

    @staticmethod
    def has_last_name_containing(value: str | None) -> Specification:
        return UserSpecifications._containing("last_name", value)

    @staticmethod
    def has_name_containing(value: str | None) -> Specification:
        """First name OR last name contains the value."""
        if _blank(value):
            return Specification.always_true()
        return UserSpecifications.has_first_name_containing(
            value
        ) | UserSpecifications.has_last_name_containing(value)

    @staticmethod
    def search_in_all_fields(term: str | None) -> Specification:
        """Email, username, first name or last name contains the term."""
        if _blank(term):
            return Specification.always_true()
        return Specification.any_of(
            UserSpecifications.has_email_containing(term),
            UserSpecifications.has_username_containing(term),
            UserSpecifications.has_first_name_containing(term),
            UserSpecifications.has_last_name_containing(term),
        )

    # -- status ----------------------------------------------------------------

    @staticmethod
    def is_active(active: bool | None) -> Specification:
        if active is None:
            return Specification.always_true()
        return Specification(lambda m: m.is_active.is_(active), f"is_active = {active}")

    @staticmethod
    def is_active_only() -> Specification:
        return UserSpecifications.is_active(True)

    @staticmethod
    def is_inactive_only() -> Specification:
        return UserSpecifications.is_active(False)

    # -- time ranges -------------------------------------------------------------

    @staticmethod
    def created_after(moment: datetime | None) -> Specification:
        if moment is None:
            return Specification.always_true()
        moment = as_utc(moment)
        return Specification(lambda m: m.created_at >= moment, f"created_at >= {moment}")

    @staticmethod
    def created_before(moment: datetime | None) -> Specification:
        if moment is None:
            return Specification.always_true()
        moment = as_utc(moment)
        return Specification(lambda m: m.created_at <= moment, f"created_at <= {moment}")

    @staticmethod
    def created_between(start: datetime | None, end: datetime | None) -> Specification:
        """Inclusive range; an open end leaves that side unbounded.

        Raises:
            ValidationError: If both bounds are given and start is after end
        """
        if start is not None and end is not None:
            _ensure_ordered("createdAt", start, end)
        return UserSpecifications.created_after(start) & UserSpecifications.created_before(end)

    @staticmethod
    def updated_after(moment: datetime | None) -> Specification:
        if moment is None:
            return Specification.always_true()
        moment = as_utc(moment)
        return Specification(lambda m: m.updated_at >= moment, f"updated_at >= {moment}")

    @staticmethod
    def updated_before(moment: datetime | None) -> Specification:
        if moment is None:
            return Specification.always_true()
        moment = as_utc(moment)
        return Specification(lambda m: m.updated_at <= moment, f"updated_at <= {moment}")

    @staticmethod
    def updated_between(start: datetime | None, end: datetime | None) -> Specification:
        if start is not None and end is not None:
            _ensure_ordered("updatedAt", start, end)
        return UserSpecifications.updated_after(start) & UserSpecifications.updated_before(end)

    @staticmethod
    def last_login_after(moment: datetime | None) -> Specification:
        if moment is None:
            return Specification.always_true()
        moment = as_utc(moment)
        return Specification(lambda m: m.last_login_at >= moment, f"last_login_at >= {moment}")

    @staticmethod
    def last_login_between(start: datetime | None, end: datetime | None) -> Specification:
        if start is not None and end is not None:
            _ensure_ordered("lastLoginAt", start, end)
        spec = UserSpecifications.last_login_after(start)
        if end is not None:
            spec = spec & Specification(
                lambda m: m.last_login_at <= as_utc(end), f"last_login_at <= {end}"
            )
        return spec

    @staticmethod
    def has_logged_in() -> Specification:
        return Specification(lambda m: m.last_login_at.is_not(None), "last_login_at IS NOT NULL")

    @staticmethod
    def has_never_logged_in() -> Specification:
        return Specification(lambda m: m.last_login_at.is_(None), "last_login_at IS NULL")
