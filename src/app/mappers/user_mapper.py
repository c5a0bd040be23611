"""Conversions between inbound user records and the User entity.

``NewUser`` and ``UserChanges`` are the internal forms of the create and
update requests. The entity never receives request fields it does not own:
id, timestamps, version, active flag and last login time are managed by the
store and the service.
"""

from dataclasses import dataclass, fields

from src.domain.models.user import User


@dataclass(frozen=True)
class NewUser:
    """Validated data for a user that does not exist yet.

    Attributes:
        email: Email address
        username: Username
        password: Raw password (replaced by its hash before persistence)
        first_name: Optional first name
        last_name: Optional last name
    """

    email: str
    username: str
    password: str
    first_name: str | None = None
    last_name: str | None = None

    def __repr__(self) -> str:
        return f"NewUser(email={self.email!r}, username={self.username!r})"


@dataclass(frozen=True)
class UserChanges:
    """Partial update. ``None`` means "leave the stored value unchanged"."""

    email: str | None = None
    username: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    def __repr__(self) -> str:
        provided = [f.name for f in fields(self) if getattr(self, f.name) is not None]
        return f"UserChanges(fields={provided})"

    @property
    def is_empty(self) -> bool:
        """True when no field would change anything."""
        return all(getattr(self, f.name) is None for f in fields(self))


def to_entity(new_user: NewUser, password_hash: str) -> User:
    """Build a transient User from a create record.

    Args:
        new_user: Create record
        password_hash: Hash of ``new_user.password``

    Returns:
        Active, unsaved User carrying only the hash
    """
    return User(
        email=new_user.email,
        username=new_user.username,
        password_hash=password_hash,
        first_name=new_user.first_name,
        last_name=new_user.last_name,
        is_active=True,
    )


def apply_changes(user: User, changes: UserChanges, password_hash: str | None = None) -> User:
    """Merge a partial update into an entity in place.

    Only non-None fields overwrite. The password is applied only through
    ``password_hash``, which the caller computes when ``changes.password``
    is non-empty.

    Args:
        user: Entity to modify
        changes: Partial update
        password_hash: New hash, or None to keep the stored one

    Returns:
        The same entity
    """
    if changes.email is not None:
        user.email = changes.email
    if changes.username is not None:
        user.username = changes.username
    if changes.first_name is not None:
        user.first_name = changes.first_name
    if changes.last_name is not None:
        user.last_name = changes.last_name
    if password_hash is not None:
        user.password_hash = password_hash
    return user
