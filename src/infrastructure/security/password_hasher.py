"""Argon2id password hashing.

Hashes are self-describing PHC strings (``$argon2id$v=19$m=...,t=...,p=...$salt$hash``),
so cost parameters can be raised later without invalidating stored hashes.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from src.domain.interfaces import IPasswordHasher
from src.infrastructure.config import Settings


class Argon2PasswordHasher(IPasswordHasher):
    """IPasswordHasher backed by argon2-cffi.

    Attributes:
        _hasher: Configured argon2 PasswordHasher
    """

    def __init__(
        self,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
        salt_len: int = 16,
        hash_len: int = 32,
    ) -> None:
        """Initialize hasher with argon2id cost parameters.

        Args:
            time_cost: Number of iterations
            memory_cost: Memory usage in kibibytes
            parallelism: Number of parallel lanes
            salt_len: Random salt length in bytes
            hash_len: Digest length in bytes
        """
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            salt_len=salt_len,
            hash_len=hash_len,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Argon2PasswordHasher":
        """Build a hasher from the configured cost parameters."""
        return cls(
            time_cost=settings.password_hash_time_cost,
            memory_cost=settings.password_hash_memory_cost,
            parallelism=settings.password_hash_parallelism,
        )

    def hash(self, raw_password: str) -> str:
        return self._hasher.hash(raw_password)

    def verify(self, raw_password: str, password_hash: str) -> bool:
        try:
            return self._hasher.verify(password_hash, raw_password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """Check whether a stored hash was made with outdated parameters."""
        return self._hasher.check_needs_rehash(password_hash)
