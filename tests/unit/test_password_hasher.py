"""Unit tests for argon2id password hashing."""

from hypothesis import given, settings

from src.infrastructure.security.password_hasher import Argon2PasswordHasher
from tests.strategies import password_strategy


class TestArgon2PasswordHasher:
    """Test hashing and verification."""

    def test_hash_is_argon2id_phc_string(self, password_hasher: Argon2PasswordHasher) -> None:
        """Test hashes are self-describing argon2id strings."""
        hashed = password_hasher.hash("correct-horse")

        assert hashed.startswith("$argon2id$")
        assert "correct-horse" not in hashed

    def test_same_password_hashes_differently(self, password_hasher: Argon2PasswordHasher) -> None:
        """Test a random salt makes every hash unique."""
        assert password_hasher.hash("correct-horse") != password_hasher.hash("correct-horse")

    def test_verify_accepts_matching_password(self, password_hasher: Argon2PasswordHasher) -> None:
        hashed = password_hasher.hash("correct-horse")

        assert password_hasher.verify("correct-horse", hashed) is True

    def test_verify_rejects_wrong_password(self, password_hasher: Argon2PasswordHasher) -> None:
        hashed = password_hasher.hash("correct-horse")

        assert password_hasher.verify("battery-staple", hashed) is False

    def test_verify_rejects_malformed_hash(self, password_hasher: Argon2PasswordHasher) -> None:
        """Test garbage in the hash column verifies as False instead of raising."""
        assert password_hasher.verify("correct-horse", "not-a-hash") is False

    def test_needs_rehash_after_cost_increase(self, password_hasher: Argon2PasswordHasher) -> None:
        """Test hashes made with cheaper parameters are flagged for rehash."""
        hashed = password_hasher.hash("correct-horse")
        stronger = Argon2PasswordHasher(time_cost=2, memory_cost=128, parallelism=1)

        assert password_hasher.needs_rehash(hashed) is False
        assert stronger.needs_rehash(hashed) is True

    @settings(max_examples=20, deadline=None)
    @given(password=password_strategy())
    def test_round_trip(self, password_hasher: Argon2PasswordHasher, password: str) -> None:
        """Property: every valid password verifies against its own hash."""
        assert password_hasher.verify(password, password_hasher.hash(password))
