"""Tests for application configuration.

Test Organization:
- TestSettingsDefaults: Default configuration values
- TestSettingsFromEnvironment: Environment variable parsing
- TestSettingsValidation: Boundary validation of tunables
- TestEnvironmentProperties: Environment and dialect detection properties
- TestGetSettingsCaching: Settings singleton caching
"""

import pytest
from pydantic import ValidationError

from src.infrastructure.config import Settings, get_settings


# ============================================================================
# Default Values Tests
# ============================================================================


class TestSettingsDefaults:
    """Test default configuration values."""

    def test_has_sensible_application_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test application settings have sensible defaults.

        Arrange: Clear environment overrides
        Act: Create Settings instance
        Assert: Application settings have expected defaults
        """
        # Arrange
        for name in ("APP_NAME", "APP_ENV", "PORT", "HOST"):
            monkeypatch.delenv(name, raising=False)

        # Act
        settings = Settings(_env_file=None)

        # Assert
        assert settings.app_name == "user-accounts-service"
        assert settings.app_version == "0.1.0"
        assert settings.app_env == "development"
        assert settings.port == 8000
        assert settings.host == "0.0.0.0"
        assert settings.debug is False

    def test_has_expected_api_defaults(self) -> None:
        """Test the API is served under /api with pages of 20."""
        # Act
        settings = Settings(_env_file=None)

        # Assert
        assert settings.api_prefix == "/api"
        assert settings.default_page_size == 20
        assert settings.lock_timeout_ms == 5000

    def test_password_hashing_defaults_are_argon2_recommendations(self) -> None:
        """Test argon2 cost defaults are the production values."""
        settings = Settings(_env_file=None)

        assert settings.password_hash_time_cost == 3
        assert settings.password_hash_memory_cost == 65536
        assert settings.password_hash_parallelism == 4


# ============================================================================
# Environment Variable Tests
# ============================================================================


class TestSettingsFromEnvironment:
    """Test loading settings from environment variables."""

    def test_loads_app_env_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test APP_ENV environment variable overrides default.

        Arrange: Set APP_ENV environment variable
        Act: Create Settings instance
        Assert: Settings uses environment value
        """
        # Arrange
        monkeypatch.setenv("APP_ENV", "staging")

        # Act
        settings = Settings()

        # Assert
        assert settings.app_env == "staging"

    def test_loads_typed_values_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test booleans and integers are parsed from strings.

        Arrange: Set DEBUG, PORT and LOCK_TIMEOUT_MS
        Act: Create Settings instance
        Assert: Values are converted to their field types
        """
        # Arrange
        monkeypatch.setenv("DEBUG", "true")
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("LOCK_TIMEOUT_MS", "250")

        # Act
        settings = Settings()

        # Assert
        assert settings.debug is True
        assert settings.port == 9000
        assert settings.lock_timeout_ms == 250

    def test_loads_database_url_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test DATABASE_URL selects the database."""
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./local.db")

        assert Settings().database_url == "sqlite+aiosqlite:///./local.db"

    def test_accepts_field_names_as_keywords(self) -> None:
        """Test settings can be built in code with field names."""
        settings = Settings(app_env="testing", default_page_size=50)

        assert settings.app_env == "testing"
        assert settings.default_page_size == 50


# ============================================================================
# Validation Tests
# ============================================================================


class TestSettingsValidation:
    """Test boundary validation of configurable limits."""

    def test_normalizes_log_level_case(self) -> None:
        """Test LOG_LEVEL is upper-cased."""
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_rejects_unknown_log_level(self) -> None:
        """Test an unknown LOG_LEVEL is rejected."""
        with pytest.raises(ValidationError, match="LOG_LEVEL"):
            Settings(log_level="chatty")

    @pytest.mark.parametrize("value", [1, 60000])
    def test_accepts_lock_timeout_bounds(self, value: int) -> None:
        """Test lock timeouts of 1 ms and 60 s are accepted."""
        assert Settings(lock_timeout_ms=value).lock_timeout_ms == value

    @pytest.mark.parametrize("value", [0, -1, 60001])
    def test_rejects_lock_timeout_out_of_range(self, value: int) -> None:
        """Test lock timeouts outside 1..60000 ms are rejected."""
        with pytest.raises(ValidationError, match="Lock timeout"):
            Settings(lock_timeout_ms=value)

    @pytest.mark.parametrize("value", [0, 101])
    def test_rejects_default_page_size_out_of_range(self, value: int) -> None:
        """Test the default page size must fit the maximum page size."""
        with pytest.raises(ValidationError, match="DEFAULT_PAGE_SIZE"):
            Settings(default_page_size=value)

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("api", "/api"), ("/api/", "/api"), ("/v2/api", "/v2/api"), ("/", "")],
    )
    def test_normalizes_api_prefix(self, raw: str, expected: str) -> None:
        """Test API prefix gets a leading slash and loses a trailing one."""
        assert Settings(api_prefix=raw).api_prefix == expected


# ============================================================================
# Environment Properties Tests
# ============================================================================


class TestEnvironmentProperties:
    """Test environment detection properties."""

    def test_is_production_is_case_insensitive(self) -> None:
        """Test is_production ignores case."""
        settings = Settings(app_env="PRODUCTION")

        assert settings.is_production is True
        assert settings.is_development is False

    def test_is_development_returns_false_for_staging(self) -> None:
        """Test staging is neither development nor production."""
        settings = Settings(app_env="staging")

        assert settings.is_development is False
        assert settings.is_production is False

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("sqlite+aiosqlite:///:memory:", True),
            ("postgresql+asyncpg://u:p@localhost/db", False),
        ],
    )
    def test_is_sqlite(self, url: str, expected: bool) -> None:
        """Test SQLite URLs are detected by scheme."""
        assert Settings(database_url=url).is_sqlite is expected


# ============================================================================
# Caching Tests
# ============================================================================


class TestGetSettingsCaching:
    """Test settings singleton caching."""

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test repeated calls return the same object.

        Arrange: Clear the cache
        Act: Call get_settings twice
        Assert: Both calls return the identical instance
        """
        # Arrange
        get_settings.cache_clear()

        # Act
        first = get_settings()
        second = get_settings()

        # Assert
        assert isinstance(first, Settings)
        assert first is second
