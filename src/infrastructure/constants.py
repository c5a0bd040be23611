"""Application-wide constants and limits."""


class ValidationLimits:
    """Field length limits shared by schemas, entities and migrations."""

    # Email
    MAX_EMAIL_LENGTH = 255

    # Username requirements
    MIN_USERNAME_LENGTH = 3
    MAX_USERNAME_LENGTH = 50

    # Password requirements (raw input, before hashing)
    MIN_PASSWORD_LENGTH = 8
    MAX_PASSWORD_LENGTH = 255

    # Stored hash column
    MAX_PASSWORD_HASH_LENGTH = 255

    # Names
    MAX_NAME_LENGTH = 100


class PaginationDefaults:
    """Default values for pagination."""

    DEFAULT_PAGE_SIZE = 20  # Default number of items per page
    MAX_PAGE_SIZE = 100  # Maximum number of items per page
    MAX_BATCH_SIZE = 100  # Maximum ids accepted by batch operations


class LockDefaults:
    """Pessimistic locking defaults."""

    LOCK_TIMEOUT_MS = 5000  # Maximum wait for a row lock
    POSTGRES_LOCK_NOT_AVAILABLE = "55P03"  # SQLSTATE raised when lock_timeout expires


# Public field name -> entity attribute, for client-supplied sort keys
USER_SORTABLE_FIELDS = {
    "id": "id",
    "email": "email",
    "username": "username",
    "firstName": "first_name",
    "first_name": "first_name",
    "lastName": "last_name",
    "last_name": "last_name",
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "lastLoginAt": "last_login_at",
    "last_login_at": "last_login_at",
}
