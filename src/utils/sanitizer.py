"""Sanitization utilities for log events.

Used by the structlog processor pipeline (``sanitize_sensitive_data``) so that
raw passwords, password hashes and credentials never appear in log output,
even when a caller binds a whole request payload to a log event.
"""

from typing import Any


# Sensitive field patterns that should be redacted
SENSITIVE_PATTERNS = {
    # Credentials
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "credentials",
    "cookie",
    # Database
    "connection_string",
    "database_url",
}

REDACTED = "***REDACTED***"


def is_sensitive_key(key: str, patterns: set[str] | None = None) -> bool:
    """Check if a key matches any sensitive pattern.

    Args:
        key: The key to check (case-insensitive, normalized)
        patterns: Optional custom patterns (defaults to SENSITIVE_PATTERNS)

    Returns:
        True if key matches any sensitive pattern, False otherwise

    Example:
        >>> is_sensitive_key("password_hash")
        True
        >>> is_sensitive_key("X-Api-Key")
        True
        >>> is_sensitive_key("username")
        False
    """
    if patterns is None:
        patterns = SENSITIVE_PATTERNS

    # Normalize key: lowercase, replace separators with underscores
    normalized_key = key.lower().replace("-", "_").replace(".", "_").replace(" ", "_")

    return any(pattern.replace("-", "_") in normalized_key for pattern in patterns)


def sanitize_value(key: str, value: Any, patterns: set[str] | None = None) -> Any:
    """Sanitize a value if its key is sensitive.

    Args:
        key: The key name
        value: The value to potentially sanitize
        patterns: Optional custom patterns (defaults to SENSITIVE_PATTERNS)

    Returns:
        Sanitized value if key is sensitive, original value otherwise

    Example:
        >>> sanitize_value("password", "secret123")
        '***REDACTED***'
        >>> sanitize_value("username", "john")
        'john'
    """
    if not is_sensitive_key(key, patterns):
        return value
    return REDACTED


def sanitize_dict(
    data: dict[str, Any],
    patterns: set[str] | None = None,
    recursive: bool = True,
) -> dict[str, Any]:
    """Recursively sanitize a dictionary.

    Args:
        data: Dictionary to sanitize
        patterns: Optional custom patterns (defaults to SENSITIVE_PATTERNS)
        recursive: Whether to recursively sanitize nested dicts/lists

    Returns:
        New dictionary with sensitive values redacted

    Example:
        >>> sanitize_dict({"password": "secret", "username": "john"})
        {'password': '***REDACTED***', 'username': 'john'}
        >>> sanitize_dict({"user": {"password": "secret", "id": 123}})
        {'user': {'password': '***REDACTED***', 'id': 123}}
    """
    sanitized = {}

    for key, value in data.items():
        # Check if key is sensitive first - if so, redact entire value
        if is_sensitive_key(key, patterns):
            sanitized[key] = REDACTED
        elif recursive and isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, patterns, recursive)
        elif recursive and isinstance(value, list):
            sanitized[key] = [
                sanitize_dict(item, patterns, recursive) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            sanitized[key] = value

    return sanitized
