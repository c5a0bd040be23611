"""Infrastructure layer containing implementations."""

__all__ = [
    "config",
    "filtering",
    "logging",
    "persistence",
    "repositories",
    "security",
]
