"""Domain models."""

from src.domain.models.base import Base
from src.domain.models.user import User


__all__ = ["Base", "User"]
