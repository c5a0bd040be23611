"""Repository implementations."""

from src.infrastructure.repositories.base_repository import BaseRepository
from src.infrastructure.repositories.user_repository import UserRepository


__all__ = ["BaseRepository", "UserRepository"]
