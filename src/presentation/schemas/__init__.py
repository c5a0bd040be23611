"""API schemas."""

from src.presentation.schemas.error import ErrorResponse
from src.presentation.schemas.user import (
    BatchDeleteRequest,
    BatchDeleteResponse,
    UserCreate,
    UserLoginRecord,
    UserPageResponse,
    UserResponse,
    UserStatsResponse,
    UserStatusUpdate,
    UserUpdate,
)


__all__ = [
    "BatchDeleteRequest",
    "BatchDeleteResponse",
    "ErrorResponse",
    "UserCreate",
    "UserLoginRecord",
    "UserPageResponse",
    "UserResponse",
    "UserStatsResponse",
    "UserStatusUpdate",
    "UserUpdate",
]
