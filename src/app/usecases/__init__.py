"""Application use cases."""

from src.app.usecases.user_usecases import (
    CheckEmailExistsUseCase,
    CheckUsernameExistsUseCase,
    CreateUserUseCase,
    DeleteUsersUseCase,
    DeleteUserUseCase,
    GetUserByEmailUseCase,
    GetUserByUsernameUseCase,
    GetUserIncludingDeletedUseCase,
    GetUserStatsUseCase,
    GetUserUseCase,
    ListAllUsersUseCase,
    ListRecentlyActiveUsersUseCase,
    ListUsersUseCase,
    LookupUserUseCase,
    RecordUserLoginUseCase,
    RestoreUserUseCase,
    SearchUsersUseCase,
    SetUserActiveStatusUseCase,
    UpdateUserUseCase,
    UserStats,
)


__all__ = [
    "CheckEmailExistsUseCase",
    "CheckUsernameExistsUseCase",
    "CreateUserUseCase",
    "DeleteUserUseCase",
    "DeleteUsersUseCase",
    "GetUserByEmailUseCase",
    "GetUserByUsernameUseCase",
    "GetUserIncludingDeletedUseCase",
    "GetUserStatsUseCase",
    "GetUserUseCase",
    "ListAllUsersUseCase",
    "ListRecentlyActiveUsersUseCase",
    "ListUsersUseCase",
    "LookupUserUseCase",
    "RecordUserLoginUseCase",
    "RestoreUserUseCase",
    "SearchUsersUseCase",
    "SetUserActiveStatusUseCase",
    "UpdateUserUseCase",
    "UserStats",
]
