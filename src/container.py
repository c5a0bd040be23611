"""Dependency injection container configuration."""

from typing import Any

from dependency_injector import containers, providers

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
)
from src.domain.interfaces import IPasswordHasher
from src.infrastructure.config import get_settings
from src.infrastructure.persistence.database import Database
from src.infrastructure.persistence.unit_of_work import UnitOfWork
from src.infrastructure.security.password_hasher import Argon2PasswordHasher


class UseCases(containers.DeclarativeContainer):
    """Use cases container for better organization."""

    uow_factory: providers.Dependency[Any] = providers.Dependency()
    password_hasher: providers.Dependency[IPasswordHasher] = providers.Dependency()

    # Reads
    get_user = providers.Factory(GetUserUseCase, uow_factory=uow_factory)
    get_user_by_email = providers.Factory(GetUserByEmailUseCase, uow_factory=uow_factory)
    get_user_by_username = providers.Factory(GetUserByUsernameUseCase, uow_factory=uow_factory)
    lookup_user = providers.Factory(LookupUserUseCase, uow_factory=uow_factory)
    get_user_including_deleted = providers.Factory(
        GetUserIncludingDeletedUseCase, uow_factory=uow_factory
    )
    list_users = providers.Factory(ListUsersUseCase, uow_factory=uow_factory)
    list_all_users = providers.Factory(ListAllUsersUseCase, uow_factory=uow_factory)
    list_recently_active_users = providers.Factory(
        ListRecentlyActiveUsersUseCase, uow_factory=uow_factory
    )
    search_users = providers.Factory(SearchUsersUseCase, uow_factory=uow_factory)
    check_email_exists = providers.Factory(CheckEmailExistsUseCase, uow_factory=uow_factory)
    check_username_exists = providers.Factory(CheckUsernameExistsUseCase, uow_factory=uow_factory)
    get_user_stats = providers.Factory(GetUserStatsUseCase, uow_factory=uow_factory)

    # Mutations
    create_user = providers.Factory(
        CreateUserUseCase, uow_factory=uow_factory, password_hasher=password_hasher
    )
    update_user = providers.Factory(
        UpdateUserUseCase, uow_factory=uow_factory, password_hasher=password_hasher
    )
    delete_user = providers.Factory(DeleteUserUseCase, uow_factory=uow_factory)
    delete_users = providers.Factory(DeleteUsersUseCase, uow_factory=uow_factory)
    restore_user = providers.Factory(RestoreUserUseCase, uow_factory=uow_factory)
    set_user_active_status = providers.Factory(SetUserActiveStatusUseCase, uow_factory=uow_factory)
    record_user_login = providers.Factory(RecordUserLoginUseCase, uow_factory=uow_factory)


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "src.presentation.api.v1.endpoints.users",
            "src.presentation.api.v1.endpoints.health",
            "src.presentation.api.dependencies",
        ]
    )

    # Configuration
    config = providers.Singleton(get_settings)

    # Infrastructure
    database = providers.Singleton(Database, settings=config)

    # Argon2 parameters come from settings; one hasher is shared by all requests
    password_hasher = providers.Singleton(Argon2PasswordHasher.from_settings, settings=config)

    # Session factory for Unit of Work
    session_factory_provider = providers.Callable(database.provided.get_session_factory)

    # Unit of Work factory; use cases call it once per transaction,
    # passing read_only=True for queries
    uow_factory = providers.Factory(
        UnitOfWork,
        session_factory=session_factory_provider,
        lock_timeout_ms=config.provided.lock_timeout_ms,
    )

    # Use Cases (nested container)
    use_cases = providers.Container(
        UseCases,
        uow_factory=uow_factory.provider,
        password_hasher=password_hasher,
    )
