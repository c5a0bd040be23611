"""FastAPI application factory and configuration."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from dependency_injector import providers
from fastapi import FastAPI

from src.container import Container
from src.infrastructure.config import Settings, get_settings
from src.infrastructure.logging.config import configure_logging, get_logger
from src.presentation.api.middleware.error_handling import setup_exception_handlers
from src.presentation.api.middleware.logging import LoggingMiddleware
from src.presentation.api.middleware.request_context import RequestContextMiddleware
from src.presentation.api.v1 import api_router


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan events.

    SQLite databases (tests, local runs) get their schema from the ORM
    metadata at startup; other databases are migrated with Alembic.
    """
    container: Container = app.state.container
    settings: Settings = container.config()
    database = container.database()

    logger.info("application_startup", app_name=app.title, version=app.version)

    if settings.is_sqlite:
        await database.create_schema()
        logger.info("database_schema_created")

    yield

    await database.close()
    logger.info("application_shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to run with; defaults to the environment-derived ones

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    configure_logging(settings)

    # Create and wire dependency injection container
    container = Container()
    container.config.override(providers.Object(settings))
    container.wire(
        modules=[
            "src.presentation.api.v1.endpoints.users",
            "src.presentation.api.v1.endpoints.health",
            "src.presentation.api.dependencies",
        ]
    )

    # OpenAPI tags for documentation organization
    tags_metadata = [
        {
            "name": "health",
            "description": "Liveness and database connectivity check.",
        },
        {
            "name": "users",
            "description": """
User account management.

### Features
- **Soft Delete**: deleted users disappear from every query but can be restored
- **Optimistic Locking**: concurrent updates to the same user fail with 409
- **Validation**: per-field messages under `validationErrors`
- **Pagination**: `page` (0-based), `size` (max 100) and repeatable `sort=field,direction`
            """,
        },
    ]

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
# User Accounts Service

CRUD service for user accounts: unique email and username, hashed
passwords, soft delete and optimistic concurrency control.
        """,
        openapi_tags=tags_metadata,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        lifespan=lifespan,
    )

    # Store container in app state for access if needed
    app.state.container = container

    # Setup exception handlers
    setup_exception_handlers(app)

    # Setup middleware (order matters: the last added runs first)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestContextMiddleware)

    # Include routers
    app.include_router(api_router, prefix=settings.api_prefix)

    return app
