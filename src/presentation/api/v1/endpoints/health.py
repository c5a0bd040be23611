"""Health check endpoints for monitoring and orchestration.

Provides a liveness probe with a database connectivity check for
Docker health checks and load balancer routing decisions.
"""

from typing import Annotated

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.container import Container
from src.infrastructure.config import Settings
from src.infrastructure.persistence.database import Database


router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    database: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "healthy",
                    "version": "0.1.0",
                    "environment": "production",
                    "database": "healthy",
                }
            ]
        }
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health Check",
    description="""
Check if the API and its database are operational.

The endpoint always answers 200 while the process is up; `database`
reports `unhealthy` when a `SELECT 1` fails.
    """,
)
@inject
async def health_check(
    database: Annotated[Database, Depends(Provide[Container.database])],
    settings: Annotated[Settings, Depends(Provide[Container.config])],
) -> HealthResponse:
    """Health check endpoint using DI container.

    Args:
        database: Injected database instance from DI container
        settings: Application settings

    Returns:
        Health status including database connectivity
    """
    db_status = "healthy" if await database.health_check() else "unhealthy"

    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.app_env,
        database=db_status,
    )
