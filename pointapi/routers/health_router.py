from fastapi import APIRouter, Depends
from dependency_injector.wiring import inject, Provide

from pointapi.config import Settings
from pointapi.containers import Container
from pointapi.schemas.health import HealthCheckResponse
from pointapi.services.lock_registry import UserLockRegistry

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
@inject
async def health_check(
    settings: Settings = Depends(Provide[Container.config.config]),
    lock_registry: UserLockRegistry = Depends(Provide[Container.services.lock_registry]),
) -> HealthCheckResponse:
    """Health check endpoint."""

    return HealthCheckResponse(
        storage_backend=settings.STORAGE_BACKEND,
        registered_user_locks=len(lock_registry),
    )
