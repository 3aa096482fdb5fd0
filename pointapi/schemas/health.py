"""Pydantic models for health endpoints."""

from typing import Optional
from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Response model for service health checks."""

    status: str = "healthy"
    storage_backend: Optional[str] = None
    registered_user_locks: Optional[int] = None
    error: Optional[str] = None
