"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready: database and cache reachability."""

    status: str = Field(default="ok", description="Readiness status")
    database: bool = True
    cache: bool | None = Field(
        default=None, description="Cache reachable; null when caching is disabled"
    )
