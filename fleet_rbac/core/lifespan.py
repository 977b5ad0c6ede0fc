"""Application lifespan: startup and shutdown.

Wiring of infrastructure only (cache, DB engine dispose).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from fleet_rbac.core.config import get_settings
from fleet_rbac.domain.role_types import validate_role_type_configuration

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: role type table self-check, Redis cache (if enabled).
    Shutdown: cache disconnect, SQL engine dispose.
    """
    settings = get_settings()

    # ---- Startup ----
    if not validate_role_type_configuration():
        logger.warning("Role type configuration has inconsistencies")

    if settings.redis_enabled:
        from fleet_rbac.infrastructure.cache.redis_cache import CacheService

        cache = CacheService()
        await cache.connect()
        app.state.cache = cache
    else:
        app.state.cache = None

    yield

    # ---- Shutdown ----
    if getattr(app.state, "cache", None) is not None:
        await app.state.cache.disconnect()
        logger.info("Cache disconnected")

    from fleet_rbac.infrastructure.persistence.database import dispose_engine

    await dispose_engine()
