"""Cache backends for effective permission sets."""

from fleet_rbac.infrastructure.cache.redis_cache import CacheService

__all__ = ["CacheService"]
