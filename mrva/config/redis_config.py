"""
Redis Configuration

Connection settings for the Redis instance that holds variant analysis
history, and factories for the repositories built on it.
"""

import os
from typing import Optional

import redis

from mrva.infrastructure.redis_repository import RedisConnectionManager, RedisRepository
from mrva.infrastructure.redis_variant_analysis_repository import RedisVariantAnalysisRepository


class RedisConfig:
    """Redis configuration settings."""

    def __init__(self):
        self.host = os.getenv("REDIS_HOST", "localhost")
        self.port = int(os.getenv("REDIS_PORT", 6379))
        self.db = int(os.getenv("REDIS_DB", 0))
        self.password = os.getenv("REDIS_PASSWORD")
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", 20))
        # Several deployments may share one Redis database
        self.key_prefix = os.getenv("MRVA_REDIS_KEY_PREFIX", "mrva")

        # redis://[:password@]host:port/db overrides the individual settings
        self.url = os.getenv("REDIS_URL")
        if self.url:
            connection_params = redis.connection.parse_url(self.url)
            self.host = connection_params.get("host", self.host)
            self.port = connection_params.get("port", self.port)
            self.db = connection_params.get("db", self.db)
            self.password = connection_params.get("password", self.password)


_redis_manager: Optional[RedisConnectionManager] = None
_key_prefix = ""


def init_redis(config: Optional[RedisConfig] = None) -> RedisConnectionManager:
    """
    Initialize the process-wide Redis connection manager.

    Web process and Celery workers call this with the same environment so
    both see the same variant analysis history.

    Args:
        config: Redis configuration, read from the environment if None

    Returns:
        RedisConnectionManager instance
    """
    global _redis_manager, _key_prefix

    config = config or RedisConfig()
    _key_prefix = config.key_prefix
    _redis_manager = RedisConnectionManager(
        host=config.host,
        port=config.port,
        db=config.db,
        password=config.password or None,
        max_connections=config.max_connections,
    )
    return _redis_manager


def get_redis_repository(key_prefix: Optional[str] = None) -> RedisRepository:
    """
    Get a Redis repository scoped to a key prefix.

    Args:
        key_prefix: Prefix for every key, the configured prefix if None

    Raises:
        RuntimeError: If Redis is not initialized
    """
    if _redis_manager is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return RedisRepository(_redis_manager.client, _key_prefix if key_prefix is None else key_prefix)


def get_variant_analysis_history() -> RedisVariantAnalysisRepository:
    """Job history used for rehydration, stored under the configured prefix."""
    return RedisVariantAnalysisRepository(get_redis_repository())


def redis_health_check() -> bool:
    """Check Redis connection health; False when not initialized."""
    if _redis_manager is None:
        return False
    return _redis_manager.health_check()
