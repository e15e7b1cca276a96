"""
Redis Repository Base Class

JSON documents under prefixed keys, plus the pooled connection the web
process and workers share.
"""

import json
import logging
from typing import Any, Dict, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisRepository:
    """
    Stores JSON documents in Redis.

    Failures are logged and reported through return values so that a Redis
    outage degrades persistence without breaking orchestration.
    """

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    def _strip_prefix(self, redis_key) -> str:
        if isinstance(redis_key, bytes):
            redis_key = redis_key.decode("utf-8")
        if self.key_prefix:
            return redis_key[len(self.key_prefix) + 1:]
        return redis_key

    @staticmethod
    def _decode(key: str, raw) -> Optional[Dict[str, Any]]:
        if raw is None:
            return None
        try:
            return json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Invalid JSON stored under key {key}: {e}")
            return None

    def set_json(self, key: str, data: Dict[str, Any]) -> bool:
        """
        Store a document without expiry.

        Returns:
            True if successful, False otherwise
        """
        try:
            return bool(self.redis.set(self._make_key(key), json.dumps(data)))
        except (RedisError, TypeError) as e:
            logger.error(f"Error setting JSON data for key {key}: {e}")
            return False

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """Load a document; None when missing, unreadable or Redis fails."""
        try:
            raw = self.redis.get(self._make_key(key))
        except RedisError as e:
            logger.error(f"Error getting JSON data for key {key}: {e}")
            return None
        return self._decode(key, raw)

    def get_json_by_pattern(self, pattern: str) -> Dict[str, Dict[str, Any]]:
        """
        Load every document whose key matches a pattern.

        Keys are scanned first and values fetched with a single MGET.
        Unreadable documents are left out.

        Args:
            pattern: Redis glob pattern, relative to the key prefix

        Returns:
            Mapping of key (without prefix) to document
        """
        try:
            redis_keys = list(self.redis.scan_iter(match=self._make_key(pattern)))
            if not redis_keys:
                return {}
            values = self.redis.mget(redis_keys)
        except RedisError as e:
            logger.error(f"Error loading documents matching {pattern}: {e}")
            return {}

        documents = {}
        for redis_key, raw in zip(redis_keys, values):
            key = self._strip_prefix(redis_key)
            document = self._decode(key, raw)
            if document is not None:
                documents[key] = document
        return documents

    def delete(self, key: str) -> bool:
        """Delete a document; True only if something was deleted."""
        try:
            return self.redis.delete(self._make_key(key)) > 0
        except RedisError as e:
            logger.error(f"Error deleting key {key}: {e}")
            return False


class RedisConnectionManager:
    """Owns the connection pool and a lazily created client."""

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 password: Optional[str] = None, max_connections: int = 20):
        self.connection_pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            password=password,
            max_connections=max_connections,
            retry_on_timeout=True,
            socket_keepalive=True,
        )
        self._client = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.connection_pool)
        return self._client

    def health_check(self) -> bool:
        """Ping Redis; False when it cannot be reached."""
        try:
            return bool(self.client.ping())
        except (RedisConnectionError, OSError):
            return False
