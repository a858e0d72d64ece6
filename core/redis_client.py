"""
Redis client manager for DevWebFeed
Handles connection pooling, JSON values, pub/sub and health checks
"""

import json
import logging
from typing import Any, Callable, Optional

import redis

from config import get_redis_url

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Redis connection manager with connection pooling and retry logic.
    """

    def __init__(self, redis_url: Optional[str] = None):
        redis_url = redis_url or get_redis_url()

        try:
            # Create connection pool for efficiency
            self.pool = redis.ConnectionPool.from_url(
                redis_url,
                max_connections=20,
                decode_responses=True,  # Auto-decode bytes to strings
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            # Test connection
            self.client.ping()
            logger.info(f"✅ Redis connected successfully: {redis_url}")
        except redis.ConnectionError as e:
            logger.error(f"❌ Redis connection failed: {str(e)}")
            raise RuntimeError(f"Failed to connect to Redis: {str(e)}")

    def ping(self) -> bool:
        """Check if Redis is available"""
        try:
            return self.client.ping()
        except redis.ConnectionError:
            return False

    def set_json(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store a JSON-encoded value with optional TTL (Time To Live).

        Args:
            key: Redis key
            value: JSON-serializable value
            ttl: Time to live in seconds (None = no expiration)

        Returns:
            True if successful
        """
        try:
            payload = json.dumps(value)
            if ttl:
                return bool(self.client.setex(key, ttl, payload))
            return bool(self.client.set(key, payload))
        except redis.RedisError as e:
            logger.error(f"Redis SET failed for key '{key}': {str(e)}")
            return False

    def get_json(self, key: str) -> Optional[Any]:
        """
        Retrieve and decode a JSON value.

        Returns:
            Decoded value if found, None otherwise
        """
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis GET failed for key '{key}': {str(e)}")
            return None

        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding non-JSON value stored at '{key}'")
            return None

    def update_json(self, key: str, update: Callable[[Any], Any]) -> Any:
        """
        Read-modify-write a JSON value atomically (WATCH/MULTI).

        `update` receives the current value (None if missing) and returns the
        new value. It may run more than once if another writer races.

        Returns:
            The value written
        """
        def _transaction(pipe):
            raw = pipe.get(key)
            current = json.loads(raw) if raw is not None else None
            new_value = update(current)
            pipe.multi()
            pipe.set(key, json.dumps(new_value))
            return new_value

        return self.client.transaction(_transaction, key, value_from_callable=True)

    def delete(self, key: str) -> bool:
        """Delete a key from Redis"""
        try:
            return bool(self.client.delete(key))
        except redis.RedisError as e:
            logger.error(f"Redis DELETE failed for key '{key}': {str(e)}")
            return False

    def add_to_set(self, name: str, *values: str) -> int:
        return self.client.sadd(name, *values)

    def members(self, name: str) -> set:
        return set(self.client.smembers(name))

    def publish(self, channel: str, message: Any) -> int:
        """
        Publish a JSON-encoded message.

        Returns:
            Number of receivers

        Raises:
            redis.RedisError: If the message could not be published
        """
        try:
            return self.client.publish(channel, json.dumps(message))
        except redis.RedisError as e:
            logger.error(f"Redis PUBLISH failed for channel '{channel}': {str(e)}")
            raise

    def subscribe(self, channel: str, handler: Callable[[Any], None]):
        """
        Call `handler` with every decoded message published on `channel`.

        Messages are received on a background thread.

        Returns:
            The worker thread (call .stop() to unsubscribe)
        """
        def _on_message(message):
            try:
                payload = json.loads(message["data"])
            except (json.JSONDecodeError, TypeError):
                logger.warning(f"Ignoring malformed message on '{channel}'")
                return
            handler(payload)

        pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(**{channel: _on_message})
        return pubsub.run_in_thread(sleep_time=1.0, daemon=True)

    def get_stats(self) -> dict:
        """
        Get Redis connection and memory stats.

        Returns:
            Dictionary with Redis statistics
        """
        try:
            info = self.client.info()
            return {
                "connected_clients": info.get("connected_clients", 0),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "total_commands_processed": info.get("total_commands_processed", 0),
            }
        except Exception as e:
            logger.error(f"Failed to get Redis stats: {str(e)}")
            return {"error": str(e)}

    def close(self):
        """Close Redis connection pool"""
        try:
            self.pool.disconnect()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {str(e)}")


# Global Redis client instance
redis_client: Optional[RedisClient] = None


def get_redis_client() -> RedisClient:
    """
    Get or create the global Redis client instance.

    Returns:
        RedisClient instance
    """
    global redis_client

    if redis_client is None:
        redis_client = RedisClient()

    return redis_client


def close_redis_client():
    """Close the global Redis client"""
    global redis_client

    if redis_client is not None:
        redis_client.close()
        redis_client = None
