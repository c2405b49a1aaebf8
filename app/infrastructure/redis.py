from typing import Any, Dict, Optional
import json
import logging
import time
import redis.asyncio as redis
from redis.asyncio import Redis

from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisManager:
    """Redis connection manager and utilities"""

    def __init__(self):
        self._redis_client: Optional[Redis] = None
        self._is_connected = False

    async def connect(self, redis_url: str) -> None:
        """Establish Redis connection"""
        try:
            self._redis_client = redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=20,
                retry_on_timeout=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                health_check_interval=30
            )

            # Test connection
            await self._redis_client.ping()
            self._is_connected = True
            logger.info("Redis connection established")

        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            self._is_connected = False
            raise

    async def disconnect(self) -> None:
        """Close Redis connection"""
        if self._redis_client:
            await self._redis_client.aclose()
            self._is_connected = False
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def client(self) -> Redis:
        """Get Redis client"""
        if not self._is_connected or not self._redis_client:
            raise RuntimeError("Redis is not connected")
        return self._redis_client


# Global Redis manager instance
redis_manager = RedisManager()


async def get_redis_client() -> Redis:
    """Dependency returning a connected client, connecting lazily"""
    if not redis_manager.is_connected:
        await redis_manager.connect(settings.REDIS_URL)
    return redis_manager.client


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


def user_sessions_key(user_id) -> str:
    return f"user_sessions:{user_id}"


class SessionStore:
    """Shared session records, so every worker sees the same sign-ins

    Each record is ``session:{id}`` holding JSON with the owner and the last
    activity (epoch seconds). ``user_sessions:{user_id}`` indexes a user's
    sessions for bulk revocation. Redis errors propagate to the caller.
    """

    def __init__(
        self,
        redis_client: Redis,
        ttl_seconds: Optional[int] = None,
        inactivity_seconds: Optional[float] = None,
    ):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds or settings.REFRESH_TOKEN_EXPIRE_DAYS * 86400
        self.inactivity_seconds = inactivity_seconds or settings.SESSION_INACTIVITY_MINUTES * 60

    async def create(self, session_id: str, user_id, role: Optional[str] = None) -> None:
        now = time.time()
        session_data = {
            "session_id": session_id,
            "user_id": str(user_id),
            "role": role,
            "created_at": now,
            "last_activity": now,
        }
        await self.redis.setex(session_key(session_id), self.ttl_seconds, json.dumps(session_data))
        await self.redis.sadd(user_sessions_key(user_id), session_id)
        await self.redis.expire(user_sessions_key(user_id), self.ttl_seconds)

    async def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        value = await self.redis.get(session_key(session_id))
        if value is None:
            return None
        return json.loads(value)

    async def last_activity(self, session_id: str) -> Optional[float]:
        session_data = await self.get(session_id)
        return None if session_data is None else session_data["last_activity"]

    async def touch(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Record activity; None when the session is gone or idled out"""
        session_data = await self.get(session_id)
        if session_data is None:
            return None

        now = time.time()
        if now - session_data["last_activity"] > self.inactivity_seconds:
            logger.info("Stored session expired due to inactivity")
            await self.revoke(session_id)
            return None

        session_data["last_activity"] = now
        await self.redis.setex(session_key(session_id), self.ttl_seconds, json.dumps(session_data))
        return session_data

    async def revoke(self, session_id: str) -> bool:
        session_data = await self.get(session_id)
        deleted = await self.redis.delete(session_key(session_id))
        if session_data is not None:
            await self.redis.srem(user_sessions_key(session_data["user_id"]), session_id)
        return deleted > 0

    async def revoke_user(self, user_id, exclude_session: Optional[str] = None) -> int:
        """Revoke all sessions for a user"""
        revoked_count = 0
        for session_id in await self.redis.smembers(user_sessions_key(user_id)):
            if exclude_session and session_id == exclude_session:
                continue
            if await self.revoke(session_id):
                revoked_count += 1
        return revoked_count
