"""
Presence Service

Online state lives in Redis as ``presence:{user_id}`` keys that expire
after two missed heartbeats. Transitions are published on the global
``presence`` channel and the last-seen timestamp is persisted in
``user_status`` for users who are offline. Database writes run in a worker
thread so heartbeats never block the event loop.
"""

from typing import AsyncIterator, Dict, Iterable, List, Optional, Set
import asyncio
import json
import logging
import uuid

from redis.asyncio import Redis

from app.core.clock import utcnow
from app.core.config import settings
from app.domain.chat.repository import UserStatusRepository

logger = logging.getLogger(__name__)

PRESENCE_CHANNEL = "presence"
KEY_PREFIX = "presence:"


def presence_key(user_id) -> str:
    return f"{KEY_PREFIX}{user_id}"


class PresenceService:
    """Heartbeat-driven online tracking backed by Redis"""

    def __init__(self, redis: Redis, db=None, heartbeat_seconds: Optional[int] = None):
        self.redis = redis
        self.db = db
        self.heartbeat_seconds = heartbeat_seconds or settings.PRESENCE_HEARTBEAT_SECONDS

    @property
    def ttl(self) -> int:
        return self.heartbeat_seconds * 2

    async def heartbeat(self, user_id: uuid.UUID) -> bool:
        """Refresh the online key; returns True when the user just came online"""
        now = utcnow()
        was_online = await self.redis.set(
            presence_key(user_id), now.isoformat(), ex=self.ttl, get=True
        )
        await asyncio.to_thread(self._persist, user_id, True, now)
        if was_online is None:
            await self._publish(user_id, "online", now)
            return True
        return False

    async def go_offline(self, user_id: uuid.UUID) -> None:
        now = utcnow()
        await self.redis.delete(presence_key(user_id))
        await asyncio.to_thread(self._persist, user_id, False, now)
        await self._publish(user_id, "offline", now)

    async def online_users(self, user_ids: Iterable[uuid.UUID]) -> Set[str]:
        ids = [str(u) for u in user_ids]
        if not ids:
            return set()
        values = await self.redis.mget([presence_key(u) for u in ids])
        return {user_id for user_id, value in zip(ids, values) if value is not None}

    async def snapshot(self, user_ids: List[uuid.UUID]) -> Dict[str, dict]:
        """Online flag plus persisted last-seen for each user"""
        online = await self.online_users(user_ids)
        last_seen = {}
        if self.db is not None:
            statuses = await asyncio.to_thread(UserStatusRepository(self.db).get_many, user_ids)
            for status in statuses:
                last_seen[str(status.user_id)] = status.last_seen_at
        return {
            str(u): {
                "online": str(u) in online,
                "last_seen_at": last_seen.get(str(u)).isoformat() if last_seen.get(str(u)) else None,
            }
            for u in user_ids
        }

    def _persist(self, user_id: uuid.UUID, is_online: bool, seen_at) -> None:
        if self.db is None:
            return
        result = UserStatusRepository(self.db).upsert(user_id, is_online, seen_at)
        if not result.success:
            logger.warning("Last-seen update failed")

    async def _publish(self, user_id: uuid.UUID, status: str, at) -> None:
        event = {"user_id": str(user_id), "status": status, "at": at.isoformat()}
        await self.redis.publish(PRESENCE_CHANNEL, json.dumps(event))

    async def events(self, poll_timeout: float = 1.0) -> AsyncIterator[dict]:
        """Decoded events from the presence channel until the consumer stops"""
        pubsub = self.redis.pubsub()
        await pubsub.subscribe(PRESENCE_CHANNEL)
        try:
            while True:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=poll_timeout)
                if not message or message.get("type") != "message":
                    continue
                try:
                    yield json.loads(message["data"])
                except json.JSONDecodeError:
                    logger.warning("Dropped malformed presence event")
        finally:
            await pubsub.unsubscribe(PRESENCE_CHANNEL)
            await pubsub.aclose()
