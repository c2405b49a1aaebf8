"""
Session Context

Each signed-in session owns an explicitly constructed ``SessionContext``.
The context runs two background timers once started:

- an inactivity watchdog that signs the session out when no activity was
  recorded within the inactivity timeout (15 minutes by default)
- a refresh loop that re-checks the account every refresh interval
  (50 minutes by default) and picks up role changes; a failed check signs out

Both timers are owned by ``start()`` / ``stop()``; nothing starts implicitly.

Whether a session is still valid is decided by the shared ``SessionStore``
in Redis, so a session opened on one worker is honoured, touched and
revoked on every other one. The timers only run where the session was
opened; before signing out for inactivity the watchdog asks the store when
the session was last used anywhere.
"""

import asyncio
import inspect
import logging
import time
import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from redis.exceptions import RedisError

from app.core.config import settings
from app.infrastructure.redis import SessionStore, get_redis_client

logger = logging.getLogger(__name__)

RefreshCallback = Callable[["SessionContext"], Awaitable[Optional[str]]]
SignOutCallback = Callable[["SessionContext", str], Optional[Awaitable[None]]]
ActivitySource = Callable[["SessionContext"], Awaitable[Optional[float]]]


class SessionContext:
    """Current user and role for one session, plus its timers"""

    def __init__(
        self,
        user_id: uuid.UUID,
        role: Optional[str],
        refresh_callback: RefreshCallback,
        on_sign_out: Optional[SignOutCallback] = None,
        inactivity_timeout: Optional[timedelta] = None,
        refresh_interval: Optional[timedelta] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.user_id = user_id
        self.role = role
        self._refresh_callback = refresh_callback
        self._on_sign_out = on_sign_out
        self._activity_source: Optional[ActivitySource] = None
        self.inactivity_timeout = inactivity_timeout or timedelta(
            minutes=settings.SESSION_INACTIVITY_MINUTES
        )
        self.refresh_interval = refresh_interval or timedelta(
            minutes=settings.SESSION_REFRESH_MINUTES
        )
        self._last_activity = time.monotonic()
        self._inactivity_task: Optional[asyncio.Task] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._active = False
        self.sign_out_reason: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_running(self) -> bool:
        return any(
            task is not None and not task.done()
            for task in (self._inactivity_task, self._refresh_task)
        )

    async def start(self) -> None:
        """Start the inactivity watchdog and the refresh loop"""
        if self.is_running:
            return
        self._active = True
        self.sign_out_reason = None
        self._last_activity = time.monotonic()
        self._inactivity_task = asyncio.create_task(self._watch_inactivity())
        self._refresh_task = asyncio.create_task(self._refresh_loop())
        logger.debug(f"Session {self.session_id} started")

    async def stop(self) -> None:
        """Cancel both timers without signing out"""
        current = asyncio.current_task()
        tasks = [t for t in (self._inactivity_task, self._refresh_task) if t is not None]
        for task in tasks:
            if task is not current and not task.done():
                task.cancel()
        for task in tasks:
            if task is not current:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._inactivity_task = None
        self._refresh_task = None

    def record_activity(self) -> None:
        """Push the inactivity deadline forward"""
        self._last_activity = time.monotonic()

    async def sign_out(self, reason: str = "user") -> None:
        """Stop timers, deactivate and notify the owner once"""
        if not self._active:
            return
        self._active = False
        self.sign_out_reason = reason
        await self.stop()
        logger.info(f"Session {self.session_id} signed out ({reason})")
        if self._on_sign_out is not None:
            outcome = self._on_sign_out(self, reason)
            if inspect.isawaitable(outcome):
                await outcome

    async def _idle_seconds_elsewhere(self) -> Optional[float]:
        """Idle time according to the shared store, None when unknown"""
        if self._activity_source is None:
            return None
        try:
            seen = await self._activity_source(self)
        except (RedisError, OSError) as e:
            logger.warning(f"Session store unreachable, using local activity: {type(e).__name__}")
            return None
        if seen is None:
            return None
        return max(0.0, time.time() - seen)

    async def _watch_inactivity(self) -> None:
        timeout = self.inactivity_timeout.total_seconds()
        while self._active:
            remaining = self._last_activity + timeout - time.monotonic()
            if remaining <= 0:
                idle = await self._idle_seconds_elsewhere()
                if idle is not None and idle < timeout:
                    # Used through another worker in the meantime
                    self._last_activity = time.monotonic() - idle
                    continue
                logger.info("Session expired due to inactivity")
                await self.sign_out("inactivity")
                return
            await asyncio.sleep(remaining)

    async def _refresh_loop(self) -> None:
        interval = self.refresh_interval.total_seconds()
        while self._active:
            await asyncio.sleep(interval)
            try:
                self.role = await self._refresh_callback(self)
                logger.debug("Session refreshed")
            except Exception as exc:
                logger.error(f"Session refresh failed: {type(exc).__name__}")
                await self.sign_out("refresh_failed")
                return


class SessionRegistry:
    """Sessions opened by this process, validated against the shared store"""

    def __init__(self, store: Optional[SessionStore] = None):
        self.store = store
        self._sessions: Dict[str, SessionContext] = {}

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: Optional[str]) -> Optional[SessionContext]:
        """Locally running context, if this process opened the session"""
        if not session_id:
            return None
        return self._sessions.get(session_id)

    async def get_store(self) -> SessionStore:
        if self.store is None:
            self.store = SessionStore(await get_redis_client())
        return self.store

    async def open(self, context: SessionContext) -> SessionContext:
        """Record the session in the store, then register and start it"""
        store = await self.get_store()
        await store.create(context.session_id, context.user_id, context.role)
        previous_callback = context._on_sign_out

        async def _forget(ctx: SessionContext, reason: str) -> None:
            self._sessions.pop(ctx.session_id, None)
            try:
                await store.revoke(ctx.session_id)
            except (RedisError, OSError) as e:
                logger.error(f"Could not revoke stored session: {type(e).__name__}")
            if previous_callback is not None:
                outcome = previous_callback(ctx, reason)
                if inspect.isawaitable(outcome):
                    await outcome

        async def _last_activity(ctx: SessionContext) -> Optional[float]:
            return await store.last_activity(ctx.session_id)

        context._on_sign_out = _forget
        context._activity_source = _last_activity
        self._sessions[context.session_id] = context
        await context.start()
        return context

    async def touch(self, session_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Record activity; the stored session, or None when unknown or expired"""
        if not session_id:
            return None
        store = await self.get_store()
        session_data = await store.touch(session_id)
        context = self._sessions.get(session_id)
        if session_data is None:
            if context is not None:
                await context.sign_out("session_expired")
            return None
        if context is not None:
            context.record_activity()
        return session_data

    async def close(self, session_id: str, reason: str = "user") -> bool:
        context = self._sessions.pop(session_id, None)
        if context is not None and context.is_active:
            await context.sign_out(reason)
            return True
        store = await self.get_store()
        return await store.revoke(session_id)

    async def close_user(self, user_id, reason: str = "user") -> int:
        """Sign out every session of one user, on any worker"""
        session_ids = [sid for sid, ctx in self._sessions.items() if ctx.user_id == user_id]
        for session_id in session_ids:
            await self.close(session_id, reason)
        store = await self.get_store()
        return len(session_ids) + await store.revoke_user(user_id)

    async def shutdown(self) -> None:
        """Stop local timers; stored sessions stay valid for other workers"""
        for context in list(self._sessions.values()):
            await context.stop()
        self._sessions.clear()


session_registry = SessionRegistry()
