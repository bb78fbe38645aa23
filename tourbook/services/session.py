"""Per-user coordination sessions and their registry."""

import asyncio
import hashlib
import logging
import time
from typing import Callable, Optional

import httpx

from ..clients.api_client import RemoteApiClient
from ..core.exceptions import AuthError
from ..core.observability import metrics_collector
from ..repositories.booking_repository import BookingRepository
from ..repositories.review_repository import ReviewRepository
from ..state.bookings_cache import BookingsCache
from ..state.reviews_cache import ReviewsCache
from .bookings_service import BookingsService
from .review_coordinator import ReviewCoordinator
from .sync_runner import BookingSyncRunner

logger = logging.getLogger(__name__)


class UserSession:
    """Everything one user's UI talks to: both caches and the services over them."""

    def __init__(self, http: httpx.AsyncClient, token: Optional[str], await_booking_sync: bool = True):
        self.client = RemoteApiClient(http, token)
        self.booking_repository = BookingRepository(self.client)
        self.review_repository = ReviewRepository(self.client)

        self.bookings_cache = BookingsCache()
        self.reviews_cache = ReviewsCache()

        self.sync_runner = BookingSyncRunner(self.booking_repository)
        self.bookings = BookingsService(self.booking_repository, self.bookings_cache)
        self.reviews = ReviewCoordinator(
            self.review_repository,
            self.reviews_cache,
            self.bookings_cache,
            self.sync_runner,
            await_booking_sync=await_booking_sync,
        )

    async def close(self) -> None:
        """Let in-flight booking syncs finish and drop cached state."""
        await self.sync_runner.drain()
        self.bookings_cache.clear()
        self.reviews_cache.clear()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class SessionRegistry:
    """
    Sessions keyed by a hash of the user's bearer token.

    Idle sessions expire after ``ttl_seconds``; when ``max_size`` is reached
    the least recently used session is dropped to make room.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        ttl_seconds: int = 1800,
        max_size: int = 1000,
        await_booking_sync: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.http = http
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.await_booking_sync = await_booking_sync
        self._clock = clock
        self._sessions: dict[str, UserSession] = {}
        self._last_used: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get_or_create(self, token: str) -> UserSession:
        """
        Return the session for a bearer token, creating it on first use.

        Raises:
            AuthError: If the token is empty
        """
        if not token or not token.strip():
            raise AuthError(detail="Bearer token is empty")

        key = hash_token(token)
        now = self._clock()

        session = self._sessions.get(key)
        if session is not None and now - self._last_used[key] > self.ttl_seconds:
            self._discard(key, reason="expired")
            session = None

        if session is None:
            if len(self._sessions) >= self.max_size:
                oldest_key = min(self._last_used, key=self._last_used.__getitem__)
                self._discard(oldest_key, reason="capacity")
            session = UserSession(self.http, token, await_booking_sync=self.await_booking_sync)
            self._sessions[key] = session
            logger.info("Created coordination session", extra={"session_key": key[:8]})

        self._last_used[key] = now
        metrics_collector.set_active_sessions(len(self._sessions))
        return session

    def _discard(self, key: str, reason: str) -> None:
        # Only the registry reference goes. A request still running on the
        # session keeps its caches and finishes its booking sync.
        self._sessions.pop(key)
        self._last_used.pop(key, None)
        logger.info(
            "Dropped coordination session",
            extra={"session_key": key[:8], "reason": reason}
        )

    async def evict_expired(self) -> int:
        """Drop every session idle for longer than the TTL; returns how many."""
        now = self._clock()
        expired = [
            key for key, last_used in self._last_used.items()
            if now - last_used > self.ttl_seconds
        ]
        draining = []
        for key in expired:
            session = self._sessions[key]
            self._discard(key, reason="expired")
            draining.append(session.sync_runner.drain())

        if draining:
            await asyncio.gather(*draining)
            logger.info("Evicted expired sessions", extra={"evicted_count": len(expired)})

        metrics_collector.set_active_sessions(len(self._sessions))
        return len(expired)

    async def close(self) -> None:
        """Close every session, waiting for their in-flight syncs."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        self._last_used.clear()
        await asyncio.gather(*(session.close() for session in sessions))
        metrics_collector.set_active_sessions(0)
