"""Background worker that drops idle user sessions."""

import logging

from ..services.session import SessionRegistry
from .base import BaseWorker

logger = logging.getLogger(__name__)


class SessionSweepWorker(BaseWorker):
    """
    Evicts sessions idle for longer than the registry TTL.

    Eviction waits for the session's in-flight booking syncs, so a
    best-effort status write is never abandoned by the sweep.
    """

    def __init__(self, registry: SessionRegistry, interval_seconds: float = 60):
        super().__init__(name="SessionSweep", interval_seconds=interval_seconds)
        self.registry = registry

    async def process(self) -> None:
        evicted = await self.registry.evict_expired()
        if evicted:
            logger.info(
                f"Evicted {evicted} idle sessions",
                extra={
                    "evicted_count": evicted,
                    "active_sessions": len(self.registry),
                    "worker": self.name,
                }
            )
