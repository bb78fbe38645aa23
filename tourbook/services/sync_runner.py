"""Best-effort booking status sync spawned after a review change commits."""

import asyncio

from opentelemetry import trace

from ..core.observability import get_logger, metrics_collector
from ..repositories.booking_repository import BookingRepository

sync_logger = get_logger("tourbook.booking_sync")
tracer = trace.get_tracer(__name__)


class BookingSyncRunner:
    """
    Runs booking status writes as independent asyncio tasks.

    A sync task never raises: its failure is logged on the structured
    ``tourbook.booking_sync`` channel and counted in
    ``booking_status_sync_total{outcome="failed"}``. The task result is
    True when the remote store accepted the status, False otherwise.
    """

    def __init__(self, repository: BookingRepository):
        self.repository = repository
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of spawned syncs that have not finished."""
        return len(self._tasks)

    def spawn(self, booking_id: str, target_status: str, trigger: str = "review") -> "asyncio.Task[bool]":
        """Schedule a status write for a booking and return its task."""
        task = asyncio.create_task(
            self._sync(booking_id, target_status, trigger),
            name=f"booking-sync-{booking_id}-{target_status}",
        )
        self._tasks.add(task)
        metrics_collector.sync_started()
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        metrics_collector.sync_finished()

    async def _sync(self, booking_id: str, target_status: str, trigger: str) -> bool:
        with tracer.start_as_current_span("booking_status_sync") as span:
            span.set_attribute("booking.id", booking_id)
            span.set_attribute("booking.target_status", target_status)
            span.set_attribute("sync.trigger", trigger)

            try:
                await self.repository.update_booking_status(booking_id, target_status)
            except Exception as e:
                # Local and remote status stay diverged until the next full reload.
                span.record_exception(e)
                metrics_collector.record_booking_sync(target_status, "failed")
                sync_logger.warning(
                    "booking_status_sync_failed",
                    booking_id=booking_id,
                    target_status=target_status,
                    trigger=trigger,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return False

            metrics_collector.record_booking_sync(target_status, "synced")
            sync_logger.info(
                "booking_status_synced",
                booking_id=booking_id,
                target_status=target_status,
                trigger=trigger,
            )
            return True

    async def drain(self) -> None:
        """Wait for every in-flight sync to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
