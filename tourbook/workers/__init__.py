"""Background workers for the coordination service."""

from .base import BaseWorker
from .manager import WorkerManager
from .session_sweep_worker import SessionSweepWorker

__all__ = ["BaseWorker", "SessionSweepWorker", "WorkerManager"]
