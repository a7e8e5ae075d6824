"""Job layer: in-memory job store, queue, service and worker for website analysis runs."""

from .queue import InMemoryJobQueue
from .service import JobService
from .store import TERMINAL_STATES, InMemoryJobStore
from .worker import JobStreamListener, JobWorker, overall_progress

__all__ = [
    "InMemoryJobQueue",
    "InMemoryJobStore",
    "JobService",
    "JobStreamListener",
    "JobWorker",
    "TERMINAL_STATES",
    "overall_progress",
]
