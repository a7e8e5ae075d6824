"""In-memory FIFO queue of job IDs."""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, Optional, Set


class InMemoryJobQueue:
    """Best-effort FIFO; a job ID is queued at most once."""

    def __init__(self) -> None:
        self._queue: Deque[str] = deque()
        self._enqueued: Set[str] = set()
        self._lock = Lock()

    def enqueue(self, job_id: str) -> bool:
        """Returns True when newly enqueued."""
        with self._lock:
            if job_id in self._enqueued:
                return False
            self._queue.append(job_id)
            self._enqueued.add(job_id)
            return True

    def dequeue(self) -> Optional[str]:
        with self._lock:
            if not self._queue:
                return None
            job_id = self._queue.popleft()
            self._enqueued.discard(job_id)
            return job_id

    def remove(self, job_id: str) -> bool:
        """Drop a job that has not started yet."""
        with self._lock:
            if job_id not in self._enqueued:
                return False
            self._queue = deque(item for item in self._queue if item != job_id)
            self._enqueued.discard(job_id)
            return True

    def size(self) -> int:
        with self._lock:
            return len(self._queue)
