"""Job service layer: enqueue, status, cancellation and event log for analysis jobs."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from core import AnalysisRequest, JobStatus, Owner
from .queue import InMemoryJobQueue
from .store import TERMINAL_STATES, InMemoryJobStore


class JobService:
    """Central entry point for the job lifecycle used by the web app, CLI and worker."""

    def __init__(
        self,
        *,
        store: Optional[InMemoryJobStore] = None,
        queue: Optional[InMemoryJobQueue] = None,
    ) -> None:
        self._store = store or InMemoryJobStore()
        self._queue = queue or InMemoryJobQueue()

    def enqueue(self, request: AnalysisRequest) -> str:
        job_id = self._store.create(request)
        self._queue.enqueue(job_id)
        self._store.append_event(job_id, "job_queued", request.url)
        return job_id

    def get_status(self, job_id: str, owner: Optional[Owner] = None) -> Optional[JobStatus]:
        """Status snapshot; None when unknown or not visible to the given owner."""
        if owner is not None and not self._store.is_owned_by(job_id, owner):
            return None
        return self._store.get_status(job_id)

    def cancel(self, job_id: str, owner: Optional[Owner] = None) -> Optional[JobStatus]:
        """Queued jobs cancel immediately; running jobs stop at their next checkpoint."""
        if owner is not None and not self._store.is_owned_by(job_id, owner):
            return None
        self._queue.remove(job_id)
        status = self._store.request_cancel(job_id)
        if status is not None and status.cancellation_requested:
            self._store.append_event(job_id, "cancel_requested", status.state)
        return status

    def is_cancel_requested(self, job_id: str) -> bool:
        return self._store.is_cancel_requested(job_id)

    def is_terminal(self, job_id: str) -> bool:
        status = self._store.get_status(job_id)
        return status is None or status.state in TERMINAL_STATES

    def dequeue_next(self) -> Optional[Tuple[str, AnalysisRequest]]:
        """Worker-facing: next queued job that has not been cancelled meanwhile."""
        while True:
            job_id = self._queue.dequeue()
            if not job_id:
                return None
            request = self._store.get_request(job_id)
            status = self._store.get_status(job_id)
            if request is None or status is None or status.state != "queued":
                continue
            self._store.update_running(job_id)
            return job_id, request

    def queue_size(self) -> int:
        return self._queue.size()

    def mark_progress(
        self,
        job_id: str,
        progress: int,
        current_step: Optional[str] = None,
        eta_seconds: Optional[float] = None,
    ) -> Optional[JobStatus]:
        return self._store.update_progress(job_id, progress, current_step, eta_seconds)

    def mark_completed(self, job_id: str, result: Optional[Dict[str, Any]] = None) -> Optional[JobStatus]:
        return self._store.update_completed(job_id, result)

    def mark_failed(self, job_id: str, error: str) -> Optional[JobStatus]:
        return self._store.update_failed(job_id, error)

    def mark_canceled(self, job_id: str) -> Optional[JobStatus]:
        return self._store.update_canceled(job_id)

    def append_event(
        self,
        job_id: str,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        return self._store.append_event(job_id, event, message, data)

    def list_events(self, job_id: str, *, after: int = 0) -> List[Dict[str, Any]]:
        return self._store.list_events(job_id, after=after)
