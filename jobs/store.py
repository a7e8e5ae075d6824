"""In-memory job store for analysis job status and replayable stream events."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from core import AnalysisRequest, JobStatus, Owner


TERMINAL_STATES = frozenset({"completed", "failed", "canceled"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_job_id() -> str:
    return f"job_{_utcnow().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


class InMemoryJobStore:
    """Thread-safe store for job requests, statuses and event logs."""

    def __init__(self) -> None:
        self._requests: Dict[str, AnalysisRequest] = {}
        self._statuses: Dict[str, JobStatus] = {}
        self._events: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = Lock()

    def create(self, request: AnalysisRequest) -> str:
        with self._lock:
            job_id = _new_job_id()
            self._requests[job_id] = request
            self._statuses[job_id] = JobStatus(job_id=job_id, state="queued", progress=0)
            self._events[job_id] = []
            return job_id

    def get_request(self, job_id: str) -> Optional[AnalysisRequest]:
        with self._lock:
            return self._requests.get(job_id)

    def get_status(self, job_id: str) -> Optional[JobStatus]:
        with self._lock:
            status = self._statuses.get(job_id)
            return status.model_copy(deep=True) if status else None

    def is_owned_by(self, job_id: str, owner: Owner) -> bool:
        """A job is visible to the user or anonymous session that created it."""
        with self._lock:
            request = self._requests.get(job_id)
        if request is None:
            return False
        job_owner = request.owner
        if owner.user_id:
            return job_owner.user_id == owner.user_id
        return job_owner.session_id == owner.session_id

    def is_cancel_requested(self, job_id: str) -> bool:
        with self._lock:
            status = self._statuses.get(job_id)
            return bool(status and status.cancellation_requested)

    def update_running(self, job_id: str) -> Optional[JobStatus]:
        with self._lock:
            status = self._statuses.get(job_id)
            if not status:
                return None
            now = _utcnow()
            status.state = "running"
            status.timestamps.started_at = status.timestamps.started_at or now
            status.timestamps.updated_at = now
            return status.model_copy(deep=True)

    def update_progress(
        self,
        job_id: str,
        progress: int,
        current_step: Optional[str] = None,
        eta_seconds: Optional[float] = None,
    ) -> Optional[JobStatus]:
        with self._lock:
            status = self._statuses.get(job_id)
            if not status:
                return None
            status.progress = max(status.progress, max(0, min(100, int(progress))))
            if current_step:
                status.current_step = current_step
            status.estimated_seconds_remaining = eta_seconds
            status.timestamps.updated_at = _utcnow()
            return status.model_copy(deep=True)

    def append_event(
        self,
        job_id: str,
        event: str,
        message: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        with self._lock:
            if job_id not in self._statuses:
                return False
            bucket = self._events.setdefault(job_id, [])
            bucket.append(
                {
                    "seq": len(bucket),
                    "ts": _utcnow().isoformat(timespec="seconds"),
                    "event": str(event or "").strip() or "event",
                    "message": str(message or "").strip(),
                    "data": dict(data) if data is not None else None,
                }
            )
            return True

    def list_events(self, job_id: str, *, after: int = 0) -> List[Dict[str, Any]]:
        """Events with seq >= after, in insertion order."""
        with self._lock:
            return [dict(item) for item in list(self._events.get(job_id, []))[max(0, after):]]

    def update_completed(self, job_id: str, result: Optional[Dict[str, Any]] = None) -> Optional[JobStatus]:
        with self._lock:
            status = self._statuses.get(job_id)
            if not status:
                return None
            now = _utcnow()
            status.state = "completed"
            status.progress = 100
            status.current_step = None
            status.estimated_seconds_remaining = 0
            status.result = result
            status.timestamps.completed_at = now
            status.timestamps.updated_at = now
            return status.model_copy(deep=True)

    def update_failed(self, job_id: str, error: str) -> Optional[JobStatus]:
        with self._lock:
            status = self._statuses.get(job_id)
            if not status:
                return None
            now = _utcnow()
            status.state = "failed"
            if error:
                status.errors.append(str(error))
            status.timestamps.completed_at = status.timestamps.completed_at or now
            status.timestamps.updated_at = now
            return status.model_copy(deep=True)

    def update_canceled(self, job_id: str) -> Optional[JobStatus]:
        with self._lock:
            status = self._statuses.get(job_id)
            if not status:
                return None
            now = _utcnow()
            status.state = "canceled"
            status.cancellation_requested = True
            status.timestamps.cancelled_at = status.timestamps.cancelled_at or now
            status.timestamps.completed_at = status.timestamps.completed_at or now
            status.timestamps.updated_at = now
            return status.model_copy(deep=True)

    def request_cancel(self, job_id: str) -> Optional[JobStatus]:
        with self._lock:
            status = self._statuses.get(job_id)
            if not status:
                return None
            if status.state in TERMINAL_STATES:
                return status.model_copy(deep=True)
            now = _utcnow()
            status.cancellation_requested = True
            if status.state == "queued":
                status.state = "canceled"
                status.timestamps.cancelled_at = now
                status.timestamps.completed_at = status.timestamps.completed_at or now
            elif status.state == "running":
                status.state = "cancel_requested"
            status.timestamps.updated_at = now
            return status.model_copy(deep=True)
