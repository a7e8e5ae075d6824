"""FastAPI app: website analysis jobs with status, cancellation and an SSE event stream."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from config import get_job_settings
from core import AnalysisRequest, JobStatus, Owner
from jobs import TERMINAL_STATES
from webapp.runtime import get_job_service, get_worker
from webapp.sse import format_retry, format_sse


logger = logging.getLogger(__name__)

app = FastAPI(title="Website Intelligence API", version="1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _owner(user_id: Optional[str], session_id: Optional[str]) -> Owner:
    user_id = str(user_id or "").strip() or None
    session_id = str(session_id or "").strip() or None
    if user_id:
        return Owner(user_id=user_id)
    if session_id:
        return Owner(session_id=session_id)
    raise HTTPException(status_code=400, detail="user_id or session_id is required")


def _status_or_404(job_id: str, owner: Owner) -> JobStatus:
    status = get_job_service().get_status(job_id, owner)
    if status is None:
        raise HTTPException(status_code=404, detail="job not found")
    return status


def _frame(item: Dict[str, Any]) -> str:
    data = item.get("data")
    if data is None:
        data = {"message": item.get("message", ""), "ts": item.get("ts")}
    return format_sse(item["event"], data, event_id=item["seq"])


def _resume_cursor(after: int, last_event_id: Optional[str]) -> int:
    text = str(last_event_id or "").strip()
    if text.isdigit():
        return max(after, int(text) + 1)
    return max(0, after)


@app.get("/api/v1/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat(timespec="seconds")}


@app.post("/api/v1/jobs/website-analysis")
def create_website_analysis_job(request: AnalysisRequest, background_tasks: BackgroundTasks) -> Dict[str, Any]:
    service = get_job_service()
    job_id = service.enqueue(request)
    background_tasks.add_task(get_worker().run_next)
    status = service.get_status(job_id)
    logger.info("job_enqueued job_id=%s url=%s", job_id, request.url)
    return {"job_id": job_id, "status": status.model_dump(mode="json") if status else None}


@app.get("/api/v1/jobs/{job_id}/status")
def get_job_status(job_id: str, user_id: Optional[str] = None, session_id: Optional[str] = None) -> Dict[str, Any]:
    status = _status_or_404(job_id, _owner(user_id, session_id))
    return status.model_dump(mode="json")


@app.post("/api/v1/jobs/{job_id}/cancel")
def cancel_job(job_id: str, user_id: Optional[str] = None, session_id: Optional[str] = None) -> Dict[str, Any]:
    status = get_job_service().cancel(job_id, _owner(user_id, session_id))
    if status is None:
        raise HTTPException(status_code=404, detail="job not found")
    return {"job_id": job_id, "cancellation_requested": status.cancellation_requested, "status": status.model_dump(mode="json")}


@app.get("/api/v1/jobs/{job_id}/stream")
async def stream_job(
    job_id: str,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
    after: int = 0,
    last_event_id: Optional[str] = Header(default=None),
) -> StreamingResponse:
    """Replays stored events from the cursor, then follows the job until it ends."""
    service = get_job_service()
    status = _status_or_404(job_id, _owner(user_id, session_id))
    settings = get_job_settings()
    cursor = _resume_cursor(after, last_event_id)

    async def _event_stream():
        idx = cursor
        yield format_retry(settings.stream_retry_ms)
        for item in service.list_events(job_id, after=idx):
            idx = item["seq"] + 1
            yield _frame(item)
        yield format_sse("connected", {"job_id": job_id, "state": status.state})

        while True:
            for item in service.list_events(job_id, after=idx):
                idx = item["seq"] + 1
                yield _frame(item)

            current = service.get_status(job_id)
            if current is None:
                yield format_sse("error", {"job_id": job_id, "error": "job not found"})
                break
            if current.state in TERMINAL_STATES:
                for item in service.list_events(job_id, after=idx):
                    idx = item["seq"] + 1
                    yield _frame(item)
                if current.state == "completed":
                    yield format_sse("complete", current.model_dump(mode="json"))
                elif current.state == "canceled":
                    yield format_sse("canceled", {"job_id": job_id})
                else:
                    yield format_sse("error", {"job_id": job_id, "errors": list(current.errors)})
                break

            await asyncio.sleep(settings.stream_poll_seconds)

    return StreamingResponse(_event_stream(), media_type="text/event-stream", headers=STREAM_HEADERS)


@app.post("/api/v1/workers/jobs/next")
def run_worker_next() -> Dict[str, Any]:
    status = get_worker().run_next()
    if not status:
        return {"processed": False}
    return {"processed": True, "job_id": status.job_id, "state": status.state}
