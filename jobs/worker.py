"""Job worker: runs queued analysis jobs and mirrors pipeline events into the job store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from core import AnalysisRequest, AnalysisResult, JobStatus, NarrativeEvent, PartialSegment, ProgressUpdate
from pipeline import PROGRESS_STEPS, PipelineListener, WebsiteAnalysisPipeline
from utils.exceptions import PipelineCancelledError
from .service import JobService


logger = logging.getLogger(__name__)

PipelineFactory = Callable[[], WebsiteAnalysisPipeline]

STAGE_WEIGHT = 100 // len(PROGRESS_STEPS)


def overall_progress(stage_index: int, stage_percent: float) -> int:
    """Collapse (stage, percent within stage) into one 0-100 job percent."""
    value = stage_index * STAGE_WEIGHT + float(stage_percent) / len(PROGRESS_STEPS)
    return max(0, min(100, int(round(value))))


class JobStreamListener(PipelineListener):
    """Records a run's progress, partial results and narrative into the job's event log."""

    def __init__(self, service: JobService, job_id: str) -> None:
        self.service = service
        self.job_id = job_id

    def on_progress(self, update: ProgressUpdate) -> None:
        overall = overall_progress(update.stage_index, update.percent)
        if 0 <= update.stage_index < len(PROGRESS_STEPS):
            step = PROGRESS_STEPS[update.stage_index]
        else:
            step = update.label
        self.service.mark_progress(self.job_id, overall, step, update.eta_seconds)
        self.service.append_event(
            self.job_id,
            "progress",
            step,
            {
                "progress": overall,
                "currentStep": step,
                "stageIndex": update.stage_index,
                "stagePercent": update.percent,
                "phase": update.extra.get("phase"),
                "estimatedSecondsRemaining": update.eta_seconds,
            },
        )

    def on_partial_result(self, segment: PartialSegment, data: Dict[str, Any]) -> None:
        self.service.append_event(self.job_id, "partial-result", segment.value, {"segment": segment.value, "data": data})

    def on_narrative(self, event: NarrativeEvent) -> None:
        self.service.append_event(self.job_id, "narrative", event.type.value, event.model_dump(mode="json"))


class JobWorker:
    """Picks one queued job per run_next() call and drives it through the pipeline."""

    def __init__(self, service: JobService, pipeline_factory: PipelineFactory) -> None:
        self._service = service
        self._pipeline_factory = pipeline_factory

    @property
    def service(self) -> JobService:
        return self._service

    def run_next(self) -> Optional[JobStatus]:
        """Process one queued job end-to-end; returns its final status, or None when idle."""
        picked = self._service.dequeue_next()
        if not picked:
            return None
        job_id, request = picked
        logger.info("job_start job_id=%s url=%s", job_id, request.url)
        self._service.append_event(job_id, "job_started", request.url)

        try:
            result = asyncio.run(self._execute(job_id, request))
            status = self._service.mark_completed(job_id, result.model_dump(mode="json"))
            self._service.append_event(job_id, "job_completed", "Analysis completed successfully")
            logger.info("job_completed job_id=%s organization=%s from_cache=%s", job_id, result.organization_id, result.from_cache)
            return status
        except PipelineCancelledError as exc:
            status = self._service.mark_canceled(job_id)
            self._service.append_event(job_id, "job_canceled", f"checkpoint={exc.checkpoint or ''}")
            logger.info("job_canceled job_id=%s checkpoint=%s", job_id, exc.checkpoint)
            return status
        except Exception as exc:
            status = self._service.mark_failed(job_id, str(exc))
            self._service.append_event(job_id, "job_failed", str(exc))
            logger.exception("job_failed job_id=%s error=%s", job_id, exc)
            return status

    def run_until_empty(self, max_jobs: Optional[int] = None) -> int:
        processed = 0
        while max_jobs is None or processed < max_jobs:
            if self.run_next() is None:
                break
            processed += 1
        return processed

    async def _execute(self, job_id: str, request: AnalysisRequest) -> AnalysisResult:
        # built inside the job's event loop so HTTP clients bind to it
        pipeline = self._pipeline_factory()
        try:
            return await pipeline.run(
                request,
                listener=JobStreamListener(self._service, job_id),
                is_cancelled=lambda: self._service.is_cancel_requested(job_id),
            )
        finally:
            await pipeline.aclose()
