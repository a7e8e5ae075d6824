from __future__ import annotations

from core import AnalysisRequest, Owner
from jobs import InMemoryJobQueue, InMemoryJobStore, JobService, JobWorker, overall_progress
from pipeline import WebsiteAnalysisPipeline
from conftest import FakeAI, FakeScraper


def _request(**owner) -> AnalysisRequest:
    owner = owner or {"session_id": "sess-1"}
    return AnalysisRequest(url="https://example.com", **owner)


def _service() -> JobService:
    return JobService(store=InMemoryJobStore(), queue=InMemoryJobQueue())


def test_overall_progress_maps_stage_percent() -> None:
    assert overall_progress(0, 0) == 0
    assert overall_progress(0, 100) == 25
    assert overall_progress(1, 50) == 38
    assert overall_progress(3, 100) == 100
    assert overall_progress(5, 100) == 100


def test_enqueue_dequeue_and_complete() -> None:
    svc = _service()
    job_id = svc.enqueue(_request())

    picked = svc.dequeue_next()
    assert picked is not None
    assert picked[0] == job_id
    assert svc.get_status(job_id).state == "running"

    svc.mark_progress(job_id, 40, "Generating audiences", 30)
    svc.mark_progress(job_id, 20, "Generating audiences", 30)
    assert svc.get_status(job_id).progress == 40

    done = svc.mark_completed(job_id, {"ok": True})
    assert done.state == "completed"
    assert done.progress == 100
    assert done.result == {"ok": True}
    assert svc.dequeue_next() is None


def test_cancel_before_start_skips_job() -> None:
    svc = _service()
    job_id = svc.enqueue(_request())

    status = svc.cancel(job_id)

    assert status.state == "canceled"
    assert status.cancellation_requested is True
    assert svc.dequeue_next() is None


def test_cancel_running_job_sets_flag() -> None:
    svc = _service()
    job_id = svc.enqueue(_request())
    svc.dequeue_next()

    status = svc.cancel(job_id)

    assert status.state == "cancel_requested"
    assert svc.is_cancel_requested(job_id) is True


def test_jobs_are_scoped_to_their_owner() -> None:
    svc = _service()
    job_id = svc.enqueue(_request(user_id="user-1"))

    assert svc.get_status(job_id, Owner(user_id="user-1")) is not None
    assert svc.get_status(job_id, Owner(user_id="user-2")) is None
    assert svc.get_status(job_id, Owner(session_id="sess-1")) is None
    assert svc.cancel(job_id, Owner(user_id="user-2")) is None
    assert svc.get_status(job_id).cancellation_requested is False


def test_event_log_supports_cursor() -> None:
    svc = _service()
    job_id = svc.enqueue(_request())
    svc.append_event(job_id, "progress", "step", {"progress": 5})

    events = svc.list_events(job_id)
    assert [e["event"] for e in events] == ["job_queued", "progress"]
    assert [e["seq"] for e in events] == [0, 1]
    assert svc.list_events(job_id, after=1)[0]["data"] == {"progress": 5}
    assert svc.list_events(job_id, after=2) == []


def _worker(svc, persistence, pipeline_settings, scraper=None, ai=None) -> JobWorker:
    def _factory() -> WebsiteAnalysisPipeline:
        return WebsiteAnalysisPipeline(
            scraper=scraper or FakeScraper(),
            ai=ai or FakeAI(),
            persistence=persistence,
            settings=pipeline_settings,
        )

    return JobWorker(svc, _factory)


def test_worker_completes_job_and_records_stream(persistence, pipeline_settings) -> None:
    svc = _service()
    scraper = FakeScraper()
    job_id = svc.enqueue(_request())

    status = _worker(svc, persistence, pipeline_settings, scraper=scraper).run_next()

    assert status.state == "completed"
    assert status.progress == 100
    assert status.result["from_cache"] is False
    assert len(status.result["scenarios"]) == 2
    assert scraper.closed is True

    events = svc.list_events(job_id)
    kinds = {e["event"] for e in events}
    assert {"job_started", "progress", "partial-result", "narrative", "job_completed"} <= kinds
    progress = [e["data"]["progress"] for e in events if e["event"] == "progress"]
    assert progress == sorted(progress)
    assert progress[-1] == 100
    steps = {e["data"]["currentStep"] for e in events if e["event"] == "progress"}
    assert steps == {"Analyzing website", "Generating audiences", "Generating pitches", "Generating images"}
    narrative = [e["data"] for e in events if e["event"] == "narrative"]
    assert narrative[-1]["type"] == "narrative-complete"


def test_worker_marks_cancelled_job(persistence, pipeline_settings) -> None:
    svc = _service()
    job_id = svc.enqueue(_request())
    ai = FakeAI()

    class CancellingScraper(FakeScraper):
        async def scrape(self, url, on_progress=None):
            svc.cancel(job_id)
            return await super().scrape(url, on_progress)

    status = _worker(svc, persistence, pipeline_settings, scraper=CancellingScraper(), ai=ai).run_next()

    assert status.state == "canceled"
    assert status.errors == []
    assert "analyze" not in ai.calls
    assert svc.list_events(job_id)[-1]["event"] == "job_canceled"


def test_worker_marks_failed_job(persistence, pipeline_settings) -> None:
    svc = _service()
    job_id = svc.enqueue(_request())

    status = _worker(
        svc, persistence, pipeline_settings, scraper=FakeScraper(error=RuntimeError("connection reset"))
    ).run_next()

    assert status.state == "failed"
    assert status.errors == ["connection reset"]
    assert svc.list_events(job_id)[-1]["event"] == "job_failed"


def test_worker_idle_without_jobs(persistence, pipeline_settings) -> None:
    worker = _worker(_service(), persistence, pipeline_settings)

    assert worker.run_next() is None
    assert worker.run_until_empty() == 0
