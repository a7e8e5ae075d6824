"""Shared runtime singletons for web and CLI entrypoints."""

from __future__ import annotations

from typing import Optional

from config import get_pipeline_settings
from intelligence import WebsiteAnalyst
from jobs import InMemoryJobQueue, InMemoryJobStore, JobService, JobWorker
from pipeline import WebsiteAnalysisPipeline
from scrapers import WebsiteScraper
from storage import AnalysisPersistence, get_database


_SERVICE: Optional[JobService] = None
_WORKER: Optional[JobWorker] = None
_PERSISTENCE: Optional[AnalysisPersistence] = None


def get_persistence() -> AnalysisPersistence:
    global _PERSISTENCE
    if _PERSISTENCE is None:
        database = get_database()
        database.create_all()
        _PERSISTENCE = AnalysisPersistence(database)
    return _PERSISTENCE


def build_pipeline() -> WebsiteAnalysisPipeline:
    """Fresh pipeline with the default scraper and analyst over the shared database."""
    return WebsiteAnalysisPipeline(
        scraper=WebsiteScraper(),
        ai=WebsiteAnalyst(),
        persistence=get_persistence(),
        settings=get_pipeline_settings(),
    )


def get_job_service() -> JobService:
    global _SERVICE
    if _SERVICE is None:
        _SERVICE = JobService(store=InMemoryJobStore(), queue=InMemoryJobQueue())
    return _SERVICE


def get_worker() -> JobWorker:
    global _WORKER
    if _WORKER is None:
        _WORKER = JobWorker(get_job_service(), build_pipeline)
    return _WORKER


def configure_runtime(
    *,
    service: Optional[JobService] = None,
    worker: Optional[JobWorker] = None,
) -> None:
    """Swap the shared service/worker (tests and embedding hosts)."""
    global _SERVICE, _WORKER
    _SERVICE = service
    _WORKER = worker
