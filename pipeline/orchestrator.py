"""
Website analysis pipeline: scrape -> analyze -> audiences -> pitches -> images.

Serves a fresh-enough cached analysis when one exists (repairing a missing
narrative or missing scenarios first); otherwise runs every stage, persisting
the analysis and streaming progress, partial results and narrative events to
the run's listener.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from config import get_pipeline_settings
from config.settings import PipelineSettings
from core import AnalysisRequest, AnalysisResult, InsightCard, NarrativeAnalysis, Owner, PartialSegment
from pipeline.audiences import AudienceGenerator
from pipeline.backfill import CacheBackfillEngine
from pipeline.cache import CacheLocator
from pipeline.cancellation import CancellationProbe
from pipeline.collaborators import AIClient, Scraper
from pipeline.context import RunContext
from pipeline.listeners import PipelineListener
from pipeline.progress import (
    ANALYSIS_DONE_PROGRESS,
    ANALYSIS_PROGRESS,
    CONTENT_READY_PROGRESS,
    NARRATIVE_PROGRESS,
    PROGRESS_PHASES,
    SAVED_PROGRESS,
    SCRAPE_DONE_PROGRESS,
    SCRAPE_PROGRESS,
    SCRAPE_PROGRESS_DEFAULT,
)
from processing.content import build_analysis_content, hostname, normalize_headings
from storage.persistence import AnalysisPersistence, SavedAnalysis, intelligence_from_analysis
from utils.exceptions import InvalidRequestError


logger = logging.getLogger(__name__)

FALLBACK_INSIGHT = InsightCard(
    heading="Analysis complete",
    body="Your business profile and calls to action are saved. A written summary will be ready next time you open this analysis.",
    category="status",
)

CACHED_PHASE = "Loaded saved analysis"


def business_profile(analysis: Dict[str, Any], organization_id: str) -> Dict[str, Any]:
    return {
        "organizationId": organization_id,
        "businessName": analysis.get("businessName") or analysis.get("companyName"),
        "businessType": analysis.get("businessType"),
        "description": analysis.get("description"),
        "targetAudience": analysis.get("targetAudience"),
        "brandVoice": analysis.get("brandVoice"),
        "websiteGoals": analysis.get("websiteGoals"),
    }


class WebsiteAnalysisPipeline:
    """Runs one website analysis per call to run(); collaborators are injected."""

    def __init__(
        self,
        scraper: Scraper,
        ai: AIClient,
        persistence: AnalysisPersistence,
        settings: Optional[PipelineSettings] = None,
    ) -> None:
        self.scraper = scraper
        self.ai = ai
        self.persistence = persistence
        self.settings = settings or get_pipeline_settings()
        self.cache = CacheLocator(
            persistence,
            ttl_days=self.settings.cache_ttl_days,
            cta_limit=self.settings.stored_cta_limit,
            sufficient_cta_count=self.settings.sufficient_cta_count,
        )
        self.backfill = CacheBackfillEngine(ai, persistence)

    async def run(
        self,
        request: Union[AnalysisRequest, Dict[str, Any]],
        listener: Optional[PipelineListener] = None,
        is_cancelled: Optional[CancellationProbe] = None,
    ) -> AnalysisResult:
        """
        Analyze one website.

        Raises:
            InvalidRequestError: missing URL, missing owner or unsupported URL
            PipelineCancelledError: the probe reported cancellation at a checkpoint
            PipelineError: the cancellation probe itself failed
            Scraper and AI client errors propagate unchanged.
        """
        request = self._validate(request)
        run = RunContext.build(request, self.settings, listener, is_cancelled)
        logger.info("pipeline_start url=%s anonymous=%s", request.url, request.owner.is_anonymous)

        await run.cancellation.checkpoint("start")
        hit = await self.cache.locate(request.url)
        if hit is not None:
            return await self._serve_cached(hit, run)

        prefetch = asyncio.create_task(self._existing_audiences(request.owner))
        try:
            return await self._run_fresh(run, prefetch)
        finally:
            if not prefetch.done():
                prefetch.cancel()

    async def aclose(self) -> None:
        """Release the scraper and AI client."""
        for resource in (self.scraper, self.ai):
            closer = getattr(resource, "aclose", None) or getattr(resource, "close", None)
            if closer is None:
                continue
            result = closer()
            if inspect.isawaitable(result):
                await result

    def _validate(self, request: Union[AnalysisRequest, Dict[str, Any]]) -> AnalysisRequest:
        if not isinstance(request, AnalysisRequest):
            try:
                request = AnalysisRequest.model_validate(request)
            except ValidationError as exc:
                messages = "; ".join(str(err.get("msg", "")) for err in exc.errors())
                raise InvalidRequestError(messages or "Invalid analysis request") from exc
        if not self.scraper.is_valid_url(request.url):
            raise InvalidRequestError("Invalid URL format", {"url": request.url})
        return request

    async def _existing_audiences(self, owner: Owner) -> List[Dict[str, Any]]:
        try:
            return await self.persistence.list_existing_audiences(owner)
        except Exception as exc:
            logger.warning("Failed to query existing audiences, continuing without deduplication: %s", exc)
            return []

    async def _serve_cached(self, hit, run: RunContext) -> AnalysisResult:
        cached = await self.cache.load(hit, run.request.url)
        cached = await self.backfill.repair_narrative(hit, cached, run)

        await run.reporter.stage(0, 100, 0, phase=CACHED_PHASE)
        await run.narrative.business_profile(business_profile(cached.analysis, cached.organization_id))
        await run.narrative.transition("Here is what I found when I analyzed your website.")
        if cached.narrative or cached.insight_cards:
            await run.narrative.replay(cached.narrative, cached.insight_cards)
        else:
            await run.narrative.stream_cards([FALLBACK_INSIGHT])
        await run.narrative.complete()
        await run.sinks.partial_result(PartialSegment.ANALYSIS, self._analysis_partial(cached))

        # analysis goes out before any audience event, as on a fresh run
        cached, scenarios_sent = await self.backfill.repair_scenarios(hit, cached, run)
        if not scenarios_sent:
            await run.sinks.partial_result(PartialSegment.SCENARIOS, {"scenarios": list(cached.scenarios)})
        logger.info("pipeline_done url=%s from_cache=True organization=%s", cached.url, cached.organization_id)
        return cached

    async def _run_fresh(self, run: RunContext, prefetch: "asyncio.Task[List[Dict[str, Any]]]") -> AnalysisResult:
        url = run.request.url
        reporter, narrative, cancellation = run.reporter, run.narrative, run.cancellation

        # Stage 0: scrape
        await reporter.stage(0, 2, 90, phase=PROGRESS_PHASES[0][0])
        await narrative.status(f"Starting analysis of {hostname(url) or url}")
        await cancellation.checkpoint("before-scrape")

        async def _on_scrape(phase: str, message: str, detail: Optional[str] = None) -> None:
            await reporter.stage(
                0,
                SCRAPE_PROGRESS.get(phase, SCRAPE_PROGRESS_DEFAULT),
                85,
                phase=message,
                scrapePhase=phase,
                scrapeMessage=message,
                detail=detail,
            )

        scrape = await self.scraper.scrape(url, on_progress=_on_scrape)
        await reporter.stage(0, SCRAPE_DONE_PROGRESS, 80, phase=PROGRESS_PHASES[0][0])
        await run.sinks.partial_result(
            PartialSegment.SCRAPE_RESULT,
            {
                "url": url,
                "title": scrape.title,
                "metaDescription": scrape.meta_description,
                "headings": list(scrape.headings),
                "scrapedAt": scrape.scraped_at.isoformat(),
            },
        )
        if narrative.enabled:
            await self._observe(narrative, "scraping", self.ai.generate_scraping_observation(scrape))

        scrape = scrape.model_copy(update={"headings": normalize_headings(scrape.headings)})
        content = build_analysis_content(scrape, self.settings.max_content_chars)
        await reporter.stage(0, CONTENT_READY_PROGRESS, 75, phase=PROGRESS_PHASES[0][1])

        # Stage 0: analyze and persist
        await cancellation.checkpoint("before-analyze")

        async def _on_analyze(phase: str) -> None:
            percent = ANALYSIS_PROGRESS.get(phase)
            if percent is not None:
                await reporter.stage(0, percent, 60, phase=phase)

        analysis = await self.ai.analyze(content, url, on_progress=_on_analyze)
        await reporter.stage(0, ANALYSIS_DONE_PROGRESS, 50, phase=PROGRESS_PHASES[0][4])
        await cancellation.checkpoint("after-analyze")

        saved = await self.persistence.save_analysis(
            url=url,
            owner=run.owner,
            analysis=analysis,
            scrape=scrape,
            cta_limit=self.settings.stored_cta_limit,
            slug_attempts=self.settings.slug_insert_attempts,
        )
        analysis = {**analysis, "organizationId": saved.organization_id}
        await reporter.stage(0, SAVED_PROGRESS, 45, phase=PROGRESS_PHASES[0][5])
        if narrative.enabled:
            await self._observe(narrative, "cta", self.ai.generate_cta_observation(saved.ctas))

        await narrative.business_profile(business_profile(analysis, saved.organization_id))
        await reporter.stage(0, NARRATIVE_PROGRESS, 30, phase=PROGRESS_PHASES[0][6])
        await cancellation.checkpoint("before-narrative")

        story = await self._generate_narrative(analysis, saved)
        await narrative.transition("Here is what I found when I analyzed your website.")
        if story is not None:
            await narrative.stream_text(story.narrative)
            await narrative.stream_cards(story.cards)
        else:
            await narrative.stream_cards([FALLBACK_INSIGHT])
        await narrative.complete()

        await reporter.stage(0, 100, 0, phase=PROGRESS_PHASES[0][6])
        result = AnalysisResult(
            url=url,
            organization_id=saved.organization_id,
            scraped_at=scrape.scraped_at,
            analysis=analysis,
            metadata={"title": scrape.title, "headings": list(scrape.headings)},
            ctas=saved.ctas,
            cta_count=len(saved.ctas),
            has_sufficient_ctas=len(saved.ctas) >= self.settings.sufficient_cta_count,
            narrative=story.narrative if story else None,
            narrative_confidence=story.confidence if story else None,
            insight_cards=list(story.cards) if story else [],
        )
        await run.sinks.partial_result(PartialSegment.ANALYSIS, self._analysis_partial(result))

        generator = AudienceGenerator(self.ai, run.sinks)

        # Stage 1: audiences
        existing = await prefetch
        await reporter.stage(1, 0, 45, phase=PROGRESS_PHASES[1][0])
        await cancellation.checkpoint("before-audiences")
        await reporter.stage(1, 15, 40, phase=PROGRESS_PHASES[1][1])
        scenarios = await generator.scenarios(analysis, existing)
        await reporter.stage(1, 80, 5, phase=PROGRESS_PHASES[1][2])
        await reporter.stage(1, 100, 0, phase=PROGRESS_PHASES[1][2])

        # Stage 2: pitches
        detail = f"{len(scenarios)} audiences" if scenarios else None
        await reporter.stage(2, 0, 30, phase=PROGRESS_PHASES[2][0], detail=detail)
        await cancellation.checkpoint("before-pitches")
        scenarios = await generator.pitches(analysis, scenarios)
        await reporter.stage(2, 80, 5, phase=PROGRESS_PHASES[2][1], detail=detail)
        await reporter.stage(2, 100, 0, phase=PROGRESS_PHASES[2][1])

        # Stage 3: images
        await reporter.stage(3, 0, 15, phase=PROGRESS_PHASES[3][0], detail=detail)
        await cancellation.checkpoint("before-images")
        scenarios = await generator.images(analysis, scenarios)
        await reporter.stage(3, 70, 3, phase=PROGRESS_PHASES[3][0], detail=detail)
        await reporter.stage(3, 90, 1, phase=PROGRESS_PHASES[3][1])
        await self._persist_scenarios(saved, run.owner, scenarios)
        await reporter.stage(3, 100, 0, phase=PROGRESS_PHASES[3][1])

        logger.info(
            "pipeline_done url=%s from_cache=False organization=%s scenarios=%s",
            url, saved.organization_id, len(scenarios),
        )
        return result.model_copy(update={"scenarios": scenarios})

    async def _observe(self, narrative, kind: str, observation) -> None:
        try:
            message = await observation
        except Exception as exc:
            logger.debug("%s observation skipped: %s", kind, exc)
            return
        if message:
            await narrative.status(str(message))

    async def _generate_narrative(self, analysis: Dict[str, Any], saved: SavedAnalysis) -> Optional[NarrativeAnalysis]:
        try:
            story = await self.ai.generate_narrative(analysis, intelligence_from_analysis(analysis), saved.ctas)
        except Exception as exc:
            logger.warning("Narrative generation failed for %s: %s", saved.organization_id, exc)
            return None
        try:
            await self.persistence.save_narrative(saved.snapshot_id, story)
        except Exception as exc:
            logger.warning("Failed to store narrative for %s: %s", saved.organization_id, exc)
        return story

    async def _persist_scenarios(self, saved: SavedAnalysis, owner: Owner, scenarios: List[Dict[str, Any]]) -> None:
        if not scenarios:
            return
        try:
            count = await self.persistence.save_scenarios(saved.snapshot_id, owner, scenarios)
            logger.info("Persisted %s audience strategies for %s", count, saved.organization_id)
        except Exception as exc:
            logger.warning("Failed to persist audiences (scenarios still in result): %s", exc)

    @staticmethod
    def _analysis_partial(result: AnalysisResult) -> Dict[str, Any]:
        return {
            "url": result.url,
            "scrapedAt": result.scraped_at.isoformat() if result.scraped_at else None,
            "analysis": dict(result.analysis),
            "metadata": dict(result.metadata),
            "ctas": list(result.ctas),
            "ctaCount": result.cta_count,
            "hasSufficientCTAs": result.has_sufficient_ctas,
            "organizationId": result.organization_id,
        }
