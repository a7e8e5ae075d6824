"""Self-healing of cached results that lack a narrative or audience scenarios."""

from __future__ import annotations

import logging
from typing import Tuple

from core import AnalysisResult
from pipeline.audiences import AudienceGenerator
from pipeline.cache import CacheHit
from pipeline.collaborators import AIClient
from pipeline.context import RunContext
from pipeline.progress import PROGRESS_PHASES
from storage.persistence import AnalysisPersistence, intelligence_payload


logger = logging.getLogger(__name__)

NARRATIVE_BACKFILL_PROGRESS = 90


class CacheBackfillEngine:
    """Fills in missing narrative and scenarios; each step is independently best-effort."""

    def __init__(self, ai: AIClient, persistence: AnalysisPersistence) -> None:
        self.ai = ai
        self.persistence = persistence

    async def repair_narrative(self, hit: CacheHit, cached: AnalysisResult, run: RunContext) -> AnalysisResult:
        """Generate and store the narrative when the snapshot has none."""
        if cached.narrative:
            return cached
        try:
            logger.info("backfill_narrative organization=%s", cached.organization_id)
            result = await self.ai.generate_narrative(
                cached.analysis,
                intelligence_payload(hit.snapshot),
                cached.ctas,
            )
            await self.persistence.save_narrative(hit.snapshot.id, result)
            cached = cached.model_copy(
                update={
                    "narrative": result.narrative,
                    "narrative_confidence": result.confidence,
                    "insight_cards": list(result.cards),
                }
            )
            await run.reporter.stage(0, NARRATIVE_BACKFILL_PROGRESS, 5, phase=PROGRESS_PHASES[0][6])
        except Exception as exc:
            logger.warning("Narrative backfill failed for %s: %s", cached.organization_id, exc, exc_info=True)
        return cached

    async def repair_scenarios(
        self, hit: CacheHit, cached: AnalysisResult, run: RunContext
    ) -> Tuple[AnalysisResult, bool]:
        """
        Regenerate audience scenarios when the snapshot has none.

        Returns the result and whether the final scenarios partial was already
        emitted by the generator.
        """
        try:
            if await self.persistence.count_snapshot_scenarios(hit.snapshot.id) > 0:
                return cached, False
        except Exception as exc:
            logger.warning("Scenario count failed for %s: %s", cached.organization_id, exc)
            return cached, False

        emitted = False
        try:
            logger.info("backfill_scenarios organization=%s", cached.organization_id)
            try:
                existing = await self.persistence.list_existing_audiences(run.owner)
            except Exception as exc:
                logger.warning("Existing audience lookup failed, continuing without: %s", exc)
                existing = []

            generator = AudienceGenerator(self.ai, run.sinks)
            scenarios = await generator.scenarios(cached.analysis, existing)
            scenarios = await generator.pitches(cached.analysis, scenarios)
            scenarios = await generator.images(cached.analysis, scenarios)
            emitted = True
            cached = cached.model_copy(update={"scenarios": scenarios})
            if scenarios:
                await self.persistence.save_scenarios(hit.snapshot.id, run.owner, scenarios)
            await run.reporter.stage(3, 100, 0, phase=PROGRESS_PHASES[3][1])
        except Exception as exc:
            logger.warning("Scenario backfill failed for %s: %s", cached.organization_id, exc, exc_info=True)
        return cached, emitted
