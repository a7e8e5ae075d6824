"""
Analysis Persistence
Async facade over the repositories used by the website analysis pipeline.
Every call opens its own session on a worker thread.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from sqlalchemy.orm import Session

from core import NarrativeAnalysis, Owner, ScrapeResult
from processing.content import hostname
from storage.database import Database
from storage.models import Organization, OrganizationIntelligence, utcnow
from storage.repositories import (
    AudiencesRepository,
    CTARepository,
    IntelligenceRepository,
    OrganizationsRepository,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

INTELLIGENCE_JSON_FIELDS = {
    "customer_scenarios": "customerScenarios",
    "business_value_assessment": "businessValueAssessment",
    "customer_language_patterns": "customerLanguagePatterns",
    "search_behavior_insights": "searchBehaviorInsights",
    "seo_opportunities": "seoOpportunities",
    "content_strategy_recommendations": "contentStrategyRecommendations",
    "competitive_intelligence": "competitiveIntelligence",
}

SCENARIO_SUMMARY_KEYS = (
    "customerProblem",
    "targetSegment",
    "businessValue",
    "customerLanguage",
    "conversionPath",
    "seoKeywords",
    "contentIdeas",
    "pitch",
)


@dataclass
class SavedAnalysis:
    """Identifiers and CTA view produced by one save."""

    organization_id: str
    snapshot_id: str
    stored_cta_count: int = 0
    ctas: List[Dict[str, Any]] = field(default_factory=list)


def organization_name(analysis: Dict[str, Any], url: str) -> str:
    return str(analysis.get("businessName") or analysis.get("companyName") or hostname(url) or url)


def organization_values(analysis: Dict[str, Any], scrape: Optional[ScrapeResult], now: datetime) -> Dict[str, Any]:
    """Organization columns refreshed on every analysis (name is set on insert only)."""
    values: Dict[str, Any] = {
        "business_type": analysis.get("businessType"),
        "industry_category": analysis.get("industryCategory"),
        "business_model": analysis.get("businessModel"),
        "company_size": analysis.get("companySize"),
        "description": analysis.get("description"),
        "target_audience": analysis.get("targetAudience"),
        "brand_voice": analysis.get("brandVoice"),
        "website_goals": analysis.get("websiteGoals"),
        "last_analyzed_at": now,
    }
    if scrape is not None and scrape.social_handles:
        values["social_handles"] = dict(scrape.social_handles)
    return values


def intelligence_values(analysis: Dict[str, Any], scrape: Optional[ScrapeResult]) -> Dict[str, Any]:
    values: Dict[str, Any] = {
        column: analysis.get(key) for column, key in INTELLIGENCE_JSON_FIELDS.items()
    }
    confidence = analysis.get("analysisConfidenceScore")
    values.update(
        {
            "analysis": dict(analysis),
            "analysis_confidence_score": float(confidence) if confidence is not None else 0.75,
            "data_sources": analysis.get("dataSources") or ["website_analysis"],
            "ai_model_used": analysis.get("aiModelUsed"),
        }
    )
    if scrape is not None:
        values["scrape_metadata"] = {
            "title": scrape.title,
            "meta_description": scrape.meta_description,
            "headings": list(scrape.headings),
            "scraped_at": scrape.scraped_at.isoformat(),
            "cta_count": len(scrape.ctas),
        }
    return values


def intelligence_from_analysis(analysis: Dict[str, Any]) -> Dict[str, Any]:
    """Structured intelligence fields carried by a fresh analysis."""
    return {
        key: analysis[key]
        for key in INTELLIGENCE_JSON_FIELDS.values()
        if analysis.get(key) is not None
    }


def intelligence_payload(snapshot: Optional[OrganizationIntelligence]) -> Dict[str, Any]:
    """Structured intelligence fields in analysis (camelCase) keys."""
    if snapshot is None:
        return {}
    payload = {key: getattr(snapshot, column) for column, key in INTELLIGENCE_JSON_FIELDS.items()}
    return {key: value for key, value in payload.items() if value is not None}


class AnalysisPersistence:
    """Storage operations the pipeline performs, as coroutines."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def _call() -> T:
            with self.database.session_scope() as session:
                return fn(session)

        return await asyncio.to_thread(_call)

    async def find_recent_organization(self, urls: Iterable[str], since: datetime) -> Optional[Organization]:
        candidates = list(urls)
        return await self._run(lambda s: OrganizationsRepository(s).find_recent_by_urls(candidates, since))

    async def get_current_snapshot(self, organization_id: str) -> Optional[OrganizationIntelligence]:
        return await self._run(lambda s: IntelligenceRepository(s).get_current(organization_id))

    async def list_top_ctas(self, organization_id: str, limit: int) -> List[Dict[str, Any]]:
        return await self._run(lambda s: CTARepository(s).list_top(organization_id, limit))

    async def count_snapshot_scenarios(self, snapshot_id: str) -> int:
        return await self._run(lambda s: AudiencesRepository(s).count_for_snapshot(snapshot_id))

    async def list_snapshot_scenarios(self, snapshot_id: str) -> List[Dict[str, Any]]:
        return await self._run(lambda s: AudiencesRepository(s).list_for_snapshot(snapshot_id))

    async def list_existing_audiences(self, owner: Owner) -> List[Dict[str, Any]]:
        return await self._run(lambda s: AudiencesRepository(s).list_for_owner(owner))

    async def save_analysis(
        self,
        *,
        url: str,
        owner: Owner,
        analysis: Dict[str, Any],
        scrape: Optional[ScrapeResult],
        cta_limit: int = 5,
        slug_attempts: int = 3,
    ) -> SavedAnalysis:
        """Upsert the organization, flip the current snapshot and replace CTAs."""

        def _save(session: Session) -> SavedAnalysis:
            now = utcnow()
            organization = OrganizationsRepository(session).upsert_for_owner(
                url=url,
                owner=owner,
                name=organization_name(analysis, url),
                values=organization_values(analysis, scrape, now),
                max_attempts=slug_attempts,
            )
            snapshot = IntelligenceRepository(session).replace_current(
                organization.id, intelligence_values(analysis, scrape)
            )

            ctas_repo = CTARepository(session)
            stored = ctas_repo.replace_for_organization(organization.id, url, scrape.ctas if scrape else [])
            OrganizationsRepository(session).set_cta_flag(organization.id, stored > 0)
            top = ctas_repo.list_top(organization.id, cta_limit) if stored else []
            logger.info(
                "Saved analysis for %s: organization=%s snapshot=%s ctas=%s",
                url, organization.id, snapshot.id, stored,
            )
            return SavedAnalysis(
                organization_id=organization.id,
                snapshot_id=snapshot.id,
                stored_cta_count=stored,
                ctas=top,
            )

        return await self._run(_save)

    async def save_narrative(self, snapshot_id: str, narrative: NarrativeAnalysis) -> None:
        cards = [card.model_dump() for card in narrative.cards]
        await self._run(
            lambda s: IntelligenceRepository(s).update_narrative(
                snapshot_id,
                narrative=narrative.narrative,
                confidence=narrative.confidence,
                key_insights=cards,
            )
        )

    async def save_scenarios(self, snapshot_id: str, owner: Owner, scenarios: List[Dict[str, Any]]) -> int:
        """Insert audience rows and refresh the snapshot's scenario summary."""
        summary = [{key: scenario.get(key) for key in SCENARIO_SUMMARY_KEYS} for scenario in scenarios]

        def _save(session: Session) -> int:
            inserted = AudiencesRepository(session).insert_for_snapshot(snapshot_id, owner, scenarios)
            IntelligenceRepository(session).update_scenario_summary(snapshot_id, summary)
            return inserted

        return await self._run(_save)
