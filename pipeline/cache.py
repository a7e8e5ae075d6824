"""Locates a fresh-enough prior analysis for a URL and assembles the cached result."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from core import AnalysisResult, InsightCard
from processing.content import url_variants
from storage.models import Organization, OrganizationIntelligence, as_utc, utcnow
from storage.persistence import AnalysisPersistence


logger = logging.getLogger(__name__)


@dataclass
class CacheHit:
    organization: Organization
    snapshot: OrganizationIntelligence


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str) and value:
        try:
            return as_utc(datetime.fromisoformat(value))
        except ValueError:
            return None
    return None


def insight_cards(raw: Any) -> List[InsightCard]:
    """Stored key insights as cards; plain strings become heading-only cards."""
    cards: List[InsightCard] = []
    for item in raw or []:
        if isinstance(item, dict) and item.get("heading"):
            cards.append(InsightCard.model_validate(item))
        elif isinstance(item, str) and item.strip():
            cards.append(InsightCard(heading=item.strip()))
    return cards


def _organization_analysis(organization: Organization) -> Dict[str, Any]:
    return {
        "businessName": organization.name,
        "businessType": organization.business_type,
        "industryCategory": organization.industry_category,
        "businessModel": organization.business_model,
        "companySize": organization.company_size,
        "description": organization.description,
        "targetAudience": organization.target_audience,
        "brandVoice": organization.brand_voice,
        "websiteGoals": organization.website_goals,
    }


class CacheLocator:
    """URL-scoped cache lookup; no owner filter and no side effects."""

    def __init__(
        self,
        persistence: AnalysisPersistence,
        *,
        ttl_days: int = 30,
        cta_limit: int = 5,
        sufficient_cta_count: int = 3,
    ) -> None:
        self.persistence = persistence
        self.ttl = timedelta(days=ttl_days)
        self.cta_limit = cta_limit
        self.sufficient_cta_count = sufficient_cta_count

    async def locate(self, url: str, *, now: Optional[datetime] = None) -> Optional[CacheHit]:
        since = (now or utcnow()) - self.ttl
        organization = await self.persistence.find_recent_organization(url_variants(url), since)
        if organization is None:
            return None
        snapshot = await self.persistence.get_current_snapshot(organization.id)
        if snapshot is None:
            logger.info("cache_miss url=%s reason=no_current_snapshot organization=%s", url, organization.id)
            return None
        if as_utc(snapshot.created_at) < since:
            logger.info("cache_miss url=%s reason=stale_snapshot organization=%s", url, organization.id)
            return None
        logger.info("cache_hit url=%s organization=%s snapshot=%s", url, organization.id, snapshot.id)
        return CacheHit(organization=organization, snapshot=snapshot)

    async def load(self, hit: CacheHit, url: str) -> AnalysisResult:
        organization, snapshot = hit.organization, hit.snapshot
        ctas = await self.persistence.list_top_ctas(organization.id, self.cta_limit)
        scenarios = await self.persistence.list_snapshot_scenarios(snapshot.id)

        analysis = dict(snapshot.analysis or {}) or _organization_analysis(organization)
        analysis["organizationId"] = organization.id
        scrape_metadata = snapshot.scrape_metadata or {}
        cached_at = as_utc(organization.last_analyzed_at)

        return AnalysisResult(
            url=url,
            organization_id=organization.id,
            scraped_at=_parse_datetime(scrape_metadata.get("scraped_at")) or cached_at,
            analysis=analysis,
            metadata={
                "title": scrape_metadata.get("title", ""),
                "headings": scrape_metadata.get("headings", []),
            },
            scenarios=scenarios,
            ctas=ctas,
            cta_count=len(ctas),
            has_sufficient_ctas=len(ctas) >= self.sufficient_cta_count,
            narrative=snapshot.narrative_analysis or None,
            narrative_confidence=snapshot.narrative_confidence,
            insight_cards=insight_cards(snapshot.key_insights),
            from_cache=True,
            cached_at=cached_at,
        )
