from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core import Owner
from processing.content import SLUG_MAX_LENGTH, slugify
from processing.cta_normalizer import normalize_cta
from storage.models import Audience, CTAAnalysis, Organization, OrganizationIntelligence, utcnow
from utils.exceptions import OrganizationConflictError


logger = logging.getLogger(__name__)


class Repository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj


class OrganizationsRepository(Repository):
    def get(self, organization_id: str) -> Optional[Organization]:
        return self.session.get(Organization, organization_id)

    def find_recent_by_urls(self, urls: Iterable[str], since: datetime) -> Optional[Organization]:
        """Most recently analyzed organization for any of the URLs, regardless of owner."""
        candidates = [url for url in urls if url]
        if not candidates:
            return None
        stmt = (
            select(Organization)
            .where(Organization.website_url.in_(candidates))
            .where(Organization.last_analyzed_at.is_not(None))
            .where(Organization.last_analyzed_at >= since)
            .order_by(Organization.last_analyzed_at.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def resolve_for_owner(self, url: str, owner: Owner) -> Tuple[Optional[Organization], bool]:
        """
        Find the organization a run should write into.

        Returns (organization, adopt_flag). adopt_flag is True when an
        unowned organization must be claimed by the authenticated user.
        """
        if owner.user_id:
            stmt = (
                select(Organization)
                .where(Organization.website_url == url)
                .where(Organization.owner_user_id == owner.user_id)
                .order_by(Organization.updated_at.desc())
            )
            found = self.session.scalars(stmt).first()
            if found:
                return found, False
            return self._first_unowned(url), True

        stmt = (
            select(Organization)
            .where(Organization.website_url == url)
            .where(Organization.owner_user_id.is_(None))
            .where(Organization.session_id == owner.session_id)
            .order_by(Organization.updated_at.desc())
        )
        found = self.session.scalars(stmt).first()
        if found:
            return found, False
        return self._first_unowned(url), False

    def _first_unowned(self, url: str) -> Optional[Organization]:
        stmt = (
            select(Organization)
            .where(Organization.website_url == url)
            .where(Organization.owner_user_id.is_(None))
            .order_by(Organization.updated_at.desc())
        )
        return self.session.scalars(stmt).first()

    def upsert_for_owner(
        self,
        *,
        url: str,
        owner: Owner,
        name: str,
        values: Dict[str, Any],
        max_attempts: int = 3,
    ) -> Organization:
        """
        Update the owner's organization for a URL or insert a new one.

        A unique-slug violation means another run inserted first: the row is
        re-resolved and updated, otherwise the insert is retried with a
        timestamp-suffixed slug.
        """
        existing, adopt = self.resolve_for_owner(url, owner)
        if existing is not None:
            return self._apply(existing, values, claim_for=owner.user_id if adopt else None)

        base_slug = slugify(name)
        slug = base_slug
        for attempt in range(1, max_attempts + 1):
            organization = Organization(
                slug=slug,
                name=name,
                website_url=url,
                owner_user_id=owner.user_id,
                session_id=None if owner.user_id else owner.session_id,
                **values,
            )
            self.session.add(organization)
            try:
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                logger.info("Organization insert conflict on slug %r (attempt %s): %s", slug, attempt, exc.orig)
                existing, adopt = self.resolve_for_owner(url, owner)
                if existing is not None:
                    return self._apply(existing, values, claim_for=owner.user_id if adopt else None)
                suffix = f"-{int(time.time() * 1000)}"
                slug = f"{base_slug[: SLUG_MAX_LENGTH - len(suffix)]}{suffix}"
                continue
            self.session.refresh(organization)
            return organization

        raise OrganizationConflictError(
            f"Could not create organization for {url}",
            slug=base_slug,
            attempts=max_attempts,
        )

    def _apply(
        self,
        organization: Organization,
        values: Dict[str, Any],
        *,
        claim_for: Optional[str] = None,
    ) -> Organization:
        for key, value in values.items():
            setattr(organization, key, value)
        if claim_for:
            organization.owner_user_id = claim_for
            organization.session_id = None
            logger.info("Organization %s adopted by user %s", organization.id, claim_for)
        organization.updated_at = utcnow()
        return self.save(organization)

    def set_cta_flag(self, organization_id: str, has_cta_data: bool) -> None:
        stmt = (
            update(Organization)
            .where(Organization.id == organization_id)
            .values(has_cta_data=has_cta_data, updated_at=utcnow())
        )
        self.session.execute(stmt)
        self.session.commit()


class IntelligenceRepository(Repository):
    def get(self, snapshot_id: str) -> Optional[OrganizationIntelligence]:
        return self.session.get(OrganizationIntelligence, snapshot_id)

    def get_current(self, organization_id: str) -> Optional[OrganizationIntelligence]:
        stmt = (
            select(OrganizationIntelligence)
            .where(OrganizationIntelligence.organization_id == organization_id)
            .where(OrganizationIntelligence.is_current.is_(True))
            .order_by(OrganizationIntelligence.created_at.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def replace_current(self, organization_id: str, values: Dict[str, Any]) -> OrganizationIntelligence:
        """Retire prior current snapshots and insert the new one in one transaction."""
        self.session.execute(
            update(OrganizationIntelligence)
            .where(OrganizationIntelligence.organization_id == organization_id)
            .where(OrganizationIntelligence.is_current.is_(True))
            .values(is_current=False, updated_at=utcnow())
        )
        snapshot = OrganizationIntelligence(organization_id=organization_id, is_current=True, **values)
        return self.save(snapshot)

    def update_narrative(
        self,
        snapshot_id: str,
        *,
        narrative: str,
        confidence: float,
        key_insights: List[Dict[str, Any]],
    ) -> None:
        stmt = (
            update(OrganizationIntelligence)
            .where(OrganizationIntelligence.id == snapshot_id)
            .values(
                narrative_analysis=narrative,
                narrative_confidence=confidence,
                key_insights=key_insights,
                updated_at=utcnow(),
            )
        )
        self.session.execute(stmt)
        self.session.commit()

    def update_scenario_summary(self, snapshot_id: str, scenarios: List[Dict[str, Any]]) -> None:
        stmt = (
            update(OrganizationIntelligence)
            .where(OrganizationIntelligence.id == snapshot_id)
            .values(customer_scenarios=scenarios, updated_at=utcnow())
        )
        self.session.execute(stmt)
        self.session.commit()


class CTARepository(Repository):
    def replace_for_organization(
        self,
        organization_id: str,
        page_url: str,
        ctas: Iterable[Dict[str, Any]],
    ) -> int:
        """
        Delete every stored CTA for the organization, then upsert the new set.

        Each CTA commits on its own; a CTA that fails to normalize or store
        is logged and skipped. Returns the number stored.
        """
        self.session.execute(delete(CTAAnalysis).where(CTAAnalysis.organization_id == organization_id))
        self.session.commit()

        stored = 0
        for index, raw in enumerate(ctas):
            try:
                fields = normalize_cta(raw)
                self._upsert(organization_id, page_url, fields)
                self.session.commit()
                stored += 1
            except (ValueError, TypeError) as exc:
                logger.warning("Skipping CTA %s for organization %s: %s", index, organization_id, exc)
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.warning("Failed to store CTA %s for organization %s: %s", index, organization_id, exc)
        return stored

    def _upsert(self, organization_id: str, page_url: str, fields: Dict[str, Any]) -> CTAAnalysis:
        stmt = (
            select(CTAAnalysis)
            .where(CTAAnalysis.organization_id == organization_id)
            .where(CTAAnalysis.page_url == page_url)
            .where(CTAAnalysis.cta_text == fields["cta_text"])
            .where(CTAAnalysis.placement == fields["placement"])
        )
        record = self.session.scalars(stmt).first()
        if record is None:
            record = CTAAnalysis(organization_id=organization_id, page_url=page_url)
            self.session.add(record)
        for key, value in fields.items():
            setattr(record, key, value)
        record.scraped_at = utcnow()
        self.session.flush()
        return record

    def count_for_organization(self, organization_id: str) -> int:
        stmt = select(func.count()).select_from(CTAAnalysis).where(CTAAnalysis.organization_id == organization_id)
        return int(self.session.scalar(stmt) or 0)

    def list_top(self, organization_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        stmt = (
            select(CTAAnalysis)
            .where(CTAAnalysis.organization_id == organization_id)
            .order_by(CTAAnalysis.conversion_potential.desc(), CTAAnalysis.id.asc())
            .limit(limit)
        )
        return [cta_to_dict(record) for record in self.session.scalars(stmt).all()]


class AudiencesRepository(Repository):
    def list_for_owner(self, owner: Owner) -> List[Dict[str, Any]]:
        """Segment/problem pairs the owner already has, newest first."""
        stmt = select(Audience.target_segment, Audience.customer_problem)
        if owner.user_id:
            stmt = stmt.where(Audience.user_id == owner.user_id)
        else:
            stmt = stmt.where(Audience.session_id == owner.session_id)
        stmt = stmt.order_by(Audience.created_at.desc())
        return [
            {"target_segment": segment, "customer_problem": problem}
            for segment, problem in self.session.execute(stmt).all()
        ]

    def count_for_snapshot(self, snapshot_id: str) -> int:
        stmt = select(func.count()).select_from(Audience).where(Audience.organization_intelligence_id == snapshot_id)
        return int(self.session.scalar(stmt) or 0)

    def list_for_snapshot(self, snapshot_id: str) -> List[Dict[str, Any]]:
        stmt = (
            select(Audience)
            .where(Audience.organization_intelligence_id == snapshot_id)
            .order_by(Audience.priority.asc(), Audience.created_at.asc())
        )
        return [audience_to_scenario(record) for record in self.session.scalars(stmt).all()]

    def insert_for_snapshot(self, snapshot_id: str, owner: Owner, scenarios: Iterable[Dict[str, Any]]) -> int:
        inserted = 0
        for index, scenario in enumerate(scenarios):
            record = Audience(
                organization_intelligence_id=snapshot_id,
                user_id=owner.user_id,
                session_id=None if owner.user_id else owner.session_id,
                **scenario_to_fields(scenario, default_priority=index + 1),
            )
            self.session.add(record)
            inserted += 1
        self.session.commit()
        return inserted


def cta_to_dict(record: CTAAnalysis) -> Dict[str, Any]:
    return {
        "id": record.id,
        "text": record.cta_text,
        "type": record.cta_type,
        "href": record.href,
        "placement": record.placement,
        "conversion_potential": record.conversion_potential,
        "data_source": record.data_source,
    }


def _number(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def scenario_to_fields(scenario: Dict[str, Any], *, default_priority: int = 1) -> Dict[str, Any]:
    """Map a generated scenario (camelCase or snake_case keys) onto audience columns."""

    def pick(*keys: str) -> Any:
        for key in keys:
            if key in scenario and scenario[key] is not None:
                return scenario[key]
        return None

    priority = pick("priority")
    business_value = pick("businessValue", "business_value")
    if priority is None and isinstance(business_value, dict):
        priority = business_value.get("priority")
    return {
        "target_segment": pick("targetSegment", "target_segment"),
        "customer_problem": pick("customerProblem", "customer_problem"),
        "customer_language": pick("customerLanguage", "customer_language"),
        "conversion_path": pick("conversionPath", "conversion_path"),
        "business_value": pick("businessValue", "business_value"),
        "seo_keywords": pick("seoKeywords", "seo_keywords"),
        "content_ideas": pick("contentIdeas", "content_ideas"),
        "priority": int(priority) if isinstance(priority, (int, float)) else default_priority,
        "pitch": pick("pitch"),
        "image_url": pick("imageUrl", "image_url"),
        "projected_revenue_low": _number(pick("projected_revenue_low", "projectedRevenueLow")),
        "projected_revenue_high": _number(pick("projected_revenue_high", "projectedRevenueHigh")),
        "projected_profit_low": _number(pick("projected_profit_low", "projectedProfitLow")),
        "projected_profit_high": _number(pick("projected_profit_high", "projectedProfitHigh")),
    }


def audience_to_scenario(record: Audience) -> Dict[str, Any]:
    return {
        "id": record.id,
        "targetSegment": record.target_segment,
        "customerProblem": record.customer_problem,
        "customerLanguage": record.customer_language,
        "conversionPath": record.conversion_path,
        "businessValue": record.business_value,
        "seoKeywords": record.seo_keywords or [],
        "contentIdeas": record.content_ideas or [],
        "priority": record.priority,
        "pitch": record.pitch,
        "imageUrl": record.image_url,
        "projected_revenue_low": record.projected_revenue_low,
        "projected_revenue_high": record.projected_revenue_high,
        "projected_profit_low": record.projected_profit_low,
        "projected_profit_high": record.projected_profit_high,
    }
