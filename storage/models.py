from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from storage.database import Base


def _new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Organization(Base):
    __tablename__ = "organizations"
    __table_args__ = (
        CheckConstraint(
            "NOT (owner_user_id IS NOT NULL AND session_id IS NOT NULL)",
            name="ck_organizations_single_owner",
        ),
        Index("idx_organizations_website_url", "website_url"),
        Index("idx_organizations_last_analyzed_at", "last_analyzed_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    website_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    industry_category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_model: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_size: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    target_audience: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    brand_voice: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website_goals: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    social_handles: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    has_cta_data: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    owner_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    last_analyzed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class OrganizationIntelligence(Base):
    __tablename__ = "organization_intelligence"
    __table_args__ = (
        Index("idx_org_intelligence_current", "organization_id", "is_current"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    analysis: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    scrape_metadata: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    customer_scenarios: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    business_value_assessment: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    customer_language_patterns: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    search_behavior_insights: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    seo_opportunities: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    content_strategy_recommendations: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    competitive_intelligence: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    analysis_confidence_score: Mapped[float] = mapped_column(Float, default=0.75, nullable=False)
    data_sources: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    ai_model_used: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    narrative_analysis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    narrative_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    key_insights: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class CTAAnalysis(Base):
    __tablename__ = "cta_analysis"
    __table_args__ = (
        UniqueConstraint(
            "organization_id", "page_url", "cta_text", "placement",
            name="uq_cta_analysis_natural_key",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    page_url: Mapped[str] = mapped_column(Text, nullable=False)
    cta_text: Mapped[str] = mapped_column(Text, nullable=False)
    cta_type: Mapped[str] = mapped_column(String(40), nullable=False)
    placement: Mapped[str] = mapped_column(String(40), nullable=False)
    href: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    class_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tag_name: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    conversion_potential: Mapped[int] = mapped_column(Integer, default=70, nullable=False)
    visibility_score: Mapped[int] = mapped_column(Integer, default=70, nullable=False)
    page_type: Mapped[str] = mapped_column(String(40), default="homepage", nullable=False)
    analysis_source: Mapped[str] = mapped_column(String(40), default="website_scraping", nullable=False)
    data_source: Mapped[str] = mapped_column(String(40), default="scraped", nullable=False)
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Audience(Base):
    __tablename__ = "audiences"
    __table_args__ = (
        CheckConstraint(
            "NOT (user_id IS NOT NULL AND session_id IS NOT NULL)",
            name="ck_audiences_single_owner",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    organization_intelligence_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("organization_intelligence.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    target_segment: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    customer_problem: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_language: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    conversion_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    seo_keywords: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    content_ideas: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    pitch: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    projected_revenue_low: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    projected_revenue_high: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    projected_profit_low: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    projected_profit_high: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
