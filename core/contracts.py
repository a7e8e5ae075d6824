"""Canonical data contracts for the website analysis pipeline and job layer."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class NarrativeEventType(str, Enum):
    """Event variants delivered to the narrative sink."""

    STATUS_UPDATE = "status-update"
    TRANSITION = "transition"
    TEXT_CHUNK = "text-chunk"
    INSIGHT_CARD = "insight-card"
    BUSINESS_PROFILE = "business-profile"
    NARRATIVE_COMPLETE = "narrative-complete"


class PartialSegment(str, Enum):
    """Segments delivered to the partial-result sink."""

    SCRAPE_RESULT = "scrape-result"
    ANALYSIS = "analysis"
    AUDIENCE_COMPLETE = "audience-complete"
    AUDIENCES = "audiences"
    PITCH_COMPLETE = "pitch-complete"
    PITCHES = "pitches"
    SCENARIO_IMAGE_COMPLETE = "scenario-image-complete"
    SCENARIOS = "scenarios"


class Owner(BaseModel):
    """Owner scope of persisted rows: a user id XOR an anonymous session id."""

    user_id: Optional[str] = None
    session_id: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "Owner":
        if bool(self.user_id) == bool(self.session_id):
            raise ValueError("owner requires exactly one of user_id or session_id")
        return self

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


class AnalysisRequest(BaseModel):
    """Input for a single website analysis run."""

    url: str
    user_id: Optional[str] = None
    session_id: Optional[str] = None

    @field_validator("url", mode="before")
    @classmethod
    def _required_url(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("url is required")
        return text

    @field_validator("user_id", "session_id", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        text = str(value or "").strip()
        return text or None

    @model_validator(mode="after")
    def _requires_owner(self) -> "AnalysisRequest":
        if not self.user_id and not self.session_id:
            raise ValueError("either user_id or session_id is required")
        return self

    @property
    def owner(self) -> Owner:
        """Authenticated users win over the anonymous session."""
        if self.user_id:
            return Owner(user_id=self.user_id)
        return Owner(session_id=self.session_id)


class ScrapeResult(BaseModel):
    """What the scraper hands to the pipeline."""

    url: str = ""
    title: str = ""
    meta_description: str = ""
    headings: List[str] = Field(default_factory=list)
    content: str = ""
    ctas: List[Dict[str, Any]] = Field(default_factory=list)
    social_handles: Dict[str, str] = Field(default_factory=dict)
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class InsightCard(BaseModel):
    """Structured insight shown next to the narrative."""

    heading: str
    body: str = ""
    category: str = "insight"


class NarrativeAnalysis(BaseModel):
    """Narrative generator output."""

    narrative: str = ""
    confidence: float = 0.0
    cards: List[InsightCard] = Field(default_factory=list)


class ProgressUpdate(BaseModel):
    """One observable progress tick."""

    stage_index: int
    label: str
    percent: float
    eta_seconds: Optional[float] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class NarrativeEvent(BaseModel):
    """One observable narrative tick."""

    type: NarrativeEventType
    content: str = ""
    data: Optional[Dict[str, Any]] = None


class AnalysisResult(BaseModel):
    """Combined pipeline output for fresh and cached runs."""

    success: bool = True
    url: str
    organization_id: str
    scraped_at: Optional[datetime] = None
    analysis: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    scenarios: List[Dict[str, Any]] = Field(default_factory=list)
    ctas: List[Dict[str, Any]] = Field(default_factory=list)
    cta_count: int = 0
    has_sufficient_ctas: bool = False
    narrative: Optional[str] = None
    narrative_confidence: Optional[float] = None
    insight_cards: List[InsightCard] = Field(default_factory=list)
    from_cache: bool = False
    cached_at: Optional[datetime] = None


class StatusTimestamps(BaseModel):
    """Lifecycle timestamps for a job."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class JobStatus(BaseModel):
    """Observable job status for the job APIs."""

    job_id: str
    state: str
    progress: int = 0
    current_step: Optional[str] = None
    estimated_seconds_remaining: Optional[float] = None
    errors: List[str] = Field(default_factory=list)
    timestamps: StatusTimestamps = Field(default_factory=StatusTimestamps)
    cancellation_requested: bool = False
    result: Optional[Dict[str, Any]] = None
