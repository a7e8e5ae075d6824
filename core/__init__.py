"""Core contracts and shared types for the website analysis pipeline."""

from .contracts import (
    AnalysisRequest,
    AnalysisResult,
    InsightCard,
    JobStatus,
    NarrativeAnalysis,
    NarrativeEvent,
    NarrativeEventType,
    Owner,
    PartialSegment,
    ProgressUpdate,
    ScrapeResult,
    StatusTimestamps,
)

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "InsightCard",
    "JobStatus",
    "NarrativeAnalysis",
    "NarrativeEvent",
    "NarrativeEventType",
    "Owner",
    "PartialSegment",
    "ProgressUpdate",
    "ScrapeResult",
    "StatusTimestamps",
]
