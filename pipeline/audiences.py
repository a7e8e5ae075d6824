"""Scenario, pitch and image generation with per-item partial results."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from core import PartialSegment
from pipeline.collaborators import AIClient
from pipeline.listeners import RunSinks


logger = logging.getLogger(__name__)


def business_context(analysis: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "businessType": analysis.get("businessType"),
        "businessName": analysis.get("businessName") or analysis.get("companyName"),
        "targetAudience": analysis.get("targetAudience"),
    }


def brand_context(analysis: Dict[str, Any]) -> Dict[str, Any]:
    return {"brandVoice": analysis.get("brandVoice") or "Professional"}


class AudienceGenerator:
    """Drives the AI client through scenarios, pitches and images for one run."""

    def __init__(self, ai: AIClient, sinks: RunSinks) -> None:
        self.ai = ai
        self.sinks = sinks

    async def scenarios(self, analysis: Dict[str, Any], existing: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if existing:
            logger.info("Found %s existing audiences for deduplication", len(existing))

        async def _on_audience(audience: Dict[str, Any]) -> None:
            await self.sinks.partial_result(PartialSegment.AUDIENCE_COMPLETE, {"audience": audience})

        scenarios = await self.ai.generate_audience_scenarios(analysis, existing, on_audience=_on_audience)
        scenarios = list(scenarios or [])
        await self.sinks.partial_result(PartialSegment.AUDIENCES, {"scenarios": list(scenarios)})
        return scenarios

    async def pitches(self, analysis: Dict[str, Any], scenarios: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        async def _on_pitch(scenario: Dict[str, Any], index: int) -> None:
            await self.sinks.partial_result(PartialSegment.PITCH_COMPLETE, {"index": index, "scenario": scenario})

        scenarios = await self.ai.generate_pitches(scenarios, business_context(analysis), on_pitch=_on_pitch)
        scenarios = list(scenarios or [])
        await self.sinks.partial_result(PartialSegment.PITCHES, {"scenarios": list(scenarios)})
        return scenarios

    async def images(self, analysis: Dict[str, Any], scenarios: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        async def _on_image(scenario: Dict[str, Any], index: int) -> None:
            await self.sinks.partial_result(
                PartialSegment.SCENARIO_IMAGE_COMPLETE, {"index": index, "scenario": scenario}
            )

        scenarios = await self.ai.generate_audience_images(scenarios, brand_context(analysis), on_image=_on_image)
        scenarios = list(scenarios or [])
        await self.sinks.partial_result(PartialSegment.SCENARIOS, {"scenarios": list(scenarios)})
        return scenarios
