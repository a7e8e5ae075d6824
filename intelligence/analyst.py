"""
Website Analyst
LLM-backed business analysis, audience scenarios, pitches, images and narrative.
"""
from typing import Any, Callable, Dict, List, Optional
import asyncio
import inspect
import json
import logging

from core import InsightCard, NarrativeAnalysis, ScrapeResult
from intelligence.llm import BaseLLM, Message, get_llm
from intelligence.prompts import (
    ANALYST_SYSTEM_PROMPT,
    ANALYZE_WEBSITE_PROMPT,
    AUDIENCE_IMAGE_PROMPT,
    AUDIENCE_SCENARIOS_PROMPT,
    CTA_OBSERVATION_PROMPT,
    NARRATIVE_PROMPT,
    PITCH_PROMPT,
    SCRAPING_OBSERVATION_PROMPT,
)
from utils.exceptions import LLMError


logger = logging.getLogger(__name__)


# Reported once, right before the analysis request goes out
ANALYSIS_PHASE = "Analyzing business from content"

NARRATIVE_FIELDS = (
    "businessName",
    "businessType",
    "description",
    "businessModel",
    "decisionMakers",
    "endUsers",
    "searchBehavior",
    "contentFocus",
    "websiteGoals",
    "blogStrategy",
)

MAX_SCENARIOS = 4


async def _invoke(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str, indent=2)


def _problem_key(value: Any) -> str:
    return " ".join(str(value or "").lower().split())


class WebsiteAnalyst:
    """
    AI client used by the pipeline

    Every method is a single LLM round trip (pitches and images run one per
    scenario, concurrently). Failures surface as LLMError except where noted.
    """

    def __init__(self, llm: Optional[BaseLLM] = None, max_scenarios: int = MAX_SCENARIOS):
        self.llm = llm or get_llm()
        self.max_scenarios = max_scenarios

    async def _json(self, prompt: str, *, temperature: Optional[float] = None) -> Any:
        messages = [Message.system(ANALYST_SYSTEM_PROMPT), Message.user(prompt)]
        kwargs: Dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature
        return await self.llm.acomplete_json(messages, **kwargs)

    async def analyze(
        self,
        content: str,
        url: str,
        on_progress: Optional[Callable[[str], Any]] = None,
    ) -> Dict[str, Any]:
        """
        Structured business analysis of the page content

        Args:
            content: prepared analysis content
            url: analyzed URL
            on_progress: optional callback receiving ANALYSIS_PHASE

        Returns:
            analysis dict (camelCase keys)
        """
        await _invoke(on_progress, ANALYSIS_PHASE)

        data = await self._json(ANALYZE_WEBSITE_PROMPT.format(url=url, content=content), temperature=0.3)
        if not isinstance(data, dict):
            raise LLMError("Website analysis did not return an object", provider=self.llm.provider)
        data.setdefault("aiModelUsed", self.llm.model)
        logger.info("analysis_done url=%s business=%r", url, data.get("businessName"))
        return data

    async def generate_audience_scenarios(
        self,
        analysis: Dict[str, Any],
        existing_audiences: Optional[List[Dict[str, Any]]] = None,
        on_audience: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Audience scenarios, skipping problems the owner already has."""
        existing = list(existing_audiences or [])
        prompt = AUDIENCE_SCENARIOS_PROMPT.format(
            count=self.max_scenarios,
            analysis=_dump(analysis),
            existing=_dump(existing) if existing else "None",
        )
        data = await self._json(prompt)
        raw = data.get("scenarios") if isinstance(data, dict) else data
        if not isinstance(raw, list):
            raise LLMError("Audience generation did not return a list", provider=self.llm.provider)

        known = {_problem_key(item.get("customer_problem")) for item in existing}
        scenarios: List[Dict[str, Any]] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            key = _problem_key(item.get("customerProblem"))
            if key and key in known:
                continue
            known.add(key)
            scenarios.append(item)
            await _invoke(on_audience, item)
            if len(scenarios) >= self.max_scenarios:
                break
        return scenarios

    async def generate_pitches(
        self,
        scenarios: List[Dict[str, Any]],
        business_context: Dict[str, Any],
        on_pitch: Optional[Callable[[Dict[str, Any], int], Any]] = None,
    ) -> List[Dict[str, Any]]:
        """One pitch (and revenue projection) per scenario; returns updated copies."""

        async def _pitch(index: int, scenario: Dict[str, Any]) -> Dict[str, Any]:
            prompt = PITCH_PROMPT.format(
                business_name=business_context.get("businessName") or "the business",
                business_type=business_context.get("businessType") or "business",
                target_audience=business_context.get("targetAudience") or "unknown",
                scenario=_dump(scenario),
            )
            data = await self._json(prompt)
            updated = dict(scenario)
            if isinstance(data, dict):
                updated.update({key: value for key, value in data.items() if value is not None})
            await _invoke(on_pitch, updated, index)
            return updated

        return list(await asyncio.gather(*(_pitch(i, s) for i, s in enumerate(scenarios))))

    async def generate_audience_images(
        self,
        scenarios: List[Dict[str, Any]],
        brand_context: Dict[str, Any],
        on_image: Optional[Callable[[Dict[str, Any], int], Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        One image per scenario

        A failed image leaves imageUrl empty for that scenario; the rest continue.
        """
        if not self.llm.supports_images:
            logger.info("Provider %s has no image generation; skipping images", self.llm.provider)
            return [dict(scenario) for scenario in scenarios]

        async def _image(index: int, scenario: Dict[str, Any]) -> Dict[str, Any]:
            segment = scenario.get("targetSegment") or {}
            if isinstance(segment, dict):
                segment = segment.get("demographics") or "a customer"
            prompt = AUDIENCE_IMAGE_PROMPT.format(
                segment=segment,
                problem=scenario.get("customerProblem") or "",
                brand_voice=brand_context.get("brandVoice") or "Professional",
            )
            updated = dict(scenario)
            try:
                updated["imageUrl"] = await self.llm.agenerate_image(prompt)
            except LLMError as e:
                logger.warning("Audience image %s failed: %s", index, e)
                updated["imageUrl"] = None
            await _invoke(on_image, updated, index)
            return updated

        return list(await asyncio.gather(*(_image(i, s) for i, s in enumerate(scenarios))))

    async def generate_narrative(
        self,
        analysis: Dict[str, Any],
        intelligence: Dict[str, Any],
        ctas: List[Dict[str, Any]],
    ) -> NarrativeAnalysis:
        """Owner-facing narrative with insight cards."""
        subset = {key: analysis.get(key) for key in NARRATIVE_FIELDS if analysis.get(key) is not None}
        if "businessName" not in subset and analysis.get("companyName"):
            subset["businessName"] = analysis["companyName"]
        prompt = NARRATIVE_PROMPT.format(
            analysis=_dump(subset),
            intelligence=_dump(intelligence or {}),
            ctas=_dump([{k: c.get(k) for k in ("text", "type", "href")} for c in ctas or []]),
        )
        data = await self._json(prompt)
        if not isinstance(data, dict) or not str(data.get("narrative") or "").strip():
            raise LLMError("Narrative generation returned no narrative", provider=self.llm.provider)

        cards: List[InsightCard] = []
        for item in data.get("keyInsights") or []:
            if isinstance(item, dict) and item.get("heading"):
                cards.append(
                    InsightCard(
                        heading=str(item["heading"]),
                        body=str(item.get("body") or ""),
                        category=str(item.get("category") or "insight"),
                    )
                )
            elif isinstance(item, str) and item.strip():
                cards.append(InsightCard(heading=item.strip()))
        try:
            confidence = float(data.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        return NarrativeAnalysis(narrative=str(data["narrative"]), confidence=confidence, cards=cards)

    async def generate_scraping_observation(self, scrape: ScrapeResult) -> str:
        prompt = SCRAPING_OBSERVATION_PROMPT.format(
            title=scrape.title or "(none)",
            description=scrape.meta_description or "(none)",
            headings=", ".join(scrape.headings[:5]) or "(none)",
        )
        return (await self.llm.achat(prompt)).strip()

    async def generate_cta_observation(self, ctas: List[Dict[str, Any]]) -> str:
        texts = [str(c.get("text") or c.get("cta_text") or "") for c in ctas or []]
        prompt = CTA_OBSERVATION_PROMPT.format(ctas=", ".join(t for t in texts if t) or "none")
        return (await self.llm.achat(prompt)).strip()

    async def aclose(self) -> None:
        await self.llm.aclose()
