from __future__ import annotations

import inspect
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from config.settings import PipelineSettings
from core import InsightCard, NarrativeAnalysis, NarrativeEventType, ScrapeResult
from pipeline import PipelineListener, WebsiteAnalysisPipeline
from storage import AnalysisPersistence, Database


async def _call(callback, *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def make_scrape(url: str = "https://example.com") -> ScrapeResult:
    return ScrapeResult(
        url=url,
        title="Example Bakery",
        meta_description="Fresh bread every morning",
        headings=["Fresh Bread", "fresh  bread", "Order Online", ""],
        content="We bake sourdough and rye for local cafes and families.",
        ctas=[
            {"type": "button", "text": "Order now", "href": f"{url}/order", "placement": "header"},
            {"type": "contact", "text": "Contact us", "href": f"{url}/contact", "placement": "footer"},
            {"type": "signup", "text": "Join the club", "href": f"{url}/signup", "placement": "content"},
        ],
        social_handles={"instagram": "examplebakery"},
        scraped_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


DEFAULT_ANALYSIS: Dict[str, Any] = {
    "businessName": "Example Bakery",
    "businessType": "Bakery",
    "industryCategory": "Food",
    "description": "Neighborhood bakery",
    "targetAudience": "Local families",
    "brandVoice": "Warm",
    "websiteGoals": "Online orders",
    "customerScenarios": [{"customerProblem": "No time to bake"}],
}


def make_scenarios(count: int = 2) -> List[Dict[str, Any]]:
    return [
        {
            "targetSegment": {"demographics": f"Segment {index}"},
            "customerProblem": f"Problem {index}",
            "businessValue": {"priority": index + 1},
        }
        for index in range(count)
    ]


class FakeScraper:
    def __init__(self, scrape: Optional[ScrapeResult] = None, error: Optional[Exception] = None) -> None:
        self.scrape_result = scrape
        self.error = error
        self.calls: List[str] = []
        self.closed = False

    def is_valid_url(self, url: str) -> bool:
        return str(url).startswith(("http://", "https://"))

    async def scrape(self, url: str, on_progress=None) -> ScrapeResult:
        self.calls.append(url)
        for phase in ("start", "validate", "fetch", "parse-html", "ctas", "extract"):
            await _call(on_progress, phase, f"phase {phase}", None)
        if self.error is not None:
            raise self.error
        return (self.scrape_result or make_scrape(url)).model_copy(update={"url": url})

    async def close(self) -> None:
        self.closed = True


class FakeAI:
    def __init__(
        self,
        analysis: Optional[Dict[str, Any]] = None,
        narrative: Optional[NarrativeAnalysis] = None,
        narrative_error: Optional[Exception] = None,
        scenarios: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        self.analysis = dict(analysis or DEFAULT_ANALYSIS)
        self.narrative = narrative or NarrativeAnalysis(
            narrative="Your bakery wins on freshness.\nLean into online orders.",
            confidence=0.8,
            cards=[
                InsightCard(heading="Strong local brand", body="Warm voice"),
                InsightCard(heading="Ordering friction", body="Checkout is buried", category="risk"),
            ],
        )
        self.narrative_error = narrative_error
        self.scenarios = make_scenarios() if scenarios is None else scenarios
        self.calls: List[str] = []
        self.existing_seen: List[List[Dict[str, Any]]] = []

    async def analyze(self, content: str, url: str, on_progress=None) -> Dict[str, Any]:
        self.calls.append("analyze")
        await _call(on_progress, "Analyzing business from content")
        return dict(self.analysis)

    async def generate_audience_scenarios(self, analysis, existing_audiences=None, on_audience=None):
        self.calls.append("scenarios")
        self.existing_seen.append(list(existing_audiences or []))
        result = [dict(item) for item in self.scenarios]
        for item in result:
            await _call(on_audience, item)
        return result

    async def generate_pitches(self, scenarios, business_context, on_pitch=None):
        self.calls.append("pitches")
        result = []
        for index, scenario in enumerate(scenarios):
            updated = {**scenario, "pitch": f"Pitch for {scenario.get('customerProblem')}"}
            await _call(on_pitch, updated, index)
            result.append(updated)
        return result

    async def generate_audience_images(self, scenarios, brand_context, on_image=None):
        self.calls.append("images")
        result = []
        for index, scenario in enumerate(scenarios):
            updated = {**scenario, "imageUrl": f"https://img.example/{index}.png"}
            await _call(on_image, updated, index)
            result.append(updated)
        return result

    async def generate_narrative(self, analysis, intelligence, ctas) -> NarrativeAnalysis:
        self.calls.append("narrative")
        if self.narrative_error is not None:
            raise self.narrative_error
        return self.narrative

    async def generate_scraping_observation(self, scrape) -> str:
        self.calls.append("scraping_observation")
        return "Your homepage leads with fresh bread."

    async def generate_cta_observation(self, ctas) -> str:
        self.calls.append("cta_observation")
        return f"I found {len(ctas)} calls to action."


class RecordingListener(PipelineListener):
    def __init__(self) -> None:
        self.progress = []
        self.partials = []
        self.narrative = []

    def on_progress(self, update) -> None:
        self.progress.append(update)

    def on_partial_result(self, segment, data) -> None:
        self.partials.append((segment.value, data))

    def on_narrative(self, event) -> None:
        self.narrative.append(event)

    def segments(self) -> List[str]:
        return [segment for segment, _ in self.partials]

    def narrative_types(self) -> List[NarrativeEventType]:
        return [event.type for event in self.narrative]

    def text(self) -> str:
        return "".join(e.content for e in self.narrative if e.type == NarrativeEventType.TEXT_CHUNK)


@pytest.fixture
def database(tmp_path: Path):
    db = Database(f"sqlite:///{tmp_path / 'site_intel.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def persistence(database) -> AnalysisPersistence:
    return AnalysisPersistence(database)


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    return PipelineSettings(narrative_token_delay_ms=0, insight_card_delay_ms=0)


@pytest.fixture
def fake_scraper() -> FakeScraper:
    return FakeScraper()


@pytest.fixture
def fake_ai() -> FakeAI:
    return FakeAI()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def make_pipeline(persistence, pipeline_settings):
    def _build(scraper=None, ai=None) -> WebsiteAnalysisPipeline:
        return WebsiteAnalysisPipeline(
            scraper=scraper or FakeScraper(),
            ai=ai or FakeAI(),
            persistence=persistence,
            settings=pipeline_settings,
        )

    return _build
