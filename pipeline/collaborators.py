"""Interfaces the pipeline needs from its scraper and AI client."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol

from core import NarrativeAnalysis, ScrapeResult


class Scraper(Protocol):
    def is_valid_url(self, url: str) -> bool: ...

    async def scrape(
        self,
        url: str,
        on_progress: Optional[Callable[[str, str, Optional[str]], Any]] = None,
    ) -> ScrapeResult: ...


class AIClient(Protocol):
    async def analyze(
        self,
        content: str,
        url: str,
        on_progress: Optional[Callable[[str], Any]] = None,
    ) -> Dict[str, Any]: ...

    async def generate_audience_scenarios(
        self,
        analysis: Dict[str, Any],
        existing_audiences: Optional[List[Dict[str, Any]]] = None,
        on_audience: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> List[Dict[str, Any]]: ...

    async def generate_pitches(
        self,
        scenarios: List[Dict[str, Any]],
        business_context: Dict[str, Any],
        on_pitch: Optional[Callable[[Dict[str, Any], int], Any]] = None,
    ) -> List[Dict[str, Any]]: ...

    async def generate_audience_images(
        self,
        scenarios: List[Dict[str, Any]],
        brand_context: Dict[str, Any],
        on_image: Optional[Callable[[Dict[str, Any], int], Any]] = None,
    ) -> List[Dict[str, Any]]: ...

    async def generate_narrative(
        self,
        analysis: Dict[str, Any],
        intelligence: Dict[str, Any],
        ctas: List[Dict[str, Any]],
    ) -> NarrativeAnalysis: ...

    async def generate_scraping_observation(self, scrape: ScrapeResult) -> str: ...

    async def generate_cta_observation(self, ctas: List[Dict[str, Any]]) -> str: ...
