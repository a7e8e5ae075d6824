"""
Base Scraper
Abstract base for website scrapers
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar
import asyncio
import inspect
import logging

from config import get_scraper_settings
from core import ScrapeResult


logger = logging.getLogger(__name__)

R = TypeVar("R")

ScrapeProgressCallback = Callable[[str, str, Optional[str]], Any]


class BaseScraper(ABC):
    """
    Scraper abstract base
    Concrete scrapers fetch one page and return a ScrapeResult.
    """

    def __init__(self, settings=None):
        self.settings = settings or get_scraper_settings()
        self._client = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Scraper name"""
        pass

    @abstractmethod
    async def scrape(
        self,
        url: str,
        on_progress: Optional[ScrapeProgressCallback] = None,
    ) -> ScrapeResult:
        """
        Scrape a single page

        Args:
            url: page URL (http or https)
            on_progress: optional (phase, message, detail) callback, sync or async

        Returns:
            ScrapeResult
        """
        pass

    @abstractmethod
    def is_valid_url(self, url: str) -> bool:
        """Whether the URL can be scraped"""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Release the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _run_blocking(self, func: Callable[..., R], *args, **kwargs) -> R:
        """Run a blocking function on a worker thread."""
        return await asyncio.to_thread(func, *args, **kwargs)

    async def _notify(
        self,
        on_progress: Optional[ScrapeProgressCallback],
        phase: str,
        message: str,
        detail: Optional[str] = None,
    ) -> None:
        if on_progress is None:
            return
        try:
            result = on_progress(phase, message, detail)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.debug("[%s] progress callback failed", self.name, exc_info=True)

    def _log_error(self, message: str, error: Exception):
        logger.error(f"[{self.name}] {message}: {error}")
