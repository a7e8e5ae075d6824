"""
Website Scraper
Fetches a single page over HTTP and extracts title, meta description,
headings, main content, calls-to-action and social profile links.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin, urlparse
import logging

import httpx
from bs4 import BeautifulSoup
from bs4.element import Tag
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from core import ScrapeResult
from processing.content import collapse_whitespace
from utils.exceptions import ScraperError
from .base import BaseScraper, ScrapeProgressCallback


logger = logging.getLogger(__name__)


MAX_HEADINGS = 10
MAX_CTAS_PER_TYPE = 10

# Elements dropped before reading the main content
NOISE_SELECTORS = "script, style, noscript, nav, footer, header, .cookie-banner, .popup, .modal, .advertisement"

MAIN_CONTENT_SELECTORS = (
    "main",
    "[role=main]",
    ".main-content",
    ".content",
    "article",
    ".post-content",
    ".entry-content",
)

CTA_SELECTORS = (
    ("button, .btn, .button", "button"),
    ('a[href*="contact"]', "contact_link"),
    ('a[href*="signup"], a[href*="register"]', "signup_link"),
    ('a[href*="demo"]', "demo_link"),
    ('a[href*="trial"]', "trial_link"),
    ('a[href^="tel:"]', "phone_link"),
    ("form", "form"),
    ('input[type="email"]', "email_capture"),
    ('[class*="cta"], [id*="cta"]', "cta_element"),
)

PLACEMENT_CONTAINERS = (
    ("header", "header"),
    ("footer", "footer"),
    ("nav", "navigation"),
    ("aside", "sidebar"),
    ("sidebar", "sidebar"),
)

SOCIAL_HOSTS = {
    "twitter.com": "twitter",
    "x.com": "twitter",
    "linkedin.com": "linkedin",
    "facebook.com": "facebook",
    "instagram.com": "instagram",
    "youtube.com": "youtube",
    "tiktok.com": "tiktok",
}


class WebsiteScraper(BaseScraper):
    """
    Website scraper (httpx + BeautifulSoup)

    Progress phases: start, validate, fetch, parse-html, extract, ctas.
    """

    def __init__(self, settings=None, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(settings)
        self._transport = transport

    @property
    def name(self) -> str:
        return "Website"

    def is_valid_url(self, url: str) -> bool:
        try:
            parsed = urlparse(str(url or "").strip())
        except ValueError:
            return False
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout),
                follow_redirects=True,
                headers={
                    "User-Agent": self.settings.user_agent,
                    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                    "Accept-Language": "en-US,en;q=0.5",
                },
                transport=self._transport,
            )
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _fetch(self, url: str) -> httpx.Response:
        client = await self._get_client()
        return await client.get(url)

    async def scrape(
        self,
        url: str,
        on_progress: Optional[ScrapeProgressCallback] = None,
    ) -> ScrapeResult:
        """
        Scrape one page

        Args:
            url: page URL
            on_progress: optional (phase, message, detail) callback

        Returns:
            ScrapeResult

        Raises:
            ScraperError: invalid URL, transport failure or non-2xx response
        """
        await self._notify(on_progress, "start", "Starting website scrape", url)

        await self._notify(on_progress, "validate", "Validating URL")
        if not self.is_valid_url(url):
            raise ScraperError("Invalid URL protocol. Only HTTP and HTTPS are supported.", url=url)

        await self._notify(on_progress, "fetch", "Fetching page", url)
        try:
            response = await self._fetch(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self._log_error(f"HTTP {e.response.status_code} for {url}", e)
            raise ScraperError(f"Failed to scrape website: HTTP {e.response.status_code}", url=url) from e
        except httpx.HTTPError as e:
            self._log_error(f"Fetch failed for {url}", e)
            raise ScraperError(f"Failed to scrape website: {e}", url=url) from e

        await self._notify(on_progress, "parse-html", "Parsing HTML")
        soup = BeautifulSoup(response.text, "html.parser")

        await self._notify(on_progress, "ctas", "Finding calls to action")
        ctas = extract_ctas(soup, str(response.url))
        social_handles = extract_social_handles(soup)

        await self._notify(on_progress, "extract", "Extracting content")
        title = collapse_whitespace(soup.title.get_text()) if soup.title else ""
        meta = soup.find("meta", attrs={"name": "description"})
        meta_description = collapse_whitespace(meta.get("content", "")) if meta else ""
        headings = [
            text
            for text in (collapse_whitespace(el.get_text(" ")) for el in soup.select("h1, h2, h3"))
            if text
        ][:MAX_HEADINGS]

        for element in soup.select(NOISE_SELECTORS):
            element.decompose()
        content = _main_content(soup)

        logger.info(
            "scrape_done url=%s title=%r headings=%s ctas=%s chars=%s",
            url, title, len(headings), len(ctas), len(content),
        )
        return ScrapeResult(
            url=url,
            title=title,
            meta_description=meta_description,
            headings=headings,
            content=content,
            ctas=ctas,
            social_handles=social_handles,
            scraped_at=datetime.now(timezone.utc),
        )


def _main_content(soup: BeautifulSoup) -> str:
    for selector in MAIN_CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            text = collapse_whitespace(element.get_text(" "))
            if text:
                return text
    body = soup.body or soup
    return collapse_whitespace(body.get_text(" "))


def _placement(element: Tag) -> str:
    for parent in element.parents:
        if not isinstance(parent, Tag):
            continue
        classes = [str(c).lower() for c in parent.get("class") or []]
        for marker, placement in PLACEMENT_CONTAINERS:
            if parent.name == marker or marker in classes:
                return placement
    return "main_content"


def _context(element: Tag) -> str:
    container = element.find_parent(["section", "article", "div"])
    if container is None:
        return ""
    return collapse_whitespace(container.get_text(" "))[:200]


def extract_ctas(soup: BeautifulSoup, base_url: str) -> List[Dict[str, Any]]:
    """CTA candidates in selector order, at most MAX_CTAS_PER_TYPE per type."""
    ctas: List[Dict[str, Any]] = []
    for selector, cta_type in CTA_SELECTORS:
        for element in soup.select(selector)[:MAX_CTAS_PER_TYPE]:
            text = collapse_whitespace(element.get_text(" "))
            if not text:
                text = str(element.get("placeholder") or element.get("value") or "")
            href = str(element.get("href") or "")
            if href and not href.startswith(("tel:", "mailto:")):
                href = urljoin(base_url, href)
            if not text and not href:
                continue
            ctas.append(
                {
                    "type": cta_type,
                    "text": text[:100],
                    "href": href[:200],
                    "placement": _placement(element),
                    "context": _context(element),
                    "className": " ".join(element.get("class") or []),
                    "tagName": element.name,
                }
            )
    return ctas


def extract_social_handles(soup: BeautifulSoup) -> Dict[str, str]:
    """First profile link per network, keyed by network name."""
    handles: Dict[str, str] = {}
    for anchor in soup.find_all("a", href=True):
        parsed = urlparse(anchor["href"])
        host = (parsed.hostname or "").lower()
        if host.startswith("www."):
            host = host[4:]
        network = SOCIAL_HOSTS.get(host)
        if network is None or network in handles:
            continue
        path = parsed.path.strip("/")
        if not path or path.startswith(("share", "intent", "sharer")):
            continue
        handles[network] = path
    return handles
