from __future__ import annotations

import httpx
import pytest
from bs4 import BeautifulSoup

from scrapers import WebsiteScraper, extract_ctas, extract_social_handles
from utils.exceptions import ScraperError


PAGE = """
<html>
  <head>
    <title>  Example   Bakery </title>
    <meta name="description" content="Fresh bread every morning">
  </head>
  <body>
    <header>
      <nav><a href="/signup">Join the club</a></nav>
      <button class="btn">Order now</button>
    </header>
    <main>
      <h1>Fresh Bread</h1>
      <h2>Order Online</h2>
      <p>We bake sourdough and rye for local cafes.</p>
      <div class="hero"><a href="/contact">Talk to us</a></div>
      <form><input type="email" placeholder="Your email"></form>
    </main>
    <footer>
      <a href="tel:+15551234">Call</a>
      <a href="https://twitter.com/examplebakery">Twitter</a>
      <a href="https://twitter.com/intent/tweet?text=hi">Share</a>
      <a href="https://www.instagram.com/examplebakery/">Instagram</a>
    </footer>
    <script>var tracking = true;</script>
  </body>
</html>
"""


def _scraper(handler) -> WebsiteScraper:
    return WebsiteScraper(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_scrape_extracts_page_fields_and_reports_phases() -> None:
    phases = []

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=PAGE, headers={"content-type": "text/html"})

    async with _scraper(_handler) as scraper:
        result = await scraper.scrape("https://example.com", on_progress=lambda phase, message, detail=None: phases.append(phase))

    assert phases == ["start", "validate", "fetch", "parse-html", "ctas", "extract"]
    assert result.title == "Example Bakery"
    assert result.meta_description == "Fresh bread every morning"
    assert result.headings == ["Fresh Bread", "Order Online"]
    assert "sourdough" in result.content
    assert "tracking" not in result.content
    assert result.social_handles == {"twitter": "examplebakery", "instagram": "examplebakery"}

    by_type = {cta["type"]: cta for cta in result.ctas}
    assert by_type["button"]["placement"] == "header"
    assert by_type["signup_link"]["placement"] == "navigation"
    assert by_type["signup_link"]["href"] == "https://example.com/signup"
    assert by_type["contact_link"]["placement"] == "main_content"
    assert by_type["phone_link"]["href"] == "tel:+15551234"
    assert by_type["phone_link"]["placement"] == "footer"
    assert by_type["email_capture"]["text"] == "Your email"


@pytest.mark.asyncio
async def test_scrape_raises_on_http_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="missing")

    async with _scraper(_handler) as scraper:
        with pytest.raises(ScraperError) as excinfo:
            await scraper.scrape("https://example.com/missing")

    assert "404" in str(excinfo.value)
    assert excinfo.value.url == "https://example.com/missing"


@pytest.mark.asyncio
async def test_scrape_rejects_non_http_urls() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with _scraper(_handler) as scraper:
        assert scraper.is_valid_url("ftp://example.com") is False
        with pytest.raises(ScraperError):
            await scraper.scrape("ftp://example.com")


def test_extract_ctas_caps_per_type() -> None:
    html = "<body>" + "".join(f"<button>Buy {i}</button>" for i in range(15)) + "</body>"

    ctas = extract_ctas(BeautifulSoup(html, "html.parser"), "https://example.com")

    assert len(ctas) == 10
    assert ctas[0]["text"] == "Buy 0"
    assert ctas[0]["tagName"] == "button"


def test_extract_social_handles_skips_share_links() -> None:
    html = '<a href="https://www.facebook.com/sharer/sharer.php?u=x">s</a><a href="https://facebook.com/bakery">f</a>'

    assert extract_social_handles(BeautifulSoup(html, "html.parser")) == {"facebook": "bakery"}
