"""
Content Preparation
Heading normalization, analysis-content assembly, slugs and URL variants.
"""
from __future__ import annotations

import html
import re
from typing import Iterable, List
from urllib.parse import urlparse

from core import ScrapeResult


MULTIPLE_SPACES = re.compile(r"\s+")
NON_SLUG_CHARS = re.compile(r"[^a-z0-9]")
REPEATED_DASHES = re.compile(r"-+")

SLUG_MAX_LENGTH = 100
TRUNCATION_MARKER = "\n[content truncated]"


def collapse_whitespace(text: str) -> str:
    return MULTIPLE_SPACES.sub(" ", html.unescape(str(text or ""))).strip()


def normalize_headings(headings: Iterable[str]) -> List[str]:
    """Collapse whitespace, drop empties and case-insensitive duplicates, keep order."""
    normalized: List[str] = []
    seen = set()
    for heading in headings or []:
        text = collapse_whitespace(heading)
        if not text:
            continue
        key = text.lower()
        if key in seen:
            continue
        seen.add(key)
        normalized.append(text)
    return normalized


def truncate_content(text: str, max_chars: int) -> str:
    """Cut text to max_chars (marker included) on a whitespace boundary when one is close."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    budget = max(0, max_chars - len(TRUNCATION_MARKER))
    cut = text[:budget]
    boundary = cut.rfind(" ")
    if boundary >= budget * 0.8:
        cut = cut[:boundary]
    return cut.rstrip() + TRUNCATION_MARKER


def build_analysis_content(scrape: ScrapeResult, max_chars: int) -> str:
    """Flatten a scrape into the labelled text block handed to the analyzer."""
    headings = normalize_headings(scrape.headings)
    full_content = "\n".join(
        [
            f"Title: {collapse_whitespace(scrape.title)}",
            f"Meta Description: {collapse_whitespace(scrape.meta_description)}",
            f"Headings: {', '.join(headings)}",
            f"Content: {scrape.content or ''}",
        ]
    ).strip()
    return truncate_content(full_content, max_chars)


def slugify(name: str) -> str:
    slug = NON_SLUG_CHARS.sub("-", str(name or "").lower())
    slug = REPEATED_DASHES.sub("-", slug)
    return slug[:SLUG_MAX_LENGTH] or "organization"


def hostname(url: str) -> str:
    parsed = urlparse(str(url or "").strip())
    return (parsed.hostname or "").lower()


def url_variants(url: str) -> List[str]:
    """Exact URL plus the bare host under http:// and https://, without duplicates."""
    exact = str(url or "").strip()
    variants: List[str] = [exact] if exact else []
    host = urlparse(exact).netloc
    if host:
        for scheme in ("http", "https"):
            candidate = f"{scheme}://{host}"
            if candidate not in variants:
                variants.append(candidate)
    return variants
