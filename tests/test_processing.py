from __future__ import annotations

import pytest

from processing import (
    build_analysis_content,
    normalize_cta,
    normalize_ctas,
    normalize_headings,
    slugify,
    truncate_content,
    url_variants,
)
from processing.content import TRUNCATION_MARKER
from conftest import make_scrape


def test_normalize_cta_maps_type_and_placement() -> None:
    cta = normalize_cta({"type": "signup", "text": "  Join  ", "placement": "nav", "className": "btn"})

    assert cta["cta_type"] == "signup_link"
    assert cta["placement"] == "navigation"
    assert cta["cta_text"] == "Join"
    assert cta["class_name"] == "btn"
    assert cta["tag_name"] == "a"
    assert cta["conversion_potential"] == 70


def test_normalize_cta_defaults_for_unknown_values() -> None:
    cta = normalize_cta({"type": "mystery", "placement": "floating"})

    assert cta["cta_type"] == "cta_element"
    assert cta["placement"] == "main_content"
    assert cta["cta_text"] == "Unknown CTA"


def test_normalize_cta_keeps_valid_placement() -> None:
    assert normalize_cta({"text": "x", "placement": "footer"})["placement"] == "footer"


def test_normalize_cta_requires_object() -> None:
    with pytest.raises(ValueError):
        normalize_cta(None)


def test_normalize_ctas_drops_unusable_entries() -> None:
    ctas = normalize_ctas([{"text": "Buy"}, None, {"text": "Call", "type": "phone", "conversion_potential": "x"}])

    assert [c["cta_text"] for c in ctas] == ["Buy"]


def test_normalize_headings_dedupes_case_insensitively() -> None:
    assert normalize_headings(["Fresh Bread", "fresh   bread", "", "  ", "Order &amp; Pay"]) == [
        "Fresh Bread",
        "Order & Pay",
    ]


def test_truncate_content_respects_limit() -> None:
    text = "word " * 200

    truncated = truncate_content(text, 120)

    assert len(truncated) <= 120
    assert truncated.endswith(TRUNCATION_MARKER)
    assert truncate_content("short", 120) == "short"


def test_build_analysis_content_labels_sections() -> None:
    content = build_analysis_content(make_scrape(), 10_000)

    assert content.startswith("Title: Example Bakery")
    assert "Meta Description: Fresh bread every morning" in content
    assert "Headings: Fresh Bread, Order Online" in content
    assert "Content: We bake sourdough" in content


def test_url_variants_adds_bare_host_for_both_schemes() -> None:
    assert url_variants("https://example.com/pricing") == [
        "https://example.com/pricing",
        "http://example.com",
        "https://example.com",
    ]
    assert url_variants("https://example.com") == ["https://example.com", "http://example.com"]


def test_slugify() -> None:
    assert slugify("Example Bakery & Co.") == "example-bakery-co-"
    assert slugify("") == "organization"
    assert len(slugify("x" * 300)) == 100
