"""
CTA Normalizer
Maps scraper CTA dicts onto the stored CTA vocabulary (types and placements).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)


CTA_TYPE_MAPPING = {
    "contact": "contact_link",
    "signup": "signup_link",
    "demo": "demo_link",
    "trial": "trial_link",
    "phone": "phone_link",
    "download": "download_link",
    "button": "button",
    "form": "form",
    "email": "email_capture",
    "email_capture": "email_capture",
    "cta": "cta_element",
    "cta_element": "cta_element",
    "contact_link": "contact_link",
    "signup_link": "signup_link",
    "demo_link": "demo_link",
    "trial_link": "trial_link",
    "phone_link": "phone_link",
    "download_link": "download_link",
}

VALID_PLACEMENTS = (
    "header",
    "footer",
    "navigation",
    "sidebar",
    "main_content",
    "popup",
    "banner",
)

PLACEMENT_MAPPING = {
    "content": "main_content",
    "main": "main_content",
    "body": "main_content",
    "nav": "navigation",
    "menu": "navigation",
    "side": "sidebar",
    "aside": "sidebar",
    "modal": "popup",
}

DEFAULT_CTA_TYPE = "cta_element"
DEFAULT_PLACEMENT = "main_content"
DEFAULT_SCORE = 70


def _text(value: Any) -> str:
    return str(value or "").strip()


def _first(cta: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = cta.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize_cta(cta: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a storable CTA; raises ValueError for a missing CTA."""
    if not cta:
        raise ValueError("CTA object is required")

    raw_type = _text(_first(cta, "type", "cta_type")).lower()
    raw_placement = _text(cta.get("placement")).lower()
    placement = PLACEMENT_MAPPING.get(raw_placement)
    if placement is None:
        placement = raw_placement if raw_placement in VALID_PLACEMENTS else DEFAULT_PLACEMENT

    return {
        "cta_text": _text(_first(cta, "text", "cta_text")) or "Unknown CTA",
        "cta_type": CTA_TYPE_MAPPING.get(raw_type, DEFAULT_CTA_TYPE),
        "placement": placement,
        "href": _text(cta.get("href")),
        "context": _text(cta.get("context")),
        "class_name": _text(_first(cta, "className", "class_name")),
        "tag_name": _text(_first(cta, "tagName", "tag_name")) or "a",
        "conversion_potential": int(_first(cta, "conversion_potential", "conversionPotential") or DEFAULT_SCORE),
        "visibility_score": int(_first(cta, "visibility_score", "visibilityScore") or DEFAULT_SCORE),
    }


def normalize_ctas(ctas: Optional[List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """Normalize a list, dropping entries that cannot be normalized."""
    normalized: List[Dict[str, Any]] = []
    for index, cta in enumerate(ctas or []):
        try:
            normalized.append(normalize_cta(cta))
        except (TypeError, ValueError) as exc:
            logger.warning("Failed to normalize CTA at index %s: %s", index, exc)
    return normalized


def is_valid_cta_type(value: str) -> bool:
    return value in set(CTA_TYPE_MAPPING.values())


def is_valid_placement(value: str) -> bool:
    return value in VALID_PLACEMENTS
