"""
Processing Module
Content preparation and CTA normalization
"""
from .content import (
    build_analysis_content,
    collapse_whitespace,
    hostname,
    normalize_headings,
    slugify,
    truncate_content,
    url_variants,
)
from .cta_normalizer import (
    normalize_cta,
    normalize_ctas,
    is_valid_cta_type,
    is_valid_placement,
)

__all__ = [
    # Content
    "build_analysis_content",
    "collapse_whitespace",
    "hostname",
    "normalize_headings",
    "slugify",
    "truncate_content",
    "url_variants",
    # CTA
    "normalize_cta",
    "normalize_ctas",
    "is_valid_cta_type",
    "is_valid_placement",
]
