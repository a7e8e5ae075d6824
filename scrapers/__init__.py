"""
Scrapers Module
"""
from .base import BaseScraper, ScrapeProgressCallback
from .website_scraper import WebsiteScraper, extract_ctas, extract_social_handles

__all__ = [
    # Base
    "BaseScraper",
    "ScrapeProgressCallback",
    # Website
    "WebsiteScraper",
    "extract_ctas",
    "extract_social_handles",
]
