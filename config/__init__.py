"""
Configuration Management Module
"""
from .settings import (
    DatabaseSettings,
    JobSettings,
    LLMSettings,
    PipelineSettings,
    ScraperSettings,
    Settings,
    get_database_settings,
    get_job_settings,
    get_llm_settings,
    get_pipeline_settings,
    get_scraper_settings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "JobSettings",
    "LLMSettings",
    "PipelineSettings",
    "ScraperSettings",
    "Settings",
    "get_database_settings",
    "get_job_settings",
    "get_llm_settings",
    "get_pipeline_settings",
    "get_scraper_settings",
    "get_settings",
]
