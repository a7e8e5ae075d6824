"""
Utils Module
Logging setup and exception taxonomy.
"""
from .logger import setup_logger, setup_package_logging, get_logger
from .exceptions import (
    SiteIntelError,
    ConfigurationError,
    InvalidRequestError,
    ScraperError,
    LLMError,
    StorageError,
    OrganizationConflictError,
    PipelineError,
    PipelineCancelledError,
)

__all__ = [
    "setup_logger",
    "setup_package_logging",
    "get_logger",
    "SiteIntelError",
    "ConfigurationError",
    "InvalidRequestError",
    "ScraperError",
    "LLMError",
    "StorageError",
    "OrganizationConflictError",
    "PipelineError",
    "PipelineCancelledError",
]
