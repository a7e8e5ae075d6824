"""
Custom Exceptions
Error taxonomy for the website intelligence pipeline.
"""


class SiteIntelError(Exception):
    """Base class for processing failures"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(SiteIntelError):
    """Missing or invalid configuration"""
    pass


class InvalidRequestError(SiteIntelError):
    """Rejected analysis input (bad URL, missing owner)"""
    pass


class ScraperError(SiteIntelError):
    """Website could not be fetched or parsed"""

    def __init__(self, message: str, url: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.url = url


class LLMError(SiteIntelError):
    """LLM call failed or returned unusable output"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class StorageError(SiteIntelError):
    """Persistence failure"""
    pass


class OrganizationConflictError(StorageError):
    """Organization insert kept colliding on its slug and could not be resolved"""

    def __init__(self, message: str, slug: str = None, attempts: int = 0):
        super().__init__(message, {"slug": slug, "attempts": attempts})
        self.slug = slug
        self.attempts = attempts


class PipelineError(SiteIntelError):
    """Pipeline-level processing failure"""
    pass


class PipelineCancelledError(RuntimeError):
    """Raised at a checkpoint once cancellation was requested; not a processing failure."""

    def __init__(self, message: str = "Cancelled", checkpoint: str = None):
        super().__init__(message)
        self.checkpoint = checkpoint
