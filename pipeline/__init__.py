"""
Pipeline Module
Website analysis orchestration: cache, backfill, progress, narrative, cancellation
"""
from .listeners import CallbackListener, PipelineListener, RunSinks
from .progress import PROGRESS_PHASES, PROGRESS_STEPS, ProgressReporter, RunState
from .cancellation import CancellationController
from .narrative import NarrativeStreamer, tokenize
from .cache import CacheHit, CacheLocator
from .backfill import CacheBackfillEngine
from .orchestrator import WebsiteAnalysisPipeline

__all__ = [
    # Listeners
    "CallbackListener",
    "PipelineListener",
    "RunSinks",
    # Progress
    "PROGRESS_PHASES",
    "PROGRESS_STEPS",
    "ProgressReporter",
    "RunState",
    # Cancellation
    "CancellationController",
    # Narrative
    "NarrativeStreamer",
    "tokenize",
    # Cache
    "CacheHit",
    "CacheLocator",
    "CacheBackfillEngine",
    # Orchestrator
    "WebsiteAnalysisPipeline",
]
