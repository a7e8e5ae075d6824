"""Observer hooks for a pipeline run and the per-run sink bundle."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from core import NarrativeEvent, PartialSegment, ProgressUpdate


logger = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressUpdate], Any]
PartialSink = Callable[[PartialSegment, Dict[str, Any]], Any]
NarrativeSink = Callable[[NarrativeEvent], Any]


class PipelineListener:
    """
    Receives progress, partial results and narrative events from one run.

    Subclasses define the hooks they care about; a hook left as None is
    never called. Hooks may be plain functions or coroutines.
    """

    on_progress: Optional[ProgressSink] = None
    on_partial_result: Optional[PartialSink] = None
    on_narrative: Optional[NarrativeSink] = None


class CallbackListener(PipelineListener):
    """Listener assembled from plain callables."""

    def __init__(
        self,
        on_progress: Optional[ProgressSink] = None,
        on_partial_result: Optional[PartialSink] = None,
        on_narrative: Optional[NarrativeSink] = None,
    ) -> None:
        self.on_progress = on_progress
        self.on_partial_result = on_partial_result
        self.on_narrative = on_narrative


async def deliver(sink: Optional[Callable[..., Any]], *args: Any, label: str = "listener") -> None:
    """Call a sink, awaiting coroutine results; sink failures are logged and dropped."""
    if sink is None:
        return
    try:
        result = sink(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.warning("%s callback failed", label, exc_info=True)


@dataclass(frozen=True)
class RunSinks:
    """Listener capabilities resolved once when a run starts."""

    progress: Optional[ProgressSink] = None
    partial: Optional[PartialSink] = None
    narrative: Optional[NarrativeSink] = None

    @classmethod
    def from_listener(cls, listener: Optional[PipelineListener]) -> "RunSinks":
        if listener is None:
            return cls()

        def _hook(name: str) -> Optional[Callable[..., Any]]:
            hook = getattr(listener, name, None)
            return hook if callable(hook) else None

        return cls(
            progress=_hook("on_progress"),
            partial=_hook("on_partial_result"),
            narrative=_hook("on_narrative"),
        )

    async def partial_result(self, segment: PartialSegment, data: Dict[str, Any]) -> None:
        await deliver(self.partial, segment, data, label=f"partial-result[{segment.value}]")
