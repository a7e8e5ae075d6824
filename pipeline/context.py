"""Per-run context: sinks, run state, reporter, narrative streamer and cancellation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from config.settings import PipelineSettings
from core import AnalysisRequest, Owner
from pipeline.cancellation import CancellationController, CancellationProbe
from pipeline.listeners import PipelineListener, RunSinks
from pipeline.narrative import NarrativeStreamer
from pipeline.progress import ProgressReporter, RunState


@dataclass
class RunContext:
    request: AnalysisRequest
    sinks: RunSinks
    state: RunState
    reporter: ProgressReporter
    narrative: NarrativeStreamer
    cancellation: CancellationController

    @property
    def owner(self) -> Owner:
        return self.request.owner

    @classmethod
    def build(
        cls,
        request: AnalysisRequest,
        settings: PipelineSettings,
        listener: Optional[PipelineListener] = None,
        is_cancelled: Optional[CancellationProbe] = None,
    ) -> "RunContext":
        sinks = RunSinks.from_listener(listener)
        state = RunState()
        return cls(
            request=request,
            sinks=sinks,
            state=state,
            reporter=ProgressReporter(sinks.progress, state),
            narrative=NarrativeStreamer(
                sinks.narrative,
                token_delay_ms=settings.narrative_token_delay_ms,
                card_delay_ms=settings.insight_card_delay_ms,
            ),
            cancellation=CancellationController(is_cancelled, state),
        )
