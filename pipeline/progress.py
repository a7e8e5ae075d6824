"""Stage/phase labels, progress maps and the progress reporter."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core import ProgressUpdate
from pipeline.listeners import ProgressSink, deliver


PROGRESS_STEPS = (
    "Analyzing website",
    "Generating audiences",
    "Generating pitches",
    "Generating images",
)

# Granular phase labels per stage, shown to the user as thoughts
PROGRESS_PHASES = (
    (
        "Fetching page content",
        "Researching business (brand & competitors)",
        "Researching keywords & SEO",
        "Analyzing business from content",
        "Analyzing customer psychology",
        "Saving analysis & CTAs",
        "Generating narrative summary",
    ),
    (
        "Checking existing audiences",
        "Identifying audience opportunities",
        "Creating customer scenarios",
    ),
    (
        "Calculating revenue projections",
        "Generating conversion pitches",
    ),
    (
        "Creating audience visuals",
        "Saving strategies",
    ),
)

# Stage 0 percent while the scraper runs, keyed by scraper phase
SCRAPE_PROGRESS: Dict[str, int] = {
    "start": 2,
    "validate": 4,
    "fetch": 10,
    "parse-html": 18,
    "ctas": 22,
    "extract": 26,
}
SCRAPE_PROGRESS_DEFAULT = 28
SCRAPE_DONE_PROGRESS = 30
CONTENT_READY_PROGRESS = 35

# Stage 0 percent when the analyzer reports its phase
ANALYSIS_PROGRESS: Dict[str, int] = {
    PROGRESS_PHASES[0][3]: 40,
}
ANALYSIS_DONE_PROGRESS = 60
SAVED_PROGRESS = 65
NARRATIVE_PROGRESS = 75


@dataclass
class RunState:
    """Ephemeral state of one run: current stage/phase and per-stage percent floor."""

    stage_index: int = 0
    phase_label: Optional[str] = None
    cancelled: bool = False
    floors: Dict[int, float] = field(default_factory=dict)

    def advance(self, stage_index: int, percent: float, phase: Optional[str] = None) -> float:
        """Record a tick; the returned percent never drops below the stage's previous value."""
        bounded = max(0.0, min(100.0, float(percent)))
        clamped = max(bounded, self.floors.get(stage_index, 0.0))
        self.floors[stage_index] = clamped
        self.stage_index = stage_index
        if phase:
            self.phase_label = phase
        return clamped


class ProgressReporter:
    """Emits ProgressUpdates; a no-op without a progress sink."""

    def __init__(self, sink: Optional[ProgressSink], state: Optional[RunState] = None) -> None:
        self._sink = sink
        self.state = state or RunState()

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    async def report(
        self,
        stage_index: int,
        label: str,
        percent: float,
        eta_seconds: Optional[float] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        extra = dict(extra or {})
        value = self.state.advance(stage_index, percent, extra.get("phase"))
        if self._sink is None:
            return
        # one emission per event-loop turn so consumers see ticks separately
        await asyncio.sleep(0)
        update = ProgressUpdate(
            stage_index=stage_index,
            label=label,
            percent=value,
            eta_seconds=eta_seconds,
            extra=extra,
        )
        await deliver(self._sink, update, label="progress")

    async def stage(
        self,
        stage_index: int,
        percent: float,
        eta_seconds: Optional[float] = None,
        phase: Optional[str] = None,
        **extra: Any,
    ) -> None:
        """Report against the stage's standard label."""
        if phase:
            extra["phase"] = phase
        await self.report(stage_index, PROGRESS_STEPS[stage_index], percent, eta_seconds, extra)
