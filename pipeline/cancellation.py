"""Cooperative cancellation over a sync or async probe."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from pipeline.progress import RunState
from utils.exceptions import PipelineCancelledError, PipelineError


logger = logging.getLogger(__name__)

CancellationProbe = Callable[[], Union[bool, Awaitable[bool]]]


class CancellationController:
    """Polls the probe at checkpoints; never interrupts in-flight work."""

    def __init__(self, probe: Optional[CancellationProbe] = None, state: Optional[RunState] = None) -> None:
        self._probe = probe
        self._state = state

    async def check_cancelled(self) -> bool:
        # cancellation is sticky for the rest of the run
        if self._state is not None and self._state.cancelled:
            return True
        if self._probe is None:
            return False
        try:
            value = self._probe()
            if inspect.isawaitable(value):
                value = await value
        except Exception as exc:
            raise PipelineError(f"Cancellation probe failed: {exc}") from exc
        return bool(value)

    async def checkpoint(self, where: str) -> None:
        if await self.check_cancelled():
            if self._state is not None:
                self._state.cancelled = True
            logger.info("pipeline_cancelled checkpoint=%s", where)
            raise PipelineCancelledError("Cancelled", checkpoint=where)
