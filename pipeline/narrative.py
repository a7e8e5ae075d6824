"""Word-by-word narrative streaming with paced insight cards."""

from __future__ import annotations

import asyncio
import re
from typing import Any, Dict, Iterable, List, Optional

from core import InsightCard, NarrativeEvent, NarrativeEventType
from pipeline.listeners import NarrativeSink, deliver


_WHITESPACE_SPLIT = re.compile(r"(\s+)")


def tokenize(text: str) -> List[str]:
    """Words and the whitespace runs between them; joining the tokens restores the text."""
    return [token for token in _WHITESPACE_SPLIT.split(text or "") if token]


class NarrativeStreamer:
    """Emits NarrativeEvents; every call is a no-op without a narrative sink."""

    def __init__(
        self,
        sink: Optional[NarrativeSink],
        *,
        token_delay_ms: int = 35,
        card_delay_ms: int = 600,
    ) -> None:
        self._sink = sink
        self._token_delay = max(0, token_delay_ms) / 1000.0
        self._card_delay = max(0, card_delay_ms) / 1000.0

    @property
    def enabled(self) -> bool:
        return self._sink is not None

    async def emit(
        self,
        event_type: NarrativeEventType,
        content: str = "",
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self._sink is None:
            return
        event = NarrativeEvent(type=event_type, content=content, data=data)
        await deliver(self._sink, event, label=f"narrative[{event_type.value}]")

    async def status(self, message: str) -> None:
        await self.emit(NarrativeEventType.STATUS_UPDATE, message)

    async def transition(self, message: str = "") -> None:
        await self.emit(NarrativeEventType.TRANSITION, message)

    async def business_profile(self, profile: Dict[str, Any]) -> None:
        await self.emit(NarrativeEventType.BUSINESS_PROFILE, data=profile)

    async def complete(self) -> None:
        await self.emit(NarrativeEventType.NARRATIVE_COMPLETE)

    async def stream_text(self, text: str) -> None:
        if self._sink is None:
            return
        for token in tokenize(text):
            await self.emit(NarrativeEventType.TEXT_CHUNK, token)
            if not token.isspace() and self._token_delay:
                await asyncio.sleep(self._token_delay)

    async def stream_cards(self, cards: Iterable[InsightCard]) -> None:
        if self._sink is None:
            return
        cards = list(cards)
        for index, card in enumerate(cards):
            await self.emit(NarrativeEventType.INSIGHT_CARD, card.heading, data=card.model_dump())
            if index < len(cards) - 1 and self._card_delay:
                await asyncio.sleep(self._card_delay)

    async def replay(self, narrative: Optional[str], cards: Iterable[InsightCard]) -> None:
        """Stream a stored narrative and its cards with live pacing."""
        if narrative:
            await self.stream_text(narrative)
        await self.stream_cards(cards)
