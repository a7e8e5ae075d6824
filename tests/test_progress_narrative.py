from __future__ import annotations

import pytest

from core import InsightCard, NarrativeEventType
from pipeline import NarrativeStreamer, ProgressReporter, RunState, tokenize
from pipeline import narrative as narrative_module
from pipeline import progress as progress_module


@pytest.fixture
def recorded_sleeps(monkeypatch):
    sleeps = []

    async def _fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(narrative_module.asyncio, "sleep", _fake_sleep)
    return sleeps


def test_tokenize_round_trips_text() -> None:
    text = "  Hello world,\n\nthis  is\tyour site.  "

    tokens = tokenize(text)

    assert "".join(tokens) == text
    assert "" not in tokens
    assert tokenize("") == []


def test_run_state_percent_never_decreases() -> None:
    state = RunState()

    assert state.advance(0, 40) == 40
    assert state.advance(0, 20) == 40
    assert state.advance(0, 150) == 100
    assert state.advance(1, 5, "Checking existing audiences") == 5
    assert state.phase_label == "Checking existing audiences"


@pytest.mark.asyncio
async def test_reporter_without_sink_is_noop_but_tracks_state() -> None:
    reporter = ProgressReporter(None)

    await reporter.stage(0, 30, 80, phase="Fetching page content")

    assert not reporter.enabled
    assert reporter.state.floors[0] == 30


@pytest.mark.asyncio
async def test_reporter_yields_before_each_emission(monkeypatch) -> None:
    order = []

    async def _fake_sleep(delay):
        order.append(("yield", delay))

    monkeypatch.setattr(progress_module.asyncio, "sleep", _fake_sleep)
    reporter = ProgressReporter(lambda update: order.append(("emit", update.percent)))

    await reporter.stage(0, 10)
    await reporter.stage(0, 5)

    assert order == [("yield", 0), ("emit", 10), ("yield", 0), ("emit", 10)]


@pytest.mark.asyncio
async def test_reporter_swallows_listener_errors() -> None:
    def _broken(update):
        raise RuntimeError("boom")

    reporter = ProgressReporter(_broken)

    await reporter.stage(2, 50, 10, phase="Generating conversion pitches")

    assert reporter.state.stage_index == 2


@pytest.mark.asyncio
async def test_stream_text_sleeps_after_words_only(recorded_sleeps) -> None:
    events = []
    streamer = NarrativeStreamer(events.append, token_delay_ms=35, card_delay_ms=600)

    await streamer.stream_text("Fresh bread daily")

    assert [e.content for e in events] == ["Fresh", " ", "bread", " ", "daily"]
    assert all(e.type == NarrativeEventType.TEXT_CHUNK for e in events)
    assert recorded_sleeps == [0.035, 0.035, 0.035]


@pytest.mark.asyncio
async def test_stream_cards_paces_between_cards(recorded_sleeps) -> None:
    events = []
    streamer = NarrativeStreamer(events.append, token_delay_ms=35, card_delay_ms=600)
    cards = [InsightCard(heading="A"), InsightCard(heading="B"), InsightCard(heading="C", category="risk")]

    await streamer.stream_cards(cards)

    assert [e.content for e in events] == ["A", "B", "C"]
    assert events[2].data["category"] == "risk"
    assert recorded_sleeps == [0.6, 0.6]


@pytest.mark.asyncio
async def test_streamer_without_sink_never_sleeps(recorded_sleeps) -> None:
    streamer = NarrativeStreamer(None)

    await streamer.replay("Some stored narrative", [InsightCard(heading="A"), InsightCard(heading="B")])
    await streamer.status("hello")
    await streamer.complete()

    assert recorded_sleeps == []
    assert not streamer.enabled


@pytest.mark.asyncio
async def test_streamer_survives_failing_listener(recorded_sleeps) -> None:
    seen = []

    async def _flaky(event):
        seen.append(event.content)
        if event.content == "bread":
            raise ValueError("listener broke")

    streamer = NarrativeStreamer(_flaky, token_delay_ms=0, card_delay_ms=0)

    await streamer.stream_text("fresh bread here")
    await streamer.complete()

    assert seen == ["fresh", " ", "bread", " ", "here", ""]
    assert recorded_sleeps == []
