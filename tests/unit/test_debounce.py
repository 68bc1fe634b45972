"""Tests for navigation debouncing."""

import asyncio

from smartchat.threads.debounce import Debouncer, settle_navigation_events
from smartchat.threads.types import NavigationEvent, SettledUrlEvent


class TestSettleNavigationEvents:
    def test_burst_collapses_to_last_url(self):
        events = [
            NavigationEvent("https://chatgpt.com/", 0.0),
            NavigationEvent("https://chatgpt.com/c/abc?x=1", 0.1),
            NavigationEvent("https://chatgpt.com/c/abc", 0.2),
        ]
        assert settle_navigation_events(events, 0.3) == [
            SettledUrlEvent("https://chatgpt.com/c/abc", 0.5, collapsed=3)
        ]

    def test_quiet_gap_splits_bursts(self):
        events = [NavigationEvent("https://a/1", 0.0), NavigationEvent("https://a/2", 1.0)]
        settled = settle_navigation_events(events, 0.3)
        assert [event.url for event in settled] == ["https://a/1", "https://a/2"]
        assert [event.collapsed for event in settled] == [1, 1]

    def test_out_of_order_input_sorted(self):
        events = [NavigationEvent("https://a/late", 0.2), NavigationEvent("https://a/early", 0.0)]
        assert settle_navigation_events(events, 0.5)[0].url == "https://a/late"

    def test_empty(self):
        assert settle_navigation_events([], 0.3) == []


class TestDebouncer:
    def test_last_url_wins(self):
        seen: list[str] = []

        async def record(url: str) -> None:
            seen.append(url)

        async def scenario() -> None:
            debouncer = Debouncer(0.01, record)
            debouncer.push("https://a/1")
            debouncer.push("https://a/2")
            assert debouncer.pending is True
            await asyncio.sleep(0.05)
            await debouncer.drain()
            assert debouncer.pending is False

        asyncio.run(scenario())
        assert seen == ["https://a/2"]

    def test_cancel_drops_pending_event(self):
        seen: list[str] = []

        async def record(url: str) -> None:
            seen.append(url)

        async def scenario() -> None:
            debouncer = Debouncer(0.01, record)
            debouncer.push("https://a/1")
            debouncer.cancel()
            await asyncio.sleep(0.03)

        asyncio.run(scenario())
        assert seen == []

    def test_callback_failure_is_contained(self):
        async def explode(url: str) -> None:
            raise RuntimeError("boom")

        async def scenario() -> None:
            debouncer = Debouncer(0.0, explode)
            debouncer.push("https://a/1")
            await asyncio.sleep(0.01)
            await debouncer.drain()

        asyncio.run(scenario())
