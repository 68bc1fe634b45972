"""
Navigation debouncing.

Chat pages redirect through several URLs before settling. Two layers:

- ``settle_navigation_events``: the pure transformation from a recorded
  ``NavigationEvent`` stream to ``SettledUrlEvent``s (testable without timers)
- ``Debouncer``: the cancel-and-restart asyncio timer used at runtime. A new
  event before the timer fires replaces the pending one; the last settled
  URL wins.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from smartchat.observability.logging import get_logger
from smartchat.threads.types import NavigationEvent, SettledUrlEvent

logger = get_logger(__name__)


def settle_navigation_events(
    events: Iterable[NavigationEvent], window_seconds: float
) -> list[SettledUrlEvent]:
    """
    Collapse bursts of navigation events.

    An event settles when no further event follows within ``window_seconds``.
    The settled event carries the time the timer would have fired.
    """
    ordered = sorted(events, key=lambda event: event.timestamp)
    settled: list[SettledUrlEvent] = []
    burst = 0
    for index, event in enumerate(ordered):
        burst += 1
        following = ordered[index + 1] if index + 1 < len(ordered) else None
        if following is not None and following.timestamp - event.timestamp < window_seconds:
            continue
        settled.append(
            SettledUrlEvent(url=event.url, timestamp=event.timestamp + window_seconds, collapsed=burst)
        )
        burst = 0
    return settled


class Debouncer:
    """Calls ``callback(url)`` once the event stream has been quiet for ``delay_seconds``."""

    def __init__(self, delay_seconds: float, callback: Callable[[str], Awaitable[object]]):
        self.delay_seconds = delay_seconds
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, url: str) -> None:
        """Record a navigation event; must be called from the running event loop."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire, url)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def drain(self) -> None:
        """Wait for callbacks that already fired."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _fire(self, url: str) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._callback(url))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Settled-URL handler failed: %s", exc, exc_info=exc)
