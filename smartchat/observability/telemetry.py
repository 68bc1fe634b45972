"""
Lifecycle event recording for codeblock sessions.

The host plugin historically broadcast events such as
``chat_codeblock:saved_thread`` on a shared event bus. Here they become
structured log lines plus in-memory counters so tests can assert that a
transition happened without wiring a bus.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from smartchat.observability.logging import get_logger

logger = get_logger("smartchat.telemetry")

SAVED_THREAD = "chat_codeblock:saved_thread"
MARKED_DONE = "chat_codeblock:marked_done"
MARKED_ACTIVE = "chat_codeblock:marked_active"
THREAD_ADDED = "chat_codeblock:thread_added"
WEBVIEW_RELOADED = "webview:reloaded"
URL_COPIED = "url:copied"

_COUNTERS: Counter[str] = Counter()
_EVENTS: list[tuple[str, dict[str, Any]]] = []
_MAX_EVENTS = 500


def log_event(event_name: str, **fields: Any) -> None:
    """
    Record a lifecycle event.

    Side Effects:
        - Writes to logger (info level)
        - Increments the counter named after the event
        - Appends to the bounded recent-events buffer
    """
    logger.info("event=%s %s", event_name, fields)
    _COUNTERS[event_name] += 1
    _EVENTS.append((event_name, dict(fields)))
    if len(_EVENTS) > _MAX_EVENTS:
        del _EVENTS[: len(_EVENTS) - _MAX_EVENTS]


def counter(name: str, increment: int = 1) -> int:
    """Increment an in-memory counter and return its new value."""
    _COUNTERS[name] += increment
    logger.debug("counter=%s value=%s", name, _COUNTERS[name])
    return _COUNTERS[name]


def get_counter(name: str) -> int:
    return _COUNTERS.get(name, 0)


def recent_events(event_name: str | None = None) -> list[tuple[str, dict[str, Any]]]:
    """Return recorded events, optionally filtered by name (oldest first)."""
    if event_name is None:
        return list(_EVENTS)
    return [event for event in _EVENTS if event[0] == event_name]


def reset_counters() -> None:
    """
    Clear counters and recorded events (useful for tests).

    Side Effects:
        - Clears _COUNTERS and _EVENTS (in-memory state)
    """
    _COUNTERS.clear()
    _EVENTS.clear()
