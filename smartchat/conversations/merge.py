"""
Conversation-list merge engine.

Intercepted list responses overlap page to page, so items are merged by id:

- duplicate id: keep the more recent item (update_time, else create_time);
  on a tie prefer the one with a title
- result: most recent first, then by lowercased title

Merging is idempotent: merge(merge(a, b), b) == merge(a, b).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from smartchat.conversations.models import ConversationItem

DEFAULT_BASE_URL = "https://chatgpt.com"


def _parse_iso_seconds(value: str | None) -> float:
    """ISO-8601 timestamp as epoch seconds; 0 for empty or unparsable input."""
    raw = (value or "").strip()
    if not raw:
        return 0.0
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def conversation_sort_key(item: ConversationItem | None) -> float:
    """Recency of an item: update_time, falling back to create_time."""
    if item is None:
        return 0.0
    return _parse_iso_seconds(item.update_time) or _parse_iso_seconds(item.create_time)


def _has_title(item: ConversationItem) -> bool:
    return bool((item.title or "").strip())


def merge_conversation_items(
    existing: Iterable[ConversationItem] | None,
    incoming: Iterable[ConversationItem] | None,
) -> list[ConversationItem]:
    """Deduplicate by id and sort most recent first. Items without an id are dropped."""
    by_id: dict[str, ConversationItem] = {}

    for item in [*(existing or ()), *(incoming or ())]:
        if item is None or not item.id:
            continue
        current = by_id.get(item.id)
        if current is None:
            by_id[item.id] = item
            continue

        current_key = conversation_sort_key(current)
        next_key = conversation_sort_key(item)
        if next_key > current_key or (
            next_key == current_key and not _has_title(current) and _has_title(item)
        ):
            by_id[item.id] = item

    return sorted(
        by_id.values(),
        key=lambda item: (-conversation_sort_key(item), (item.title or "").lower()),
    )


def build_thread_url(item: ConversationItem | None, base_url: str = DEFAULT_BASE_URL) -> str:
    """
    Thread URL for a conversation item, or "" when it has no id.

    Examples:
        {id: "abc"}                 -> https://chatgpt.com/c/abc
        {id: "abc", gizmo_id: "g"}  -> https://chatgpt.com/g/g/c/abc
    """
    if item is None or not item.id:
        return ""
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    if item.gizmo_id:
        return f"{base}/g/{item.gizmo_id}/c/{item.id}"
    return f"{base}/c/{item.id}"
