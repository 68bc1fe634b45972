"""Conversation-list merging for the "add detected thread" picker."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import ValidationError

from smartchat.api.models import (
    ConversationListResponse,
    ConversationOut,
    InterceptRequest,
    MergeRequest,
)
from smartchat.conversations.interception import ConversationTracker
from smartchat.conversations.merge import (
    DEFAULT_BASE_URL,
    build_thread_url,
    merge_conversation_items,
)
from smartchat.conversations.models import ConversationItem
from smartchat.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


def _parse_items(raw_items: list[dict[str, Any]]) -> list[ConversationItem]:
    items = []
    for raw in raw_items:
        try:
            items.append(ConversationItem.model_validate(raw))
        except ValidationError as e:
            logger.debug("Skipping malformed conversation item: %s", e.error_count())
    return items


def _to_response(
    items: list[ConversationItem], base_url: str | None, changed: bool = True
) -> ConversationListResponse:
    base = base_url or DEFAULT_BASE_URL
    return ConversationListResponse(
        items=[
            ConversationOut(
                id=item.id,
                title=item.title,
                display_title=item.display_title,
                url=build_thread_url(item, base),
                update_time=item.update_time,
                create_time=item.create_time,
            )
            for item in items
        ],
        changed=changed,
    )


@router.post("/merge", response_model=ConversationListResponse)
async def merge(request: MergeRequest) -> ConversationListResponse:
    merged = merge_conversation_items(
        _parse_items(request.existing), _parse_items(request.incoming)
    )
    return _to_response(merged, request.base_url)


@router.post("/intercept", response_model=ConversationListResponse)
async def intercept(request: InterceptRequest) -> ConversationListResponse:
    """Merge the conversations found in a batch of ``[SC_NET]`` console lines."""
    tracker = ConversationTracker()
    tracker.merge(_parse_items(request.existing))
    changed = False
    for message in request.messages:
        changed = tracker.ingest(message) or changed
    return _to_response(tracker.items, request.base_url, changed=changed)
