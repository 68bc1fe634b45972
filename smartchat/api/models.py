"""Pydantic request/response models for the smartchat HTTP bridge.

The bridge is stateless: document text travels in every request and the
updated text comes back in the response. The host shell writes it.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from smartchat.config import API_MAX_ITEMS, API_MAX_TEXT_CHARS

MAX_URL_CHARS = 4096

# =============================================================================
# PLATFORMS
# =============================================================================


class PlatformInfo(BaseModel):
    key: str
    fence_tag: str
    label: str
    fallback_url: str
    home_url: str = ""
    debounce_ms: int
    detects_conversations: bool = False
    snippet: str


# =============================================================================
# THREADS
# =============================================================================


class ClassifyRequest(BaseModel):
    """Classify a URL, against one platform when ``fence_tag`` is given."""

    url: str = Field(..., max_length=MAX_URL_CHARS)
    fence_tag: str | None = Field(default=None, max_length=64)


class ClassifyResponse(BaseModel):
    url: str
    normalized_url: str
    platform: str
    fence_tag: str | None = None
    is_thread_link: bool
    context_key: str | None = None


class LinksRequest(BaseModel):
    source_text: str = Field(..., max_length=API_MAX_TEXT_CHARS)
    fence_tag: str | None = Field(default=None, max_length=64)


class LinkRecord(BaseModel):
    url: str
    done: bool = False


class LinksResponse(BaseModel):
    links: list[LinkRecord]
    initial_link: str | None = None


# =============================================================================
# CODEBLOCKS
# =============================================================================


class CodeblockRequest(BaseModel):
    """Full document text plus the host's (possibly stale) fence coordinates."""

    text: str = Field(..., max_length=API_MAX_TEXT_CHARS)
    fence_tag: str = Field(..., max_length=64)
    line_start: int = 0
    line_end: int = 0


class PrefixRequest(CodeblockRequest):
    now_seconds: int | None = None


class UrlCodeblockRequest(CodeblockRequest):
    url: str = Field(..., max_length=MAX_URL_CHARS)


class InsertRequest(UrlCodeblockRequest):
    now_seconds: int | None = None


class BoundariesResponse(BaseModel):
    start: int
    end: int
    blocks: list[list[int]]


class EditResponse(BaseModel):
    text: str
    changed: bool
    start: int
    end: int


class MarkResponse(EditResponse):
    index: int = -1
    next_url: str | None = None
    navigate_to: str | None = None


# =============================================================================
# CONVERSATIONS
# =============================================================================


class MergeRequest(BaseModel):
    existing: list[dict[str, Any]] = Field(default_factory=list, max_length=API_MAX_ITEMS)
    incoming: list[dict[str, Any]] = Field(default_factory=list, max_length=API_MAX_ITEMS)
    base_url: str | None = Field(default=None, max_length=MAX_URL_CHARS)


class InterceptRequest(BaseModel):
    messages: list[str] = Field(..., max_length=API_MAX_ITEMS)
    existing: list[dict[str, Any]] = Field(default_factory=list, max_length=API_MAX_ITEMS)
    base_url: str | None = Field(default=None, max_length=MAX_URL_CHARS)


class ConversationOut(BaseModel):
    id: str
    title: str | None = None
    display_title: str
    url: str
    update_time: str | None = None
    create_time: str | None = None


class ConversationListResponse(BaseModel):
    items: list[ConversationOut]
    changed: bool = True
