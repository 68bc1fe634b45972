"""
Codeblock edits over full document text.

Each endpoint re-resolves the block from the submitted text, applies one
codec operation, and returns the whole updated text with ``changed`` so the
host can skip no-op writes. Text with no block of the tag is returned
unchanged.
"""

from __future__ import annotations

import time

from fastapi import APIRouter

from smartchat.api.models import (
    BoundariesResponse,
    CodeblockRequest,
    EditResponse,
    InsertRequest,
    MarkResponse,
    PrefixRequest,
    UrlCodeblockRequest,
)
from smartchat.api.routes.threads import resolve_platform
from smartchat.observability import telemetry
from smartchat.observability.logging import get_logger
from smartchat.threads import codec
from smartchat.threads.boundaries import find_boundaries, find_codeblocks, find_owned_block
from smartchat.threads.platforms import PlatformDescriptor
from smartchat.threads.types import CodeblockRegion
from smartchat.utils.validators import validate_http_url, validate_line_range

logger = get_logger(__name__)

router = APIRouter(prefix="/api/codeblocks", tags=["codeblocks"])


def _resolve(
    request: CodeblockRequest,
) -> tuple[PlatformDescriptor, list[str], CodeblockRegion]:
    validate_line_range(request.line_start, request.line_end)
    platform = resolve_platform(request.fence_tag)
    region = find_boundaries(
        request.text, platform.fence_tag, request.line_start, request.line_end
    )
    return platform, request.text.split("\n"), region


def _resolve_owned(
    request: CodeblockRequest,
) -> tuple[PlatformDescriptor, list[str], CodeblockRegion | None]:
    """Like _resolve, but the region is None unless it is a real block of the tag."""
    validate_line_range(request.line_start, request.line_end)
    platform = resolve_platform(request.fence_tag)
    region = find_owned_block(
        request.text, platform.fence_tag, request.line_start, request.line_end
    )
    return platform, request.text.split("\n"), region


def _unchanged(request: CodeblockRequest) -> MarkResponse:
    return MarkResponse(
        text=request.text, changed=False, start=request.line_start, end=request.line_end
    )


@router.post("/boundaries", response_model=BoundariesResponse)
async def boundaries(request: CodeblockRequest) -> BoundariesResponse:
    platform, _, region = _resolve(request)
    blocks = find_codeblocks(request.text, platform.fence_tag)
    return BoundariesResponse(
        start=region.start, end=region.end, blocks=[[b.start, b.end] for b in blocks]
    )


@router.post("/prefix", response_model=EditResponse)
async def prefix_lines(request: PrefixRequest) -> EditResponse:
    _, lines, region = _resolve_owned(request)
    if region is None:
        return _unchanged(request)
    edit = codec.prefix_missing_lines(lines, region.start, region.end, request.now_seconds)
    return EditResponse(
        text="\n".join(edit.lines), changed=edit.changed, start=region.start, end=region.end
    )


@router.post("/insert", response_model=EditResponse)
async def insert_link(request: InsertRequest) -> EditResponse:
    """Insert an active line for ``url`` unless the block already refers to it."""
    url = validate_http_url(request.url)
    platform, lines, region = _resolve_owned(request)
    if region is None:
        return _unchanged(request)
    if codec.is_saved(lines, region.start, region.end, url):
        logger.debug("Link already saved: %s", url)
        return EditResponse(text=request.text, changed=False, start=region.start, end=region.end)

    now = request.now_seconds if request.now_seconds is not None else int(time.time())
    updated = codec.insert_thread_line(lines, region.start, url, now_seconds=now)
    telemetry.log_event(telemetry.SAVED_THREAD, url=url, fence_tag=platform.fence_tag)
    return EditResponse(
        text="\n".join(updated), changed=True, start=region.start, end=region.end + 1
    )


@router.post("/mark-done", response_model=MarkResponse)
async def mark_done(request: UrlCodeblockRequest) -> MarkResponse:
    """Flip the line to done and report where the browser should go next."""
    platform, lines, region = _resolve_owned(request)
    if region is None:
        return _unchanged(request)
    result = codec.mark_done(lines, region.start, region.end, request.url)
    if not result.changed:
        return MarkResponse(text=request.text, changed=False, start=region.start, end=region.end)

    next_url = codec.find_next_undone(result.lines, region.start, region.end, result.index)
    telemetry.log_event(telemetry.MARKED_DONE, url=request.url, fence_tag=platform.fence_tag)
    return MarkResponse(
        text="\n".join(result.lines),
        changed=True,
        start=region.start,
        end=region.end,
        index=result.index,
        next_url=next_url,
        navigate_to=next_url or platform.fallback_url,
    )


@router.post("/mark-active", response_model=MarkResponse)
async def mark_active(request: UrlCodeblockRequest) -> MarkResponse:
    platform, lines, region = _resolve_owned(request)
    if region is None:
        return _unchanged(request)
    result = codec.mark_active(lines, region.start, region.end, request.url)
    if result.changed:
        telemetry.log_event(
            telemetry.MARKED_ACTIVE, url=request.url, fence_tag=platform.fence_tag
        )
    return MarkResponse(
        text="\n".join(result.lines) if result.changed else request.text,
        changed=result.changed,
        start=region.start,
        end=region.end,
        index=result.index,
    )
