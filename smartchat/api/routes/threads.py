"""Platform listing, URL classification and link parsing."""

from __future__ import annotations

from fastapi import APIRouter

from smartchat.api.models import (
    ClassifyRequest,
    ClassifyResponse,
    LinkRecord,
    LinksRequest,
    LinksResponse,
    PlatformInfo,
)
from smartchat.threads import codec
from smartchat.threads.platforms import (
    PlatformDescriptor,
    codeblock_snippet,
    fence_tags,
    get_platform,
    platform_from_url,
    platform_table,
)
from smartchat.threads.urls import normalize_url, thread_context_key
from smartchat.utils.validators import validate_fence_tag

router = APIRouter(prefix="/api", tags=["threads"])


def resolve_platform(fence_tag: str) -> PlatformDescriptor:
    """Validated descriptor lookup; raises ValidationError for unknown tags."""
    return get_platform(validate_fence_tag(fence_tag, set(fence_tags())))


def _platform_info(platform: PlatformDescriptor) -> PlatformInfo:
    return PlatformInfo(
        key=platform.key,
        fence_tag=platform.fence_tag,
        label=platform.label,
        fallback_url=platform.fallback_url,
        home_url=platform.home_url,
        debounce_ms=round(platform.debounce_seconds * 1000),
        detects_conversations=platform.detects_conversations,
        snippet=codeblock_snippet(platform.fence_tag),
    )


@router.get("/platforms", response_model=list[PlatformInfo])
async def list_platforms() -> list[PlatformInfo]:
    return [_platform_info(platform) for platform in platform_table().values()]


@router.post("/threads/classify", response_model=ClassifyResponse)
async def classify_url(request: ClassifyRequest) -> ClassifyResponse:
    """
    Is this URL a saveable conversation thread?

    With ``fence_tag`` the URL is judged by that platform's rules, otherwise
    by the platform its hostname belongs to.
    """
    platform: PlatformDescriptor | None
    if request.fence_tag:
        platform = resolve_platform(request.fence_tag)
    else:
        key = platform_from_url(request.url)
        platform = next((p for p in platform_table().values() if p.key == key), None)

    is_thread = bool(platform and platform.is_thread_link(request.url))
    return ClassifyResponse(
        url=request.url,
        normalized_url=normalize_url(request.url),
        platform=platform.key if platform else "unknown",
        fence_tag=platform.fence_tag if platform else None,
        is_thread_link=is_thread,
        context_key=(
            thread_context_key(request.url, platform.is_thread_link) if platform else None
        ),
    )


@router.post("/threads/links", response_model=LinksResponse)
async def parse_links(request: LinksRequest) -> LinksResponse:
    links = codec.extract_links(request.source_text)
    initial_link = None
    if request.fence_tag:
        platform = resolve_platform(request.fence_tag)
        initial_link = codec.resolve_initial_link(links, platform.home_url, platform.fallback_url)
    return LinksResponse(
        links=[LinkRecord(url=link.url, done=link.done) for link in links],
        initial_link=initial_link,
    )
