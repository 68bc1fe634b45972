"""
Platform descriptor table.

Every supported chat service is the same lifecycle engine parameterized by a
small descriptor: fence tag, thread classifier, fallback and home URLs, and
the navigation debounce window. Descriptors are looked up by fence tag.

Fallback/home URLs and debounce windows can be overridden per fence tag from
``config/platforms.yaml`` (or ``SMARTCHAT_PLATFORMS_PATH``):

    platforms:
      smart-openwebui:
        fallback_url: https://chat.example.internal/
        debounce_ms: 500
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlsplit

import yaml

from smartchat import config
from smartchat.observability.logging import get_logger
from smartchat.threads.classifiers import (
    is_aistudio_thread_link,
    is_chatgpt_thread_link,
    is_claude_thread_link,
    is_deepseek_thread_link,
    is_gemini_thread_link,
    is_grok_thread_link,
    is_kimi_thread_link,
    is_openwebui_thread_link,
    is_perplexity_thread_link,
)

logger = get_logger(__name__)

_DEFAULT_SECONDS = config.DEFAULT_DEBOUNCE_MS / 1000
_LEGACY_SECONDS = config.LEGACY_DEBOUNCE_MS / 1000


@dataclass(frozen=True)
class PlatformDescriptor:
    """Everything that differs between two chat services."""

    key: str
    fence_tag: str
    label: str
    is_thread_link: Callable[[str], bool]
    fallback_url: str
    home_url: str = ""
    debounce_seconds: float = _DEFAULT_SECONDS
    hostnames: frozenset[str] = frozenset()
    # (label, url) pairs offered ahead of "New chat"
    extra_options: tuple[tuple[str, str], ...] = ()
    # Navigation hops that never represent the page the user is on
    ignored_url_prefixes: tuple[str, ...] = ()
    detects_conversations: bool = False
    conversation_base_url: str = ""

    def is_ignored_url(self, url: str) -> bool:
        return any(url.startswith(prefix) for prefix in self.ignored_url_prefixes)


_BUILTIN_PLATFORMS: tuple[PlatformDescriptor, ...] = (
    PlatformDescriptor(
        key="chatgpt",
        fence_tag="smart-chatgpt",
        label="ChatGPT",
        is_thread_link=is_chatgpt_thread_link,
        fallback_url="https://chatgpt.com",
        hostnames=frozenset({"chatgpt.com", "chat.openai.com", "sora.com", "sora.chatgpt.com"}),
        extra_options=(
            ("New Codex", "https://chatgpt.com/codex"),
            ("New Sora", "https://sora.chatgpt.com/drafts"),
        ),
        detects_conversations=True,
        conversation_base_url="https://chatgpt.com",
    ),
    PlatformDescriptor(
        key="claude",
        fence_tag="smart-claude",
        label="Claude",
        is_thread_link=is_claude_thread_link,
        fallback_url="https://claude.ai/chat/new",
        debounce_seconds=_LEGACY_SECONDS,
        hostnames=frozenset({"claude.ai"}),
        ignored_url_prefixes=("https://www.claudeusercontent.com/",),
    ),
    PlatformDescriptor(
        key="gemini",
        fence_tag="smart-gemini",
        label="Gemini",
        is_thread_link=is_gemini_thread_link,
        fallback_url="https://gemini.google.com/app",
        debounce_seconds=_LEGACY_SECONDS,
        hostnames=frozenset({"gemini.google.com"}),
    ),
    PlatformDescriptor(
        key="deepseek",
        fence_tag="smart-deepseek",
        label="DeepSeek",
        is_thread_link=is_deepseek_thread_link,
        fallback_url="https://chat.deepseek.com/",
        debounce_seconds=_LEGACY_SECONDS,
        hostnames=frozenset({"chat.deepseek.com"}),
    ),
    PlatformDescriptor(
        key="perplexity",
        fence_tag="smart-perplexity",
        label="Perplexity",
        is_thread_link=is_perplexity_thread_link,
        fallback_url="https://www.perplexity.ai/",
        debounce_seconds=_LEGACY_SECONDS,
        hostnames=frozenset({"perplexity.ai", "www.perplexity.ai"}),
    ),
    PlatformDescriptor(
        key="grok",
        fence_tag="smart-grok",
        label="Grok",
        is_thread_link=is_grok_thread_link,
        fallback_url="https://grok.com/chat",
        debounce_seconds=_LEGACY_SECONDS,
        hostnames=frozenset({"grok.com", "www.grok.com"}),
    ),
    PlatformDescriptor(
        key="aistudio",
        fence_tag="smart-aistudio",
        label="AI Studio",
        is_thread_link=is_aistudio_thread_link,
        fallback_url="https://aistudio.google.com/prompts/new_chat",
        hostnames=frozenset({"aistudio.google.com"}),
    ),
    PlatformDescriptor(
        key="kimi",
        fence_tag="smart-kimi",
        label="Kimi",
        is_thread_link=is_kimi_thread_link,
        fallback_url="https://www.kimi.com/",
        hostnames=frozenset({"kimi.com", "www.kimi.com"}),
    ),
    PlatformDescriptor(
        key="openwebui",
        fence_tag="smart-openwebui",
        label="Open WebUI",
        is_thread_link=is_openwebui_thread_link,
        fallback_url=config.OPENWEBUI_URL,
    ),
)


def _load_overrides(path: Path) -> dict:
    """Load per-fence-tag overrides from YAML config."""
    if not path.exists():
        logger.warning("Platform overrides not found at %s, using built-in defaults", path)
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to read platform overrides from %s: %s", path, e)
        return {}

    platforms = data.get("platforms") if isinstance(data, dict) else None
    return platforms if isinstance(platforms, dict) else {}


def _apply_override(platform: PlatformDescriptor, override: dict) -> PlatformDescriptor:
    changes: dict = {}
    for name in ("fallback_url", "home_url"):
        value = override.get(name)
        if isinstance(value, str) and value.startswith("http"):
            changes[name] = value
    debounce_ms = override.get("debounce_ms")
    if isinstance(debounce_ms, (int, float)) and debounce_ms >= 0:
        changes["debounce_seconds"] = debounce_ms / 1000
    return replace(platform, **changes) if changes else platform


def build_platform_table(overrides_path: Path | None = None) -> dict[str, PlatformDescriptor]:
    """Built-in descriptors keyed by fence tag, with YAML overrides applied."""
    overrides = _load_overrides(overrides_path or config.PLATFORMS_PATH)
    table: dict[str, PlatformDescriptor] = {}
    for platform in _BUILTIN_PLATFORMS:
        override = overrides.get(platform.fence_tag)
        if isinstance(override, dict):
            platform = _apply_override(platform, override)
        table[platform.fence_tag] = platform
    logger.debug("Platform table built: %d platforms", len(table))
    return table


@lru_cache(maxsize=1)
def platform_table() -> dict[str, PlatformDescriptor]:
    return build_platform_table()


def get_platform(fence_tag: str) -> PlatformDescriptor:
    """Look up a descriptor by fence tag.

    Raises:
        KeyError: If the fence tag is not a supported platform
    """
    return platform_table()[fence_tag]


def fence_tags() -> list[str]:
    return list(platform_table())


def platform_from_url(url: str) -> str:
    """Platform key for a thread URL ("chatgpt", "claude", ...) or "unknown"."""
    try:
        hostname = urlsplit(url).hostname if isinstance(url, str) else None
    except ValueError:
        return "unknown"
    if not hostname:
        return "unknown"
    for platform in platform_table().values():
        if hostname in platform.hostnames:
            return platform.key
    return "unknown"


def codeblock_snippet(fence_tag: str) -> str:
    """Text inserted by the "Insert <platform> codeblock" editor command."""
    return f"```{fence_tag}\n```\n"
