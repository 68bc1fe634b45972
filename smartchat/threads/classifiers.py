"""
Per-platform thread-link predicates.

Each chat service only exposes one observable signal that a real conversation
exists: the URL switches to a thread-specific path once a message is sent.
Every predicate encodes exactly that service's URL grammar. All of them are
total: anything that fails to parse classifies as ``False``.
"""

from __future__ import annotations

import re
from urllib.parse import SplitResult, urlsplit

# ChatGPT family (chat, custom GPTs, Codex, Sora)
CHATGPT_HOSTNAMES = frozenset({"chatgpt.com", "sora.com", "sora.chatgpt.com", "operator.chatgpt.com"})
CHATGPT_THREAD_PATTERNS = (
    re.compile(r"^/c/[a-f0-9-]+/?$", re.IGNORECASE),
    re.compile(r"^/g/[^/]+/c/[a-f0-9-]+/?$", re.IGNORECASE),
    re.compile(r"^/codex/tasks/[a-z0-9_-]+/?$", re.IGNORECASE),
    re.compile(r"^/d/[a-z0-9_-]+/?$", re.IGNORECASE),  # Sora draft
    re.compile(r"^/p/s_[a-f0-9]+/?$", re.IGNORECASE),  # Sora publish
    re.compile(r"^/t/[a-f0-9-]+/?$", re.IGNORECASE),  # Sora v1 task, deprecated
)

CLAUDE_THREAD_PREFIX = "https://claude.ai/chat/"
GEMINI_THREAD_PREFIX = "https://gemini.google.com/app/"
DEEPSEEK_THREAD_PREFIX = "https://chat.deepseek.com/a/chat/s/"
AISTUDIO_THREAD_PREFIX = "https://aistudio.google.com/prompts/"

PERPLEXITY_HOSTNAME = "www.perplexity.ai"
GROK_HOSTNAMES = frozenset({"grok.com", "www.grok.com"})
KIMI_HOSTNAMES = frozenset({"kimi.com", "www.kimi.com"})


def _split(url: str) -> SplitResult | None:
    if not isinstance(url, str) or not url:
        return None
    try:
        parts = urlsplit(url)
        # .hostname / .port raise on malformed netlocs
        parts.port
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    return parts


def _segments(path: str) -> list[str]:
    return [segment for segment in (path or "").split("/") if segment]


def is_chatgpt_thread_link(url: str) -> bool:
    """ChatGPT chats, custom-GPT chats, Codex tasks and Sora drafts/posts."""
    parts = _split(url)
    if parts is None or parts.hostname not in CHATGPT_HOSTNAMES:
        return False
    return any(pattern.match(parts.path) for pattern in CHATGPT_THREAD_PATTERNS)


def is_claude_thread_link(url: str) -> bool:
    if not isinstance(url, str):
        return False
    return url.startswith(CLAUDE_THREAD_PREFIX) and not url.endswith("/new")


def is_gemini_thread_link(url: str) -> bool:
    if not isinstance(url, str):
        return False
    return url.startswith(GEMINI_THREAD_PREFIX) and len(url) > len(GEMINI_THREAD_PREFIX)


def is_deepseek_thread_link(url: str) -> bool:
    if not isinstance(url, str):
        return False
    return url.startswith(DEEPSEEK_THREAD_PREFIX) and len(url) > len(DEEPSEEK_THREAD_PREFIX)


def is_perplexity_thread_link(url: str) -> bool:
    """``www.perplexity.ai/search/<slug>``; ``/search/new`` is the new-thread page."""
    parts = _split(url)
    if parts is None or parts.hostname != PERPLEXITY_HOSTNAME:
        return False
    return parts.path.startswith("/search/") and not parts.path.endswith("/new")


def is_aistudio_thread_link(url: str) -> bool:
    if not isinstance(url, str):
        return False
    return url.startswith(AISTUDIO_THREAD_PREFIX) and not url.endswith("/new_chat")


def is_grok_thread_link(url: str) -> bool:
    """``grok.com/c/<id>`` or ``grok.com/chat/<id>``."""
    parts = _split(url)
    if parts is None or parts.hostname not in GROK_HOSTNAMES:
        return False
    segments = [segment.lower() for segment in _segments(parts.path)]
    if len(segments) < 2:
        return False
    prefix, thread_id = segments[0], segments[1]
    return bool(thread_id) and prefix in ("c", "chat")


def is_kimi_thread_link(url: str) -> bool:
    """``kimi.com/.../chat/[<locale>/]<id>``, locale being any two-letter segment."""
    parts = _split(url)
    if parts is None or parts.hostname not in KIMI_HOSTNAMES:
        return False

    segments = _segments(parts.path)
    lowered = [segment.lower() for segment in segments]
    if "chat" not in lowered:
        return False

    id_index = lowered.index("chat") + 1
    if id_index >= len(segments):
        return False
    if len(lowered[id_index]) == 2:
        id_index += 1
    return id_index < len(segments)


def is_openwebui_thread_link(url: str) -> bool:
    """Any ``/c/<id>`` segment pair, so instances hosted under a subpath match too."""
    parts = _split(url)
    if parts is None:
        return False

    segments = [segment.lower() for segment in _segments(parts.path)]
    if "c" not in segments:
        return False

    c_index = segments.index("c")
    if c_index + 1 >= len(segments):
        return False
    return segments[c_index + 1] != "new"
