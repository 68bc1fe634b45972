"""Display helpers for the link dropdown and the status line."""

from __future__ import annotations

import math
import re
import time
from urllib.parse import urlsplit

HOST_PLATFORM_LABELS = {
    "chatgpt.com": "ChatGPT",
    "chat.openai.com": "ChatGPT",
    "claude.ai": "Claude",
    "gemini.google.com": "Gemini",
    "aistudio.google.com": "AI Studio",
    "chat.deepseek.com": "DeepSeek",
    "perplexity.ai": "Perplexity",
    "www.perplexity.ai": "Perplexity",
    "grok.com": "Grok",
    "www.grok.com": "Grok",
    "kimi.com": "Kimi",
    "www.kimi.com": "Kimi",
    "sora.com": "Sora",
    "sora.chatgpt.com": "Sora",
}

SEPARATOR = " • "

_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def _hostname(url: str) -> str | None:
    try:
        return urlsplit(url).hostname
    except (ValueError, TypeError, AttributeError):
        return None


def _prettify_hostname(hostname: str) -> str:
    parts = [part for part in hostname.split(".") if part]
    base = parts[0] if parts else hostname
    return base[:1].upper() + base[1:]


def _last_path_segment(url: str) -> str:
    try:
        segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    except (ValueError, TypeError, AttributeError):
        return ""
    return segments[-1] if segments else ""


def shorten_id_segment(segment: str) -> str:
    """
    Shorten long ids for dropdown display.

    - up to 14 chars: unchanged
    - UUID-like: first 8 + "..." + last 4
    - anything else: first 8 + "..." + last 6
    """
    value = (segment or "").strip()
    if len(value) <= 14:
        return value
    tail = 4 if _UUID.match(value) else 6
    return f"{value[:8]}...{value[-tail:]}"


def platform_label_from_url(url: str, fallback: str = "Link") -> str:
    hostname = _hostname(url)
    if not hostname:
        return fallback
    return HOST_PLATFORM_LABELS.get(hostname) or _prettify_hostname(hostname)


def format_dropdown_label(url: str, platform_label: str | None = None) -> str:
    """ "ChatGPT • 69541302...1fce" """
    label = platform_label or platform_label_from_url(url)
    shortened = shorten_id_segment(_last_path_segment(url))
    return f"{label}{SEPARATOR}{shortened}" if shortened else label


def format_relative_time(timestamp_seconds: int | float | None, now: float | None = None) -> str:
    """Coarse "5m ago" style age of a directive timestamp; empty for invalid input."""
    try:
        ts = float(timestamp_seconds)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ""
    if not math.isfinite(ts) or ts <= 0:
        return ""

    diff = (time.time() if now is None else now) - ts
    if diff < 0:
        return "in the future"

    seconds = int(diff)
    if seconds < 10:
        return "just now"
    if seconds < 60:
        return f"{seconds}s ago"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 30:
        return f"{days}d ago"
    months = days // 30
    if months < 12:
        return f"{months}mo ago"
    return f"{days // 365}y ago"
