"""
URL normalization and URL-token extraction for thread lines.

``normalize_url`` is for equality checks only; display always uses the URL
as written in the document.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from urllib.parse import urlsplit, urlunsplit

LINK_PATTERN = re.compile(r"https?://\S+")
MARKDOWN_LINK_PATTERN = re.compile(r"\((https?://[^)\s]+)\)")
_TRAILING_CHARS = re.compile(r"""[)\].,>;:"']+$""")
_LEADING_CHARS = re.compile(r"^[<(]+")


def normalize_url(url: str) -> str:
    """
    Canonicalize a URL for comparison.

    Drops the query string and fragment, lowercases scheme and host, and
    collapses trailing slashes on non-root paths. An empty path becomes "/".
    Anything that does not parse as an absolute URL is returned unchanged.

    Example:
        "https://Example.com/path/?q=1#x" -> "https://example.com/path"
    """
    if not isinstance(url, str) or not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url

    path = parts.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"

    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, "", ""))


def strip_wrapping_url_chars(value: str) -> str:
    """Remove trailing ``)].,>;:"'`` and leading ``<(`` picked up from prose."""
    stripped = _TRAILING_CHARS.sub("", value or "")
    return _LEADING_CHARS.sub("", stripped)


def extract_urls_from_line(line: str) -> list[str]:
    """
    Return every URL on a line, de-duplicated, in order of discovery.

    Markdown-style ``(url)`` wrappers are read first, then raw ``http(s)://``
    runs with wrapping punctuation stripped.
    """
    raw_line = line or ""
    urls: list[str] = [match.group(1) for match in MARKDOWN_LINK_PATTERN.finditer(raw_line)]
    urls.extend(strip_wrapping_url_chars(match) for match in LINK_PATTERN.findall(raw_line))

    seen: set[str] = set()
    unique: list[str] = []
    for url in urls:
        if url and url not in seen:
            seen.add(url)
            unique.append(url)
    return unique


def last_token(line: str) -> str:
    tokens = (line or "").split()
    return tokens[-1] if tokens else ""


def urls_match(candidate: str, target_url: str) -> bool:
    """Exact match first, then normalized match on either side."""
    if not candidate or not target_url:
        return False
    if candidate == target_url:
        return True
    normalized_target = normalize_url(target_url)
    return candidate == normalized_target or normalize_url(candidate) == normalized_target


def line_contains_url(line: str, target_url: str) -> bool:
    """True when any URL on the line refers to ``target_url``.

    The last whitespace token is tried before the extracted URLs so directive
    lines match on the exact token they were written with.
    """
    if not line or not target_url:
        return False
    token = last_token(line)
    if token.startswith("http") and urls_match(token, target_url):
        return True
    return any(urls_match(candidate, target_url) for candidate in extract_urls_from_line(line))


def has_url(line: str) -> bool:
    return bool(LINK_PATTERN.search(line or ""))


def thread_context_key(url: str, is_thread_link: Callable[[str], bool]) -> str | None:
    """Stable "<hostname>:<last path segment>" key for a thread URL, else None."""
    if not url or not is_thread_link(url):
        return None
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    segments = [segment for segment in parts.path.split("/") if segment]
    if not parts.hostname or not segments:
        return None
    return f"{parts.hostname}:{segments[-1]}"
