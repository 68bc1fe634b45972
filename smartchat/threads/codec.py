"""
Thread-line codec.

A tracked codeblock holds one directive per line:

    chat-active:: <unix_seconds> <url>
    chat-done:: <unix_seconds> <url>

Any other line carrying a bare http(s) URL is legacy input; the prefix pass
upgrades it to ``chat-active::`` with the current time.

Functions that edit text take the full document as a list of lines plus the
line indexes of the two fence markers, and only touch lines strictly between
them. They never mutate the list they are given.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Sequence

from smartchat.threads.types import (
    ACTIVE_PREFIX,
    DONE_PREFIX,
    LineEdit,
    MarkResult,
    ThreadLineMeta,
    ThreadLinkRecord,
)
from smartchat.threads.urls import (
    extract_urls_from_line,
    has_url,
    last_token,
    line_contains_url,
    normalize_url,
    strip_wrapping_url_chars,
)


def _now_seconds(now_seconds: int | None) -> int:
    return int(now_seconds) if now_seconds is not None else int(time.time())


def _inner_range(lines: Sequence[str], start: int, end: int) -> range:
    return range(max(start + 1, 0), min(end, len(lines)))


def is_active_line(line: str) -> bool:
    return line.strip().startswith(ACTIVE_PREFIX)


def is_done_line(line: str) -> bool:
    return line.strip().startswith(DONE_PREFIX)


def is_directive_line(line: str) -> bool:
    return is_active_line(line) or is_done_line(line)


def directive_url(line: str) -> str | None:
    """URL carried by a directive line.

    The last whitespace token when it is a URL, else the first URL on the
    line (tolerates trailing notes after the URL), else None.
    """
    token = strip_wrapping_url_chars(last_token(line))
    if token.startswith("http"):
        return token
    found = extract_urls_from_line(line)
    return found[0] if found else None


def extract_links(source_text: str) -> list[ThreadLinkRecord]:
    """
    Parse codeblock text into thread link records, in document order.

    Directive lines yield one record each and are never re-scanned for more
    URLs. Every other line yields one active record per distinct URL on it.
    """
    records: list[ThreadLinkRecord] = []
    for line in (source_text or "").split("\n"):
        trimmed = line.strip()

        if trimmed.startswith(DONE_PREFIX) or trimmed.startswith(ACTIVE_PREFIX):
            url = directive_url(trimmed)
            if url:
                records.append(ThreadLinkRecord(url=url, done=trimmed.startswith(DONE_PREFIX)))
            continue

        records.extend(ThreadLinkRecord(url=url, done=False) for url in extract_urls_from_line(line))
    return records


def format_thread_line(url: str, done: bool = False, timestamp: int | None = None) -> str:
    prefix = DONE_PREFIX if done else ACTIVE_PREFIX
    return f"{prefix}{_now_seconds(timestamp)} {url}"


def prefix_missing_lines(
    lines: Sequence[str], start: int, end: int, now_seconds: int | None = None
) -> LineEdit:
    """
    Upgrade bare-link lines inside the block to ``chat-active::`` directives.

    Idempotent: a second pass over its own output reports ``changed=False``,
    which lets callers skip a no-op document write.

    Example:
        "  https://example.com/new" -> "chat-active:: 100 https://example.com/new"
    """
    updated = list(lines)
    changed = False
    if not isinstance(start, int) or not isinstance(end, int):
        return LineEdit(lines=updated, changed=False)

    timestamp = _now_seconds(now_seconds)
    for index in _inner_range(updated, start, end):
        line = updated[index]
        if not isinstance(line, str) or is_directive_line(line):
            continue
        if has_url(line):
            updated[index] = f"{ACTIVE_PREFIX}{timestamp} {line.strip()}"
            changed = True

    return LineEdit(lines=updated, changed=changed)


def insert_thread_line(
    lines: Sequence[str], start: int, url: str, now_seconds: int | None = None
) -> list[str]:
    """Insert a new active directive directly after the opening fence."""
    updated = list(lines)
    updated.insert(start + 1, format_thread_line(url, done=False, timestamp=now_seconds))
    return updated


def _flip_first(
    lines: Sequence[str], start: int, end: int, target_url: str, old: str, new: str
) -> MarkResult:
    updated = list(lines)
    if not target_url:
        return MarkResult(lines=updated)
    for index in _inner_range(updated, start, end):
        trimmed = updated[index].strip()
        if not trimmed.startswith(old):
            continue
        if line_contains_url(trimmed, target_url):
            updated[index] = updated[index].replace(old, new, 1)
            return MarkResult(lines=updated, index=index)
    return MarkResult(lines=updated)


def mark_done(lines: Sequence[str], start: int, end: int, target_url: str) -> MarkResult:
    """Flip the first matching ``chat-active::`` line to ``chat-done::``.

    Timestamp and URL tokens are preserved. Matching normalizes both sides,
    so a saved URL still matches when the browser adds a query string.
    """
    return _flip_first(lines, start, end, target_url, ACTIVE_PREFIX, DONE_PREFIX)


def mark_active(lines: Sequence[str], start: int, end: int, target_url: str) -> MarkResult:
    """Inverse of ``mark_done``."""
    return _flip_first(lines, start, end, target_url, DONE_PREFIX, ACTIVE_PREFIX)


def find_next_undone(
    lines: Sequence[str], start: int, end: int, after_index: int
) -> str | None:
    """URL of the first active directive after ``after_index`` and before the closing fence."""
    if after_index < 0:
        return None
    for index in range(max(after_index, start) + 1, min(end, len(lines))):
        if is_active_line(lines[index]):
            return directive_url(lines[index].strip())
    return None


def is_saved(lines: Sequence[str], start: int, end: int, url: str) -> bool:
    """Whether any line in the block already refers to ``url``."""
    return any(line_contains_url(lines[index], url) for index in _inner_range(lines, start, end))


def is_done(lines: Sequence[str], start: int, end: int, url: str) -> bool:
    return any(
        is_done_line(lines[index]) and line_contains_url(lines[index].strip(), url)
        for index in _inner_range(lines, start, end)
    )


def block_source(lines: Sequence[str], start: int, end: int) -> str:
    """Text between the fence markers."""
    return "\n".join(lines[index] for index in _inner_range(lines, start, end))


def parse_thread_meta(source_text: str, url: str) -> ThreadLineMeta | None:
    """Done flag and timestamp of the first directive whose URL normalizes to ``url``."""
    if not source_text or not url:
        return None
    target = normalize_url(url)

    for raw_line in source_text.split("\n"):
        trimmed = raw_line.strip()
        lower = trimmed.lower()
        is_active = lower.startswith("chat-active::")
        is_done_ = lower.startswith("chat-done::")
        if not is_active and not is_done_:
            continue

        tokens = trimmed.split()
        if len(tokens) < 2:
            continue
        candidate = directive_url(trimmed)
        if not candidate or normalize_url(candidate) != target:
            continue

        try:
            timestamp: int | None = int(tokens[1])
        except ValueError:
            timestamp = None
        return ThreadLineMeta(done=is_done_, timestamp=timestamp)
    return None


def resolve_initial_fallback_url(home_url: str, fallback_url: str) -> str:
    return home_url if home_url else fallback_url


def resolve_initial_link(
    links: Iterable[ThreadLinkRecord], home_url: str, fallback_url: str
) -> str:
    """First not-done link, so an in-progress thread resumes; else the initial fallback."""
    for link in links or ():
        if link and not link.done and link.url:
            return link.url
    return resolve_initial_fallback_url(home_url, fallback_url)
