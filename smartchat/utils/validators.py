"""
Input validation for the HTTP bridge.

The core itself never raises on malformed input; these checks run at the API
ingress only, where a structurally invalid request should be rejected.
"""

from __future__ import annotations

import re

# Fence tags look like "smart-chatgpt": lowercase letters, digits, hyphens
FENCE_TAG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{0,63}$")

MAX_URL_LENGTH = 4096


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


def validate_fence_tag(fence_tag: str | None, known_tags: set[str] | None = None) -> str:
    """
    Validate a codeblock fence tag.

    Args:
        fence_tag: The tag following the opening backticks
        known_tags: When given, the tag must be one of these

    Returns:
        The stripped, lowercased tag

    Raises:
        ValidationError: If the tag is empty, malformed, or unknown
    """
    tag = (fence_tag or "").strip().lower()
    if not tag:
        raise ValidationError("Fence tag is required")

    if not FENCE_TAG_PATTERN.match(tag):
        raise ValidationError(
            "Invalid fence tag format. Must contain only lowercase letters, "
            "numbers, and hyphens."
        )

    if known_tags is not None and tag not in known_tags:
        raise ValidationError(f"Unknown fence tag: {tag}")

    return tag


def validate_line_range(line_start: int, line_end: int) -> tuple[int, int]:
    """
    Validate a fallback codeblock line range.

    Raises:
        ValidationError: If either bound is negative or the range is inverted
    """
    if line_start < 0 or line_end < 0:
        raise ValidationError("Line numbers must be non-negative")
    if line_end < line_start:
        raise ValidationError("line_end must not precede line_start")
    return line_start, line_end


def validate_http_url(url: str | None) -> str:
    """
    Validate a URL submitted for insertion into a document.

    Raises:
        ValidationError: If the URL is empty, too long, not http(s), or contains whitespace
    """
    value = (url or "").strip()
    if not value:
        raise ValidationError("URL is required")
    if len(value) > MAX_URL_LENGTH:
        raise ValidationError(f"URL exceeds maximum length of {MAX_URL_LENGTH}")
    if not value.lower().startswith(("http://", "https://")):
        raise ValidationError("URL must start with http:// or https://")
    if any(ch.isspace() for ch in value):
        raise ValidationError("URL must not contain whitespace")
    return value
