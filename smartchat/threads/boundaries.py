"""
Codeblock boundary resolution.

Line numbers reported by the host go stale as soon as the user edits text
above the block, so every read-modify-write re-resolves the block from the
live document text. The host's coordinates are only used to pick between
several blocks with the same tag, and as the last-resort fallback.
"""

from __future__ import annotations

from smartchat.observability.logging import get_logger
from smartchat.threads.types import CodeblockRegion

logger = get_logger(__name__)

FENCE = "```"


def _opens_fence(line: str, fence_tag: str) -> bool:
    stripped = line.strip()
    if not stripped.startswith(FENCE + fence_tag):
        return False
    # "```smart-chat" must not claim a "```smart-chatgpt" block
    rest = stripped[len(FENCE) + len(fence_tag) :]
    return not rest or rest[0].isspace()


def find_codeblocks(full_text: str, fence_tag: str) -> list[CodeblockRegion]:
    """Every closed fence pair opened with ```` ```<fence_tag> ````, in document order."""
    blocks: list[CodeblockRegion] = []
    current_start = -1
    for index, line in enumerate((full_text or "").split("\n")):
        if current_start == -1:
            if _opens_fence(line, fence_tag):
                current_start = index
        elif line.strip().startswith(FENCE):
            blocks.append(CodeblockRegion(current_start, index))
            current_start = -1
    return blocks


def find_boundaries(
    full_text: str | None, fence_tag: str, fallback_start: int, fallback_end: int
) -> CodeblockRegion:
    """
    Locate the block this instance owns.

    Policy:
        - no text or no block of the tag: the supplied coordinates
        - exactly one block of the tag: that block
        - several: the first one enclosing the supplied coordinates,
          else the supplied coordinates
    """
    fallback = CodeblockRegion(fallback_start, fallback_end)
    if not full_text:
        return fallback

    blocks = find_codeblocks(full_text, fence_tag)
    if not blocks:
        logger.debug("No %s block found, using host coordinates %s", fence_tag, fallback)
        return fallback
    if len(blocks) == 1:
        return blocks[0]

    for block in blocks:
        if block.encloses(fallback):
            return block

    logger.debug(
        "%d %s blocks, none enclosing %s; using host coordinates",
        len(blocks),
        fence_tag,
        fallback,
    )
    return fallback


def find_owned_block(
    full_text: str | None, fence_tag: str, fallback_start: int, fallback_end: int
) -> CodeblockRegion | None:
    """
    Like find_boundaries, but only returns a real fence pair of the tag.

    Returns None when the document has no such block or the host coordinates
    do not name one, so callers never write outside a codeblock.
    """
    region = find_boundaries(full_text, fence_tag, fallback_start, fallback_end)
    if region.is_valid and region in find_codeblocks(full_text or "", fence_tag):
        return region
    logger.debug("No %s block owns %s; leaving the document unchanged", fence_tag, region)
    return None
