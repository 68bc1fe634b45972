"""
Module: types
Purpose: Shared domain types for thread-link tracking.
Dependencies: none (leaf module)

Used across the codec, boundary resolver, lifecycle session and the HTTP
bridge. Keeping them in a leaf module prevents circular imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

ACTIVE_PREFIX = "chat-active:: "
DONE_PREFIX = "chat-done:: "


# ---------------------------------------------------------------------------
# Parsed document content
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ThreadLinkRecord:
    """One thread link parsed from codeblock text. Its only durable form is the line."""

    url: str
    done: bool = False


@dataclass(frozen=True)
class ThreadLineMeta:
    """Status and timestamp of the directive line that references a URL."""

    done: bool
    timestamp: int | None = None


class CodeblockRegion(NamedTuple):
    """Line indexes of the opening and closing fence markers."""

    start: int
    end: int

    @property
    def is_valid(self) -> bool:
        return self.start >= 0 and self.end > self.start

    def encloses(self, other: CodeblockRegion) -> bool:
        return self.start <= other.start and self.end >= other.end


# ---------------------------------------------------------------------------
# Codec results
# ---------------------------------------------------------------------------


@dataclass
class LineEdit:
    """Result of a pass over document lines; ``changed`` gates the write."""

    lines: list[str]
    changed: bool = False


@dataclass
class MarkResult:
    """Result of a status flip; ``index`` is -1 when no line matched."""

    lines: list[str]
    index: int = -1

    @property
    def changed(self) -> bool:
        return self.index >= 0


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


class ThreadState(str, Enum):
    """Lifecycle state of the URL currently shown by a session.

    Extends str so JSON serialization produces raw strings (e.g. "active").
    """

    NO_LINK = "no_link"
    NOT_THREAD = "not_thread"
    UNSAVED = "unsaved"
    ACTIVE = "active"
    DONE = "done"


class ThreadAction(str, Enum):
    MARK_DONE = "mark_done"
    MARK_ACTIVE = "mark_active"


STATE_LABELS = {
    ThreadState.NO_LINK: "Unsaved",
    ThreadState.NOT_THREAD: "Unsaved",
    ThreadState.UNSAVED: "Unsaved",
    ThreadState.ACTIVE: "Active",
    ThreadState.DONE: "Done",
}


@dataclass
class ThreadStatus:
    """What the rendering layer needs to draw the state chip and action button."""

    url: str
    state: ThreadState
    label: str
    status_text: str
    relative_time: str = ""
    action: ThreadAction | None = None


@dataclass(frozen=True)
class DropdownOption:
    value: str
    label: str
    done: bool = False


@dataclass(frozen=True)
class NavigationEvent:
    """Raw navigation notification from the embedded browser."""

    url: str
    timestamp: float


@dataclass(frozen=True)
class SettledUrlEvent:
    """The URL left standing after a burst of navigation events quieted down."""

    url: str
    timestamp: float
    collapsed: int = 1

