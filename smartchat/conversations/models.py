"""Pydantic model for items of a ``backend-api/conversations`` response."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


def shorten_thread_id(value: str | None) -> str:
    """Ids up to 14 chars unchanged, else first 8 + "..." + last 4."""
    text = str(value or "").strip()
    if len(text) <= 14:
        return text
    return f"{text[:8]}...{text[-4:]}"


class ConversationItem(BaseModel):
    """One conversation as listed by the chat service.

    Unknown fields (mapping, workspace_id, ...) are kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    id: str = ""
    title: str | None = None
    gizmo_id: str | None = None
    create_time: str | None = None
    update_time: str | None = None
    is_archived: bool | None = None
    is_starred: bool | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("gizmo_id", "create_time", "update_time", mode="before")
    @classmethod
    def _coerce_optional_str(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None

    @property
    def display_title(self) -> str:
        """Title for the "add detected thread" picker."""
        title = (self.title or "").strip()
        if title:
            return title
        short = shorten_thread_id(self.id)
        return f"Untitled ({short})" if short else "Untitled"
