"""
Collaborator interfaces consumed by ThreadSession.

The host editor owns the document and the embedded browser owns navigation.
The session only talks to them through these protocols, so tests swap in
in-memory fakes and the HTTP bridge needs neither.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Protocol


class DocumentService(Protocol):
    """The host document that contains the codeblock."""

    async def read(self) -> str:
        """Return the full current document text.

        Raises:
            OSError: If the document cannot be read
        """
        ...

    async def modify(self, text: str) -> None:
        """Replace the full document text (last writer wins).

        Raises:
            OSError: If the document cannot be written
        """
        ...


class BrowserService(Protocol):
    """The embedded browser showing the chat service."""

    async def navigate(self, url: str) -> None: ...

    async def reload(self) -> None: ...

    async def execute_script(self, script: str) -> Any:
        """Run an injected script in the page and return its result."""
        ...

    def set_zoom_factor(self, zoom_factor: float) -> None: ...


class Notifier(Protocol):
    """One-line, non-blocking user notices."""

    def show(self, message: str) -> None: ...


class FileDocumentService:
    """DocumentService backed by a UTF-8 file on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def read(self) -> str:
        return await asyncio.to_thread(self.path.read_text, encoding="utf-8")

    async def modify(self, text: str) -> None:
        await asyncio.to_thread(self.path.write_text, text, encoding="utf-8")
