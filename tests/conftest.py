"""
Pytest configuration for smartchat tests

In-memory stand-ins for the host collaborators (document, embedded browser,
notices) so ThreadSession runs without an editor or a webview.
"""

from __future__ import annotations

from typing import Any

import pytest

from smartchat.observability import telemetry


class MemoryDocument:
    """DocumentService over a string; can be told to fail."""

    def __init__(self, text: str = ""):
        self.text = text
        self.writes: list[str] = []
        self.fail_reads = False
        self.fail_writes = False

    async def read(self) -> str:
        if self.fail_reads:
            raise OSError("document unavailable")
        return self.text

    async def modify(self, text: str) -> None:
        if self.fail_writes:
            raise OSError("document is read-only")
        self.text = text
        self.writes.append(text)


class FakeBrowser:
    """BrowserService that records calls."""

    def __init__(self, script_result: Any = None):
        self.navigations: list[str] = []
        self.scripts: list[str] = []
        self.reloads = 0
        self.zoom_factor: float | None = None
        self.script_result = script_result
        self.fail_scripts = False

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)

    async def reload(self) -> None:
        self.reloads += 1

    async def execute_script(self, script: str) -> Any:
        self.scripts.append(script)
        if self.fail_scripts:
            raise RuntimeError("script injection failed")
        return self.script_result

    def set_zoom_factor(self, zoom_factor: float) -> None:
        self.zoom_factor = zoom_factor


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def show(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def memory_document():
    return MemoryDocument


@pytest.fixture
def browser():
    return FakeBrowser()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture(autouse=True)
def clean_telemetry():
    """Counters and recorded events start empty for every test."""
    telemetry.reset_counters()
    yield
    telemetry.reset_counters()
