"""Tests for the file-backed document service."""

import asyncio

from smartchat.threads.lifecycle import ThreadSession
from smartchat.threads.platforms import get_platform
from smartchat.threads.services import FileDocumentService


def test_session_over_a_markdown_file(tmp_path):
    note = tmp_path / "note.md"
    note.write_text("# Research\n```smart-perplexity\nhttps://www.perplexity.ai/search/abc\n```\n")
    session = ThreadSession(
        get_platform("smart-perplexity"),
        document=FileDocumentService(note),
        line_start=1,
        line_end=3,
        clock=lambda: 42,
    )

    asyncio.run(session.build())

    assert note.read_text().split("\n")[2] == "chat-active:: 42 https://www.perplexity.ai/search/abc"
    assert session.initial_link == "https://www.perplexity.ai/search/abc"


def test_read_and_modify_round_trip(tmp_path):
    path = tmp_path / "doc.md"
    path.write_text("before")
    service = FileDocumentService(str(path))

    asyncio.run(service.modify("after"))

    assert asyncio.run(service.read()) == "after"
