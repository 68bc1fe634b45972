"""Tests for URL normalization and URL-token extraction."""

import pytest

from smartchat.threads.classifiers import is_chatgpt_thread_link
from smartchat.threads.urls import (
    extract_urls_from_line,
    line_contains_url,
    normalize_url,
    thread_context_key,
    urls_match,
)


class TestNormalizeUrl:
    def test_strips_query_fragment_and_trailing_slash(self):
        assert normalize_url("https://example.com/path/?q=1#x") == "https://example.com/path"

    def test_root_path_keeps_its_slash(self):
        assert normalize_url("https://example.com") == "https://example.com/"
        assert normalize_url("https://example.com/?ref=home") == "https://example.com/"

    def test_host_is_case_insensitive_but_path_is_not(self):
        assert normalize_url("HTTPS://Example.COM/Chat/ABC") == "https://example.com/Chat/ABC"

    @pytest.mark.parametrize("value", ["not a url", "/relative/path", "", "http://[::1"])
    def test_unparsable_input_returned_unchanged(self, value):
        assert normalize_url(value) == value

    @pytest.mark.parametrize(
        "url",
        [
            "https://chatgpt.com/c/abc?model=gpt-4o",
            "https://claude.ai/chat/abc/",
            "https://example.com",
            "https://example.com/a//",
            "http://localhost:3000/c/xyz#top",
        ],
    )
    def test_idempotent(self, url):
        once = normalize_url(url)
        assert normalize_url(once) == once


class TestExtractUrls:
    def test_markdown_link_and_trailing_punctuation(self):
        line = "See [thread](https://a.example/x), and https://b.example/y."
        assert extract_urls_from_line(line) == ["https://a.example/x", "https://b.example/y"]

    def test_angle_brackets_stripped(self):
        assert extract_urls_from_line("<https://a.example/x>") == ["https://a.example/x"]

    def test_duplicates_collapsed(self):
        line = "https://a.example/x https://a.example/x"
        assert extract_urls_from_line(line) == ["https://a.example/x"]

    def test_no_urls(self):
        assert extract_urls_from_line("just some notes") == []


class TestLineMatching:
    def test_query_string_variant_matches_saved_link(self):
        line = "chat-active:: 100 https://chatgpt.com/c/abc"
        assert line_contains_url(line, "https://chatgpt.com/c/abc?model=gpt-4o") is True

    def test_saved_query_string_matches_clean_url(self):
        line = "chat-active:: 100 https://chatgpt.com/c/abc?ref=x"
        assert line_contains_url(line, "https://chatgpt.com/c/abc") is True

    def test_substring_is_not_a_match(self):
        """A longer id that merely starts with the target is a different thread."""
        line = "chat-active:: 100 https://chatgpt.com/c/abcdef"
        assert line_contains_url(line, "https://chatgpt.com/c/abc") is False

    def test_urls_match_rejects_empty(self):
        assert urls_match("", "https://a") is False
        assert urls_match("https://a", "") is False


class TestThreadContextKey:
    def test_thread_url(self):
        key = thread_context_key("https://chatgpt.com/c/abc-123?x=1", is_chatgpt_thread_link)
        assert key == "chatgpt.com:abc-123"

    def test_non_thread_url(self):
        assert thread_context_key("https://chatgpt.com/", is_chatgpt_thread_link) is None
        assert thread_context_key("", is_chatgpt_thread_link) is None
