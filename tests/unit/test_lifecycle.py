"""
Tests for ThreadSession, the per-codeblock lifecycle state machine.

Collaborators are the in-memory fakes from conftest; every async call runs
through asyncio.run so the tests stay synchronous.
"""

import asyncio
import json

import pytest

from smartchat.conversations.models import ConversationItem
from smartchat.observability import telemetry
from smartchat.threads.lifecycle import ThreadSession
from smartchat.threads.platforms import get_platform
from smartchat.threads.types import ThreadAction, ThreadState

NOW = 1_700_000_000
UUID_A = "123e4567-e89b-12d3-a456-426614174000"
UUID_B = "223e4567-e89b-12d3-a456-426614174000"
UUID_C = "323e4567-e89b-12d3-a456-426614174000"
THREAD_A = f"https://chatgpt.com/c/{UUID_A}"
THREAD_B = f"https://chatgpt.com/c/{UUID_B}"
THREAD_C = f"https://chatgpt.com/c/{UUID_C}"


def doc(*inner: str, tag: str = "smart-chatgpt") -> str:
    return "\n".join(["# Note", f"```{tag}", *inner, "```", "tail"])


def make_session(
    document=None, browser=None, notifier=None, tag="smart-chatgpt", line_end=3, **kwargs
):
    return ThreadSession(
        get_platform(tag),
        document=document,
        browser=browser,
        notifier=notifier,
        line_start=1,
        line_end=line_end,
        clock=lambda: NOW,
        **kwargs,
    )


def run(coro):
    return asyncio.run(coro)


class TestBuild:
    def test_prefixes_bare_links_and_opens_first_undone(self, memory_document, browser):
        document = memory_document(doc(f"chat-done:: 5 {THREAD_A}", THREAD_B))
        session = make_session(document, browser, line_end=4)
        run(session.build())

        assert document.text.split("\n")[3] == f"chat-active:: {NOW} {THREAD_B}"
        assert session.initial_link == THREAD_B
        assert session.current_url == THREAD_B
        assert browser.navigations == [THREAD_B]
        assert browser.zoom_factor == pytest.approx(0.9)

    def test_no_write_when_nothing_to_prefix(self, memory_document):
        document = memory_document(doc(f"chat-active:: 5 {THREAD_A}"))
        run(make_session(document).build())
        assert document.writes == []

    def test_all_done_opens_fallback(self, memory_document):
        document = memory_document(doc(f"chat-done:: 5 {THREAD_A}"))
        session = run(make_session(document).build())
        assert session.current_url == "https://chatgpt.com"

    def test_installs_interception_for_chatgpt(self, memory_document, browser):
        run(make_session(memory_document(doc()), browser, line_end=2).build())
        assert any("[SC_NET]" in script for script in browser.scripts)

    def test_no_interception_for_other_platforms(self, memory_document, browser):
        document = memory_document(doc(tag="smart-claude"))
        run(make_session(document, browser, tag="smart-claude", line_end=2).build())
        assert browser.scripts == []

    def test_read_failure_uses_supplied_source(self, memory_document, notifier):
        document = memory_document("")
        document.fail_reads = True
        session = make_session(document, notifier=notifier, source=f"chat-active:: 1 {THREAD_A}")
        run(session.build())
        assert session.initial_link == THREAD_A
        assert notifier.messages == ["Could not read the codeblock."]

    def test_zoom_failure_still_opens_initial_link(self, memory_document, browser):
        def refuse_zoom(zoom_factor):
            raise RuntimeError("zoom unsupported")

        browser.set_zoom_factor = refuse_zoom
        document = memory_document(doc(f"chat-active:: 5 {THREAD_A}"))
        session = run(make_session(document, browser).build())

        assert browser.navigations == [THREAD_A]
        assert any("[SC_NET]" in script for script in browser.scripts)
        assert session.current_url == THREAD_A

    def test_bare_link_in_prose_is_not_prefixed(self, memory_document):
        text = f"# Title\n{THREAD_A}\nmore prose"
        document = memory_document(text)
        session = ThreadSession(
            get_platform("smart-chatgpt"), document=document, line_start=0, line_end=2
        )
        run(session.build())
        assert document.writes == []
        assert session.links == []


class TestNavigation:
    def test_new_thread_is_saved_after_fence(self, memory_document, notifier):
        document = memory_document(doc(f"chat-active:: 5 {THREAD_A}"))
        session = make_session(document, notifier=notifier)
        run(session.build())

        saved = run(session.handle_settled_url(THREAD_B))

        assert saved is True
        lines = document.text.split("\n")
        assert lines[1] == "```smart-chatgpt"
        assert lines[2] == f"chat-active:: {NOW} {THREAD_B}"
        assert session.line_end == 4
        assert notifier.messages == ["Auto-saved new ChatGPT thread link."]
        assert telemetry.get_counter(telemetry.SAVED_THREAD) == 1
        assert session.status().state is ThreadState.ACTIVE

    def test_query_string_redirect_is_ignored(self, memory_document):
        document = memory_document(doc())
        session = make_session(document, line_end=2)
        run(session.build())

        assert run(session.handle_settled_url(THREAD_A)) is True
        assert run(session.handle_settled_url(f"{THREAD_A}?model=gpt-4o")) is False
        assert len(document.writes) == 1

    def test_already_saved_link_not_duplicated(self, memory_document):
        document = memory_document(doc(f"chat-done:: 5 {THREAD_A}"))
        session = make_session(document)
        run(session.build())
        assert run(session.handle_settled_url(THREAD_A + "/")) is False
        assert document.writes == []
        assert session.current_url == THREAD_A + "/"

    def test_non_thread_url_tracked_but_not_saved(self, memory_document):
        document = memory_document(doc())
        session = make_session(document, line_end=2)
        run(session.build())
        assert run(session.handle_settled_url("https://chatgpt.com/codex")) is False
        assert session.current_url == "https://chatgpt.com/codex"
        assert session.status().state is ThreadState.NOT_THREAD

    def test_ignored_hop_leaves_state_alone(self, memory_document):
        document = memory_document(doc(tag="smart-claude"))
        session = make_session(document, tag="smart-claude", line_end=2)
        run(session.build())
        before = session.current_url
        assert run(session.handle_settled_url("https://www.claudeusercontent.com/x")) is False
        assert session.current_url == before

    def test_write_failure_is_reported(self, memory_document, notifier):
        document = memory_document(doc())
        session = make_session(document, notifier=notifier, line_end=2)
        run(session.build())
        document.fail_writes = True

        assert run(session.handle_settled_url(THREAD_A)) is False
        assert notifier.messages == ["Could not save thread link."]
        assert session.current_url == THREAD_A

    def test_debounced_events_save_once(self, memory_document):
        document = memory_document(doc())
        session = make_session(document, line_end=2)

        async def scenario():
            await session.build()
            session._debouncer.delay_seconds = 0.01
            session.on_navigation_event("https://chatgpt.com/")
            session.on_navigation_event(THREAD_A)
            await asyncio.sleep(0.05)
            await session.flush_navigation()

        run(scenario())
        assert len(document.writes) == 1
        assert session.last_detected_url == THREAD_A

    def test_block_found_after_edits_above(self, memory_document):
        document = memory_document(doc())
        session = make_session(document, line_end=2)
        run(session.build())
        document.text = "new first line\n" + document.text

        run(session.handle_settled_url(THREAD_A))
        lines = document.text.split("\n")
        assert lines[2] == "```smart-chatgpt"
        assert lines[3] == f"chat-active:: {NOW} {THREAD_A}"


    @pytest.mark.parametrize("coordinates", [(-1, -1), (0, 0), (0, 2)])
    def test_no_codeblock_in_document_writes_nothing(self, memory_document, coordinates):
        text = "# Title\nprose line\nmore prose"
        document = memory_document(text)
        line_start, line_end = coordinates
        session = ThreadSession(
            get_platform("smart-chatgpt"),
            document=document,
            line_start=line_start,
            line_end=line_end,
            clock=lambda: NOW,
        )
        run(session.build())

        assert run(session.handle_settled_url(THREAD_A)) is False
        assert document.text == text
        assert document.writes == []
        assert session.current_url == THREAD_A

    def test_block_deleted_after_render_writes_nothing(self, memory_document):
        document = memory_document(doc())
        session = make_session(document, line_end=2)
        run(session.build())
        document.text = "# Note\nthe block is gone"

        assert run(session.handle_settled_url(THREAD_A)) is False
        assert document.writes == []


class TestMarkDone:
    def test_moves_to_next_undone(self, memory_document, browser, notifier):
        document = memory_document(
            doc(
                f"chat-active:: 1 {THREAD_A}",
                f"chat-done:: 2 {THREAD_B}",
                f"chat-active:: 3 {THREAD_C}",
            )
        )
        session = make_session(document, browser, notifier, line_end=5)
        run(session.build())
        assert session.status().action is ThreadAction.MARK_DONE

        target = run(session.mark_done())

        assert target == THREAD_C
        assert document.text.split("\n")[2] == f"chat-done:: 1 {THREAD_A}"
        assert browser.navigations[-1] == THREAD_C
        assert session.current_url == THREAD_C
        assert "Marked thread as done." in notifier.messages
        assert telemetry.get_counter(telemetry.MARKED_DONE) == 1

    def test_last_thread_falls_back(self, memory_document, browser):
        document = memory_document(doc("chat-active:: 1 https://chatgpt.com/c/abc"))
        session = make_session(document, browser)
        run(session.build())
        assert run(session.mark_done()) == "https://chatgpt.com"
        assert browser.navigations[-1] == "https://chatgpt.com"

    def test_not_offered_for_done_thread(self, memory_document):
        document = memory_document(doc(f"chat-done:: 1 {THREAD_A}"))
        session = make_session(document)
        run(session.build())
        run(session.select(THREAD_A))
        assert run(session.mark_done()) is None
        assert document.writes == []

    def test_line_removed_underneath_is_noop(self, memory_document, browser):
        document = memory_document(doc(f"chat-active:: 1 {THREAD_A}"))
        session = make_session(document, browser)
        run(session.build())
        document.text = doc()
        navigations = list(browser.navigations)

        assert run(session.mark_done()) is None
        assert document.writes == []
        assert browser.navigations == navigations

    def test_without_browser_updates_current_url(self, memory_document):
        document = memory_document(doc(f"chat-active:: 1 {THREAD_A}"))
        session = make_session(document)
        run(session.build())
        run(session.mark_done())
        assert session.current_url == "https://chatgpt.com"


class TestMarkActive:
    def test_reverses_without_navigation(self, memory_document, browser, notifier):
        document = memory_document(doc(f"chat-done:: 1 {THREAD_A}"))
        session = make_session(document, browser, notifier)
        run(session.build())
        run(session.select(THREAD_A))
        navigations = list(browser.navigations)

        assert session.status().action is ThreadAction.MARK_ACTIVE
        assert run(session.mark_active()) is True
        assert document.text.split("\n")[2] == f"chat-active:: 1 {THREAD_A}"
        assert browser.navigations == navigations
        assert notifier.messages[-1] == "Marked thread as active."


class TestStatus:
    def test_texts(self, memory_document):
        document = memory_document(doc(f"chat-active:: {NOW - 300} {THREAD_A}"))
        session = make_session(document)
        run(session.build())

        active = session.status(THREAD_A)
        assert active.state is ThreadState.ACTIVE
        assert active.status_text == "Active • 5m ago"

        assert session.status(THREAD_B).state is ThreadState.UNSAVED
        assert session.status("").status_text == "No valid link to save."
        assert (
            session.status("https://chatgpt.com/").status_text
            == "Not a thread link (no save/done)."
        )

    def test_context_key(self, memory_document):
        session = make_session(memory_document(doc(f"chat-active:: 1 {THREAD_A}")))
        run(session.build())
        assert session.context_key == f"chatgpt.com:{UUID_A}"
        run(session.select("https://chatgpt.com/"))
        assert session.context_key == "temp-chat-context"


class TestDropdown:
    def test_options_order(self, memory_document):
        document = memory_document(doc(f"chat-done:: 1 {THREAD_A}", f"chat-active:: 2 {THREAD_B}"))
        session = make_session(document, line_end=4)
        run(session.build())

        options = session.dropdown_options()
        assert [option.label for option in options] == [
            "New Codex",
            "New Sora",
            "New chat",
            "✓ ChatGPT • 123e4567...4000",
            "ChatGPT • 223e4567...4000",
        ]
        assert options[3].done is True
        assert options[2].value == "https://chatgpt.com"


class TestDetectedThreads:
    def test_console_line_feeds_picker_and_add_saves(self, memory_document, browser):
        document = memory_document(doc(f"chat-active:: 1 {THREAD_A}"))
        session = make_session(document, browser)
        run(session.build())

        body = json.dumps({"items": [{"id": UUID_A, "title": "A"}, {"id": UUID_B, "title": "B"}]})
        line = "[SC_NET] " + json.dumps(
            {"url": "https://chatgpt.com/backend-api/conversations", "response_body": body}
        )
        assert session.handle_console_message(line) is True
        assert [item.id for item in session.detected_threads()] == [UUID_B]

        url = run(session.add_detected_thread(ConversationItem(id=UUID_B, title="B")))
        assert url == THREAD_B
        assert document.text.split("\n")[2] == f"chat-active:: {NOW} {THREAD_B}"
        assert session.current_url == THREAD_B
        assert browser.navigations[-1] == THREAD_B
        assert telemetry.get_counter(telemetry.THREAD_ADDED) == 1
        assert session.detected_threads() == []

    def test_item_without_id(self, memory_document):
        session = make_session(memory_document(doc()), line_end=2)
        run(session.build())
        assert run(session.add_detected_thread(ConversationItem(title="x"))) is None


class TestBrowserActions:
    def test_reload(self, browser, notifier):
        session = make_session(browser=browser, notifier=notifier)
        run(session.build())
        assert run(session.reload()) is True
        assert browser.reloads == 1
        assert notifier.messages == ["Webview reloaded."]

    def test_every_page_load_reinstalls_interception(self, browser):
        session = run(make_session(browser=browser).build())
        run(session.on_page_loaded())
        run(session.reload())

        interception = [script for script in browser.scripts if "[SC_NET]" in script]
        assert len(interception) == 3

    def test_page_load_without_detection_injects_nothing(self, browser):
        session = run(make_session(browser=browser, tag="smart-claude").build())
        assert run(session.on_page_loaded()) is False
        assert browser.scripts == []

    def test_reload_without_browser(self, notifier):
        session = make_session(notifier=notifier)
        run(session.build())
        assert run(session.reload()) is False
        assert notifier.messages == ["No webview to reload."]

    def test_copy_current_url(self, notifier):
        session = make_session(notifier=notifier, source=f"chat-active:: 1 {THREAD_A}")
        run(session.build())
        assert session.copy_current_url() == THREAD_A
        assert telemetry.get_counter(telemetry.URL_COPIED) == 1


class TestCodexDiffs:
    TASK = "https://chatgpt.com/codex/tasks/task_e_68a1"

    def test_runs_on_task_page(self, browser):
        browser.script_result = {"ok": True, "reason": "ready"}
        session = make_session(browser=browser, source=f"chat-active:: 1 {self.TASK}")
        run(session.build())
        assert session.codex_available is True
        assert run(session.load_codex_diffs()) is True
        assert json.dumps(self.TASK) in browser.scripts[-1]

    def test_failure_hides_affordance(self, browser):
        session = make_session(browser=browser, source=f"chat-active:: 1 {self.TASK}")
        run(session.build())
        browser.fail_scripts = True
        assert run(session.load_codex_diffs()) is False
        assert session.codex_available is False

    def test_skipped_off_task_pages(self, browser):
        session = make_session(browser=browser, source=f"chat-active:: 1 {THREAD_A}")
        run(session.build())
        scripts = len(browser.scripts)
        assert run(session.load_codex_diffs()) is False
        assert len(browser.scripts) == scripts
