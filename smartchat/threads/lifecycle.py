"""
Module: lifecycle
Purpose: Per-codeblock thread session (the thread lifecycle state machine).
Dependencies: codec, boundaries, platforms, debounce, services

One ThreadSession exists per rendered codeblock. It tracks which thread the
embedded browser shows, saves new thread links into the document, and flips
saved links between active and done.

States of the shown URL:
    no_link / not_thread -> unsaved -> active <-> done

Every durable change is a read-modify-write of the whole document through
the DocumentService. Line numbers are re-resolved on every read because the
user may have edited the document since the block was rendered.

Failures from the document or the browser are logged and reported as a
one-line notice. The in-memory state stays as it was; nothing is retried.
"""

from __future__ import annotations

import time
from collections.abc import Callable

from smartchat import config
from smartchat.config import PluginSettings
from smartchat.conversations.interception import (
    NETWORK_INTERCEPT_SCRIPT,
    ConversationTracker,
)
from smartchat.conversations.merge import build_thread_url
from smartchat.conversations.models import ConversationItem
from smartchat.observability import telemetry
from smartchat.observability.logging import get_logger
from smartchat.threads import codec
from smartchat.threads.boundaries import find_owned_block
from smartchat.threads.codex import build_codex_diff_loader_script, is_codex_task_url
from smartchat.threads.debounce import Debouncer
from smartchat.threads.labels import format_dropdown_label, format_relative_time
from smartchat.threads.platforms import PlatformDescriptor
from smartchat.threads.services import BrowserService, DocumentService, Notifier
from smartchat.threads.types import (
    STATE_LABELS,
    CodeblockRegion,
    DropdownOption,
    ThreadAction,
    ThreadLinkRecord,
    ThreadState,
    ThreadStatus,
)
from smartchat.threads.urls import normalize_url, thread_context_key

logger = get_logger(__name__)

DONE_MARK = "✓ "


class ThreadSession:
    """Controller for one rendered codeblock of one platform."""

    def __init__(
        self,
        platform: PlatformDescriptor,
        document: DocumentService | None = None,
        browser: BrowserService | None = None,
        notifier: Notifier | None = None,
        line_start: int = 0,
        line_end: int = 0,
        source: str = "",
        settings: PluginSettings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.platform = platform
        self.document = document
        self.browser = browser
        self.notifier = notifier
        self.line_start = line_start
        self.line_end = line_end
        self.settings = settings or PluginSettings()
        self.clock = clock

        self.source_text = source or ""
        self.links: list[ThreadLinkRecord] = []
        self.initial_link = ""
        self.current_url = ""
        self.last_detected_url = ""

        self.codex_available = False
        self._codex_busy = False
        self.tracker = ConversationTracker() if platform.detects_conversations else None
        self._debouncer = Debouncer(platform.debounce_seconds, self.handle_settled_url)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def build(self) -> ThreadSession:
        """Prefix bare links, parse the block and pick the link to open."""
        if self.document is not None:
            try:
                lines, region = await self._read_region()
                if region is None:
                    self._refresh_from_source(self.source_text)
                else:
                    edit = codec.prefix_missing_lines(
                        lines, region.start, region.end, now_seconds=self._now()
                    )
                    if edit.changed:
                        await self._write(edit.lines)
                        logger.info("Prefixed bare links in %s block", self.platform.fence_tag)
                    self._refresh(edit.lines, region)
            except Exception as e:
                self._report("Error prefixing lines in file", "Could not read the codeblock.", e)
                self._refresh_from_source(self.source_text)
        else:
            self._refresh_from_source(self.source_text)

        self.initial_link = codec.resolve_initial_link(
            self.links, self.platform.home_url, self.platform.fallback_url
        )
        self.current_url = self.initial_link
        self.codex_available = is_codex_task_url(self.current_url)

        if self.browser is not None:
            try:
                self.browser.set_zoom_factor(self.settings.zoom_factor)
            except Exception as e:
                logger.error("Failed to set webview zoom: %s", e)
            await self._navigate(self.initial_link)
            await self.on_page_loaded()

        logger.debug(
            "Built %s session: %d links, initial=%s",
            self.platform.fence_tag,
            len(self.links),
            self.initial_link,
        )
        return self

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def on_navigation_event(self, url: str) -> None:
        """Feed a raw browser navigation event; must run on the event loop."""
        self._debouncer.push(url)

    async def flush_navigation(self) -> None:
        await self._debouncer.drain()

    async def handle_settled_url(self, url: str) -> bool:
        """
        React to the URL left after a navigation burst.

        Returns:
            True if a new thread link was written to the document
        """
        if not url or self.platform.is_ignored_url(url):
            return False
        if self.last_detected_url and normalize_url(url) == normalize_url(self.last_detected_url):
            logger.debug("Ignoring repeat navigation to %s", url)
            return False

        self.last_detected_url = url
        self.current_url = url
        self.codex_available = is_codex_task_url(url)

        if not self.platform.is_thread_link(url):
            return False
        return await self._save_if_missing(url)

    async def select(self, url: str) -> ThreadStatus:
        """Jump to a known link from the dropdown."""
        self.current_url = url
        self.codex_available = is_codex_task_url(url)
        await self._navigate(url)
        return self.status()

    async def reload(self) -> bool:
        if self.browser is None:
            self._notify("No webview to reload.")
            return False
        try:
            await self.browser.reload()
        except Exception as e:
            self._report("Error reloading webview", "Could not reload the webview.", e)
            return False
        await self.on_page_loaded()
        telemetry.log_event(telemetry.WEBVIEW_RELOADED, fence_tag=self.platform.fence_tag)
        self._notify("Webview reloaded.")
        return True

    def copy_current_url(self) -> str:
        """Return the shown URL for the host clipboard."""
        telemetry.log_event(telemetry.URL_COPIED, url=self.current_url)
        self._notify("Copied current URL to clipboard.")
        return self.current_url

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def mark_done(self) -> str | None:
        """
        Mark the shown thread done, then move on.

        Opens the next active link below it, or the platform fallback URL when
        there is none.

        Returns:
            The URL navigated to, or None if nothing was marked
        """
        url = self.current_url
        if self.status(url).action is not ThreadAction.MARK_DONE:
            logger.debug("mark_done not offered for %s", url)
            return None

        try:
            lines, region = await self._read_region()
            if region is None:
                return None
            result = codec.mark_done(lines, region.start, region.end, url)
            if not result.changed:
                logger.debug("No active line for %s; nothing to mark", url)
                return None
            await self._write(result.lines)
        except Exception as e:
            self._report("Error marking thread done", "Could not mark thread as done.", e)
            return None

        self._refresh(result.lines, region)
        telemetry.log_event(telemetry.MARKED_DONE, url=url, fence_tag=self.platform.fence_tag)
        self._notify("Marked thread as done.")

        next_url = codec.find_next_undone(result.lines, region.start, region.end, result.index)
        target = next_url or self.platform.fallback_url
        self.current_url = target
        self.codex_available = is_codex_task_url(target)
        await self._navigate(target)
        return target

    async def mark_active(self) -> bool:
        """Undo a done mark. The browser stays where it is."""
        url = self.current_url
        if self.status(url).action is not ThreadAction.MARK_ACTIVE:
            logger.debug("mark_active not offered for %s", url)
            return False

        try:
            lines, region = await self._read_region()
            if region is None:
                return False
            result = codec.mark_active(lines, region.start, region.end, url)
            if not result.changed:
                logger.debug("No done line for %s; nothing to mark", url)
                return False
            await self._write(result.lines)
        except Exception as e:
            self._report("Error marking thread active", "Could not mark thread as active.", e)
            return False

        self._refresh(result.lines, region)
        telemetry.log_event(telemetry.MARKED_ACTIVE, url=url, fence_tag=self.platform.fence_tag)
        self._notify("Marked thread as active.")
        return True

    # ------------------------------------------------------------------
    # View models
    # ------------------------------------------------------------------

    def status(self, url: str | None = None) -> ThreadStatus:
        url = self.current_url if url is None else url

        if not url or not url.startswith("http"):
            return ThreadStatus(
                url=url or "",
                state=ThreadState.NO_LINK,
                label=STATE_LABELS[ThreadState.NO_LINK],
                status_text="No valid link to save.",
            )
        if not self.platform.is_thread_link(url):
            return ThreadStatus(
                url=url,
                state=ThreadState.NOT_THREAD,
                label=STATE_LABELS[ThreadState.NOT_THREAD],
                status_text="Not a thread link (no save/done).",
            )

        meta = codec.parse_thread_meta(self.source_text, url)
        if meta is None:
            state, action = ThreadState.UNSAVED, None
            relative = ""
        else:
            state = ThreadState.DONE if meta.done else ThreadState.ACTIVE
            action = ThreadAction.MARK_ACTIVE if meta.done else ThreadAction.MARK_DONE
            relative = format_relative_time(meta.timestamp, now=self.clock())

        label = STATE_LABELS[state]
        return ThreadStatus(
            url=url,
            state=state,
            label=label,
            status_text=f"{label} • {relative}" if relative else label,
            relative_time=relative,
            action=action,
        )

    def dropdown_options(self) -> list[DropdownOption]:
        platform = self.platform
        options = [DropdownOption(value=url, label=label) for label, url in platform.extra_options]
        options.append(DropdownOption(value=platform.fallback_url, label="New chat"))
        if platform.home_url and platform.home_url != platform.fallback_url:
            options.append(DropdownOption(value=platform.home_url, label="Home"))

        for link in self.links:
            label = format_dropdown_label(link.url, platform.label)
            options.append(
                DropdownOption(
                    value=link.url,
                    label=f"{DONE_MARK}{label}" if link.done else label,
                    done=link.done,
                )
            )
        return options

    @property
    def context_key(self) -> str:
        """Key the host uses to attach chat context to this thread."""
        key = thread_context_key(self.current_url, self.platform.is_thread_link)
        return key or config.TEMP_CONTEXT_KEY

    # ------------------------------------------------------------------
    # Detected conversations
    # ------------------------------------------------------------------

    async def install_network_interception(self) -> bool:
        if self.browser is None or self.tracker is None:
            return False
        try:
            await self.browser.execute_script(NETWORK_INTERCEPT_SCRIPT)
        except Exception as e:
            logger.error("Failed to install network interception: %s", e)
            return False
        return True

    async def on_page_loaded(self) -> bool:
        """
        Host hook for every finished page load in the webview.

        A full load replaces the page's fetch/XHR, so the interception script
        is injected again; it guards itself against double installs.
        """
        return await self.install_network_interception()

    def handle_console_message(self, message: str) -> bool:
        """Merge conversations from an intercepted console line. True if the list changed."""
        if self.tracker is None:
            return False
        return self.tracker.ingest(message)

    def detected_threads(self) -> list[ConversationItem]:
        """Detected conversations that are not in the codeblock yet."""
        if self.tracker is None:
            return []
        saved = {normalize_url(link.url) for link in self.links}
        base_url = self.platform.conversation_base_url or self.platform.fallback_url
        return [
            item
            for item in self.tracker.items
            if (url := build_thread_url(item, base_url)) and normalize_url(url) not in saved
        ]

    async def add_detected_thread(self, item: ConversationItem) -> str | None:
        """Save a detected conversation (if new) and open it."""
        base_url = self.platform.conversation_base_url or self.platform.fallback_url
        url = build_thread_url(item, base_url)
        if not url:
            logger.debug("Detected item has no id; skipping")
            return None

        if await self._save_if_missing(url, announce=False):
            telemetry.log_event(telemetry.THREAD_ADDED, url=url, fence_tag=self.platform.fence_tag)
        await self.select(url)
        return url

    # ------------------------------------------------------------------
    # Codex
    # ------------------------------------------------------------------

    async def load_codex_diffs(self) -> bool:
        """Expand every diff on the shown Codex task page."""
        url = self.current_url
        if self.browser is None or self._codex_busy or not is_codex_task_url(url):
            return False

        self._codex_busy = True
        try:
            result = await self.browser.execute_script(build_codex_diff_loader_script(url))
        except Exception as e:
            logger.error("Codex diff loader failed: %s", e)
            self.codex_available = False
            return False
        finally:
            self._codex_busy = False

        ok = isinstance(result, dict) and bool(result.get("ok"))
        if not ok:
            logger.info("Codex diff loader did not finish: %s", result)
        return ok

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> int:
        return int(self.clock())

    async def _save_if_missing(self, url: str, announce: bool = True) -> bool:
        if self.document is None:
            return False
        try:
            lines, region = await self._read_region()
            if region is None:
                return False
            if codec.is_saved(lines, region.start, region.end, url):
                logger.debug("Link already saved: %s", url)
                self._refresh(lines, region)
                return False
            updated = codec.insert_thread_line(lines, region.start, url, now_seconds=self._now())
            await self._write(updated)
        except Exception as e:
            self._report("Error saving thread link", "Could not save thread link.", e)
            return False

        region = CodeblockRegion(region.start, region.end + 1)
        self.line_start, self.line_end = region
        self._refresh(updated, region)

        telemetry.log_event(telemetry.SAVED_THREAD, url=url, fence_tag=self.platform.fence_tag)
        if announce:
            self._notify(f"Auto-saved new {self.platform.label} thread link.")
        return True

    async def _read_region(self) -> tuple[list[str], CodeblockRegion | None]:
        """Read the document and locate this block; region is None when it is gone."""
        if self.document is None:
            raise RuntimeError("session has no document")
        text = await self.document.read()
        region = find_owned_block(text, self.platform.fence_tag, self.line_start, self.line_end)
        if region is not None:
            self.line_start, self.line_end = region
        return text.split("\n"), region

    async def _write(self, lines: list[str]) -> None:
        if self.document is None:
            raise RuntimeError("session has no document")
        await self.document.modify("\n".join(lines))

    def _refresh(self, lines: list[str], region: CodeblockRegion) -> None:
        self._refresh_from_source(codec.block_source(lines, region.start, region.end))

    def _refresh_from_source(self, source_text: str) -> None:
        self.source_text = source_text
        self.links = codec.extract_links(source_text)

    async def _navigate(self, url: str) -> None:
        if self.browser is None or not url:
            return
        try:
            await self.browser.navigate(url)
        except Exception as e:
            self._report("Error navigating webview", "Could not open link.", e)

    def _notify(self, message: str) -> None:
        if self.notifier is not None:
            self.notifier.show(message)

    def _report(self, log_message: str, notice: str, error: Exception) -> None:
        logger.error("%s: %s", log_message, error)
        self._notify(notice)
