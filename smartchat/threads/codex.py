"""
Codex task pages: detection and the injected diff-loader script.

Codex task pages collapse every file diff and lazy-load each behind a
"Load diff" button. The loader expands sections and clicks those buttons
until the page has been quiet for a moment. It refuses to run if the page
navigated away from the task it was started for.
"""

from __future__ import annotations

import json
import re
from urllib.parse import urlsplit

CODEX_HOSTNAMES = frozenset({"chatgpt.com", "chat.openai.com"})
CODEX_TASK_PATH = re.compile(r"^/codex/tasks/[a-z0-9_-]+/?$", re.IGNORECASE)

LOADER_POLL_MS = 100
LOADER_TIMEOUT_MS = 30000

_LOADER_TEMPLATE = r"""
(async (opts) => {
  const sleep = (ms) => new Promise((resolve) => setTimeout(resolve, ms));
  const route = (url) => {
    try { const u = new URL(String(url || '')); return u.hostname + u.pathname; }
    catch (_) { return String(url || ''); }
  };
  const expected = opts.expected_url ? route(opts.expected_url) : '';
  const on_route = () => !expected || route(window.location.href) === expected;
  const has_diff_ui = () =>
    !!document.querySelector('[data-diff-header]') ||
    Array.from(document.querySelectorAll('button'))
      .some((b) => (b.innerText || b.textContent || '').trim().toLowerCase() === 'load diff');

  const run_loader = () => {
    const clicked = new WeakSet();
    const expanded = new WeakSet();
    let last_progress = performance.now();
    const started = performance.now();
    const visible = (el) => {
      if (!el || !el.getClientRects().length) return false;
      const cs = getComputedStyle(el);
      return cs.visibility !== 'hidden' && cs.display !== 'none' && cs.pointerEvents !== 'none';
    };
    const sweep = () => {
      const sections = Array.from(document.querySelectorAll('[data-diff-header]'));
      for (const section of sections) {
        if (section.querySelector('[data-state="diff"]')) { expanded.add(section); continue; }
        if (expanded.has(section)) continue;
        const header = section.querySelector(':scope > [role="button"]') || section.querySelector('[role="button"]');
        if (header && visible(header)) {
          section.scrollIntoView({ block: 'start', inline: 'nearest' });
          header.click();
          expanded.add(section);
          last_progress = performance.now();
        }
      }
      for (const btn of Array.from(document.querySelectorAll('button'))) {
        if (clicked.has(btn) || !visible(btn)) continue;
        if ((btn.innerText || btn.textContent || '').trim().toLowerCase() !== 'load diff') continue;
        clicked.add(btn);
        btn.click();
        last_progress = performance.now();
      }
      const now = performance.now();
      if (now - started >= 30000 || now - last_progress >= 500) {
        clearInterval(timer);
        observer.disconnect();
      }
    };
    const observer = new MutationObserver(sweep);
    observer.observe(document.documentElement, { childList: true, subtree: true });
    const timer = setInterval(sweep, 25);
    sweep();
  };

  const start = Date.now();
  while (Date.now() - start < opts.timeout_ms) {
    if (!on_route()) return { ok: false, reason: 'navigated_away' };
    const rs = String(document.readyState || '').toLowerCase();
    if ((rs === 'complete' || rs === 'interactive') && has_diff_ui()) {
      run_loader();
      return { ok: true, reason: 'ready' };
    }
    await sleep(opts.poll_ms);
  }
  if (!on_route()) return { ok: false, reason: 'navigated_away' };
  run_loader();
  return { ok: false, reason: 'timeout' };
})(__OPTS__);
"""


def is_codex_task_url(url: str) -> bool:
    try:
        parts = urlsplit(url or "")
    except ValueError:
        return False
    if parts.hostname not in CODEX_HOSTNAMES:
        return False
    return bool(CODEX_TASK_PATH.match(parts.path or ""))


def build_codex_diff_loader_script(expected_url: str) -> str:
    """Script for ``execute_script`` that waits for the diff UI, then loads every diff."""
    opts = {
        "expected_url": expected_url or "",
        "poll_ms": LOADER_POLL_MS,
        "timeout_ms": LOADER_TIMEOUT_MS,
    }
    return _LOADER_TEMPLATE.replace("__OPTS__", json.dumps(opts)).strip()
