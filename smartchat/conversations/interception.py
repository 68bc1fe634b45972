"""
Network interception for conversation detection.

An injected script wraps ``fetch`` and ``XMLHttpRequest`` in the chat page and
logs every response to the console as one line:

    [SC_NET] {"kind": "fetch", "url": ..., "method": ..., "status": ..., "response_body": ...}

The page is not ours, so every field is parsed defensively. Malformed lines
are dropped, never raised.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from smartchat.conversations.merge import merge_conversation_items
from smartchat.conversations.models import ConversationItem
from smartchat.observability.logging import get_logger

logger = get_logger(__name__)

SC_NET_MARKER = "[SC_NET]"
CONVERSATIONS_PATH = "backend-api/conversations"

NETWORK_INTERCEPT_SCRIPT = r"""
(() => {
  if (window.__sc_net_installed) return { ok: true, already_installed: true };
  window.__sc_net_installed = true;

  const log = (payload) => {
    try { console.log('[SC_NET]', JSON.stringify(payload)); } catch (_) {}
  };

  const original_fetch = window.fetch;
  if (typeof original_fetch === 'function') {
    window.fetch = async (...args) => {
      const [input, init] = args;
      const url = typeof input === 'string' ? input : input?.url;
      const method = init?.method || 'GET';
      const res = await original_fetch(...args);
      res.clone().text().then((body) => {
        log({ kind: 'fetch', url, method, status: res.status, response_body: body });
      }).catch(() => {});
      return res;
    };
  }

  const original_open = XMLHttpRequest.prototype.open;
  const original_send = XMLHttpRequest.prototype.send;
  XMLHttpRequest.prototype.open = function(method, url, ...rest) {
    this.__sc_method = method;
    this.__sc_url = url;
    return original_open.call(this, method, url, ...rest);
  };
  XMLHttpRequest.prototype.send = function(body) {
    this.addEventListener('load', function() {
      log({
        kind: 'xhr',
        url: this.__sc_url,
        method: this.__sc_method,
        status: this.status,
        response_body: this.responseText
      });
    });
    return original_send.call(this, body);
  };

  return { ok: true, installed: true };
})();
""".strip()


@dataclass(frozen=True)
class InterceptedResponse:
    url: str
    method: str = "GET"
    status: int = 0
    body: str = ""


def parse_interception_message(message: Any) -> InterceptedResponse | None:
    """Parse one console line; None unless it is a well-formed ``[SC_NET]`` payload."""
    if not isinstance(message, str) or not message.startswith(SC_NET_MARKER):
        return None

    try:
        payload = json.loads(message[len(SC_NET_MARKER) :].strip())
    except ValueError:
        logger.debug("Dropping unparsable interception line")
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("url"), str):
        return None

    status = payload.get("status")
    body = payload.get("response_body")
    return InterceptedResponse(
        url=payload["url"],
        method=str(payload.get("method") or "GET"),
        status=status if isinstance(status, int) else 0,
        body=body if isinstance(body, str) else "",
    )


def extract_conversation_items(response: InterceptedResponse | None) -> list[ConversationItem]:
    """``items`` of a conversations-list response; [] for anything else."""
    if response is None or CONVERSATIONS_PATH not in response.url:
        return []

    try:
        data = json.loads(response.body or "{}")
    except ValueError:
        logger.debug("Conversations response body is not JSON: %s", response.url)
        return []
    raw_items = data.get("items") if isinstance(data, dict) else None
    if not isinstance(raw_items, list):
        return []

    items: list[ConversationItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        try:
            items.append(ConversationItem.model_validate(raw))
        except ValidationError as e:
            logger.debug("Skipping malformed conversation item: %s", e.error_count())
    return items


class ConversationTracker:
    """Incrementally merged list of detected conversations for one session."""

    def __init__(self) -> None:
        self.items: list[ConversationItem] = []

    def merge(self, incoming: list[ConversationItem]) -> bool:
        """Merge items in; True if the list changed."""
        if not incoming:
            return False
        merged = merge_conversation_items(self.items, incoming)
        changed = [item.model_dump() for item in merged] != [
            item.model_dump() for item in self.items
        ]
        self.items = merged
        return changed

    def ingest(self, message: Any) -> bool:
        """Feed one console line. Re-ingesting the same line changes nothing."""
        items = extract_conversation_items(parse_interception_message(message))
        if not items:
            return False
        changed = self.merge(items)
        if changed:
            logger.info("Detected conversations: %d total", len(self.items))
        return changed
