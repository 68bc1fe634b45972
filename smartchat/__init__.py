"""smartchat - Track chat-service threads inside document codeblocks"""

from __future__ import annotations

__version__ = "0.1.0"


# Lazy imports so importing a leaf module does not load the whole core
def __getattr__(name: str):
    if name == "ThreadSession":
        from smartchat.threads.lifecycle import ThreadSession

        return ThreadSession

    if name in ("PlatformDescriptor", "get_platform"):
        from smartchat.threads import platforms

        return getattr(platforms, name)

    if name in ("ConversationItem", "merge_conversation_items"):
        from smartchat.conversations import merge, models

        if name == "ConversationItem":
            return models.ConversationItem
        return merge.merge_conversation_items

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ConversationItem",
    "PlatformDescriptor",
    "ThreadSession",
    "get_platform",
    "merge_conversation_items",
]
