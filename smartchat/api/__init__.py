"""HTTP bridge for host shells that cannot embed Python directly."""

from __future__ import annotations


def main() -> None:
    """Entry point for ``smartchat-api``."""
    import uvicorn

    from smartchat.config import API_HOST, API_PORT

    uvicorn.run("smartchat.api.app:app", host=API_HOST, port=API_PORT, log_level="info")
