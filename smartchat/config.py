"""Centralized configuration for the smartchat core.

Typed constants with environment variable overrides. Defaults are safe so the
core and the HTTP bridge start without any env configuration.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# --- App ---
APP_VERSION: str = "0.1.0"
APP_ENV: str = os.getenv("SMARTCHAT_ENV", "development")

# --- Embedded browser (passed through to the host, not interpreted) ---
EMBED_HEIGHT_DEFAULT: int = int(os.getenv("SMARTCHAT_EMBED_HEIGHT", "800"))
ZOOM_FACTOR_DEFAULT: float = float(os.getenv("SMARTCHAT_ZOOM_FACTOR", "0.9"))
ZOOM_FACTOR_MIN: float = 0.1
ZOOM_FACTOR_MAX: float = 2.0

# --- Navigation debounce ---
DEFAULT_DEBOUNCE_MS: int = int(os.getenv("SMARTCHAT_DEFAULT_DEBOUNCE_MS", "300"))
LEGACY_DEBOUNCE_MS: int = int(os.getenv("SMARTCHAT_LEGACY_DEBOUNCE_MS", "2000"))

# --- Platforms ---
PLATFORMS_PATH: Path = Path(
    os.getenv(
        "SMARTCHAT_PLATFORMS_PATH",
        str(Path(__file__).parent.parent / "config" / "platforms.yaml"),
    )
)
OPENWEBUI_URL: str = os.getenv("SMARTCHAT_OPENWEBUI_URL", "http://localhost:3000/")

# --- Codeblock ---
TEMP_CONTEXT_KEY: str = "temp-chat-context"

# --- API ---
API_HOST: str = os.getenv("SMARTCHAT_API_HOST", "127.0.0.1")
API_PORT: int = int(os.getenv("SMARTCHAT_API_PORT", "8765"))
API_MAX_TEXT_CHARS: int = 2_000_000
API_MAX_ITEMS: int = 5000


class PluginSettings(BaseModel):
    """Host-persisted settings. Values are validated, then handed to the browser."""

    model_config = ConfigDict(extra="ignore")

    embed_height: int = Field(default=EMBED_HEIGHT_DEFAULT, ge=100)
    zoom_factor: float = Field(
        default=ZOOM_FACTOR_DEFAULT, ge=ZOOM_FACTOR_MIN, le=ZOOM_FACTOR_MAX
    )


def load_settings(data: dict | None = None) -> PluginSettings:
    """Merge persisted values over the defaults.

    Raises:
        pydantic.ValidationError: If a persisted value is out of range
    """
    return PluginSettings.model_validate(dict(data or {}))
