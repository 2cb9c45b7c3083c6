"""Runtime settings read from the environment."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Lookback used when counting item views for the menu health score.
MENU_HEALTH_WINDOW_DAYS = _int_env("MENU_HEALTH_WINDOW_DAYS", 30)

EVENT_LOG_RATE_LIMIT = _int_env("EVENT_LOG_RATE_LIMIT", 60)
EVENT_LOG_RATE_WINDOW_SECONDS = _int_env("EVENT_LOG_RATE_WINDOW_SECONDS", 60)

__all__ = [
    "LOG_LEVEL",
    "MENU_HEALTH_WINDOW_DAYS",
    "EVENT_LOG_RATE_LIMIT",
    "EVENT_LOG_RATE_WINDOW_SECONDS",
]
