"""Helpers to resolve the restaurant a signed-in user manages."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence, TypeVar

import logging
import time

from httpx import HTTPError as HttpxError

from menuboard.config.supabase_client import SUPABASE_URL, get_supabase_client

logger = logging.getLogger(__name__)
T = TypeVar("T")


class SupabaseUnavailableError(RuntimeError):
    """Raised when Supabase cannot be reached or is not configured."""


def _retry_supabase_call(
    operation: Callable[[], T],
    *,
    retries: int = 2,
    backoff_seconds: Sequence[float] = (0.2, 0.5, 1.0),
    label: str,
) -> T:
    """Run a Supabase call with a short retry/backoff strategy."""

    attempts = retries + 1
    for attempt in range(1, attempts + 1):
        start = time.monotonic()
        try:
            result = operation()
            duration_ms = (time.monotonic() - start) * 1000
            logger.debug(
                "Supabase call succeeded",
                extra={
                    "label": label,
                    "duration_ms": round(duration_ms, 2),
                    "supabase_url": SUPABASE_URL,
                },
            )
            return result
        except HttpxError as exc:
            duration_ms = (time.monotonic() - start) * 1000
            logger.warning(
                "Supabase call failed",
                extra={
                    "label": label,
                    "attempt": attempt,
                    "duration_ms": round(duration_ms, 2),
                    "supabase_url": SUPABASE_URL,
                    "error": str(exc),
                },
            )
            if attempt >= attempts:
                raise SupabaseUnavailableError("Supabase unreachable.") from exc
            delay = backoff_seconds[min(attempt - 1, len(backoff_seconds) - 1)]
            time.sleep(delay)
    raise SupabaseUnavailableError("Supabase unreachable.")


def get_restaurant_id_for_user(user_id: str) -> Optional[str]:
    """Return the restaurant the user is a member of, if any."""

    client = get_supabase_client()
    if client is None:
        raise SupabaseUnavailableError("Supabase client is not configured.")

    def _fetch_membership() -> Any:
        return (
            client.table("restaurant_users")
            .select("restaurant_id")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )

    response = _retry_supabase_call(
        _fetch_membership,
        label="get_restaurant_id_for_user:membership",
    )
    for row in response.data or []:
        restaurant_id = row.get("restaurant_id") if isinstance(row, dict) else None
        if restaurant_id:
            return str(restaurant_id)
    return None


__all__ = ["SupabaseUnavailableError", "get_restaurant_id_for_user"]
