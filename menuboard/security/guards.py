"""Request guards for the public event endpoints."""

from __future__ import annotations

import os
import threading
import time
from collections import defaultdict, deque
from typing import Deque, DefaultDict

from fastapi import HTTPException, Request


def _normalize_origin(value: str) -> str:
    return value.rstrip("/").lower()


TRUSTED_ORIGINS = tuple(
    _normalize_origin(entry)
    for entry in os.getenv("TRUSTED_ORIGINS", "").split(",")
    if entry.strip()
)

_RATE_LOCK = threading.Lock()
_RATE_BUCKETS: DefaultDict[str, Deque[float]] = defaultdict(deque)


def get_client_ip(request: Request) -> str:
    """Best effort extraction of the requester IP address."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        candidate = forwarded.split(",")[0].strip()
        if candidate:
            return candidate
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_same_origin(request: Request) -> None:
    """Reject browser posts coming from another site unless it is trusted."""

    origin = request.headers.get("origin")
    if not origin:
        return
    normalized_origin = _normalize_origin(origin)
    if normalized_origin in TRUSTED_ORIGINS:
        return
    host = request.headers.get("host")
    scheme = request.url.scheme or "http"
    if host and normalized_origin == _normalize_origin(f"{scheme}://{host}"):
        return
    raise HTTPException(status_code=403, detail="Request origin not allowed.")


def rate_limit_request(
    request: Request,
    *,
    scope: str,
    limit: int,
    window_seconds: int,
) -> None:
    """Sliding-window limit per client IP and scope, kept in memory."""

    identifier = f"{scope}:{get_client_ip(request)}"
    now = time.monotonic()
    with _RATE_LOCK:
        bucket = _RATE_BUCKETS[identifier]
        while bucket and now - bucket[0] > window_seconds:
            bucket.popleft()
        if len(bucket) >= limit:
            retry_after = max(1, int(window_seconds - (now - bucket[0])))
            raise HTTPException(
                status_code=429,
                detail="Too many requests. Try again later.",
                headers={"Retry-After": str(retry_after)},
            )
        bucket.append(now)


def reset_rate_limits() -> None:
    with _RATE_LOCK:
        _RATE_BUCKETS.clear()


__all__ = ["enforce_same_origin", "get_client_ip", "rate_limit_request", "reset_rate_limits"]
