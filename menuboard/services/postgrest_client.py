"""Shared utilities for talking to Supabase/PostgREST."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, NoReturn, Optional, Tuple

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError
from postgrest import SyncPostgrestClient

from menuboard.config.supabase_client import (
    SUPABASE_ANON_KEY,
    SUPABASE_SERVICE_ROLE_KEY,
    SUPABASE_URL,
)

logger = logging.getLogger(__name__)


def extract_bearer_token(header_value: Optional[str]) -> str:
    """Return the Bearer token from an Authorization header."""

    if not header_value:
        raise HTTPException(status_code=401, detail="Authentication required.")
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid Bearer token.")
    token = parts[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing Bearer token.")
    return token


def create_postgrest_client(
    access_token: str,
    *,
    prefer: Optional[str] = None,
    api_key: Optional[str] = None,
) -> SyncPostgrestClient:
    """Instantiate a PostgREST client authenticated with the provided token."""

    resolved_api_key = api_key or SUPABASE_ANON_KEY
    if not SUPABASE_URL or not resolved_api_key:
        raise HTTPException(status_code=500, detail="Supabase is not configured.")

    headers: Dict[str, str] = {
        "apikey": resolved_api_key,
        "Accept": "application/json",
    }
    if prefer:
        headers["Prefer"] = prefer

    client = SyncPostgrestClient(f"{SUPABASE_URL.rstrip('/')}/rest/v1", headers=headers)
    client.auth(access_token)
    return client


def resolve_postgrest_credentials(access_token: str) -> Tuple[str, Optional[str]]:
    """Return the token/api key pair to use with PostgREST."""

    if SUPABASE_SERVICE_ROLE_KEY:
        return SUPABASE_SERVICE_ROLE_KEY, SUPABASE_SERVICE_ROLE_KEY
    return access_token, None


def raise_postgrest_error(exc: PostgrestAPIError, *, context: str) -> NoReturn:
    """Map PostgREST errors to FastAPI HTTP exceptions with logging."""

    status_code = postgrest_status(exc)
    detail = exc.message or "Error while communicating with Supabase."
    logger.error("%s failed (%s): %s", context, status_code, detail)
    if status_code == 401:
        raise HTTPException(status_code=401, detail="Supabase authentication required.") from exc
    if status_code == 403:
        raise HTTPException(status_code=403, detail="Access to the requested resource was denied.") from exc
    if status_code == 404:
        raise HTTPException(status_code=404, detail="Resource not found.") from exc
    raise HTTPException(status_code=502, detail="Error while communicating with Supabase.") from exc


def raise_supabase_unreachable(exc: HttpxError, *, context: str) -> NoReturn:
    """Map transport failures to a 503."""

    logger.error("Supabase unreachable during %s: %s", context, exc)
    raise HTTPException(status_code=503, detail="Supabase is temporarily unavailable.") from exc


def postgrest_status(exc: PostgrestAPIError) -> int:
    """Best effort extraction of an HTTP status code from the API error."""

    try:
        return int(exc.code) if exc.code else 502
    except (TypeError, ValueError):
        return 502


def format_supabase_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    normalized = value.astimezone(timezone.utc).replace(microsecond=0)
    return normalized.isoformat().replace("+00:00", "Z")


__all__ = [
    "create_postgrest_client",
    "extract_bearer_token",
    "format_supabase_timestamp",
    "postgrest_status",
    "raise_postgrest_error",
    "raise_supabase_unreachable",
    "resolve_postgrest_credentials",
]
