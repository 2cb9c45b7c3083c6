"""Helpers for working with Supabase access tokens."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict

from fastapi import HTTPException


def decode_access_token(access_token: str) -> Dict[str, Any]:
    """Return the decoded JWT payload for a Supabase access token."""

    if not access_token:
        raise HTTPException(status_code=401, detail="Authentication required.")

    try:
        payload_segment = access_token.split(".")[1]
        padding = "=" * (-len(payload_segment) % 4)
        decoded = base64.urlsafe_b64decode((payload_segment + padding).encode("ascii"))
        claims = json.loads(decoded.decode("utf-8"))
    except (IndexError, UnicodeError, binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=401, detail="Invalid authentication token.") from exc
    if not isinstance(claims, dict):
        raise HTTPException(status_code=401, detail="Invalid authentication token.")
    return claims


def get_user_id(access_token: str) -> str:
    """Return the Supabase user id (``sub`` claim) carried by the token."""

    user_id = decode_access_token(access_token).get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid Supabase user.")
    return str(user_id)


__all__ = ["decode_access_token", "get_user_id"]
