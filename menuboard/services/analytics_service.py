"""Recording of public menu engagement events."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import HTTPException
from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError

from menuboard.schemas import AnalyticsEventPayload
from menuboard.services.postgrest_client import (
    create_postgrest_client,
    raise_postgrest_error,
    raise_supabase_unreachable,
)

logger = logging.getLogger(__name__)


class SupabaseAnalyticsDAO:
    """Lookups and inserts needed to log an analytics event."""

    def __init__(self, access_token: str, *, api_key: Optional[str] = None):
        self.access_token = access_token
        self.api_key = api_key

    def _client(self, *, prefer: Optional[str] = None):
        return create_postgrest_client(self.access_token, prefer=prefer, api_key=self.api_key)

    async def _fetch_row(self, table: str, columns: str, row_id: UUID) -> Optional[Dict[str, Any]]:
        def _request() -> Optional[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table(table)
                    .select(columns)
                    .eq("id", str(row_id))
                    .limit(1)
                    .execute()
                )
                return response.data[0] if response.data else None

        try:
            return await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context=f"{table} lookup")
        except HttpxError as exc:
            raise_supabase_unreachable(exc, context=f"{table} lookup")

    async def fetch_branch(self, branch_id: UUID) -> Optional[Dict[str, Any]]:
        return await self._fetch_row("branches", "id,restaurant_id", branch_id)

    async def fetch_category(self, category_id: UUID) -> Optional[Dict[str, Any]]:
        return await self._fetch_row("categories", "id,restaurant_id", category_id)

    async def fetch_item(self, item_id: UUID) -> Optional[Dict[str, Any]]:
        return await self._fetch_row("items", "id,restaurant_id,category_id", item_id)

    async def insert_event(self, record: Dict[str, Any]) -> None:
        def _request() -> None:
            with self._client(prefer="return=minimal") as client:
                client.table("analytics_events").insert(record).execute()

        try:
            await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context="analytics event insert")
        except HttpxError as exc:
            raise_supabase_unreachable(exc, context="analytics event insert")


async def _none() -> None:
    return None


def _belongs_to(record: Optional[Dict[str, Any]], restaurant_id: str) -> bool:
    return bool(record) and str(record.get("restaurant_id")) == restaurant_id


async def record_analytics_event(dao: SupabaseAnalyticsDAO, payload: AnalyticsEventPayload) -> Dict[str, Any]:
    """Check the event references one restaurant consistently, then store it."""

    restaurant_id = str(payload.restaurant_id)
    branch, category, item = await asyncio.gather(
        dao.fetch_branch(payload.branch_id),
        dao.fetch_category(payload.category_id) if payload.category_id else _none(),
        dao.fetch_item(payload.item_id) if payload.item_id else _none(),
    )

    if not _belongs_to(branch, restaurant_id):
        raise HTTPException(status_code=400, detail="Invalid branch.")
    if payload.category_id and not _belongs_to(category, restaurant_id):
        raise HTTPException(status_code=400, detail="Invalid category.")
    if payload.item_id:
        if not _belongs_to(item, restaurant_id):
            raise HTTPException(status_code=400, detail="Invalid item.")
        if payload.category_id and str(item.get("category_id")) != str(payload.category_id):
            raise HTTPException(status_code=400, detail="Item does not belong to category.")

    record = {
        "restaurant_id": restaurant_id,
        "branch_id": str(payload.branch_id),
        "category_id": str(payload.category_id) if payload.category_id else None,
        "item_id": str(payload.item_id) if payload.item_id else None,
        "event_type": payload.event_type,
        "device_type": payload.device_type,
        "language": payload.language,
        "session_id": payload.session_id,
    }
    await dao.insert_event(record)
    logger.debug(
        "Analytics event recorded",
        extra={"restaurant_id": restaurant_id, "event_type": payload.event_type},
    )
    return record


__all__ = ["SupabaseAnalyticsDAO", "record_analytics_event"]
