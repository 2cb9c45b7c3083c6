"""Supabase/PostgREST reads feeding the menu health score."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from httpx import HTTPError as HttpxError
from postgrest import APIError as PostgrestAPIError

from menuboard.services.menu_health_service import TAG_FIELDS
from menuboard.services.postgrest_client import (
    create_postgrest_client,
    format_supabase_timestamp,
    raise_postgrest_error,
    raise_supabase_unreachable,
)

logger = logging.getLogger(__name__)

ITEM_COLUMNS = (
    "id",
    "category_id",
    "name_en",
    "name_ar",
    "description_en",
    "description_ar",
    "image_url",
    "is_visible",
) + TAG_FIELDS

ITEM_VIEW_EVENT = "item_view"


class SupabaseMenuHealthDAO:
    """Read-only access to one restaurant's menu and analytics rows."""

    def __init__(
        self,
        restaurant_id: str,
        access_token: str,
        *,
        api_key: Optional[str] = None,
    ):
        self.restaurant_id = str(restaurant_id)
        self.access_token = access_token
        self.api_key = api_key

    def _client(self):
        return create_postgrest_client(self.access_token, api_key=self.api_key)

    async def fetch_items(self) -> List[Dict[str, Any]]:
        """Return every menu item of the restaurant, visible or not."""

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("items")
                    .select(",".join(ITEM_COLUMNS))
                    .eq("restaurant_id", self.restaurant_id)
                    .execute()
                )
                return response.data or []

        try:
            return await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context="menu items lookup")
        except HttpxError as exc:
            raise_supabase_unreachable(exc, context="menu items lookup")

    async def fetch_categories(self) -> List[Dict[str, Any]]:
        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("categories")
                    .select("id,name_en")
                    .eq("restaurant_id", self.restaurant_id)
                    .execute()
                )
                return response.data or []

        try:
            return await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context="menu categories lookup")
        except HttpxError as exc:
            raise_supabase_unreachable(exc, context="menu categories lookup")

    async def fetch_item_view_events(self, since: datetime) -> List[Dict[str, Any]]:
        """Return ``item_view`` events recorded since ``since``.

        Analytics only refine the score, so a failed read is logged and
        treated as no events.
        """

        def _request() -> List[Dict[str, Any]]:
            with self._client() as client:
                response = (
                    client.table("analytics_events")
                    .select("item_id")
                    .eq("restaurant_id", self.restaurant_id)
                    .eq("event_type", ITEM_VIEW_EVENT)
                    .gte("created_at", format_supabase_timestamp(since))
                    .execute()
                )
                return response.data or []

        try:
            return await asyncio.to_thread(_request)
        except (PostgrestAPIError, HttpxError) as exc:
            logger.warning(
                "Item view lookup failed, scoring without analytics",
                extra={"restaurant_id": self.restaurant_id, "error": str(exc)},
            )
            return []

    async def fetch_restaurant_name(self) -> Optional[str]:
        def _request() -> Optional[str]:
            with self._client() as client:
                response = (
                    client.table("restaurants")
                    .select("name")
                    .eq("id", self.restaurant_id)
                    .limit(1)
                    .execute()
                )
                if not response.data:
                    return None
                return response.data[0].get("name")

        try:
            return await asyncio.to_thread(_request)
        except PostgrestAPIError as exc:
            raise_postgrest_error(exc, context="restaurant lookup")
        except HttpxError as exc:
            raise_supabase_unreachable(exc, context="restaurant lookup")


__all__ = ["ITEM_COLUMNS", "ITEM_VIEW_EVENT", "SupabaseMenuHealthDAO"]
