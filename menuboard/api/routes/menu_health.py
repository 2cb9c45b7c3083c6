"""Menu health endpoints for restaurant admins."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from postgrest import APIError as PostgrestAPIError

from menuboard.config.settings import MENU_HEALTH_WINDOW_DAYS
from menuboard.schemas import MenuHealthReport, MenuHealthSummary
from menuboard.services.auth_utils import get_user_id
from menuboard.services.menu_health_dao import SupabaseMenuHealthDAO
from menuboard.services.menu_health_service import (
    calculate_menu_health,
    coverage_percentages,
    score_label,
    summarize_menu_health,
)
from menuboard.services.postgrest_client import (
    extract_bearer_token,
    raise_postgrest_error,
    resolve_postgrest_credentials,
)
from menuboard.services.restaurant_service import (
    SupabaseUnavailableError,
    get_restaurant_id_for_user,
)

router = APIRouter(prefix="/api/admin/menu/health", tags=["menu-health"])


async def get_access_token(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """Extract the Supabase bearer token from the Authorization header."""

    return extract_bearer_token(authorization)


async def get_current_restaurant_id(access_token: str = Depends(get_access_token)) -> str:
    """Resolve the restaurant the signed-in user belongs to."""

    user_id = get_user_id(access_token)
    try:
        restaurant_id = await asyncio.to_thread(get_restaurant_id_for_user, user_id)
    except SupabaseUnavailableError as exc:
        raise HTTPException(status_code=503, detail="Supabase is temporarily unavailable.") from exc
    except PostgrestAPIError as exc:
        raise_postgrest_error(exc, context="restaurant membership lookup")
    if not restaurant_id:
        raise HTTPException(status_code=404, detail="No restaurant found for this user.")
    return restaurant_id


async def get_menu_health_dao(
    restaurant_id: str = Depends(get_current_restaurant_id),
    access_token: str = Depends(get_access_token),
) -> SupabaseMenuHealthDAO:
    db_token, api_key = resolve_postgrest_credentials(access_token)
    return SupabaseMenuHealthDAO(restaurant_id, db_token, api_key=api_key)


@router.get("", response_model=MenuHealthReport)
async def menu_health_report(
    window_days: Optional[int] = Query(default=None, ge=1, le=365),
    dao: SupabaseMenuHealthDAO = Depends(get_menu_health_dao),
) -> MenuHealthReport:
    """Return the score, its breakdown, the metrics behind it and the issues found."""

    restaurant_name, health = await asyncio.gather(
        dao.fetch_restaurant_name(),
        calculate_menu_health(dao, window_days=window_days),
    )
    return MenuHealthReport(
        score=health.score,
        breakdown=health.breakdown,
        metrics=health.metrics,
        issues=health.issues,
        restaurant_id=dao.restaurant_id,
        restaurant_name=restaurant_name or "Restaurant",
        label=score_label(health.score),
        window_days=window_days or MENU_HEALTH_WINDOW_DAYS,
        coverage=coverage_percentages(health.metrics),
    )


@router.get("/summary", response_model=MenuHealthSummary)
async def menu_health_summary(
    dao: SupabaseMenuHealthDAO = Depends(get_menu_health_dao),
) -> MenuHealthSummary:
    """Score, label and the first issue to tackle, for the dashboard card."""

    health = await calculate_menu_health(dao)
    return summarize_menu_health(health)
