"""Public endpoint logging menu engagement events."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from menuboard.config.settings import EVENT_LOG_RATE_LIMIT, EVENT_LOG_RATE_WINDOW_SECONDS
from menuboard.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_SERVICE_ROLE_KEY
from menuboard.schemas import AnalyticsEventPayload, AnalyticsEventResponse
from menuboard.security.guards import enforce_same_origin, rate_limit_request
from menuboard.services.analytics_service import SupabaseAnalyticsDAO, record_analytics_event

router = APIRouter(prefix="/api/events", tags=["analytics"])


async def get_analytics_dao() -> SupabaseAnalyticsDAO:
    token = SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY
    if not token:
        raise HTTPException(status_code=503, detail="Event logging is unavailable.")
    return SupabaseAnalyticsDAO(token, api_key=token)


@router.post("/log", response_model=AnalyticsEventResponse)
async def log_event(
    payload: AnalyticsEventPayload,
    request: Request,
    dao: SupabaseAnalyticsDAO = Depends(get_analytics_dao),
) -> AnalyticsEventResponse:
    enforce_same_origin(request)
    rate_limit_request(
        request,
        scope="events:log",
        limit=EVENT_LOG_RATE_LIMIT,
        window_seconds=EVENT_LOG_RATE_WINDOW_SECONDS,
    )
    await record_analytics_event(dao, payload)
    return AnalyticsEventResponse()
