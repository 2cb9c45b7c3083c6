"""API routers mounted by the application."""

from fastapi import APIRouter

from menuboard.api.routes.events import router as events_router
from menuboard.api.routes.menu_health import router as menu_health_router

router = APIRouter()
router.include_router(menu_health_router)
router.include_router(events_router)

__all__ = ["router"]
