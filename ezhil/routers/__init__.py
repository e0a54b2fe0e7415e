"""API routers."""

from ezhil.routers.assistant import router as assistant_router
from ezhil.routers.dashboard import router as dashboard_router
from ezhil.routers.health import router as health_router
from ezhil.routers.leaderboard import router as leaderboard_router
from ezhil.routers.reports import router as reports_router

__all__ = [
    "assistant_router",
    "dashboard_router",
    "health_router",
    "leaderboard_router",
    "reports_router",
]
