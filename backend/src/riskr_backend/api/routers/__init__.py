"""Route definitions for public HTTP endpoints."""

from riskr_backend.api.routers.games import router as games_router
from riskr_backend.api.routers.users import router as users_router

__all__ = ["games_router", "users_router"]
