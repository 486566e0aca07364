"""API module - FastAPI routers."""

from receptionist.api.webhooks import router, health_router

__all__ = [
    "router",
    "health_router",
]
