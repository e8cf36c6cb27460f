"""API routers."""
from .devices import router as devices_router
from .notifications import router as notifications_router
from .internal import router as internal_router

__all__ = ["devices_router", "notifications_router", "internal_router"]
