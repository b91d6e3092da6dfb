from .portal import router as portal_router
from .router import router

__all__ = ["portal_router", "router"]
