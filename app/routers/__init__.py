"""API routers."""

from app.routers.auth import router as auth_router
from app.routers.blogs import router as blogs_router

__all__ = ["auth_router", "blogs_router"]
