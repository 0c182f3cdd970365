"""
Routers package for API endpoints.

This package contains all route handlers organized by functionality. The
static router is a catch-all and must be included last.
"""

from .info import router as info_router
from .download import router as download_router
from .static import router as static_router

__all__ = [
    "info_router",
    "download_router",
    "static_router",
]
