"""
Mountable admin API.

Usage:
    from togglekit.api import router as togglekit_router

    app.include_router(togglekit_router, prefix="/admin")
"""

from fastapi import APIRouter

from .dependencies import ToggleService, get_db, get_toggle_service
from .routes import router as features_router

router = APIRouter()

router.include_router(features_router, prefix="/features", tags=["features"])

__all__ = [
    "router",
    "get_db",
    "get_toggle_service",
    "ToggleService",
]
