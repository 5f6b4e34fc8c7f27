"""
app/api/routers package marker.
"""

from app.api.routers.analytics_router import router as analytics_router
from app.api.routers.target_router import router as target_router

__all__ = [
    "analytics_router",
    "target_router",
]
