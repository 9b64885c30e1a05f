"""
Builderfolio API Routes Module

Exports all API routers for inclusion in the main FastAPI application.
"""

from builderfolio.api.routes.farcaster import router as farcaster_router
from builderfolio.api.routes.profiles import router as profiles_router
from builderfolio.api.routes.support import router as support_router

__all__ = [
    "farcaster_router",
    "profiles_router",
    "support_router",
]
