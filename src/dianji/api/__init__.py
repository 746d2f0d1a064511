"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: auth is applied per route with Depends(get_principal) rather than
at the include_router level, because the auth and family routers mix
public endpoints (register, login, join, invite preview) with protected
ones.
"""

from fastapi import APIRouter

from dianji.api.auth import router as auth_router
from dianji.api.family import router as family_router
from dianji.api.health import router as health_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(family_router, tags=["family"])
