"""Health check endpoints.

Learn: GET / is a bare liveness probe. GET /api/health also verifies
the dependencies (database, Redis) are reachable; the memory backend
reports them as "memory".
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from dianji import __version__

router = APIRouter()
root_router = APIRouter()


@root_router.get("/")
async def root():
    return {"name": "Dianji API", "version": __version__, "status": "ok"}


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    state = request.app.state
    checks = {"server": "ok", "version": __version__}

    if state.memory_store is not None:
        checks["database"] = "memory"
        checks["redis"] = "memory"
    else:
        try:
            async with state.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as e:
            checks["database"] = f"error: {e}"

        try:
            await state.redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v in ("ok", "memory") for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"status": status, **checks}
