"""FastAPI application factory.

Learn: App factory pattern — create_app(settings) returns a configured
FastAPI instance. Process-wide objects (settings, engine, session factory,
Redis client, rate limiter) are built here once and parked on app.state;
they are never mutated afterwards. Lifespan only checks connectivity at
startup and releases pools at shutdown.

storage_backend="memory" swaps in the in-process credential and counter
stores, which is what the test suite and `dianji serve --memory` use.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dianji import __version__
from dianji.api import api_router
from dianji.api.errors import register_exception_handlers
from dianji.api.health import root_router
from dianji.config import Settings
from dianji.db.engine import build_engine, build_session_factory
from dianji.logging import configure_logging
from dianji.middleware.rate_limit import FixedWindowRateLimiter
from dianji.middleware.request_context import RequestContextMiddleware
from dianji.stores.memory import MemoryCounterStore, MemoryCredentialStore
from dianji.stores.redis import RedisCounterStore, create_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. Redis is optional — without it the rate limiter fails open.
    """
    state = app.state
    logger.info(
        "dianji.starting",
        version=__version__,
        environment=state.settings.environment,
        storage_backend=state.settings.storage_backend,
    )

    if state.redis is not None:
        try:
            await state.redis.ping()
            logger.info("dianji.redis_connected", url=state.settings.redis_url)
        except Exception as e:
            logger.warning("dianji.redis_unavailable", error=str(e))

    yield

    logger.info("dianji.shutdown")
    if state.redis is not None:
        await state.redis.aclose()
    if state.engine is not None:
        await state.engine.dispose()


def _init_state(app: FastAPI, settings: Settings) -> None:
    state = app.state
    state.settings = settings
    if settings.storage_backend == "memory":
        state.engine = None
        state.session_factory = None
        state.redis = None
        state.memory_store = MemoryCredentialStore()
        counter_store = MemoryCounterStore()
    else:
        state.engine = build_engine(settings)
        state.session_factory = build_session_factory(state.engine)
        state.redis = create_redis(settings.redis_url)
        state.memory_store = None
        counter_store = RedisCounterStore(state.redis)
    state.rate_limiter = FixedWindowRateLimiter(counter_store)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Dianji API",
        description="Family check-in backend: accounts, invites and sessions",
        version=__version__,
        lifespan=lifespan,
    )
    _init_state(app, settings)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestContext → CORS → handler

    origins = list(dict.fromkeys([*settings.cors_origins, settings.app_url]))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Refresh-Token"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)
    app.include_router(root_router)
    app.include_router(api_router)
    return app
