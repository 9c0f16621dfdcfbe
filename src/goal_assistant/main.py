"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from goal_assistant.auth.router import router as auth_router
from goal_assistant.config import get_settings
from goal_assistant.database import close_db, create_schema, get_session, init_db
from goal_assistant.gamification.router import router as gamification_router
from goal_assistant.gamification.seed import seed_achievements
from goal_assistant.goals.router import router as goals_router
from goal_assistant.health.router import router as health_router
from goal_assistant.middleware import setup_middleware
from goal_assistant.modules.builtin import build_default_registry
from goal_assistant.modules.registry import ModuleRegistry
from goal_assistant.modules.router import router as modules_router
from goal_assistant.modules.service import sync_registry
from goal_assistant.progress.router import router as progress_router
from goal_assistant.redis_client import close_redis, init_redis
from goal_assistant.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.auto_create_schema:
        await create_schema()

    if getattr(app.state, "module_registry", None) is None:
        app.state.module_registry = await build_default_registry()
    registry: ModuleRegistry = app.state.module_registry

    # Persisted enabled/config state wins over registration defaults
    async for db in get_session():
        await sync_registry(db, registry)
        seeded = await seed_achievements(db, registry)
        logger.info("startup_complete", modules=len(registry), achievements=seeded)
        break

    try:
        await init_redis(settings.redis_url)
    except Exception:
        logger.warning("redis_unavailable", url=settings.redis_url, exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app(registry: ModuleRegistry | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``registry`` replaces the built-in module set; tests pass their own.
    """
    settings = get_settings()

    app = FastAPI(
        title="Goal Assistant API",
        description="Gamified personal goal tracking across pluggable life-area modules",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.module_registry = registry

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(modules_router)
    app.include_router(goals_router)
    app.include_router(progress_router)
    app.include_router(gamification_router)

    return app


app = create_app()
