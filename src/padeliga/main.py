"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from padeliga.api.events import router as events_router
from padeliga.api.leagues import router as leagues_router
from padeliga.api.matches import router as matches_router
from padeliga.api.players import router as players_router
from padeliga.config import Settings
from padeliga.core.errors import LeagueError
from padeliga.core.event_bus import EventBus
from padeliga.db.engine import create_engine, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: create engine and tables. Shutdown: dispose the engine."""
    settings: Settings = app.state.settings
    engine = create_engine(settings.database_url)
    await init_db(engine)
    app.state.engine = engine
    logger.info("startup env=%s", settings.padeliga_env)

    yield

    await engine.dispose()
    logger.info("shutdown")


async def league_error_handler(request: Request, exc: LeagueError) -> JSONResponse:
    """Map core failure kinds to HTTP responses."""
    if exc.status_code >= 500:
        logger.error("league_error path=%s kind=%s", request.url.path, exc.kind)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "kind": exc.kind},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the Padeliga FastAPI application."""
    settings = settings or Settings()

    logging.basicConfig(
        level=getattr(logging, settings.padeliga_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Padeliga",
        version="0.1.0",
        description="Padel league management: scheduling, league lifecycle and rankings",
        docs_url="/docs" if settings.padeliga_env != "production" else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.event_bus = EventBus()

    app.add_exception_handler(LeagueError, league_error_handler)

    app.include_router(leagues_router)
    app.include_router(matches_router)
    app.include_router(players_router)
    app.include_router(events_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "env": settings.padeliga_env}

    return app


app = create_app()
