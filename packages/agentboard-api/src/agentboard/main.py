"""FastAPI application factories and entry point.

``create_app`` builds the monitor: it owns the aggregator and polls the
configured sources for as long as the app runs. ``create_relay_app`` builds
the relay that stores snapshots pushed by a monitor for remote clients.
"""

import logging
import sys
import time
from collections.abc import Sequence
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from agentboard import __version__
from agentboard.config import Settings, get_settings
from agentboard.db.engine import dispose_engine, init_db
from agentboard.routers import alerts, health, relay, sources, state
from agentboard.services.aggregator import Aggregator
from agentboard.services.relay_store import RelayCache
from agentboard.services.scheduler import PollScheduler
from agentboard.sources.base import DataSource
from agentboard.sources.registry import default_sources

logger = logging.getLogger(__name__)


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.environment == "development" else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _add_common_middleware(app: FastAPI, settings: Settings) -> None:
    origins = [o.strip() for o in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start polling on startup; stop the ticker and flush relay pushes on shutdown."""
    settings: Settings = app.state.settings
    _configure_logging(settings)
    logger.info("Starting agentboard v%s in %s mode", __version__, settings.environment)

    aggregator: Aggregator = app.state.aggregator
    scheduler = PollScheduler(aggregator.run_cycle, settings.poll_interval_seconds)
    app.state.scheduler = scheduler
    scheduler.start()

    yield

    await scheduler.stop()
    await aggregator.relay.drain()
    logger.info("agentboard shut down after %d cycles", aggregator.cycles)


def create_app(
    settings: Settings | None = None,
    data_sources: Sequence[DataSource] | None = None,
) -> FastAPI:
    """Create and configure the monitor application."""
    settings = settings or get_settings()
    if data_sources is None:
        data_sources = default_sources(settings)

    docs_url = "/docs" if settings.environment == "development" else None
    openapi_url = "/openapi.json" if settings.environment == "development" else None

    app = FastAPI(
        title="agentboard",
        description="Aggregated status, health and alerts for AI coding agents",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=None,
        openapi_url=openapi_url,
    )
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.aggregator = Aggregator(data_sources, settings)

    _add_common_middleware(app, settings)

    app.include_router(health.router)
    app.include_router(state.router)
    app.include_router(sources.router)
    app.include_router(alerts.router)

    return app


@asynccontextmanager
async def relay_lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    _configure_logging(settings)
    logger.info("Starting agentboard relay v%s in %s mode", __version__, settings.environment)

    # Reject the default push token in production
    settings.validate_production()

    await init_db(settings.relay_database_url)
    logger.info("Relay tables created/verified")

    yield

    await dispose_engine()
    logger.info("agentboard relay shut down")


def create_relay_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the relay application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="agentboard relay",
        description="Stores the latest pushed agentboard snapshot for remote clients",
        version=__version__,
        lifespan=relay_lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.relay_cache = RelayCache()

    _add_common_middleware(app, settings)
    app.include_router(relay.router)

    return app


app = create_app()
relay_app = create_relay_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    target = "agentboard.main:relay_app" if "--relay" in sys.argv[1:] else "agentboard.main:app"
    uvicorn.run(
        target,
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment == "development"),
    )
