"""FastAPI entrypoint for the customer API.

- `garage_broker/routes/` for the booking and favorites endpoints
- `garage_broker/services/` for the booking/favorites logic and the catalog client
- `garage_broker/db/` for SQLAlchemy models and session management
- `garage_broker/catalog/` for the separately deployed catalog API
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import Engine

from garage_broker.core.config import Settings, get_settings
from garage_broker.core.exceptions import register_exception_handlers
from garage_broker.core.logging import configure_logging
from garage_broker.core.middleware import RequestContextMiddleware
from garage_broker.db.init_db import init_db
from garage_broker.db.session import build_engine, build_session_factory
from garage_broker.routes import bookings, favorites
from garage_broker.services.catalog_client import CatalogClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    engine: Engine | None = None,
    catalog: CatalogClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize app resources before serving traffic."""
        configure_logging(settings.log_level)

        db_engine = engine or build_engine(settings.database_url)
        init_db(db_engine)
        app.state.session_factory = build_session_factory(db_engine)
        logger.info("Database tables initialized.")

        app.state.catalog = catalog or CatalogClient(
            settings.catalog_api_url,
            timeout=settings.catalog_timeout_seconds,
            max_workers=settings.enrichment_max_workers,
        )

        yield

        # Resources handed in by the caller are closed by the caller.
        if catalog is None:
            app.state.catalog.close()
        if engine is None:
            db_engine.dispose()

    app = FastAPI(
        title="Garage Broker API",
        version="0.1.0",
        description="Bookings and favorite garages brokered against the garage catalog.",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    app.include_router(bookings.router)
    app.include_router(favorites.router)

    @app.get("/", tags=["health"])
    def root() -> dict[str, str]:
        """Simple status endpoint for uptime checks."""
        return {"status": "Garage Broker Running"}

    return app


app = create_app()
