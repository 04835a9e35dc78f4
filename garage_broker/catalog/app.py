"""FastAPI entrypoint for the garage catalog API.

Serves the lookup documents the customer API enriches bookings and favorites
with, plus the relational geo search.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from garage_broker.catalog.models import CatalogBase
from garage_broker.catalog.routes import garages_router, search_router, services_router
from garage_broker.core.config import Settings, get_settings
from garage_broker.core.exceptions import register_exception_handlers
from garage_broker.core.logging import configure_logging
from garage_broker.core.middleware import RequestContextMiddleware
from garage_broker.db.session import build_engine, build_session_factory

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def init_catalog_db(engine: Engine) -> None:
    try:
        CatalogBase.metadata.create_all(bind=engine)
    except SQLAlchemyError:
        logger.exception("Catalog database initialization failed.")
        raise


def create_catalog_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        catalog_engine = engine or build_engine(settings.catalog_database_url)
        init_catalog_db(catalog_engine)
        app.state.session_factory = build_session_factory(catalog_engine)
        logger.info("Catalog tables initialized.")

        yield

        if engine is None:
            catalog_engine.dispose()

    app = FastAPI(
        title="Garage Catalog API",
        version="0.1.0",
        description="Garages, services and proximity search.",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)

    app.include_router(garages_router, prefix=API_PREFIX)
    app.include_router(services_router, prefix=API_PREFIX)
    app.include_router(search_router, prefix=API_PREFIX)

    @app.get("/", tags=["health"])
    def root() -> dict[str, str]:
        return {"status": "Garage Catalog Running"}

    return app


app = create_catalog_app()
