"""Database engine/session setup for SQLAlchemy."""

import math
from collections.abc import Generator

from fastapi import Request
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Declarative base class for the customer store models.
Base = declarative_base()


def _least(*values):
    present = [value for value in values if value is not None]
    return min(present) if present else None


def _greatest(*values):
    present = [value for value in values if value is not None]
    return max(present) if present else None


def _unary(fn):
    def apply(value):
        return None if value is None else fn(value)

    return apply


# Functions the great-circle expression needs; SQLite may be compiled without them.
SQLITE_FUNCTIONS = {
    "acos": (1, _unary(math.acos)),
    "cos": (1, _unary(math.cos)),
    "sin": (1, _unary(math.sin)),
    "radians": (1, _unary(math.radians)),
    "least": (-1, _least),
    "greatest": (-1, _greatest),
}


def _register_sqlite_functions(dbapi_connection, _connection_record) -> None:
    for name, (arity, fn) in SQLITE_FUNCTIONS.items():
        dbapi_connection.create_function(name, arity, fn, deterministic=True)


def build_engine(database_url: str) -> Engine:
    """Create an engine; SQLite URLs get thread sharing and math functions."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    # check_same_thread is required for SQLite with FastAPI.
    options = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
        # In-memory databases live in one connection; share it across sessions.
        options["poolclass"] = StaticPool

    engine = create_engine(database_url, **options)
    event.listen(engine, "connect", _register_sqlite_functions)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory used by request-scoped dependencies."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, class_=Session)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Provide a DB session per request and ensure it is closed."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
