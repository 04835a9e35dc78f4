"""Customer store bootstrap: create tables, then patch older deployments in place."""

import logging

from sqlalchemy import Engine, column, func, inspect, literal, select, table, text, update
from sqlalchemy.exc import SQLAlchemyError

from garage_broker.db import models  # noqa: F401 - ensure model metadata is registered
from garage_broker.db.session import Base

logger = logging.getLogger(__name__)

# Columns added after the first release of the booking table.
LATE_BOOKING_COLUMNS = {
    "garage_name": "garage_name VARCHAR(255)",
    "garage_address": "garage_address VARCHAR(500)",
    "notes": "notes TEXT",
}

# Unique rules an older table may be missing; (table, index, columns).
UNIQUE_RULES = (
    ("booking", "uq_booking_garage_slot_idx", ("garage_id", "reserved_at")),
    ("favorites", "uq_favorites_garage_car_idx", ("garage_id", "automobile_id")),
)


def _columns_of(engine: Engine, table_name: str) -> set[str]:
    inspector = inspect(engine)
    if table_name not in inspector.get_table_names():
        return set()
    return {col["name"] for col in inspector.get_columns(table_name)}


def _add_missing_columns(engine: Engine, table_name: str, ddl_by_name: dict[str, str]) -> None:
    present = _columns_of(engine, table_name)
    if not present:
        return
    missing = [ddl for name, ddl in ddl_by_name.items() if name not in present]
    with engine.begin() as connection:
        for ddl in missing:
            connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {ddl}"))


def _duplicates_exist(engine: Engine, table_name: str, columns: tuple[str, ...]) -> bool:
    keys = [column(name) for name in columns]
    grouped = (
        select(literal(1))
        .select_from(table(table_name, *keys))
        .group_by(*keys)
        .having(func.count() > 1)
        .limit(1)
    )
    with engine.connect() as connection:
        return connection.execute(grouped).first() is not None


def _already_unique(engine: Engine, table_name: str, columns: tuple[str, ...]) -> bool:
    inspector = inspect(engine)
    rules = inspector.get_unique_constraints(table_name) + [
        index for index in inspector.get_indexes(table_name) if index.get("unique")
    ]
    return any(set(rule["column_names"]) == set(columns) for rule in rules)


def _guard_uniqueness(engine: Engine) -> None:
    for table_name, index_name, columns in UNIQUE_RULES:
        if not _columns_of(engine, table_name):
            continue
        if _already_unique(engine, table_name, columns):
            continue
        if _duplicates_exist(engine, table_name, columns):
            # Existing data must be cleaned by hand before the rule can hold.
            logger.warning(
                "Skipping unique index %s on %s due to duplicate existing data.",
                index_name,
                table_name,
            )
            continue
        with engine.begin() as connection:
            connection.execute(
                text(
                    f"CREATE UNIQUE INDEX IF NOT EXISTS {index_name} "
                    f"ON {table_name} ({', '.join(columns)})"
                )
            )


def _backfill_owner_ids(engine: Engine) -> None:
    """Recompute user_id on rows written before owner derivation existed."""
    cars = models.Car.__table__
    with engine.begin() as connection:
        for model in (models.Booking, models.Favorite):
            rows = model.__table__
            owner = (
                select(cars.c.user_id)
                .where(cars.c.id == rows.c.automobile_id)
                .scalar_subquery()
            )
            connection.execute(
                update(rows).where(rows.c.user_id.is_(None)).values(user_id=owner)
            )


def init_db(engine: Engine) -> None:
    """Create the customer schema and guard its uniqueness rules."""
    try:
        Base.metadata.create_all(bind=engine)
        _add_missing_columns(engine, "booking", LATE_BOOKING_COLUMNS)
        _guard_uniqueness(engine)
        _backfill_owner_ids(engine)
    except SQLAlchemyError:
        logger.exception("Database initialization failed.")
        raise
