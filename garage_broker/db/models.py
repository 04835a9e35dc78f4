"""SQLAlchemy ORM models for the customer store."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    select,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from garage_broker.db.session import Base

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
DEFAULT_BOOKING_STATUS = "pending"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, including on stores that drop the offset (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return _as_utc(value)

    def process_result_value(self, value, dialect):
        return _as_utc(value)


class User(Base):
    """Represents a customer account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    cars: Mapped[list["Car"]] = relationship(
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Car(Base):
    """Represents a vehicle, identified by its plate (matricule)."""

    __tablename__ = "cars"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    mark: Mapped[str] = mapped_column(String(255), nullable=False)
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    matricule: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    owner: Mapped[Optional["User"]] = relationship(back_populates="cars")
    bookings: Mapped[list["Booking"]] = relationship(
        back_populates="car",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="car",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Booking(Base):
    """A reservation of a car against a remote garage and service at one instant."""

    __tablename__ = "booking"
    __table_args__ = (
        UniqueConstraint("garage_id", "reserved_at", name="uq_booking_garage_slot"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    # Remote catalog ids; opaque to this store.
    garage_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    service_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Snapshot taken at creation time, not kept in sync with the catalog.
    garage_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    garage_address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    automobile_id: Mapped[int] = mapped_column(
        ForeignKey("cars.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    reserved_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=DEFAULT_BOOKING_STATUS,
        server_default=text(f"'{DEFAULT_BOOKING_STATUS}'"),
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    car: Mapped["Car"] = relationship(back_populates="bookings")


class Favorite(Base):
    """A liked edge between a local car and a remote garage id."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("garage_id", "automobile_id", name="uq_favorites_garage_car"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    garage_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    automobile_id: Mapped[int] = mapped_column(
        ForeignKey("cars.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    liked_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    car: Mapped["Car"] = relationship(back_populates="favorites")


def _sync_owner(_mapper, connection, target) -> None:
    """Recompute the denormalized owner from the referenced car."""
    target.user_id = connection.scalar(
        select(Car.user_id).where(Car.id == target.automobile_id)
    )


for _model in (Booking, Favorite):
    event.listen(_model, "before_insert", _sync_owner)
    event.listen(_model, "before_update", _sync_owner)
