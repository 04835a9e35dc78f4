"""Booking lifecycle: creation, conflict detection, status updates and reads.

Creation is fail-closed on the catalog: a booking is only written once the
garage and the service both resolve. Reads are best-effort: each row is
enriched with live catalog data and falls back to the garage snapshot stored
on the row when the catalog does not answer.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy import ColumnElement, Date, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from garage_broker.core.domain_exceptions import Conflict, NotFound, ValidationFailed
from garage_broker.core.error_codes import ErrorCode
from garage_broker.db.models import (
    BOOKING_STATUSES,
    DEFAULT_BOOKING_STATUS,
    Booking,
    Car,
    User,
)
from garage_broker.services.catalog_client import CatalogClient, CatalogLookup
from garage_broker.services.pagination import Page, PageRequest, row_snapshot

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This garage is already booked at the requested time."


@dataclass
class BookingView:
    """A booking row merged with its car, owner and catalog documents."""

    booking: Booking
    car: Car | None
    owner: User | None
    garage: dict[str, Any]
    service: dict[str, Any] | None
    external_data_available: bool


@dataclass(frozen=True)
class BookingFilters:
    user_id: int | None = None
    garage_id: int | None = None
    service_id: int | None = None
    status: str | None = None
    search: str | None = None
    upcoming: bool = False
    on_date: date | None = None


@dataclass(frozen=True)
class DailyCount:
    day: date
    status: str
    count: int


@dataclass
class BookingStats:
    total: int = 0
    by_status: dict[str, int] = field(
        default_factory=lambda: {status: 0 for status in BOOKING_STATUSES}
    )
    today: int = 0
    last_7_days: int = 0
    last_30_days: int = 0
    daily_breakdown: list[DailyCount] = field(default_factory=list)


def normalize_instant(value: datetime) -> datetime:
    """Store every reservation instant in UTC; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_status(status: str) -> str:
    normalized = status.strip().lower()
    if normalized not in BOOKING_STATUSES:
        raise ValidationFailed(
            code=ErrorCode.INVALID_STATUS,
            message=f"Status must be one of: {', '.join(BOOKING_STATUSES)}.",
        )
    return normalized


class BookingService:
    def __init__(self, db: Session, catalog: CatalogClient):
        self.db = db
        self.catalog = catalog

    # Writes

    def create_booking(
        self,
        garage_id: int,
        automobile_id: int,
        service_id: int,
        reserved_at: datetime,
        notes: str | None = None,
    ) -> BookingView:
        """Create a pending booking once the car, garage and service are verified."""
        car = self.db.get(Car, automobile_id)
        if car is None:
            raise NotFound(code=ErrorCode.CAR_NOT_FOUND, message="Car not found.")

        garage = self.catalog.get_garage(garage_id)
        if not garage.available:
            raise NotFound(
                code=ErrorCode.GARAGE_UNAVAILABLE,
                message="Garage unavailable.",
            )

        service = self.catalog.get_service(service_id)
        if not service.available:
            raise NotFound(
                code=ErrorCode.SERVICE_UNAVAILABLE,
                message="Service unavailable.",
            )

        reserved_at = normalize_instant(reserved_at)
        if self._slot_taken(garage_id, reserved_at):
            raise Conflict(code=ErrorCode.SLOT_CONFLICT, message=SLOT_TAKEN_MESSAGE)

        booking = Booking(
            garage_id=garage_id,
            garage_name=garage.get("name") or f"Garage {garage_id}",
            garage_address=garage.get("address") or f"Garage numéro {garage_id}",
            service_id=service_id,
            automobile_id=car.id,
            user_id=car.user_id,
            reserved_at=reserved_at,
            status=DEFAULT_BOOKING_STATUS,
            notes=notes,
        )
        self._commit_booking(booking, add=True)

        logger.info(
            "Booking created",
            extra={
                "booking_id": booking.id,
                "garage_id": garage_id,
                "automobile_id": automobile_id,
            },
        )
        return BookingView(
            booking=booking,
            car=car,
            owner=car.owner,
            garage=garage.payload,
            service=service.payload,
            external_data_available=True,
        )

    def update_booking(
        self,
        booking_id: int,
        reserved_at: datetime | None = None,
        status: str | None = None,
        notes: str | None = None,
    ) -> BookingView:
        """Apply a partial update; any of the four statuses may follow any other."""
        if reserved_at is None and status is None and notes is None:
            raise ValidationFailed(
                code=ErrorCode.VALIDATION_ERROR,
                message="No valid field to update.",
            )
        if status is not None:
            status = validate_status(status)

        booking = self._get_row(booking_id)

        if reserved_at is not None:
            reserved_at = normalize_instant(reserved_at)
            if self._slot_taken(booking.garage_id, reserved_at, exclude_id=booking.id):
                raise Conflict(code=ErrorCode.SLOT_CONFLICT, message=SLOT_TAKEN_MESSAGE)
            booking.reserved_at = reserved_at
        if status is not None:
            booking.status = status
        if notes is not None:
            booking.notes = notes
        booking.updated_at = datetime.now(timezone.utc)

        self._commit_booking(booking)
        logger.info("Booking updated", extra={"booking_id": booking.id, "status": booking.status})
        return self.get_booking(booking.id)

    def delete_booking(self, booking_id: int) -> dict[str, Any]:
        booking = self._get_row(booking_id)
        snapshot = row_snapshot(booking)
        try:
            self.db.delete(booking)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info("Booking deleted", extra={"booking_id": booking_id})
        return snapshot

    # Reads

    def get_booking(self, booking_id: int) -> BookingView:
        booking = self.db.scalar(self._base_query().where(Booking.id == booking_id))
        if booking is None:
            raise NotFound(code=ErrorCode.BOOKING_NOT_FOUND, message="Booking not found.")
        return self._enrich([booking])[0]

    def list_bookings(
        self,
        filters: BookingFilters,
        page: PageRequest = PageRequest(),
    ) -> Page[BookingView]:
        conditions = self._conditions(filters)

        total = self.db.scalar(
            select(func.count(Booking.id))
            .select_from(Booking)
            .outerjoin(Car, Booking.automobile_id == Car.id)
            .outerjoin(User, Car.user_id == User.id)
            .where(*conditions)
        ) or 0

        bookings = self.db.scalars(
            self._base_query()
            .where(*conditions)
            .order_by(Booking.reserved_at.desc(), Booking.id.desc())
            .limit(page.limit)
            .offset(page.offset)
        ).all()

        return Page(items=self._enrich(list(bookings)), total=int(total), request=page)

    def list_for_user(
        self,
        user_id: int,
        status: str | None = None,
        upcoming: bool = False,
    ) -> list[BookingView]:
        filters = BookingFilters(user_id=user_id, status=status, upcoming=upcoming)
        return self._list_ascending(filters)

    def list_for_garage(
        self,
        garage_id: int,
        status: str | None = None,
        on_date: date | None = None,
    ) -> list[BookingView]:
        filters = BookingFilters(garage_id=garage_id, status=status, on_date=on_date)
        return self._list_ascending(filters)

    def list_by_status(self, status: str) -> list[BookingView]:
        return self._list_ascending(BookingFilters(status=validate_status(status)))

    def stats(self, user_id: int | None = None, garage_id: int | None = None) -> BookingStats:
        """Status counts, recent-activity windows and a 30-day breakdown per day and status."""
        scope: list[ColumnElement[bool]] = []
        if user_id is not None:
            scope.append(Booking.user_id == user_id)
        elif garage_id is not None:
            scope.append(Booking.garage_id == garage_id)

        result = BookingStats()
        rows = self.db.execute(
            select(Booking.status, func.count(Booking.id))
            .where(*scope)
            .group_by(Booking.status)
        ).all()
        for status, count in rows:
            result.total += count
            if status in result.by_status:
                result.by_status[status] = count

        today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        result.today = self._count(
            *scope,
            Booking.reserved_at >= today_start,
            Booking.reserved_at < today_start + timedelta(days=1),
        )
        result.last_7_days = self._count(*scope, Booking.reserved_at >= today_start - timedelta(days=7))
        result.last_30_days = self._count(*scope, Booking.reserved_at >= today_start - timedelta(days=30))
        result.daily_breakdown = self._daily_breakdown(scope, since=today_start - timedelta(days=30))
        return result

    # Internals

    def _base_query(self):
        return (
            select(Booking)
            .outerjoin(Booking.car)
            .outerjoin(Car.owner)
            .options(contains_eager(Booking.car).contains_eager(Car.owner))
        )

    def _conditions(self, filters: BookingFilters) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        if filters.user_id is not None:
            conditions.append(Booking.user_id == filters.user_id)
        if filters.garage_id is not None:
            conditions.append(Booking.garage_id == filters.garage_id)
        if filters.service_id is not None:
            conditions.append(Booking.service_id == filters.service_id)
        if filters.status is not None:
            conditions.append(Booking.status == validate_status(filters.status))
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            conditions.append(
                or_(
                    Booking.garage_name.ilike(pattern),
                    User.name.ilike(pattern),
                    Car.mark.ilike(pattern),
                    Car.matricule.ilike(pattern),
                )
            )
        if filters.upcoming:
            conditions.append(Booking.reserved_at > datetime.now(timezone.utc))
        if filters.on_date is not None:
            day_start = datetime.combine(filters.on_date, datetime.min.time(), tzinfo=timezone.utc)
            conditions.append(Booking.reserved_at >= day_start)
            conditions.append(Booking.reserved_at < day_start + timedelta(days=1))
        return conditions

    def _list_ascending(self, filters: BookingFilters) -> list[BookingView]:
        bookings = self.db.scalars(
            self._base_query()
            .where(*self._conditions(filters))
            .order_by(Booking.reserved_at.asc(), Booking.id.asc())
        ).all()
        return self._enrich(list(bookings))

    def _count(self, *conditions: ColumnElement[bool]) -> int:
        return int(
            self.db.scalar(select(func.count(Booking.id)).where(*conditions)) or 0
        )

    def _daily_breakdown(self, scope: list[ColumnElement[bool]], since: datetime) -> list[DailyCount]:
        day = func.date(Booking.reserved_at, type_=Date)
        rows = self.db.execute(
            select(day, Booking.status, func.count(Booking.id))
            .where(*scope, Booking.reserved_at >= since)
            .group_by(day, Booking.status)
            .order_by(day.desc(), Booking.status.asc())
        ).all()
        return [DailyCount(day=row_day, status=status, count=count) for row_day, status, count in rows]

    def _slot_taken(
        self,
        garage_id: int,
        reserved_at: datetime,
        exclude_id: int | None = None,
    ) -> bool:
        query = (
            select(Booking.id)
            .where(Booking.garage_id == garage_id)
            .where(Booking.reserved_at == reserved_at)
        )
        if exclude_id is not None:
            query = query.where(Booking.id != exclude_id)
        return self.db.scalar(query.limit(1)) is not None

    def _get_row(self, booking_id: int) -> Booking:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFound(code=ErrorCode.BOOKING_NOT_FOUND, message="Booking not found.")
        return booking

    def _commit_booking(self, booking: Booking, add: bool = False) -> None:
        """Commit; the unique slot index settles races the pre-check cannot see."""
        try:
            if add:
                self.db.add(booking)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                "Slot already taken at commit",
                extra={"garage_id": booking.garage_id},
            )
            raise Conflict(code=ErrorCode.SLOT_CONFLICT, message=SLOT_TAKEN_MESSAGE)
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(booking)

    def _lookup(self, task: tuple[str, int]) -> CatalogLookup:
        kind, remote_id = task
        if kind == "garage":
            return self.catalog.get_garage(remote_id)
        return self.catalog.get_service(remote_id)

    def _enrich(self, bookings: list[Booking]) -> list[BookingView]:
        """Merge catalog data into each row; a failed lookup only degrades its own row."""
        garage_ids = list(dict.fromkeys(b.garage_id for b in bookings))
        service_ids = list(dict.fromkeys(b.service_id for b in bookings))
        tasks = [("garage", gid) for gid in garage_ids] + [("service", sid) for sid in service_ids]

        results = self.catalog.fan_out(tasks, self._lookup)
        garages = dict(zip(garage_ids, results[: len(garage_ids)]))
        services = dict(zip(service_ids, results[len(garage_ids):]))

        views = []
        for booking in bookings:
            garage = garages[booking.garage_id]
            service = services[booking.service_id]
            views.append(
                BookingView(
                    booking=booking,
                    car=booking.car,
                    owner=booking.car.owner if booking.car is not None else None,
                    garage=garage.payload if garage.available else {
                        "id": booking.garage_id,
                        "name": booking.garage_name,
                        "address": booking.garage_address,
                    },
                    service=service.payload,
                    external_data_available=garage.available and service.available,
                )
            )
        return views
