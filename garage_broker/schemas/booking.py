from datetime import date, datetime
from typing import Any

from pydantic import Field

from garage_broker.schemas.common import CamelModel, PageInfo


class CarSummary(CamelModel):
    id: int
    mark: str
    model: str | None = None
    matricule: str
    year: int | None = None


class OwnerSummary(CamelModel):
    id: int
    name: str
    email: str
    phone: str | None = None


class BookingCreate(CamelModel):
    garage_id: int = Field(gt=0)
    service_id: int = Field(gt=0)
    automobile_id: int = Field(gt=0)
    reserved_at: datetime
    notes: str | None = None


class BookingUpdate(CamelModel):
    reserved_at: datetime | None = None
    status: str | None = None
    notes: str | None = None


class BookingRead(CamelModel):
    id: int
    garage_id: int
    garage_name: str | None = None
    garage_address: str | None = None
    service_id: int
    automobile_id: int
    user_id: int | None = None
    reserved_at: datetime
    status: str
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BookingDetail(BookingRead):
    """A booking with its car, owner and catalog documents."""

    car: CarSummary | None = None
    owner: OwnerSummary | None = None
    garage: dict[str, Any]
    service: dict[str, Any] | None = None
    external_data_available: bool

    @classmethod
    def from_view(cls, view) -> "BookingDetail":
        return cls(
            **BookingRead.model_validate(view.booking).model_dump(),
            car=CarSummary.model_validate(view.car) if view.car is not None else None,
            owner=OwnerSummary.model_validate(view.owner) if view.owner is not None else None,
            garage=view.garage,
            service=view.service,
            external_data_available=view.external_data_available,
        )


class BookingPagination(PageInfo):
    total_bookings: int


class BookingPage(CamelModel):
    bookings: list[BookingDetail]
    pagination: BookingPagination


class DailyBookingCount(CamelModel):
    day: date
    status: str
    count: int


class BookingStatsResponse(CamelModel):
    total: int
    by_status: dict[str, int]
    today: int
    last_7_days: int
    last_30_days: int
    daily_breakdown: list[DailyBookingCount] = Field(default_factory=list)
