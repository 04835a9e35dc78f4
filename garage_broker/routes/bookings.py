from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from garage_broker.db.session import get_db
from garage_broker.schemas.booking import (
    BookingCreate,
    BookingDetail,
    BookingPage,
    BookingPagination,
    BookingRead,
    BookingStatsResponse,
    BookingUpdate,
    DailyBookingCount,
)
from garage_broker.schemas.common import APIResponse
from garage_broker.services.booking_service import BookingFilters, BookingService
from garage_broker.services.catalog_client import CatalogClient, get_catalog_client
from garage_broker.services.pagination import PageRequest

router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_booking_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> BookingService:
    return BookingService(db=db, catalog=catalog)


@router.post("/", status_code=201, response_model=APIResponse[BookingDetail])
def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    view = service.create_booking(
        garage_id=payload.garage_id,
        automobile_id=payload.automobile_id,
        service_id=payload.service_id,
        reserved_at=payload.reserved_at,
        notes=payload.notes,
    )
    return APIResponse(
        success=True,
        message="Booking created.",
        data=BookingDetail.from_view(view),
    )


@router.get("/", response_model=APIResponse[BookingPage])
def list_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: int | None = Query(None, alias="userId"),
    garage_id: int | None = Query(None, alias="garageId"),
    service_id: int | None = Query(None, alias="serviceId"),
    status: str | None = None,
    search: str | None = None,
    service: BookingService = Depends(get_booking_service),
):
    filters = BookingFilters(
        user_id=user_id,
        garage_id=garage_id,
        service_id=service_id,
        status=status,
        search=search,
    )
    result = service.list_bookings(filters, PageRequest(page=page, limit=limit))

    return APIResponse(
        success=True,
        data=BookingPage(
            bookings=[BookingDetail.from_view(view) for view in result.items],
            pagination=BookingPagination(
                current_page=page,
                total_pages=result.total_pages,
                total_bookings=result.total,
                has_next=result.has_next,
                has_prev=result.has_prev,
            ),
        ),
    )


@router.get("/stats", response_model=APIResponse[BookingStatsResponse])
def booking_stats(
    user_id: int | None = Query(None, alias="userId"),
    garage_id: int | None = Query(None, alias="garageId"),
    service: BookingService = Depends(get_booking_service),
):
    stats = service.stats(user_id=user_id, garage_id=garage_id)
    return APIResponse(
        success=True,
        data=BookingStatsResponse(
            total=stats.total,
            by_status=stats.by_status,
            today=stats.today,
            last_7_days=stats.last_7_days,
            last_30_days=stats.last_30_days,
            daily_breakdown=[DailyBookingCount.model_validate(row) for row in stats.daily_breakdown],
        ),
    )


@router.get("/user/{user_id}", response_model=APIResponse[list[BookingDetail]])
def list_user_bookings(
    user_id: int,
    status: str | None = None,
    upcoming: bool = False,
    service: BookingService = Depends(get_booking_service),
):
    views = service.list_for_user(user_id, status=status, upcoming=upcoming)
    return APIResponse(success=True, data=[BookingDetail.from_view(view) for view in views])


@router.get("/garage/{garage_id}", response_model=APIResponse[list[BookingDetail]])
def list_garage_bookings(
    garage_id: int,
    status: str | None = None,
    on_date: date | None = Query(None, alias="date"),
    service: BookingService = Depends(get_booking_service),
):
    views = service.list_for_garage(garage_id, status=status, on_date=on_date)
    return APIResponse(success=True, data=[BookingDetail.from_view(view) for view in views])


@router.get("/status/{status}", response_model=APIResponse[list[BookingDetail]])
def list_bookings_by_status(
    status: str,
    service: BookingService = Depends(get_booking_service),
):
    views = service.list_by_status(status)
    return APIResponse(success=True, data=[BookingDetail.from_view(view) for view in views])


@router.get("/{booking_id}", response_model=APIResponse[BookingDetail])
def get_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return APIResponse(success=True, data=BookingDetail.from_view(service.get_booking(booking_id)))


@router.put("/{booking_id}", response_model=APIResponse[BookingDetail])
def update_booking(
    booking_id: int,
    payload: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
):
    view = service.update_booking(
        booking_id,
        reserved_at=payload.reserved_at,
        status=payload.status,
        notes=payload.notes,
    )
    return APIResponse(
        success=True,
        message="Booking updated.",
        data=BookingDetail.from_view(view),
    )


@router.delete("/{booking_id}", response_model=APIResponse[BookingRead])
def delete_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    deleted = service.delete_booking(booking_id)
    return APIResponse(
        success=True,
        message="Booking deleted.",
        data=BookingRead.model_validate(deleted),
    )
