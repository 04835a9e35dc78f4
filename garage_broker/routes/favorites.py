from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from garage_broker.db.session import get_db
from garage_broker.geo import DEFAULT_RADIUS_KM, GeoPoint
from garage_broker.schemas.common import APIResponse
from garage_broker.schemas.favorite import (
    FavoriteCheckResponse,
    FavoriteCreate,
    FavoriteDetail,
    FavoritePage,
    FavoritePagination,
    FavoriteRead,
    NearbyFavorite,
    ToggleResponse,
)
from garage_broker.services.catalog_client import CatalogClient, get_catalog_client
from garage_broker.services.favorite_service import TOGGLE_ADDED, FavoriteService
from garage_broker.services.pagination import Page, PageRequest

router = APIRouter(prefix="/favorites", tags=["favorites"])


def get_favorite_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> FavoriteService:
    return FavoriteService(db=db, catalog=catalog)


def _favorite_page(result: Page) -> FavoritePage:
    return FavoritePage(
        favorites=[FavoriteDetail.from_view(view) for view in result.items],
        pagination=FavoritePagination(
            current_page=result.request.page,
            total_pages=result.total_pages,
            total_favorites=result.total,
            has_next=result.has_next,
            has_prev=result.has_prev,
        ),
    )


@router.post("/", status_code=201, response_model=APIResponse[FavoriteDetail])
def add_favorite(
    payload: FavoriteCreate,
    service: FavoriteService = Depends(get_favorite_service),
):
    view = service.add_favorite(garage_id=payload.garage_id, automobile_id=payload.automobile_id)
    return APIResponse(
        success=True,
        message="Garage added to favorites.",
        data=FavoriteDetail.from_view(view),
    )


@router.post("/toggle", response_model=APIResponse[ToggleResponse])
def toggle_favorite(
    payload: FavoriteCreate,
    response: Response,
    service: FavoriteService = Depends(get_favorite_service),
):
    result = service.toggle(garage_id=payload.garage_id, automobile_id=payload.automobile_id)
    added = result.action == TOGGLE_ADDED
    response.status_code = 201 if added else 200

    return APIResponse(
        success=True,
        message="Garage added to favorites." if added else "Garage removed from favorites.",
        data=ToggleResponse(
            action=result.action,
            favorite=FavoriteRead.model_validate(result.favorite),
        ),
    )


@router.get("/", response_model=APIResponse[FavoritePage])
def list_favorites(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    garage_id: int | None = Query(None, alias="garageId"),
    service: FavoriteService = Depends(get_favorite_service),
):
    result = service.list_all(PageRequest(page=page, limit=limit), garage_id=garage_id)
    return APIResponse(success=True, data=_favorite_page(result))


@router.get("/user/{user_id}", response_model=APIResponse[FavoritePage])
def list_user_favorites(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    service: FavoriteService = Depends(get_favorite_service),
):
    result = service.list_for_user(user_id, PageRequest(page=page, limit=limit))
    return APIResponse(success=True, data=_favorite_page(result))


@router.get("/user/{user_id}/nearby", response_model=APIResponse[list[NearbyFavorite]])
def list_user_favorites_nearby(
    user_id: int,
    lat: float,
    lng: float,
    radius: float = DEFAULT_RADIUS_KM,
    limit: int | None = Query(None, ge=1, le=100),
    service: FavoriteService = Depends(get_favorite_service),
):
    ranked = service.nearby_for_user(user_id, GeoPoint(lat, lng), radius_km=radius, limit=limit)
    return APIResponse(
        success=True,
        data=[
            NearbyFavorite.from_view(entry.item, distance_km=round(entry.distance_km, 3))
            for entry in ranked
        ],
    )


@router.get("/check/{garage_id}/{automobile_id}", response_model=APIResponse[FavoriteCheckResponse])
def check_favorite(
    garage_id: int,
    automobile_id: int,
    service: FavoriteService = Depends(get_favorite_service),
):
    view = service.check(garage_id, automobile_id)
    return APIResponse(
        success=True,
        data=FavoriteCheckResponse(
            is_favorite=view is not None,
            favorite=FavoriteDetail.from_view(view) if view is not None else None,
        ),
    )


@router.delete("/{favorite_id}", response_model=APIResponse[FavoriteRead])
def delete_favorite(
    favorite_id: int,
    user_id: int | None = Query(None, alias="userId"),
    automobile_id: int | None = Query(None, alias="automobileId"),
    service: FavoriteService = Depends(get_favorite_service),
):
    deleted = service.delete_favorite(favorite_id, user_id=user_id, automobile_id=automobile_id)
    return APIResponse(
        success=True,
        message="Favorite deleted.",
        data=FavoriteRead.model_validate(deleted),
    )
