"""Catalog lookup and geo search routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, selectinload

from garage_broker.catalog.models import Garage, Service
from garage_broker.catalog.search import (
    DEFAULT_BOUNDS_LIMIT,
    DEFAULT_NEARBY_LIMIT,
    NEIGHBOUR_LIMIT,
    GarageSearch,
)
from garage_broker.core.domain_exceptions import NotFound
from garage_broker.core.error_codes import ErrorCode
from garage_broker.db.session import get_db
from garage_broker.geo import (
    DEFAULT_NEAREST_LIMIT,
    DEFAULT_RADIUS_KM,
    BoundingBox,
    GeoPoint,
)
from garage_broker.schemas.catalog import (
    CategoryRead,
    GarageDocument,
    GarageHitRead,
    GarageRead,
    ScopedSearchResults,
    SearchResults,
    ServiceDocument,
    ServiceRead,
    SubcategoryRead,
)

garages_router = APIRouter(prefix="/garages", tags=["garages"])
services_router = APIRouter(prefix="/services", tags=["services"])
search_router = APIRouter(prefix="/search", tags=["search"])


def _results(hits, model: type[SearchResults] = SearchResults, **scope) -> SearchResults:
    return model(count=len(hits), garages=[GarageHitRead.from_hit(hit) for hit in hits], **scope)


@garages_router.get("/{garage_id}", response_model=GarageDocument)
def get_garage(garage_id: int, db: Session = Depends(get_db)):
    garage = db.get(
        Garage,
        garage_id,
        options=[selectinload(Garage.category), selectinload(Garage.subcategories)],
    )
    if garage is None:
        raise NotFound(code=ErrorCode.GARAGE_NOT_FOUND, message="Garage not found.")
    return GarageDocument(garage=GarageRead.model_validate(garage))


@garages_router.get("/{garage_id}/nearby", response_model=SearchResults)
def get_neighbours(
    garage_id: int,
    limit: int = Query(NEIGHBOUR_LIMIT, ge=1, le=20),
    db: Session = Depends(get_db),
):
    return _results(GarageSearch(db).neighbours(garage_id, limit=limit))


@garages_router.get(
    "/subcategory/{subcategory_id}/location/{latitude}/{longitude}/{radius_zone}",
    response_model=ScopedSearchResults,
)
def search_by_subcategory(
    subcategory_id: int,
    latitude: float,
    longitude: float,
    radius_zone: float,
    limit: int = Query(DEFAULT_NEARBY_LIMIT, ge=1, le=100),
    category_id: int | None = Query(None, alias="categoryId"),
    db: Session = Depends(get_db),
):
    subcategory, hits = GarageSearch(db).by_subcategory(
        subcategory_id,
        GeoPoint(latitude, longitude),
        radius_km=radius_zone,
        limit=limit,
        category_id=category_id,
    )
    return _results(hits, ScopedSearchResults, subcategory=SubcategoryRead.model_validate(subcategory))


@garages_router.get(
    "/category/{category_id}/location/{latitude}/{longitude}/{radius_zone}",
    response_model=ScopedSearchResults,
)
def search_by_category(
    category_id: int,
    latitude: float,
    longitude: float,
    radius_zone: float,
    limit: int = Query(DEFAULT_NEARBY_LIMIT, ge=1, le=100),
    subcategory_id: int | None = Query(None, alias="subcategoryId"),
    db: Session = Depends(get_db),
):
    category, hits = GarageSearch(db).by_category(
        category_id,
        GeoPoint(latitude, longitude),
        radius_km=radius_zone,
        limit=limit,
        subcategory_id=subcategory_id,
    )
    return _results(hits, ScopedSearchResults, category=CategoryRead.model_validate(category))


@services_router.get("/{service_id}", response_model=ServiceDocument)
def get_service(service_id: int, db: Session = Depends(get_db)):
    service = db.get(Service, service_id)
    if service is None:
        raise NotFound(code=ErrorCode.SERVICE_NOT_FOUND, message="Service not found.")
    return ServiceDocument(service=ServiceRead.model_validate(service))


@search_router.get("/nearby", response_model=SearchResults)
def search_nearby(
    lat: float,
    lng: float,
    radius: float = DEFAULT_RADIUS_KM,
    limit: int = Query(DEFAULT_NEARBY_LIMIT, ge=1, le=100),
    category_id: int | None = Query(None, alias="categoryId"),
    subcategory_id: int | None = Query(None, alias="subcategoryId"),
    db: Session = Depends(get_db),
):
    hits = GarageSearch(db).nearby(
        GeoPoint(lat, lng),
        radius_km=radius,
        limit=limit,
        category_id=category_id,
        subcategory_id=subcategory_id,
    )
    return _results(hits)


@search_router.get("/nearest", response_model=SearchResults)
def search_nearest(
    lat: float,
    lng: float,
    limit: int = DEFAULT_NEAREST_LIMIT,
    category_id: int | None = Query(None, alias="categoryId"),
    subcategory_id: int | None = Query(None, alias="subcategoryId"),
    db: Session = Depends(get_db),
):
    hits = GarageSearch(db).nearest(
        GeoPoint(lat, lng),
        limit=limit,
        category_id=category_id,
        subcategory_id=subcategory_id,
    )
    return _results(hits)


@search_router.get("/bounds", response_model=SearchResults)
def search_bounds(
    north_lat: float,
    south_lat: float,
    east_lng: float,
    west_lng: float,
    limit: int = Query(DEFAULT_BOUNDS_LIMIT, ge=1, le=200),
    category_id: int | None = Query(None, alias="categoryId"),
    subcategory_id: int | None = Query(None, alias="subcategoryId"),
    db: Session = Depends(get_db),
):
    box = BoundingBox(north=north_lat, south=south_lat, east=east_lng, west=west_lng)
    hits = GarageSearch(db).in_bounds(
        box,
        limit=limit,
        category_id=category_id,
        subcategory_id=subcategory_id,
    )
    return _results(hits)
