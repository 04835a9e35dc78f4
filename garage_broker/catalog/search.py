"""Relational proximity search over catalog garages.

Distances are computed in SQL with `great_circle_sql`; every distance query
excludes garages with a NULL coordinate before filtering or ordering.
"""

from dataclasses import dataclass
from typing import Final

from sqlalchemy import ColumnElement, Select, and_, func, select
from sqlalchemy.orm import Session, selectinload

from garage_broker.catalog.models import Category, Garage, Service, Subcategory
from garage_broker.core.domain_exceptions import NotFound
from garage_broker.core.error_codes import ErrorCode
from garage_broker.geo import (
    DEFAULT_NEAREST_LIMIT,
    DEFAULT_RADIUS_KM,
    BoundingBox,
    GeoPoint,
    great_circle_sql,
)
from garage_broker.geo.ranker import validate_nearest_limit, validate_radius

DEFAULT_NEARBY_LIMIT: Final[int] = 20
DEFAULT_BOUNDS_LIMIT: Final[int] = 50
NEIGHBOUR_LIMIT: Final[int] = 5


@dataclass(frozen=True)
class GarageHit:
    garage: Garage
    distance_km: float | None = None
    services_count: int = 0


def _has_coordinates() -> ColumnElement[bool]:
    return and_(Garage.latitude.is_not(None), Garage.longitude.is_not(None))


def _bookable() -> ColumnElement[bool]:
    return and_(Garage.is_available.is_(True), Garage.capacity > 0)


def _services_count() -> ColumnElement[int]:
    return (
        select(func.count(Service.id))
        .where(Service.garage_id == Garage.id)
        .correlate(Garage)
        .scalar_subquery()
    )


def _scoped(query: Select, category_id: int | None, subcategory_id: int | None) -> Select:
    if category_id is not None:
        query = query.where(Garage.category_id == category_id)
    if subcategory_id is not None:
        # EXISTS over garage_subcategories, so a garage is never repeated.
        query = query.where(Garage.subcategories.any(Subcategory.id == subcategory_id))
    return query


def _with_labels(query: Select) -> Select:
    return query.options(selectinload(Garage.category), selectinload(Garage.subcategories))


class GarageSearch:
    def __init__(self, db: Session):
        self.db = db

    def nearby(
        self,
        origin: GeoPoint,
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int = DEFAULT_NEARBY_LIMIT,
        category_id: int | None = None,
        subcategory_id: int | None = None,
    ) -> list[GarageHit]:
        """Bookable garages within `radius_km`, closest first."""
        validate_radius(radius_km)
        distance = great_circle_sql(Garage.latitude, Garage.longitude, origin)
        query = (
            self._ranked_query(distance, category_id, subcategory_id)
            .where(distance <= radius_km)
            .limit(limit)
        )
        return self._hits(query)

    def nearest(
        self,
        origin: GeoPoint,
        limit: int = DEFAULT_NEAREST_LIMIT,
        category_id: int | None = None,
        subcategory_id: int | None = None,
    ) -> list[GarageHit]:
        """The `limit` closest bookable garages, without a radius."""
        validate_nearest_limit(limit)
        distance = great_circle_sql(Garage.latitude, Garage.longitude, origin)
        return self._hits(self._ranked_query(distance, category_id, subcategory_id).limit(limit))

    def in_bounds(
        self,
        box: BoundingBox,
        limit: int = DEFAULT_BOUNDS_LIMIT,
        category_id: int | None = None,
        subcategory_id: int | None = None,
    ) -> list[GarageHit]:
        """Garages inside the box, by name, tagged with their service count."""
        query = _with_labels(
            select(Garage, _services_count().label("services_count"))
            .where(Garage.capacity > 0)
            .where(Garage.latitude.between(box.south, box.north))
            .where(Garage.longitude.between(box.west, box.east))
        )
        query = _scoped(query, category_id, subcategory_id)

        rows = self.db.execute(query.order_by(Garage.name.asc(), Garage.id.asc()).limit(limit)).all()
        return [GarageHit(garage=garage, services_count=int(count or 0)) for garage, count in rows]

    def by_subcategory(
        self,
        subcategory_id: int,
        origin: GeoPoint,
        radius_km: float,
        limit: int = DEFAULT_NEARBY_LIMIT,
        category_id: int | None = None,
    ) -> tuple[Subcategory, list[GarageHit]]:
        """Nearby bookable garages offering one subcategory."""
        validate_radius(radius_km)
        subcategory = self.db.get(Subcategory, subcategory_id)
        if subcategory is None:
            raise NotFound(code=ErrorCode.SUBCATEGORY_NOT_FOUND, message="Subcategory not found.")

        hits = self.nearby(
            origin,
            radius_km=radius_km,
            limit=limit,
            category_id=category_id,
            subcategory_id=subcategory_id,
        )
        return subcategory, hits

    def by_category(
        self,
        category_id: int,
        origin: GeoPoint,
        radius_km: float,
        limit: int = DEFAULT_NEARBY_LIMIT,
        subcategory_id: int | None = None,
    ) -> tuple[Category, list[GarageHit]]:
        """Nearby bookable garages of one category, optionally narrowed to a subcategory."""
        validate_radius(radius_km)
        category = self.db.get(Category, category_id)
        if category is None:
            raise NotFound(code=ErrorCode.CATEGORY_NOT_FOUND, message="Category not found.")

        hits = self.nearby(
            origin,
            radius_km=radius_km,
            limit=limit,
            category_id=category_id,
            subcategory_id=subcategory_id,
        )
        return category, hits

    def neighbours(self, garage_id: int, limit: int = NEIGHBOUR_LIMIT) -> list[GarageHit]:
        """The closest other available garages to a catalog garage."""
        garage = self.db.get(Garage, garage_id)
        if garage is None:
            raise NotFound(code=ErrorCode.GARAGE_NOT_FOUND, message="Garage not found.")
        if garage.latitude is None or garage.longitude is None:
            return []

        origin = GeoPoint(garage.latitude, garage.longitude)
        distance = great_circle_sql(Garage.latitude, Garage.longitude, origin)
        query = (
            self._ranked_query(distance)
            .where(Garage.id != garage_id)
            .limit(limit)
        )
        return self._hits(query)

    def _ranked_query(
        self,
        distance: ColumnElement[float],
        category_id: int | None = None,
        subcategory_id: int | None = None,
    ) -> Select:
        query = _with_labels(
            select(Garage, distance.label("distance_km"), _services_count().label("services_count"))
            .where(_has_coordinates())
            .where(_bookable())
        )
        query = _scoped(query, category_id, subcategory_id)
        return query.order_by(distance.asc(), Garage.id.asc())

    def _hits(self, query: Select) -> list[GarageHit]:
        return [
            GarageHit(garage=garage, distance_km=float(distance_km), services_count=int(count or 0))
            for garage, distance_km, count in self.db.execute(query).all()
        ]
