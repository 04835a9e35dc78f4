"""Favorite garages of a car.

The edge itself is local and authoritative; the catalog is consulted to
verify a garage when a favorite is added and to decorate listings. Listings
never fail on the catalog: a garage that no longer resolves is rendered as a
placeholder document.
"""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from garage_broker.core.domain_exceptions import Conflict, NotFound
from garage_broker.core.error_codes import ErrorCode
from garage_broker.db.models import Car, Favorite, User
from garage_broker.geo import DEFAULT_RADIUS_KM, GeoPoint, ProximityRanker, Ranked
from garage_broker.services.catalog_client import CatalogClient
from garage_broker.services.pagination import Page, PageRequest, row_snapshot

logger = logging.getLogger(__name__)

TOGGLE_ADDED = "added"
TOGGLE_REMOVED = "removed"

ALREADY_FAVORITE_MESSAGE = "This garage is already in the favorites."


def unavailable_garage(garage_id: int) -> dict[str, Any]:
    return {
        "id": garage_id,
        "name": "Garage indisponible",
        "address": "N/A",
        "available": False,
    }


@dataclass
class FavoriteView:
    favorite: Favorite
    car: Car | None
    owner: User | None
    garage: dict[str, Any] | None = None


@dataclass
class ToggleResult:
    action: str
    favorite: dict[str, Any]


class FavoriteService:
    def __init__(self, db: Session, catalog: CatalogClient):
        self.db = db
        self.catalog = catalog
        self.ranker = ProximityRanker(locate=lambda view: _garage_coordinates(view.garage))

    # Writes

    def toggle(self, garage_id: int, automobile_id: int) -> ToggleResult:
        """Remove the favorite when present, add it otherwise."""
        existing = self._find(garage_id, automobile_id)
        if existing is not None:
            snapshot = row_snapshot(existing)
            self._delete(existing)
            logger.info(
                "Favorite removed",
                extra={"garage_id": garage_id, "automobile_id": automobile_id},
            )
            return ToggleResult(action=TOGGLE_REMOVED, favorite=snapshot)

        car = self._require_car(automobile_id)
        self._require_garage(garage_id)
        favorite = self._insert(garage_id, car)
        return ToggleResult(action=TOGGLE_ADDED, favorite=row_snapshot(favorite))

    def add_favorite(self, garage_id: int, automobile_id: int) -> FavoriteView:
        """Strict add: an existing favorite is a conflict, not a no-op."""
        car = self._require_car(automobile_id)
        garage = self._require_garage(garage_id)

        if self._find(garage_id, automobile_id) is not None:
            raise Conflict(code=ErrorCode.FAVORITE_EXISTS, message=ALREADY_FAVORITE_MESSAGE)

        favorite = self._insert(garage_id, car)
        return FavoriteView(favorite=favorite, car=car, owner=car.owner, garage=garage)

    def delete_favorite(
        self,
        favorite_id: int,
        user_id: int | None = None,
        automobile_id: int | None = None,
    ) -> dict[str, Any]:
        """Delete by id, restricted to the given owner when one is supplied."""
        query = select(Favorite).where(Favorite.id == favorite_id)
        if user_id is not None:
            query = query.where(Favorite.user_id == user_id)
        if automobile_id is not None:
            query = query.where(Favorite.automobile_id == automobile_id)

        favorite = self.db.scalar(query)
        if favorite is None:
            raise NotFound(
                code=ErrorCode.FAVORITE_NOT_FOUND,
                message="Favorite not found or not owned by the caller.",
            )

        snapshot = row_snapshot(favorite)
        self._delete(favorite)
        logger.info("Favorite deleted", extra={"favorite_id": favorite_id})
        return snapshot

    # Reads

    def check(self, garage_id: int, automobile_id: int) -> FavoriteView | None:
        """Local-only existence check."""
        favorite = self.db.scalar(
            self._base_query()
            .where(Favorite.garage_id == garage_id)
            .where(Favorite.automobile_id == automobile_id)
        )
        if favorite is None:
            return None
        return self._view(favorite)

    def list_for_user(self, user_id: int, page: PageRequest = PageRequest(limit=10)) -> Page[FavoriteView]:
        """All favorites across the user's cars, decorated with catalog data."""
        self._require_user(user_id)
        total = self.db.scalar(
            select(func.count(Favorite.id)).where(Favorite.user_id == user_id)
        ) or 0

        favorites = self.db.scalars(
            self._base_query()
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.liked_at.desc(), Favorite.id.desc())
            .limit(page.limit)
            .offset(page.offset)
        ).all()

        return Page(items=self._enrich(list(favorites)), total=int(total), request=page)

    def list_all(
        self,
        page: PageRequest = PageRequest(limit=10),
        garage_id: int | None = None,
    ) -> Page[FavoriteView]:
        query = self._base_query()
        count_query = select(func.count(Favorite.id))
        if garage_id is not None:
            query = query.where(Favorite.garage_id == garage_id)
            count_query = count_query.where(Favorite.garage_id == garage_id)

        total = self.db.scalar(count_query) or 0
        favorites = self.db.scalars(
            query.order_by(Favorite.liked_at.desc(), Favorite.id.desc())
            .limit(page.limit)
            .offset(page.offset)
        ).all()
        return Page(
            items=[self._view(favorite) for favorite in favorites],
            total=int(total),
            request=page,
        )

    def nearby_for_user(
        self,
        user_id: int,
        origin: GeoPoint,
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int | None = None,
    ) -> list[Ranked[FavoriteView]]:
        """Rank the user's favorite garages by distance from `origin`.

        Garages the catalog cannot resolve carry no coordinates and drop out.
        """
        self._require_user(user_id)
        favorites = self.db.scalars(
            self._base_query()
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.liked_at.desc(), Favorite.id.desc())
        ).all()
        views = self._enrich(list(favorites))

        return self.ranker.within_radius(origin, views, radius_km=radius_km, limit=limit)

    # Internals

    def _base_query(self):
        return (
            select(Favorite)
            .outerjoin(Favorite.car)
            .outerjoin(Car.owner)
            .options(contains_eager(Favorite.car).contains_eager(Car.owner))
        )

    def _view(self, favorite: Favorite, garage: dict[str, Any] | None = None) -> FavoriteView:
        car = favorite.car
        return FavoriteView(
            favorite=favorite,
            car=car,
            owner=car.owner if car is not None else None,
            garage=garage,
        )

    def _enrich(self, favorites: list[Favorite]) -> list[FavoriteView]:
        garage_ids = list(dict.fromkeys(f.garage_id for f in favorites))
        lookups = dict(zip(garage_ids, self.catalog.fan_out(garage_ids, self.catalog.get_garage)))
        views = []
        for favorite in favorites:
            lookup = lookups[favorite.garage_id]
            garage = lookup.payload if lookup.available else unavailable_garage(favorite.garage_id)
            views.append(self._view(favorite, garage))
        return views

    def _find(self, garage_id: int, automobile_id: int) -> Favorite | None:
        return self.db.scalar(
            select(Favorite)
            .where(Favorite.garage_id == garage_id)
            .where(Favorite.automobile_id == automobile_id)
            .with_for_update()
        )

    def _require_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound(code=ErrorCode.USER_NOT_FOUND, message="User not found.")
        return user

    def _require_car(self, automobile_id: int) -> Car:
        car = self.db.get(Car, automobile_id)
        if car is None:
            raise NotFound(code=ErrorCode.CAR_NOT_FOUND, message="Car not found.")
        return car

    def _require_garage(self, garage_id: int) -> dict[str, Any]:
        lookup = self.catalog.get_garage(garage_id)
        if not lookup.available:
            raise NotFound(
                code=ErrorCode.GARAGE_NOT_FOUND,
                message="Garage not found or garage service unavailable.",
            )
        return lookup.payload

    def _insert(self, garage_id: int, car: Car) -> Favorite:
        favorite = Favorite(garage_id=garage_id, automobile_id=car.id, user_id=car.user_id)
        try:
            self.db.add(favorite)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict(code=ErrorCode.FAVORITE_EXISTS, message=ALREADY_FAVORITE_MESSAGE)
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(favorite)
        logger.info(
            "Favorite added",
            extra={"garage_id": garage_id, "automobile_id": car.id},
        )
        return favorite

    def _delete(self, favorite: Favorite) -> None:
        try:
            self.db.delete(favorite)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise


def _garage_coordinates(garage: dict[str, Any] | None) -> tuple[float | None, float | None]:
    if not garage:
        return None, None
    location = garage.get("location") if isinstance(garage.get("location"), dict) else garage
    latitude, longitude = location.get("latitude"), location.get("longitude")
    try:
        return (
            float(latitude) if latitude is not None else None,
            float(longitude) if longitude is not None else None,
        )
    except (TypeError, ValueError):
        return None, None
