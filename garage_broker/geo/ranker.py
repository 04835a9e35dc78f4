"""In-memory proximity ranking over candidates that carry coordinates."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Final, Generic, TypeVar

from garage_broker.core.domain_exceptions import ValidationFailed
from garage_broker.core.error_codes import ErrorCode
from garage_broker.geo.distance import BoundingBox, GeoPoint, great_circle_km

T = TypeVar("T")

DEFAULT_RADIUS_KM: Final[float] = 10.0
DEFAULT_NEAREST_LIMIT: Final[int] = 5
MAX_NEAREST_LIMIT: Final[int] = 20

Locator = Callable[[Any], tuple[float | None, float | None]]


def attribute_locator(candidate: Any) -> tuple[float | None, float | None]:
    """Read `latitude`/`longitude` from an object or a mapping."""
    if isinstance(candidate, dict):
        return _as_float(candidate.get("latitude")), _as_float(candidate.get("longitude"))
    return (
        _as_float(getattr(candidate, "latitude", None)),
        _as_float(getattr(candidate, "longitude", None)),
    )


def _as_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Ranked(Generic[T]):
    item: T
    distance_km: float


def validate_radius(radius_km: float) -> float:
    if radius_km <= 0:
        raise ValidationFailed(
            code=ErrorCode.VALIDATION_ERROR,
            message="Radius must be a positive number.",
        )
    return radius_km


def validate_nearest_limit(limit: int) -> int:
    if not 1 <= limit <= MAX_NEAREST_LIMIT:
        raise ValidationFailed(
            code=ErrorCode.VALIDATION_ERROR,
            message=f"Limit must be between 1 and {MAX_NEAREST_LIMIT}.",
        )
    return limit


class ProximityRanker:
    """Orders candidates by great-circle distance from a reference point.

    Candidates without both coordinates are dropped before any ranking. The
    ranker holds no state besides the locator, so one instance can be shared.
    """

    def __init__(self, locate: Locator = attribute_locator):
        self._locate = locate

    def _measure(self, origin: GeoPoint, candidates: Iterable[T]) -> list[Ranked[T]]:
        measured = []
        for candidate in candidates:
            latitude, longitude = self._locate(candidate)
            if latitude is None or longitude is None:
                continue
            measured.append(Ranked(candidate, great_circle_km(origin, latitude, longitude)))
        # sorted() is stable: equal distances keep their input order.
        return sorted(measured, key=lambda ranked: ranked.distance_km)

    def within_radius(
        self,
        origin: GeoPoint,
        candidates: Iterable[T],
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Ranked[T]]:
        validate_radius(radius_km)
        inside = [r for r in self._measure(origin, candidates) if r.distance_km <= radius_km]
        end = None if limit is None else offset + limit
        return inside[offset:end]

    def nearest(
        self,
        origin: GeoPoint,
        candidates: Iterable[T],
        limit: int = DEFAULT_NEAREST_LIMIT,
        max_distance_km: float | None = None,
    ) -> list[Ranked[T]]:
        validate_nearest_limit(limit)
        ranked = self._measure(origin, candidates)
        if max_distance_km is not None:
            ranked = [r for r in ranked if r.distance_km <= validate_radius(max_distance_km)]
        return ranked[:limit]

    def in_bounds(self, box: BoundingBox, candidates: Iterable[T]) -> list[T]:
        return [c for c in candidates if box.contains(*self._locate(c))]
