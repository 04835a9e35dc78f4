"""Great-circle distance, in Python and as a SQL expression.

Both forms use the spherical law of cosines with the earth radius in
kilometres:

    6371 * acos(cos(rad(lat1)) * cos(rad(lat2)) * cos(rad(lng2) - rad(lng1))
                + sin(rad(lat1)) * sin(rad(lat2)))

where (lat1, lng1) is the query point. The cosine is clamped to [-1, 1] so
rounding on identical points cannot push `acos` out of its domain.
"""

import math
from dataclasses import dataclass
from typing import Final

from sqlalchemy import ColumnElement, Float, func, literal

from garage_broker.core.domain_exceptions import ValidationFailed
from garage_broker.core.error_codes import ErrorCode

EARTH_RADIUS_KM: Final[float] = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValidationFailed(
                code=ErrorCode.INVALID_COORDINATES,
                message="Latitude must be between -90 and 90.",
            )
        if not -180 <= self.longitude <= 180:
            raise ValidationFailed(
                code=ErrorCode.INVALID_COORDINATES,
                message="Longitude must be between -180 and 180.",
            )


@dataclass(frozen=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float

    def __post_init__(self) -> None:
        if self.south > self.north:
            raise ValidationFailed(
                code=ErrorCode.INVALID_COORDINATES,
                message="south_lat must not exceed north_lat.",
            )
        if self.west > self.east:
            raise ValidationFailed(
                code=ErrorCode.INVALID_COORDINATES,
                message="west_lng must not exceed east_lng.",
            )

    def contains(self, latitude: float | None, longitude: float | None) -> bool:
        if latitude is None or longitude is None:
            return False
        return self.south <= latitude <= self.north and self.west <= longitude <= self.east


def great_circle_km(origin: GeoPoint, latitude: float, longitude: float) -> float:
    lat1 = math.radians(origin.latitude)
    lat2 = math.radians(latitude)
    delta_lng = math.radians(longitude) - math.radians(origin.longitude)

    cosine = math.cos(lat1) * math.cos(lat2) * math.cos(delta_lng) + math.sin(lat1) * math.sin(lat2)
    return EARTH_RADIUS_KM * math.acos(max(-1.0, min(1.0, cosine)))


def great_circle_sql(
    latitude_column: ColumnElement,
    longitude_column: ColumnElement,
    origin: GeoPoint,
) -> ColumnElement[float]:
    """Distance in km from `origin` to the row's coordinates.

    Null coordinates are coalesced to 0 so the arithmetic never sees NULL;
    queries must still filter `IS NOT NULL` on both columns.
    """
    lat2 = func.radians(func.coalesce(latitude_column, 0), type_=Float)
    lng2 = func.radians(func.coalesce(longitude_column, 0), type_=Float)
    lat1 = func.radians(literal(origin.latitude), type_=Float)
    lng1 = func.radians(literal(origin.longitude), type_=Float)

    cosine = (
        func.cos(lat1, type_=Float) * func.cos(lat2, type_=Float) * func.cos(lng2 - lng1, type_=Float)
        + func.sin(lat1, type_=Float) * func.sin(lat2, type_=Float)
    )
    clamped = func.least(literal(1.0), func.greatest(literal(-1.0), cosine, type_=Float), type_=Float)
    return literal(EARTH_RADIUS_KM) * func.acos(clamped, type_=Float)
