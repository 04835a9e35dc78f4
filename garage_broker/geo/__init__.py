"""Great-circle distance and proximity ranking."""

from garage_broker.geo.distance import (
    EARTH_RADIUS_KM,
    BoundingBox,
    GeoPoint,
    great_circle_km,
    great_circle_sql,
)
from garage_broker.geo.ranker import (
    DEFAULT_NEAREST_LIMIT,
    DEFAULT_RADIUS_KM,
    MAX_NEAREST_LIMIT,
    ProximityRanker,
    Ranked,
)

__all__ = [
    "BoundingBox",
    "DEFAULT_NEAREST_LIMIT",
    "DEFAULT_RADIUS_KM",
    "EARTH_RADIUS_KM",
    "GeoPoint",
    "MAX_NEAREST_LIMIT",
    "ProximityRanker",
    "Ranked",
    "great_circle_km",
    "great_circle_sql",
]
