"""Unit tests for the in-memory proximity ranker."""

import pytest

from garage_broker.core.domain_exceptions import ValidationFailed
from garage_broker.geo import BoundingBox, GeoPoint, ProximityRanker, great_circle_km

ORIGIN = GeoPoint(33.5731, -7.5898)

# Three candidates within 50 km of ORIGIN, two beyond, one without coordinates.
CANDIDATES = [
    {"id": "rabat", "latitude": 34.0209, "longitude": -6.8416},
    {"id": "mohammedia", "latitude": 33.6861, "longitude": -7.3829},
    {"id": "marrakech", "latitude": 31.6295, "longitude": -7.9811},
    {"id": "center", "latitude": 33.5800, "longitude": -7.6000},
    {"id": "no_gps", "latitude": None, "longitude": None},
    {"id": "sebaa", "latitude": 33.6050, "longitude": -7.5300},
]


def _ids(ranked):
    return [entry.item["id"] for entry in ranked]


@pytest.fixture
def ranker():
    return ProximityRanker()


@pytest.mark.unit
@pytest.mark.parametrize("radius_km", [0.5, 5, 10, 30, 100, 500])
def test_radius_results_are_inside_radius_and_ascending(ranker, radius_km):
    ranked = ranker.within_radius(ORIGIN, CANDIDATES, radius_km=radius_km)

    distances = [entry.distance_km for entry in ranked]
    assert all(distance <= radius_km for distance in distances)
    assert distances == sorted(distances)


@pytest.mark.unit
def test_radius_defaults_to_ten_km(ranker):
    assert _ids(ranker.within_radius(ORIGIN, CANDIDATES)) == ["center", "sebaa"]


@pytest.mark.unit
def test_radius_supports_limit_and_offset(ranker):
    ranked = ranker.within_radius(ORIGIN, CANDIDATES, radius_km=100, limit=2, offset=1)

    assert _ids(ranked) == ["sebaa", "mohammedia"]


@pytest.mark.unit
@pytest.mark.parametrize("radius_km", [0, -3])
def test_radius_must_be_positive(ranker, radius_km):
    with pytest.raises(ValidationFailed):
        ranker.within_radius(ORIGIN, CANDIDATES, radius_km=radius_km)


@pytest.mark.unit
@pytest.mark.parametrize("limit", [1, 2, 3, 5, 20])
def test_nearest_truncates_without_skipping_closer_candidates(ranker, limit):
    ranked = ranker.nearest(ORIGIN, CANDIDATES, limit=limit)

    assert len(ranked) <= limit
    included = {entry.item["id"] for entry in ranked}
    excluded = [
        great_circle_km(ORIGIN, c["latitude"], c["longitude"])
        for c in CANDIDATES
        if c["id"] not in included and c["latitude"] is not None
    ]
    if ranked and excluded:
        assert max(entry.distance_km for entry in ranked) <= min(excluded)


@pytest.mark.unit
@pytest.mark.parametrize("limit", [0, 21])
def test_nearest_limit_is_bounded(ranker, limit):
    with pytest.raises(ValidationFailed):
        ranker.nearest(ORIGIN, CANDIDATES, limit=limit)


@pytest.mark.unit
def test_nearest_within_fifty_km_returns_the_three_local_candidates(ranker):
    ranked = ranker.nearest(ORIGIN, CANDIDATES, limit=5, max_distance_km=50)

    assert _ids(ranked) == ["center", "sebaa", "mohammedia"]


@pytest.mark.unit
def test_nearest_within_fifty_km_respects_a_smaller_limit(ranker):
    ranked = ranker.nearest(ORIGIN, CANDIDATES, limit=2, max_distance_km=50)

    assert _ids(ranked) == ["center", "sebaa"]


@pytest.mark.unit
def test_null_coordinates_never_ranked(ranker):
    radius_ids = _ids(ranker.within_radius(ORIGIN, CANDIDATES, radius_km=20000))
    nearest_ids = _ids(ranker.nearest(ORIGIN, CANDIDATES, limit=20))

    assert "no_gps" not in radius_ids
    assert "no_gps" not in nearest_ids
    assert len(nearest_ids) == 5


@pytest.mark.unit
def test_equal_distances_keep_input_order(ranker):
    twins = [
        {"id": "first", "latitude": 33.6, "longitude": -7.6},
        {"id": "second", "latitude": 33.6, "longitude": -7.6},
    ]

    assert _ids(ranker.nearest(ORIGIN, twins, limit=2)) == ["first", "second"]


@pytest.mark.unit
def test_in_bounds_filters_by_box_without_ranking(ranker):
    box = BoundingBox(north=33.7, south=33.5, east=-7.3, west=-7.7)

    inside = ranker.in_bounds(box, CANDIDATES)

    assert [c["id"] for c in inside] == ["mohammedia", "center", "sebaa"]


@pytest.mark.unit
def test_custom_locator_reads_nested_coordinates():
    ranker = ProximityRanker(locate=lambda item: (item["geo"][0], item["geo"][1]))
    items = [{"id": "far", "geo": (34.0, -6.8)}, {"id": "near", "geo": (33.58, -7.6)}]

    assert _ids(ranker.nearest(ORIGIN, items, limit=2)) == ["near", "far"]
