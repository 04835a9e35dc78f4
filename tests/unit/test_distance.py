"""Unit tests for the great-circle distance helpers."""

import math

import pytest
from sqlalchemy import Float, column, literal, select

from garage_broker.core.domain_exceptions import ValidationFailed
from garage_broker.db.session import build_engine
from garage_broker.geo import BoundingBox, GeoPoint, great_circle_km, great_circle_sql


@pytest.mark.unit
def test_identical_points_are_zero_km_apart():
    origin = GeoPoint(33.5731, -7.5898)

    assert great_circle_km(origin, 33.5731, -7.5898) == pytest.approx(0.0, abs=1e-3)


@pytest.mark.unit
def test_casablanca_to_rabat_is_about_85_km():
    origin = GeoPoint(33.5731, -7.5898)

    assert great_circle_km(origin, 34.0209, -6.8416) == pytest.approx(85.2, abs=1.0)


@pytest.mark.unit
def test_quarter_meridian_matches_earth_radius():
    origin = GeoPoint(0.0, 0.0)

    assert great_circle_km(origin, 90.0, 0.0) == pytest.approx(6371 * math.pi / 2)


@pytest.mark.unit
def test_antipodal_points_do_not_leave_acos_domain():
    origin = GeoPoint(0.0, 0.0)

    assert great_circle_km(origin, 0.0, 180.0) == pytest.approx(6371 * math.pi)


@pytest.mark.unit
@pytest.mark.parametrize("latitude, longitude", [(91, 0), (-90.5, 0), (0, 181), (0, -180.1)])
def test_geo_point_rejects_out_of_range_coordinates(latitude, longitude):
    with pytest.raises(ValidationFailed) as exc_info:
        GeoPoint(latitude, longitude)

    assert exc_info.value.code == "INVALID_COORDINATES"


@pytest.mark.unit
def test_bounding_box_requires_ordered_edges():
    with pytest.raises(ValidationFailed):
        BoundingBox(north=33.0, south=34.0, east=-7.0, west=-8.0)
    with pytest.raises(ValidationFailed):
        BoundingBox(north=34.0, south=33.0, east=-8.0, west=-7.0)


@pytest.mark.unit
def test_bounding_box_contains_is_inclusive_and_null_safe():
    box = BoundingBox(north=34.0, south=33.0, east=-7.0, west=-8.0)

    assert box.contains(34.0, -7.0)
    assert box.contains(33.5, -7.5)
    assert not box.contains(34.1, -7.5)
    assert not box.contains(None, -7.5)


@pytest.mark.unit
@pytest.mark.parametrize(
    "target",
    [(33.5800, -7.6000), (34.0209, -6.8416), (33.5731, -7.5898)],
)
def test_sql_expression_agrees_with_python_form(target):
    origin = GeoPoint(33.5731, -7.5898)
    row = select(
        literal(target[0], type_=Float).label("latitude"),
        literal(target[1], type_=Float).label("longitude"),
    ).subquery()
    query = select(great_circle_sql(column("latitude"), column("longitude"), origin)).select_from(row)

    engine = build_engine("sqlite://")
    try:
        with engine.connect() as connection:
            distance = connection.scalar(query)
    finally:
        engine.dispose()

    assert distance == pytest.approx(great_circle_km(origin, *target), abs=1e-3)
