import pytest

from geoattend.schemas.attendance import GeoPoint
from geoattend.services.geofence import ReferencePoint, evaluate, haversine_distance, is_within_radius

OFFICE = ReferencePoint(name="Main Office", latitude=24.429328, longitude=39.653926, radius_meters=50)


def test_coincident_points_are_zero_apart():
    assert haversine_distance(24.429328, 39.653926, 24.429328, 39.653926) == 0
    assert haversine_distance(-33.8688, 151.2093, -33.8688, 151.2093) == 0


def test_distance_is_symmetric():
    a = (24.429328, 39.653926)
    b = (21.485811, 39.192505)
    assert haversine_distance(*a, *b) == pytest.approx(haversine_distance(*b, *a))


def test_one_degree_of_latitude():
    d = haversine_distance(10.0, 20.0, 11.0, 20.0)
    assert d == pytest.approx(111195, rel=0.01)


def test_radius_boundary_is_inclusive():
    assert is_within_radius(50, 50)
    assert not is_within_radius(51, 50)


def test_evaluate_boundary_against_measured_distance():
    here = GeoPoint(latitude=24.4300, longitude=39.6545)
    d = haversine_distance(here.latitude, here.longitude, OFFICE.latitude, OFFICE.longitude)

    at_edge = ReferencePoint(name="edge", latitude=OFFICE.latitude, longitude=OFFICE.longitude, radius_meters=d)
    just_short = ReferencePoint(name="edge", latitude=OFFICE.latitude, longitude=OFFICE.longitude, radius_meters=d - 1)

    assert evaluate(here, at_edge).admitted
    assert not evaluate(here, just_short).admitted


def test_position_at_office_is_admitted_at_zero_distance():
    decision = evaluate(GeoPoint(latitude=24.429328, longitude=39.653926, accuracy=12), OFFICE)
    assert decision.admitted
    assert decision.distance_meters == 0
    assert decision.reference_name == "Main Office"


def test_far_position_is_rejected_and_reports_distance():
    # ~500 m due north
    decision = evaluate(GeoPoint(latitude=24.429328 + 500 / 111194.93, longitude=39.653926), OFFICE)
    assert not decision.admitted
    assert decision.distance_meters == pytest.approx(500, abs=1)
    assert decision.radius_meters == 50


def test_bypass_admits_but_keeps_distance():
    decision = evaluate(GeoPoint(latitude=25.0, longitude=40.0), OFFICE, bypass=True)
    assert decision.admitted
    assert decision.bypassed
    assert decision.distance_meters > 50_000


def test_accuracy_is_ignored():
    loose = GeoPoint(latitude=24.429328 + 60 / 111194.93, longitude=39.653926, accuracy=500)
    assert not evaluate(loose, OFFICE).admitted
