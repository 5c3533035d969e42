import math

import pytest

from services.dates import normalize_german_date, parse_german_date, parse_station_date
from services.geo import haversine_km, haversine_m


def _reference_km(lat1, lon1, lat2, lon2):
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dphi = p2 - p1
    dlmb = math.radians(lon2 - lon1)
    h = math.sin(dphi / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dlmb / 2) ** 2
    return 2 * 6371.0 * math.asin(math.sqrt(h))


def test_distance_to_self_is_zero():
    assert haversine_m(52.52, 13.40, 52.52, 13.40) == 0.0


def test_distance_is_symmetric():
    berlin = (52.52, 13.40)
    munich = (48.137, 11.575)
    assert haversine_km(*berlin, *munich) == pytest.approx(haversine_km(*munich, *berlin))


def test_distance_matches_reference_formula():
    berlin = (52.52, 13.40)
    hamburg = (53.55, 9.99)
    expected = _reference_km(*berlin, *hamburg)
    assert haversine_km(*berlin, *hamburg) == pytest.approx(expected, rel=1e-3)
    assert 250 < expected < 260


def test_km_is_meters_divided_by_thousand():
    assert haversine_km(52.52, 13.40, 52.50, 13.39) == pytest.approx(haversine_m(52.52, 13.40, 52.50, 13.39) / 1000.0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("18.03.2025", "2025-03-18"),
        ("1.3.2025", "2025-03-01"),
        ("01.3.2025", "2025-03-01"),
        (" 29.02.2024 ", "2024-02-29"),
    ],
)
def test_normalize_german_date(raw, expected):
    assert normalize_german_date(raw) == expected


@pytest.mark.parametrize("raw", ["", "2025-03-18", "31.02.2025", "18.13.2025", "18/03/2025", "aa.bb.cccc", "18.03.25"])
def test_normalize_german_date_rejects_malformed_input(raw):
    assert normalize_german_date(raw) is None
    assert parse_german_date(raw) is None


def test_parse_station_date_accepts_both_forms():
    assert parse_station_date("18.03.2025") == parse_station_date("2025-03-18")
    assert parse_station_date("2025-02-30") is None
    assert parse_station_date("") is None


def test_distance_between_antipodes_is_half_circumference():
    half = math.pi * 6371.0
    for step in range(0, 2001):
        lat = 52.0 + step / 1000.0
        assert haversine_km(lat, 13.4, -lat, -166.6) == pytest.approx(half, rel=1e-9)
