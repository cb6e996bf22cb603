from datetime import date, datetime

import pytest

from models.user import Location
from utils.age import age_in_years, to_date
from utils.geo import calc_distance_km, distance_between_km, parse_coords


def test_distance_along_equator():
    # 0.05° долготы на экваторе ≈ 5.56 км
    assert calc_distance_km((0, 0), (0, 0.05)) == pytest.approx(5.56, abs=0.01)


def test_distance_same_point_is_zero():
    assert calc_distance_km((48.85, 2.35), (48.85, 2.35)) == pytest.approx(0.0)


def test_distance_paris_taverny():
    paris = Location(48.8566, 2.3522)
    taverny = Location(49.02542, 2.21691)
    assert distance_between_km(paris, taverny) == pytest.approx(21.2, abs=0.5)


def test_distance_unknown_location():
    assert distance_between_km(Location(0, 0), None) is None


def test_parse_coords_lon_lat_order():
    assert parse_coords("2.35, 48.85") == (48.85, 2.35)
    assert parse_coords("[2.35, 48.85]") == (48.85, 2.35)


@pytest.mark.parametrize("raw", ["", "abc", "1,2,3", "200, 10", None])
def test_parse_coords_rejects_garbage(raw):
    assert parse_coords(raw) is None


def test_age_on_birthday():
    assert age_in_years(date(1994, 6, 15), date(2024, 6, 15)) == 30


def test_age_day_before_birthday():
    assert age_in_years(date(1994, 6, 16), date(2024, 6, 15)) == 29


def test_age_leap_day_birthday():
    assert age_in_years(date(2000, 2, 29), date(2023, 2, 28)) == 22
    assert age_in_years(date(2000, 2, 29), date(2023, 3, 1)) == 23


def test_to_date_accepts_datetime_and_iso():
    assert to_date(datetime(1990, 1, 2, 15, 30)) == date(1990, 1, 2)
    assert to_date("1990-01-02T00:00:00.000Z") == date(1990, 1, 2)
    assert to_date(None) is None
