from __future__ import annotations

from datetime import datetime

import pytest

from almanac.gregorian import (
    GREGORIAN_EPOCH,
    CivilDateTime,
    civil_from_jd,
    days_in_month,
    is_leap,
    jd_for_greenwich,
    jd_for_greenwich_fields,
    jd_for_local,
    jd_for_observer,
    year_from_jd,
)
from almanac.observer import ObserverLocation

E = GREGORIAN_EPOCH


@pytest.mark.parametrize(
    ("year", "month", "day", "expected"),
    [
        (0, 1, 1.0, E + 1.0),
        (0, 1, 31.0, E + 31.0),
        (0, 2, 1.0, E + 31.0 + 1.0),
        (0, 3, 1.0, E + 31.0 + 29.0 + 1.0),
        (1, 1, 1.0, E + 1.0 + 366),
        (4, 1, 1.0, E + 1.0 + 366 + 3 * 365),
        (5, 1, 1.0, E + 1.0 + 366 + 3 * 365 + 366),
        (-8, 1, 1.5, 1718138.0),
        (-101, 1, 1.5, 1684171.0),
        (-799, 1, 1.5, 1429232.0),
        (-800, 1, 1.5, 1428866.0),
        (-801, 1, 1.5, 1428501.0),
        (99, 12, 31.5, 1757584.0),
        (100, 1, 1.5, 1757585.0),
        (100, 2, 28.5, 1757584.0 + 31.0 + 28.0),
        (100, 3, 1.5, 1757584.0 + 31.0 + 28.0 + 1.0),
        (101, 1, 1.5, 1757950.0),
        (200, 1, 1.5, 1794109.0),
        (400, 1, 1.5, 1867157.0),
        (800, 1, 1.5, 2013254.0),
        (1600, 1, 1.5, 2305448.0),
        (1900, 1, 1.5, 2415021.0),
        (1901, 1, 1.5, 2415021.0 + 365.0),
        (2000, 1, 1.5, 2451545.0),
        (3000, 1, 1.5, 2816788.0),
        (30000, 1, 1.5, 12678335.0),
    ],
)
def test_jd_for_greenwich_reference_values(year, month, day, expected):
    assert jd_for_greenwich(year, month, day) == expected


def test_jd_for_greenwich_fractional_days():
    # Meeus, Sputnik 1
    assert jd_for_greenwich(1957, 10, 4.81) == pytest.approx(2436116.31, abs=1e-6)
    # Vondrák, Wallace & Capitaine 2011
    assert jd_for_greenwich(-1374, 5, 3.578) == pytest.approx(1219339.078, abs=1e-6)


def test_jd_is_continuous_across_year_zero():
    before = jd_for_greenwich(-1, 12, 31.0)
    after = jd_for_greenwich(0, 1, 1.0)
    assert before == E
    assert after - before == 1.0
    assert jd_for_greenwich(-1, 1, 1.0) == E - 364.0


def test_jd_for_greenwich_fields_matches_fractional_day():
    assert jd_for_greenwich_fields(2000, 1, 1, 12, 0, 0.0) == 2451545.0
    assert jd_for_greenwich_fields(1957, 10, 4, 19, 26, 24.0) == pytest.approx(2436116.31, abs=1e-8)


@pytest.mark.parametrize(
    ("year", "leap"),
    [(2000, True), (1900, False), (2024, True), (2023, False), (0, True), (-100, False), (-400, True), (-4, True)],
)
def test_is_leap(year, leap):
    assert is_leap(year) is leap


def test_days_in_month():
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2100, 2) == 28
    with pytest.raises(ValueError):
        days_in_month(2024, 13)


def test_civil_date_time_validation():
    with pytest.raises(ValueError):
        CivilDateTime(1900, 2, 29)
    with pytest.raises(ValueError):
        CivilDateTime(2024, 1, 1, 24)
    assert CivilDateTime(-4, 2, 29).day == 29


def test_shifted_rolls_over_months_and_years():
    assert CivilDateTime(-1, 12, 31, 23).shifted(hours=2) == CivilDateTime(0, 1, 1, 1)
    assert CivilDateTime(0, 3, 1).shifted(days=-1) == CivilDateTime(0, 2, 29)
    assert CivilDateTime(2023, 2, 28, 23, 30).shifted(minutes=45) == CivilDateTime(2023, 3, 1, 0, 15)
    assert CivilDateTime(2024, 1, 1).shifted(days=366) == CivilDateTime(2025, 1, 1)
    assert CivilDateTime(2024, 1, 1).shifted(seconds=-1) == CivilDateTime(2023, 12, 31, 23, 59, 59)


def test_to_nearest_second_and_isoformat():
    value = CivilDateTime(2024, 12, 31, 23, 59, 59, 600_000)
    assert value.to_nearest_second() == CivilDateTime(2025, 1, 1)
    assert CivilDateTime(-44, 3, 15, 12).isoformat() == "-0044-03-15T12:00:00"
    assert CivilDateTime(2024, 1, 2, 3, 4, 5, 6).isoformat() == "2024-01-02T03:04:05.000006"


def test_datetime_interop():
    moment = datetime(2024, 7, 4, 18, 30, 15, 250)
    assert CivilDateTime.from_datetime(moment).to_datetime() == moment


def test_jd_for_local_shifts_fields_before_converting():
    # Four hours west of Greenwich: 02:00 local is 06:00 UT.
    local = CivilDateTime(2024, 1, 1, 2)
    assert jd_for_local(local, -4, 0) == jd_for_greenwich_fields(2024, 1, 1, 6, 0, 0.0)
    # Crossing the year boundary.
    assert jd_for_local(CivilDateTime(2023, 12, 31, 22), -4, 0) == jd_for_greenwich_fields(2024, 1, 1, 2, 0, 0.0)
    # Crossing back over a leap day.
    assert jd_for_local(CivilDateTime(2024, 3, 1, 1), 3, 0) == jd_for_greenwich_fields(2024, 2, 29, 22, 0, 0.0)


def test_offset_minutes_take_the_sign_of_the_hours():
    # Newfoundland, UT-3:30
    assert jd_for_local(CivilDateTime(2024, 6, 1), -3, 30) == jd_for_greenwich_fields(2024, 6, 1, 3, 30, 0.0)
    # India, UT+5:30
    assert jd_for_local(CivilDateTime(2024, 6, 1, 12), 5, 30) == jd_for_greenwich_fields(2024, 6, 1, 6, 30, 0.0)


def test_jd_for_observer_uses_location_offset():
    location = ObserverLocation.from_degrees(46.24, -63.13, -4, 0)
    local = CivilDateTime(2024, 12, 13, 7, 47)
    assert jd_for_observer(local, location) == jd_for_local(local, -4, 0)


def test_jd_for_local_negative_year():
    assert jd_for_local(CivilDateTime(-8, 1, 1, 12)) == 1718138.0


def test_civil_from_jd_reference_values():
    assert civil_from_jd(2451545.0) == CivilDateTime(2000, 1, 1, 12)
    assert civil_from_jd(2436116.31).to_nearest_second() == CivilDateTime(1957, 10, 4, 19, 26, 24)
    assert civil_from_jd(0.0) == CivilDateTime(-4712, 1, 1, 12)


def test_civil_from_jd_switches_calendars_at_gregorian_adoption():
    assert civil_from_jd(2299160.5) == CivilDateTime(1582, 10, 15)
    # The day before is read in the Julian calendar.
    assert civil_from_jd(2299159.5) == CivilDateTime(1582, 10, 4)


def test_civil_from_jd_applies_offset():
    assert civil_from_jd(2451545.0, 5, 30) == CivilDateTime(2000, 1, 1, 17, 30)
    assert civil_from_jd(2451545.0, -13, 0) == CivilDateTime(1999, 12, 31, 23)


def test_civil_from_jd_rejects_negative_jd():
    with pytest.raises(ValueError):
        civil_from_jd(-0.5)
    with pytest.raises(ValueError):
        year_from_jd(-1.0)


@pytest.mark.parametrize(
    "civil",
    [
        CivilDateTime(1582, 10, 15),
        CivilDateTime(1600, 2, 29, 6, 0, 1),
        CivilDateTime(1700, 3, 1, 23, 59, 59),
        CivilDateTime(1957, 10, 4, 19, 26, 24),
        CivilDateTime(2000, 2, 29, 12, 34, 56),
        CivilDateTime(2024, 12, 31, 23, 59, 59),
        CivilDateTime(2100, 1, 1),
        CivilDateTime(3000, 7, 15, 8, 15, 30),
        CivilDateTime(30000, 12, 31, 18),
    ],
)
def test_round_trip_civil_to_jd_and_back(civil):
    assert civil_from_jd(jd_for_local(civil)).to_nearest_second() == civil
    assert civil_from_jd(jd_for_local(civil, -4, 0), -4, 0).to_nearest_second() == civil


@pytest.mark.parametrize("jd", [2299160.5, 2299161.0, 2415020.25, 2451545.0, 2460000.75, 5000000.125, 12678335.0])
def test_round_trip_jd_to_civil_and_back(jd):
    assert jd_for_local(civil_from_jd(jd)) == pytest.approx(jd, abs=1e-6)
