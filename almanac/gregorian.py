"""Proleptic Gregorian calendar conversions to and from Julian Dates."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Tuple

__all__ = [
    "CivilDateTime",
    "GREGORIAN_EPOCH",
    "JULIAN_EPOCH",
    "civil_from_jd",
    "days_in_month",
    "days_in_year",
    "fractional_day",
    "is_leap",
    "jd_for_greenwich",
    "jd_for_greenwich_fields",
    "jd_for_local",
    "jd_for_observer",
    "offset_total_minutes",
    "year_from_jd",
]

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
MICROSECONDS_PER_SECOND = 1_000_000
MICROSECONDS_PER_DAY = SECONDS_PER_DAY * MICROSECONDS_PER_SECOND

# Julian Date of Jan 0.0, year 0000, in the Julian calendar.
JULIAN_EPOCH = 1721056.5
# The same instant in the Gregorian calendar; the two calendars differed by two days.
GREGORIAN_EPOCH = JULIAN_EPOCH + 2.0

NORMAL_YEAR = 365
LEAP_YEAR = 366
SMALL_CYCLE_YEARS = 4
BIG_CYCLE_YEARS = 400
BIG_CYCLE_DAYS = 146097

# Integer part of a JD (after adding 0.5) from which dates are Gregorian: 1582-10-15.
GREGORIAN_ADOPTION_JD = 2299161

_MONTH_LENGTHS = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def is_leap(year: int) -> bool:
    """Gregorian leap rule: century years are leap years only if divisible by 400."""

    if year % 100 == 0:
        return year % BIG_CYCLE_YEARS == 0
    return year % SMALL_CYCLE_YEARS == 0


def days_in_year(year: int) -> int:
    return LEAP_YEAR if is_leap(year) else NORMAL_YEAR


def days_in_month(year: int, month: int) -> int:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be in 1..12: {month}")
    if month == 2 and is_leap(year):
        return 29
    return _MONTH_LENGTHS[month - 1]


def fractional_day(day: int, hour: int = 0, minute: int = 0, seconds: float = 0.0) -> float:
    """Express a day of the month and a time of day as a single fractional day."""

    total_seconds = seconds + minute * SECONDS_PER_MINUTE + hour * SECONDS_PER_HOUR
    return day + total_seconds / SECONDS_PER_DAY


def _add_days(year: int, month: int, day: int, count: int) -> Tuple[int, int, int]:
    """Move a calendar date by *count* whole days, rolling over months and years."""

    while count > 0:
        remaining = days_in_month(year, month) - day
        if count <= remaining:
            return year, month, day + count
        count -= remaining + 1
        day = 1
        month += 1
        if month > 12:
            month = 1
            year += 1
    while count < 0:
        if -count < day:
            return year, month, day + count
        count += day
        month -= 1
        if month < 1:
            month = 12
            year -= 1
        day = days_in_month(year, month)
    return year, month, day


@dataclass(frozen=True)
class CivilDateTime:
    """A civil date and time in the proleptic Gregorian calendar.

    Unlike :class:`datetime.datetime`, the year is unrestricted: year 0 and
    negative years are valid (astronomical year numbering).
    """

    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    microsecond: int = 0

    def __post_init__(self) -> None:
        limit = days_in_month(self.year, self.month)
        if not 1 <= self.day <= limit:
            raise ValueError(f"Day must be in 1..{limit} for {self.year}-{self.month:02d}: {self.day}")
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Hour must be in 0..23: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"Minute must be in 0..59: {self.minute}")
        if not 0 <= self.second <= 59:
            raise ValueError(f"Second must be in 0..59: {self.second}")
        if not 0 <= self.microsecond < MICROSECONDS_PER_SECOND:
            raise ValueError(f"Microsecond must be in 0..999999: {self.microsecond}")

    @classmethod
    def from_datetime(cls, value: datetime) -> "CivilDateTime":
        """Take the naive wall-clock fields of *value*; any tzinfo is ignored."""

        return cls(
            value.year,
            value.month,
            value.day,
            value.hour,
            value.minute,
            value.second,
            value.microsecond,
        )

    @classmethod
    def midnight(cls, day) -> "CivilDateTime":
        """Start of the given day; *day* is anything with year/month/day attributes."""

        return cls(day.year, day.month, day.day)

    def to_datetime(self) -> datetime:
        """Naive :class:`datetime`; only possible for years 1..9999."""

        return datetime(
            self.year,
            self.month,
            self.day,
            self.hour,
            self.minute,
            self.second,
            self.microsecond,
        )

    @property
    def seconds(self) -> float:
        """Seconds of the minute, including the fraction."""

        return self.second + self.microsecond / MICROSECONDS_PER_SECOND

    def shifted(
        self,
        *,
        days: int = 0,
        hours: int = 0,
        minutes: int = 0,
        seconds: int = 0,
        microseconds: int = 0,
    ) -> "CivilDateTime":
        """Return a copy moved by the given whole amounts, with calendar rollover."""

        elapsed = (
            ((self.hour * 60 + self.minute) * 60 + self.second) * MICROSECONDS_PER_SECOND
            + self.microsecond
        )
        elapsed += (
            (((days * 24 + hours) * 60 + minutes) * 60 + seconds) * MICROSECONDS_PER_SECOND
            + microseconds
        )
        carry, elapsed = divmod(elapsed, MICROSECONDS_PER_DAY)
        year, month, day = _add_days(self.year, self.month, self.day, carry)
        whole_seconds, microsecond = divmod(elapsed, MICROSECONDS_PER_SECOND)
        whole_minutes, second = divmod(whole_seconds, 60)
        hour, minute = divmod(whole_minutes, 60)
        return CivilDateTime(year, month, day, hour, minute, second, microsecond)

    def to_nearest_second(self) -> "CivilDateTime":
        truncated = replace(self, microsecond=0)
        if self.microsecond >= MICROSECONDS_PER_SECOND // 2:
            return truncated.shifted(seconds=1)
        return truncated

    def isoformat(self) -> str:
        if self.year < 0:
            year = f"-{-self.year:04d}"
        else:
            year = f"{self.year:04d}"
        text = f"{year}-{self.month:02d}-{self.day:02d}T{self.hour:02d}:{self.minute:02d}:{self.second:02d}"
        if self.microsecond:
            text += f".{self.microsecond:06d}"
        return text

    def __str__(self) -> str:
        return self.isoformat()


def _days_in_complete_years(start: int, end: int) -> int:
    """Days in the years from *start* (included) to *end* (excluded)."""

    return sum(days_in_year(year) for year in range(start, end))


def _days_from_jan_0(month: int, day: float, leap: bool) -> float:
    days = sum(_MONTH_LENGTHS[: month - 1]) + day
    if leap and month > 2:
        days += 1
    return days


def _days_until_dec_32(month: int, day: float, leap: bool) -> float:
    year_length = LEAP_YEAR if leap else NORMAL_YEAR
    return year_length + 1 - _days_from_jan_0(month, day, leap)


def _non_negative_years(year: int, month: int, day: float) -> float:
    # Big cycles have a fixed length; no need to track the individual years.
    num_big_cycles = year // BIG_CYCLE_YEARS
    big_cycles = num_big_cycles * BIG_CYCLE_DAYS

    num_small_cycles = (year % BIG_CYCLE_YEARS) // SMALL_CYCLE_YEARS
    start_year = num_big_cycles * BIG_CYCLE_YEARS
    end_year = start_year + num_small_cycles * SMALL_CYCLE_YEARS
    small_cycles = _days_in_complete_years(start_year, end_year)

    remainder_years = _days_in_complete_years(end_year, year)
    remainder_days = _days_from_jan_0(month, day, is_leap(year))
    return GREGORIAN_EPOCH + big_cycles + small_cycles + remainder_years + remainder_days


def _negative_years(year: int, month: int, day: float) -> float:
    # The epoch sits at Dec 31 of year -1, so cycles are counted back from year + 1.
    biased = abs(year + 1)
    num_big_cycles = biased // BIG_CYCLE_YEARS
    big_cycles = num_big_cycles * BIG_CYCLE_DAYS

    num_small_cycles = (biased % BIG_CYCLE_YEARS) // SMALL_CYCLE_YEARS
    end_year = -num_big_cycles * BIG_CYCLE_YEARS
    start_year = end_year - num_small_cycles * SMALL_CYCLE_YEARS
    small_cycles = _days_in_complete_years(start_year, end_year)

    remainder_years = _days_in_complete_years(year + 1, start_year)
    remainder_days = _days_until_dec_32(month, day, is_leap(year))

    overhang = 1  # Jan 0.0 of year 0 already reaches one day into the negative years.
    return GREGORIAN_EPOCH + overhang - (big_cycles + small_cycles + remainder_years + remainder_days)


def jd_for_greenwich(year: int, month: int, day: float) -> float:
    """Julian Date of a moment in the proleptic Gregorian calendar, at Greenwich.

    Parameters
    ----------
    year:
        Any integer year, in astronomical numbering (1 BC is year 0).
    month:
        Month of the year, 1..12.
    day:
        Day of the month, with the time of day as a fraction (``4.81``).

    Returns
    -------
    float
        The Julian Date. Non-negative and negative years are decomposed
        differently, relative to :data:`GREGORIAN_EPOCH`.
    """

    if not 1 <= month <= 12:
        raise ValueError(f"Month must be in 1..12: {month}")
    if year >= 0:
        return _non_negative_years(year, month, day)
    return _negative_years(year, month, day)


def jd_for_greenwich_fields(
    year: int, month: int, day: int, hour: int, minute: int, seconds: float
) -> float:
    return jd_for_greenwich(year, month, fractional_day(day, hour, minute, seconds))


def offset_total_minutes(offset_hours: int, offset_minutes: int) -> int:
    # The minutes carry the sign of the hours: -3h 30m is three and a half hours west.
    sign = -1 if offset_hours < 0 else 1
    return offset_hours * 60 + sign * offset_minutes


def jd_for_local(civil: CivilDateTime, offset_hours: int = 0, offset_minutes: int = 0) -> float:
    """Julian Date of a local civil date-time, given the local offset from UT.

    The civil fields are shifted to Greenwich first, so that day, month and
    year boundaries roll over correctly before the conversion.
    """

    greenwich = civil.shifted(minutes=-offset_total_minutes(offset_hours, offset_minutes))
    return jd_for_greenwich_fields(
        greenwich.year,
        greenwich.month,
        greenwich.day,
        greenwich.hour,
        greenwich.minute,
        greenwich.seconds,
    )


def jd_for_observer(civil: CivilDateTime, location) -> float:
    """Julian Date of *civil*, read as local time at *location*."""

    return jd_for_local(civil, location.offset_hours, location.offset_minutes)


def _calendar_fields(jd: float) -> Tuple[int, int, int, float]:
    """Year, month, day and fraction of the day at Greenwich (Meeus 1991, page 63)."""

    if jd < 0:
        raise ValueError(f"JD cannot be negative: {jd}")
    temp = jd + 0.5
    z = math.trunc(temp)
    f = temp - z
    a = z
    if z >= GREGORIAN_ADOPTION_JD:
        alpha = math.trunc((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - math.trunc(alpha / 4)
    b = a + 1524
    c = math.trunc((b - 122.1) / 365.25)
    d = math.trunc(365.25 * c)
    e = math.trunc((b - d) / 30.6001)

    day = b - d - math.trunc(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715
    return year, month, day, f


def year_from_jd(jd: float) -> int:
    """Calendar year at Greenwich containing *jd*; JD must not be negative."""

    return _calendar_fields(jd)[0]


def civil_from_jd(jd: float, offset_hours: int = 0, offset_minutes: int = 0) -> CivilDateTime:
    """Convert a Julian Date into a local civil date-time.

    Parameters
    ----------
    jd:
        Julian Date; must not be negative.
    offset_hours, offset_minutes:
        Local offset from UT applied to the Greenwich result.

    Returns
    -------
    CivilDateTime
        Dates from 1582-10-15 onwards are Gregorian. Earlier dates follow the
        Julian calendar, as in Meeus' algorithm.

    Raises
    ------
    ValueError
        If *jd* is negative.
    """

    year, month, day, f = _calendar_fields(jd)
    microseconds = round(f * MICROSECONDS_PER_DAY)
    greenwich = CivilDateTime(year, month, day).shifted(microseconds=microseconds)
    return greenwich.shifted(minutes=offset_total_minutes(offset_hours, offset_minutes))
