"""Terrestrial Time: ΔT = TT - UTC from leap seconds and polynomial fits.

Civil time (UTC) falls behind uniform physics time (TT) whenever a leap
second is inserted::

     local      leap seconds go here                 ET(1984.0)
    ---|------|---------------------|----------------|-------
    offset   UTC      TAI-UTC      TAI    32.184s    TT

Inside the era covered by the leap-second table, ΔT is exact. Outside it,
ΔT comes from the NASA polynomial fits (which model UT1 rather than UTC;
the difference of at most 0.9 s is ignored here).

Ref: https://eclipse.gsfc.nasa.gov/SEhelp/deltatpoly2004.html
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np

from .gregorian import GREGORIAN_EPOCH, SECONDS_PER_DAY, offset_total_minutes, year_from_jd

__all__ = [
    "DELTA_T_2000",
    "LeapSecondError",
    "LeapSecondTable",
    "TerrestrialTime",
    "delta_t_polynomial",
    "load_leap_seconds",
]

LOGGER = logging.getLogger(__name__)

TT_MINUS_TAI = 32.184  # seconds, fixed by decree.
MJD_BASE = 2400000.5
DAYS_PER_JULIAN_YEAR = 365.25
DAYS_PER_GREGORIAN_YEAR = 365.2425
COMMENT = "#"
MINUTES_PER_DAY = 24 * 60

# Measured value for the year 2000 (USNO deltat.data).
DELTA_T_2000 = 63.828

# (first year of regime, origin year, coefficients highest power first)
_POLYNOMIAL_REGIMES: Tuple[Tuple[float, int, Tuple[float, ...]], ...] = (
    (2005, 2000, (0.005589, 0.32217, 62.92)),
    (1986, 2000, (0.00002373599, 0.000651814, 0.0017275, -0.060374, 0.3345, 63.86)),
    (1961, 1975, (-1 / 718, -1 / 260, 1.067, 45.45)),
    (1941, 1950, (1 / 2547, -1 / 233, 0.407, 29.07)),
    (1920, 1920, (0.0020936, -0.076100, 0.84493, 21.20)),
    # The 1900..1920 fit stands in for every earlier year as well.
    (-math.inf, 1900, (-0.000197, 0.0061966, -0.0598939, 1.494119, -2.79)),
)


class LeapSecondError(RuntimeError):
    """Raised when the leap-second dataset is missing or cannot be parsed."""


@dataclass(frozen=True)
class LeapSecondTable:
    """Ascending leap-second instants (JD, UTC) with the TAI-UTC in force from each."""

    instants: Tuple[float, ...]
    tai_minus_utc: Tuple[float, ...]

    def __post_init__(self) -> None:
        if not self.instants:
            raise LeapSecondError("Leap-second table is empty")
        if len(self.instants) != len(self.tai_minus_utc):
            raise LeapSecondError("Leap-second instants and offsets differ in length")
        if any(later <= earlier for earlier, later in zip(self.instants, self.instants[1:])):
            raise LeapSecondError("Leap-second instants are not in ascending order")

    @property
    def first(self) -> float:
        return self.instants[0]

    @property
    def last(self) -> float:
        return self.instants[-1]

    def count_through(self, jd: float) -> int:
        """Number of tabulated instants at or before *jd*."""

        return int(np.searchsorted(np.asarray(self.instants), jd, side="right"))

    def tai_minus_utc_at(self, jd: float) -> float:
        """TAI-UTC in force at *jd*; zero before the first instant."""

        count = self.count_through(jd)
        if count == 0:
            return 0.0
        return self.tai_minus_utc[count - 1]


def load_leap_seconds(path: Union[str, Path]) -> LeapSecondTable:
    """Load the leap-second dataset at *path*.

    Each non-comment line holds ``MJD day month year TAI-UTC``, for example
    ``41317.0    1  1 1972       10``. Lines starting with ``#`` and blank
    lines are skipped.

    Raises
    ------
    LeapSecondError
        If the file is missing or unreadable, or if any line is malformed.
        Every physics-time conversion depends on this table.
    """

    source = Path(path).expanduser()
    try:
        lines = source.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        raise LeapSecondError(f"Leap-second file unreadable: {source}: {exc}") from exc

    instants: List[float] = []
    offsets: List[float] = []
    for number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text or text.startswith(COMMENT):
            continue
        parts = text.split()
        if len(parts) < 5:
            raise LeapSecondError(f"{source}:{number}: expected 'MJD day month year TAI-UTC': {text!r}")
        try:
            instants.append(float(parts[0]) + MJD_BASE)
            offsets.append(float(parts[4]))
        except ValueError as exc:
            raise LeapSecondError(f"{source}:{number}: malformed number in {text!r}") from exc

    table = LeapSecondTable(tuple(instants), tuple(offsets))
    LOGGER.info(
        json.dumps(
            {
                "event": "leap_seconds_loaded",
                "source": str(source),
                "count": len(instants),
                "last_jd": table.last,
            }
        )
    )
    return table


def delta_t_polynomial(year: float) -> float:
    """Approximate ΔT in seconds for a calendar year, from published fits.

    Regimes are half-open: ``<1920``, ``[1920, 1941)``, ``[1941, 1961)``,
    ``[1961, 1986)``, ``[1986, 2005)``, ``[2005, 2050)``, ``[2050, 2150)`` and
    ``>=2150``. The year 2000 returns the measured :data:`DELTA_T_2000`.
    """

    if year == 2000:
        return DELTA_T_2000
    if year >= 2150:
        u = (year - 1820) / 100
        return -20 + 32 * u**2
    if year >= 2050:
        u = (year - 1820) / 100
        return -20 + 32 * u**2 - 0.5628 * (2150 - year)
    for start, origin, coefficients in _POLYNOMIAL_REGIMES:
        if year >= start:
            return float(np.polyval(coefficients, year - origin))
    raise AssertionError("unreachable: the last regime is unbounded")


class TerrestrialTime:
    """Converts civil Julian Dates into Julian Ephemeris Dates (TT)."""

    def __init__(self, leap_seconds: LeapSecondTable):
        self.leap_seconds = leap_seconds
        self._window_end = leap_seconds.last + 2 * DAYS_PER_JULIAN_YEAR

    def in_table_window(self, jd: float) -> bool:
        return self.leap_seconds.first <= jd <= self._window_end

    def delta_t(self, jd: float, offset_hours: int = 0, offset_minutes: int = 0) -> float:
        """ΔT = TT - UTC in seconds at the civil Julian Date *jd*.

        Within the leap-second era plus two years, one second per tabulated
        insertion at or before *jd*, plus TT - TAI. Elsewhere the polynomial
        fit for the observer's local calendar year, which the UT offset
        selects near New Year.
        """

        if self.in_table_window(jd):
            return self.leap_seconds.count_through(jd) + TT_MINUS_TAI
        return delta_t_polynomial(self._local_year(jd, offset_hours, offset_minutes))

    def jde_from(self, jd: float, offset_hours: int = 0, offset_minutes: int = 0) -> float:
        return jd + self.delta_t(jd, offset_hours, offset_minutes) / SECONDS_PER_DAY

    @staticmethod
    def _local_year(jd: float, offset_hours: int, offset_minutes: int) -> int:
        local_jd = jd + offset_total_minutes(offset_hours, offset_minutes) / MINUTES_PER_DAY
        if local_jd >= 0:
            return year_from_jd(local_jd)
        # No calendar reversal for negative JD; the mean Gregorian year is close enough here.
        return math.floor((local_jd - GREGORIAN_EPOCH) / DAYS_PER_GREGORIAN_YEAR)
