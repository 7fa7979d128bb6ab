"""Local sidereal time for an observer, from their local civil time."""

from __future__ import annotations

import erfa

from .gregorian import CivilDateTime, jd_for_local

__all__ = ["local_sidereal_time"]


def local_sidereal_time(
    local: CivilDateTime,
    offset_hours: int,
    offset_minutes: int,
    longitude: float,
) -> float:
    """Local mean sidereal time in radians, in [0, 2π).

    UT1 is taken to be UTC (they never differ by more than 0.9 s), and
    *longitude* is in radians, positive to the east.
    """

    jd = jd_for_local(local, offset_hours, offset_minutes)
    whole = float(int(jd))
    gmst = erfa.gmst82(whole, jd - whole)
    return float(erfa.anp(gmst + longitude))
