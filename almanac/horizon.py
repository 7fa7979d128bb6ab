"""Equatorial to local horizon coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass

__all__ = [
    "EquatorialPosition",
    "HorizonPosition",
    "hour_angle",
    "horizon_from",
    "in_2pi",
]

TWO_PI = 2.0 * math.pi


def in_2pi(angle: float) -> float:
    """Reduce *angle* (radians) to the range [0, 2π)."""

    result = math.fmod(angle, TWO_PI)
    if result < 0:
        result += TWO_PI
    # fmod of a tiny negative angle can round up to exactly 2π.
    return 0.0 if result >= TWO_PI else result


@dataclass(frozen=True)
class EquatorialPosition:
    """Right ascension and declination, in radians."""

    ra: float
    dec: float

    @classmethod
    def from_degrees(cls, ra_deg: float, dec_deg: float) -> "EquatorialPosition":
        return cls(math.radians(ra_deg), math.radians(dec_deg))


@dataclass(frozen=True)
class HorizonPosition:
    """Altitude in [-π/2, π/2] and azimuth in [0, 2π), measured from North through East."""

    altitude: float
    azimuth: float

    @property
    def altitude_degrees(self) -> float:
        return math.degrees(self.altitude)

    @property
    def azimuth_degrees(self) -> float:
        return math.degrees(self.azimuth)


def hour_angle(local_sidereal_time: float, ra: float) -> float:
    return in_2pi(local_sidereal_time - ra)


def horizon_from(hour_angle: float, dec: float, latitude: float) -> HorizonPosition:
    """Altitude and azimuth from hour angle, declination and the observer's latitude."""

    # Meeus 1991, page 89
    sin_h = math.sin(latitude) * math.sin(dec) + math.cos(latitude) * math.cos(dec) * math.cos(hour_angle)
    altitude = math.asin(max(-1.0, min(1.0, sin_h)))

    numerator = math.sin(hour_angle)
    denominator = math.cos(hour_angle) * math.sin(latitude) - math.tan(dec) * math.cos(latitude)
    azimuth_from_south = math.atan2(numerator, denominator)
    return HorizonPosition(altitude, in_2pi(azimuth_from_south + math.pi))
