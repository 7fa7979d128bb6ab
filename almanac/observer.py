"""The observer's location and local time zone."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .gregorian import offset_total_minutes

__all__ = ["ObserverLocation"]


@dataclass(frozen=True)
class ObserverLocation:
    """Latitude and longitude in radians (east positive), with the local offset from UT.

    ``offset_minutes`` (0..59) carries the sign of ``offset_hours``: an offset
    of -3 hours and 30 minutes is three and a half hours west of Greenwich.
    """

    latitude: float
    longitude: float
    offset_hours: int = 0
    offset_minutes: int = 0

    def __post_init__(self) -> None:
        if not -math.pi / 2 <= self.latitude <= math.pi / 2:
            raise ValueError(f"Latitude must be within ±π/2 radians: {self.latitude}")
        if not 0 <= self.offset_minutes <= 59:
            raise ValueError(f"Offset minutes must be in 0..59: {self.offset_minutes}")

    @classmethod
    def from_degrees(
        cls,
        lat: float,
        lon: float,
        offset_hours: int = 0,
        offset_minutes: int = 0,
    ) -> "ObserverLocation":
        return cls(math.radians(lat), math.radians(lon), offset_hours, offset_minutes)

    @property
    def offset_total_minutes(self) -> int:
        return offset_total_minutes(self.offset_hours, self.offset_minutes)
