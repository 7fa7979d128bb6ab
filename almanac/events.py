"""Rise, set, twilight and transit searches.

An object's altitude (or azimuth) is sampled across one local day at a fixed
cadence. The first pair of consecutive samples that brackets the target value
is refined by linear interpolation. An object may not reach the target on a
given day at all; the Moon in particular moves quickly.

Some results for sunrise on 2024-12-13 at Charlottetown, PEI, by bracket
width::

    60m: 07:47:30    20m: 07:47:01    05m: 07:46:56
    45m: 07:47:26    15m: 07:46:57    01m: 07:46:55
    30m: 07:49:09    10m: 07:46:57
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from .gregorian import CivilDateTime, jd_for_observer
from .horizon import EquatorialPosition, HorizonPosition, horizon_from, hour_angle
from .observer import ObserverLocation
from .sidereal import local_sidereal_time
from .terrestrial_time import TerrestrialTime

__all__ = [
    "Bracket",
    "EventKind",
    "EventResult",
    "EventSearch",
    "MOON_ALTITUDE",
    "PositionFunction",
    "STAR_ALTITUDE",
    "SUN_ALTITUDE",
    "SamplePoint",
    "SiderealFunction",
    "TRANSIT_AZIMUTH",
    "TWILIGHT_ANGLES",
    "find_bracket",
    "interpolate",
]

LOGGER = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

# Centre of the Sun's disk: refraction, mean semi-diameter and an observer about
# 2 m above the horizon (Explanatory Supplement, 1961, page 401).
SUN_ALTITUDE = -0.9
# Refraction less the Moon's mean horizontal parallax; variations in parallax are ignored.
MOON_ALTITUDE = 0.13
STAR_ALTITUDE = -0.57
TRANSIT_AZIMUTH = 180.0

TWILIGHT_ANGLES: Dict[str, float] = {
    "official": SUN_ALTITUDE,
    "civil": -6.0,
    "nautical": -12.0,
    "astronomical": -18.0,
}

PositionFunction = Callable[[float], EquatorialPosition]
SiderealFunction = Callable[[CivilDateTime, int, int, float], float]


class EventKind(str, Enum):
    """What is searched for, and in which direction the target must be crossed."""

    RISING = "rising"
    SETTING = "setting"
    AZIMUTH = "azimuth"

    @property
    def samples_altitude(self) -> bool:
        return self is not EventKind.AZIMUTH

    def brackets(self, start: float, end: float, target: float) -> bool:
        if self is EventKind.SETTING:
            return start >= target >= end
        # Azimuth is only ever tested while increasing.
        return start <= target <= end


@dataclass(frozen=True)
class SamplePoint:
    """Altitude or azimuth (radians) at a local civil time."""

    time: CivilDateTime
    value: float


@dataclass(frozen=True)
class Bracket:
    start: SamplePoint
    end: SamplePoint


@dataclass(frozen=True)
class EventResult:
    """Local civil time of the event, and the other coordinate in degrees.

    The companion is the azimuth for altitude searches, and the altitude for
    azimuth searches.
    """

    time: CivilDateTime
    companion_degrees: float
    kind: EventKind


def find_bracket(samples: Sequence[SamplePoint], target: float, kind: EventKind) -> Optional[Bracket]:
    """Return the first consecutive pair, in time order, that brackets *target*."""

    for start, end in zip(samples, samples[1:]):
        if kind.brackets(start.value, end.value, target):
            return Bracket(start, end)
    return None


def interpolate(bracket: Bracket, target: float, bracket_minutes: int) -> CivilDateTime:
    """Time at which *target* is reached, assuming a linear change across the bracket."""

    span = bracket.end.value - bracket.start.value
    fraction = (target - bracket.start.value) / span if span else 0.0
    # Halves round up.
    seconds = math.floor(fraction * bracket_minutes * 60 + 0.5)
    return bracket.start.time.shifted(seconds=seconds)


class EventSearch:
    """Finds the local time at which an object reaches a target altitude or azimuth.

    Parameters
    ----------
    location:
        Where the observer is, and their offset from UT.
    time_model:
        Converts civil Julian Dates into TT for the position function.
    bracket_minutes:
        Sampling cadence, 1 or more. Linear interpolation is used within a
        bracket; smaller values are more accurate.
    target_degrees:
        Target altitude (rising/setting) or azimuth, in degrees.
    kind:
        :class:`EventKind`; the altitude kinds also fix the crossing direction.
    sidereal:
        Local sidereal time from (local time, offset hours, offset minutes,
        longitude).
    """

    def __init__(
        self,
        location: ObserverLocation,
        time_model: TerrestrialTime,
        bracket_minutes: int,
        target_degrees: float,
        kind: EventKind = EventKind.RISING,
        sidereal: SiderealFunction = local_sidereal_time,
    ):
        if bracket_minutes < 1:
            raise ValueError(f"Bracket minutes must be 1 or more: {bracket_minutes}")
        if int(bracket_minutes) != bracket_minutes:
            raise ValueError(f"Bracket minutes must be a whole number: {bracket_minutes}")
        self.location = location
        self.time_model = time_model
        self.bracket_minutes = int(bracket_minutes)
        self.target = math.radians(target_degrees)
        self.kind = EventKind(kind)
        self.sidereal = sidereal

    @classmethod
    def altitude(
        cls,
        location: ObserverLocation,
        time_model: TerrestrialTime,
        bracket_minutes: int,
        target_degrees: float,
        kind: EventKind,
        **kwargs,
    ) -> "EventSearch":
        if not EventKind(kind).samples_altitude:
            raise ValueError(f"Altitude searches need a rising or setting kind: {kind}")
        return cls(location, time_model, bracket_minutes, target_degrees, kind, **kwargs)

    @classmethod
    def azimuth(
        cls,
        location: ObserverLocation,
        time_model: TerrestrialTime,
        bracket_minutes: int,
        target_degrees: float,
        **kwargs,
    ) -> "EventSearch":
        return cls(location, time_model, bracket_minutes, target_degrees, EventKind.AZIMUTH, **kwargs)

    @classmethod
    def for_sun(cls, location, time_model, bracket_minutes, kind, **kwargs) -> "EventSearch":
        return cls.altitude(location, time_model, bracket_minutes, SUN_ALTITUDE, kind, **kwargs)

    @classmethod
    def for_moon(cls, location, time_model, bracket_minutes, kind, **kwargs) -> "EventSearch":
        return cls.altitude(location, time_model, bracket_minutes, MOON_ALTITUDE, kind, **kwargs)

    @classmethod
    def for_star(cls, location, time_model, bracket_minutes, kind, **kwargs) -> "EventSearch":
        return cls.altitude(location, time_model, bracket_minutes, STAR_ALTITUDE, kind, **kwargs)

    @classmethod
    def for_twilight(
        cls, location, time_model, bracket_minutes, twilight: str, kind, **kwargs
    ) -> "EventSearch":
        try:
            angle = TWILIGHT_ANGLES[twilight]
        except KeyError as exc:
            raise ValueError(f"Unsupported twilight selector: {twilight}") from exc
        return cls.altitude(location, time_model, bracket_minutes, angle, kind, **kwargs)

    @classmethod
    def for_transit(cls, location, time_model, bracket_minutes, **kwargs) -> "EventSearch":
        return cls.azimuth(location, time_model, bracket_minutes, TRANSIT_AZIMUTH, **kwargs)

    def horizon_at(self, local: CivilDateTime, position: PositionFunction) -> HorizonPosition:
        """Altitude and azimuth of the object at the local civil time *local*."""

        location = self.location
        lst = self.sidereal(local, location.offset_hours, location.offset_minutes, location.longitude)
        jde = self.time_model.jde_from(
            jd_for_observer(local, location), location.offset_hours, location.offset_minutes
        )
        equatorial = position(jde)
        return horizon_from(hour_angle(lst, equatorial.ra), equatorial.dec, location.latitude)

    def _scalar(self, horizon: HorizonPosition) -> float:
        return horizon.altitude if self.kind.samples_altitude else horizon.azimuth

    def samples(self, day, position: PositionFunction) -> List[SamplePoint]:
        """Time-ordered samples for the local *day*, from midnight to the next midnight inclusive."""

        midnight = CivilDateTime.midnight(day)
        result: List[SamplePoint] = []
        for minutes in range(0, MINUTES_PER_DAY + 1, self.bracket_minutes):
            local = midnight.shifted(minutes=minutes)
            result.append(SamplePoint(local, self._scalar(self.horizon_at(local, position))))
        return result

    def search(self, day, position: PositionFunction) -> Optional[EventResult]:
        """Search the local *day* for the event.

        Parameters
        ----------
        day:
            The local calendar day; anything with ``year``, ``month`` and
            ``day`` attributes.
        position:
            Right ascension and declination of the object at a given JDE.

        Returns
        -------
        EventResult or None
            ``None`` when the target is not reached that day. Only the first
            crossing of the day is reported.
        """

        samples = self.samples(day, position)
        bracket = find_bracket(samples, self.target, self.kind)
        if bracket is None:
            LOGGER.debug(
                json.dumps(
                    {
                        "event": "no_event",
                        "day": samples[0].time.isoformat(),
                        "kind": self.kind.value,
                        "target_deg": math.degrees(self.target),
                    }
                )
            )
            return None

        when = interpolate(bracket, self.target, self.bracket_minutes)
        horizon = self.horizon_at(when, position)
        companion = horizon.azimuth if self.kind.samples_altitude else horizon.altitude
        result = EventResult(when, math.degrees(companion), self.kind)
        LOGGER.debug(
            json.dumps(
                {
                    "event": "event_found",
                    "time": when.isoformat(),
                    "kind": self.kind.value,
                    "companion_deg": round(result.companion_degrees, 4),
                }
            )
        )
        return result
