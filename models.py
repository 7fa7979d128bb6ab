"""Pydantic models for observer configuration, API requests and responses."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from almanac.observer import ObserverLocation


class Body(str, Enum):
    """Objects the API can search for."""

    sun = "sun"
    moon = "moon"
    mercury = "mercury"
    venus = "venus"
    mars = "mars"
    jupiter = "jupiter"
    saturn = "saturn"
    star = "star"


class Phenomenon(str, Enum):
    rising = "rising"
    setting = "setting"
    transit = "transit"


class Twilight(str, Enum):
    """Enumeration of supported twilight definitions."""

    official = "official"
    civil = "civil"
    nautical = "nautical"
    astronomical = "astronomical"


class ObserverConfig(BaseModel):
    """Validated observer location and time zone."""

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees, east positive")
    offset_hours: int = Field(0, ge=-12, le=14, description="Whole hours from UT")
    offset_minutes: int = Field(
        0,
        ge=0,
        le=59,
        description="Extra minutes from UT, applied with the sign of offset_hours",
    )

    def to_location(self) -> ObserverLocation:
        return ObserverLocation.from_degrees(
            self.lat, self.lon, self.offset_hours, self.offset_minutes
        )


class EventQueryParams(ObserverConfig):
    """Validated query parameters for the ``/events`` endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(..., alias="date", description="Local calendar date (YYYY-MM-DD)")
    body: Body = Field(Body.sun, description="Object to search for")
    phenomenon: Phenomenon = Field(Phenomenon.rising, description="Rising, setting or transit")
    twilight: Twilight = Field(Twilight.official, description="Sun only: twilight definition")
    bracket_minutes: int = Field(10, ge=1, le=1440, description="Sampling cadence in minutes")
    target_deg: Optional[float] = Field(
        None,
        ge=-90.0,
        le=360.0,
        description="Override of the target altitude (or azimuth for transits) in degrees",
    )
    ra_deg: Optional[float] = Field(None, ge=0.0, lt=360.0, description="Star right ascension")
    dec_deg: Optional[float] = Field(None, ge=-90.0, le=90.0, description="Star declination")

    @model_validator(mode="after")
    def validate_star(self) -> "EventQueryParams":
        if self.body is Body.star and (self.ra_deg is None or self.dec_deg is None):
            raise ValueError("ra_deg and dec_deg are required when body is 'star'")
        return self


class EventResponse(BaseModel):
    """Result of an event search; the time and companion angle are absent when there is no event."""

    ok: bool = True
    status: Literal["ok", "no_event"] = Field(..., description="Search status")
    date_local: str = Field(..., description="Requested local date")
    body: Body
    phenomenon: Phenomenon
    target_deg: float = Field(..., description="Target altitude or azimuth in degrees")
    bracket_minutes: int
    time_local: Optional[str] = Field(
        None, description="Local civil time of the event, to the second (ISO-8601)"
    )
    azimuth_deg: Optional[float] = Field(
        None, description="Azimuth at the event, for rising and setting"
    )
    altitude_deg: Optional[float] = Field(None, description="Altitude at the event, for transits")


class HealthResponse(BaseModel):
    """Health-check response."""

    ok: bool = True
    leap_seconds_loaded: bool
    leap_second_count: int
    ephemeris_loaded: bool
    files: List[str]


class ErrorResponse(BaseModel):
    """Error payload."""

    ok: bool = False
    code: str
    error: str
