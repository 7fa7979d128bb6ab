"""Rise, set, twilight and transit times for an almanac."""

from .events import EventKind, EventResult, EventSearch
from .gregorian import CivilDateTime, civil_from_jd, is_leap, jd_for_greenwich, jd_for_local
from .horizon import EquatorialPosition, HorizonPosition
from .observer import ObserverLocation
from .terrestrial_time import TerrestrialTime, load_leap_seconds

__all__ = [
    "CivilDateTime",
    "EquatorialPosition",
    "EventKind",
    "EventResult",
    "EventSearch",
    "HorizonPosition",
    "ObserverLocation",
    "TerrestrialTime",
    "civil_from_jd",
    "is_leap",
    "jd_for_greenwich",
    "jd_for_local",
    "load_leap_seconds",
]
