"""Position functions for celestial objects: fixed stars and SPICE ephemerides."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

import erfa
import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .horizon import EquatorialPosition, in_2pi

__all__ = [
    "BODY_TARGETS",
    "EphemerisError",
    "FixedPosition",
    "SpkPosition",
    "load_ephemeris",
    "loaded_files",
    "position_for",
    "unload_ephemeris",
]

LOGGER = logging.getLogger(__name__)

# SPICE names; the planets are only available as barycentres in the DE kernels.
BODY_TARGETS: Dict[str, str] = {
    "sun": "SUN",
    "moon": "MOON",
    "mercury": "MERCURY BARYCENTER",
    "venus": "VENUS BARYCENTER",
    "mars": "MARS BARYCENTER",
    "jupiter": "JUPITER BARYCENTER",
    "saturn": "SATURN BARYCENTER",
}

_LOADED_FILES: Optional[List[str]] = None
_LOAD_LOCK = Lock()


class EphemerisError(RuntimeError):
    """Raised when ephemeris loading or evaluation fails."""


def _kernel_files(source: Path) -> List[Path]:
    if source.is_file():
        kernels = [source] if source.suffix.lower() == ".bsp" else []
    elif source.is_dir():
        kernels = sorted(k for k in source.glob("*.bsp") if k.is_file())
    else:
        raise EphemerisError(f"Ephemeris path not found: {source}")
    if not kernels:
        raise EphemerisError(f"No .bsp kernels at {source}")
    return kernels


def load_ephemeris(bsp_dir: str) -> List[str]:
    """Furnish the SPK kernels at *bsp_dir* to SPICE, once per process.

    Parameters
    ----------
    bsp_dir:
        A ``.bsp`` kernel, or a directory whose ``.bsp`` kernels are all loaded.

    Returns
    -------
    list[str]
        Names of the loaded kernels, in load order. Later calls return the
        same list without touching SPICE until :func:`unload_ephemeris`.

    Raises
    ------
    EphemerisError
        If the path is missing, holds no kernels, or SPICE rejects one.
    """

    global _LOADED_FILES

    with _LOAD_LOCK:
        if _LOADED_FILES is not None:
            return _LOADED_FILES
        kernels = _kernel_files(Path(bsp_dir).expanduser())
        for kernel in kernels:
            try:
                spice.furnsh(str(kernel))
            except SpiceyError as exc:  # pragma: no cover - corrupt kernels are not generated in tests.
                spice.kclear()
                raise EphemerisError(f"SPICE rejected kernel {kernel}: {exc}") from exc
        _LOADED_FILES = [kernel.name for kernel in kernels]

    LOGGER.info(json.dumps({"event": "ephemeris_loaded", "files": _LOADED_FILES}))
    return _LOADED_FILES


def loaded_files() -> List[str]:
    return list(_LOADED_FILES or [])


def unload_ephemeris() -> None:
    """Clear the SPICE kernel pool."""

    global _LOADED_FILES

    with _LOAD_LOCK:
        spice.kclear()
        _LOADED_FILES = None


@dataclass(frozen=True)
class FixedPosition:
    """An object whose equatorial position does not change, such as a star (to first order)."""

    ra: float
    dec: float

    @classmethod
    def from_degrees(cls, ra_deg: float, dec_deg: float) -> "FixedPosition":
        position = EquatorialPosition.from_degrees(ra_deg, dec_deg)
        return cls(position.ra, position.dec)

    def __call__(self, jde: float) -> EquatorialPosition:
        return EquatorialPosition(self.ra, self.dec)


@dataclass(frozen=True)
class SpkPosition:
    """Geocentric apparent position of a SPICE target, on the mean equator and equinox of date.

    The kernel supplies a J2000 vector corrected for light time and stellar
    aberration; the IAU 2006 bias-precession matrix carries it to the date.
    TDB is taken to be TT (they differ by less than 2 ms).
    """

    target: str
    observer: str = "EARTH"

    def __call__(self, jde: float) -> EquatorialPosition:
        if _LOADED_FILES is None:
            raise EphemerisError("Ephemeris kernels have not been loaded")
        et = (jde - erfa.DJ00) * erfa.DAYSEC
        try:
            vector, _ = spice.spkpos(self.target, et, "J2000", "LT+S", self.observer)
        except SpiceyError as exc:
            raise EphemerisError(f"No ephemeris for {self.target} at JDE {jde}: {exc}") from exc
        whole = float(int(jde))
        rotation = np.array(erfa.pmat06(whole, jde - whole), dtype=float)
        ra, dec = erfa.c2s(rotation @ np.array(vector, dtype=float))
        return EquatorialPosition(in_2pi(float(ra)), float(dec))


def position_for(body: str) -> SpkPosition:
    """Position function for a named solar-system body."""

    try:
        return SpkPosition(BODY_TARGETS[body.lower()])
    except KeyError as exc:
        raise ValueError(f"Unsupported body: {body}") from exc
