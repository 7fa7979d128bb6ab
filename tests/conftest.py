from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import erfa
import numpy as np
import pytest
import spiceypy as spice

from almanac import bodies
from almanac.ephemeris import BUNDLED_LEAP_SECONDS
from almanac.horizon import EquatorialPosition, in_2pi
from almanac.terrestrial_time import LeapSecondTable, TerrestrialTime, load_leap_seconds

AU_KM = 149597870.700
STEP_HOURS = 6


def sun_position(jde: float) -> EquatorialPosition:
    """Geometric Sun from ERFA's Earth ephemeris, on the mean equator of date."""

    pvh, _ = erfa.epv00(jde, 0.0)
    vector = -np.array(pvh[0])
    whole = float(int(jde))
    rotation = np.array(erfa.pmat06(whole, jde - whole))
    ra, dec = erfa.c2s(rotation @ vector)
    return EquatorialPosition(in_2pi(float(ra)), float(dec))


@pytest.fixture(scope="session")
def leap_seconds() -> LeapSecondTable:
    return load_leap_seconds(BUNDLED_LEAP_SECONDS)


@pytest.fixture(scope="session")
def time_model(leap_seconds: LeapSecondTable) -> TerrestrialTime:
    return TerrestrialTime(leap_seconds)


def _datetime_to_tt(dt: datetime) -> tuple[float, float]:
    utc1, utc2 = erfa.dtf2d(
        "UTC",
        dt.year,
        dt.month,
        dt.day,
        dt.hour,
        dt.minute,
        dt.second + dt.microsecond / 1_000_000,
    )
    tai1, tai2 = erfa.utctai(utc1, utc2)
    return erfa.taitt(tai1, tai2)


def _datetime_to_et(dt: datetime) -> float:
    tt1, tt2 = _datetime_to_tt(dt)
    return (tt1 - erfa.DJ00) * erfa.DAYSEC + tt2 * erfa.DAYSEC


def _sun_and_earth_states(dt: datetime) -> tuple[np.ndarray, np.ndarray]:
    tt1, tt2 = _datetime_to_tt(dt)
    pvh, pvb = erfa.epv00(tt1, tt2)
    sun_state = np.concatenate(
        [-np.array(pvh[0]) * AU_KM, -np.array(pvh[1]) * (AU_KM / erfa.DAYSEC)]
    )
    earth_state = np.concatenate(
        [np.array(pvb[0]) * AU_KM, np.array(pvb[1]) * (AU_KM / erfa.DAYSEC)]
    )
    return sun_state, earth_state


def _generate_test_kernel(output: Path) -> None:
    """Write a small SPK covering 2025 with the Sun (relative to the Earth) and the Earth."""

    if output.exists():
        return
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    end = datetime(2026, 1, 1, tzinfo=timezone.utc)
    step = timedelta(hours=STEP_HOURS)
    sun_states: list[np.ndarray] = []
    earth_states: list[np.ndarray] = []
    ets: list[float] = []
    current = start
    while current <= end:
        sun_state, earth_state = _sun_and_earth_states(current)
        sun_states.append(sun_state)
        earth_states.append(earth_state)
        ets.append(_datetime_to_et(current))
        current += step
    step_seconds = ets[1] - ets[0]
    handle = spice.spkopn(str(output), "SUNTEST", 0)
    try:
        spice.spkw08(
            handle, 10, 399, "J2000", ets[0], ets[-1], "SUNTEST", 7,
            len(ets), np.array(sun_states, dtype=float), ets[0], step_seconds,
        )
        spice.spkw08(
            handle, 399, 0, "J2000", ets[0], ets[-1], "EARTHTEST", 7,
            len(ets), np.array(earth_states, dtype=float), ets[0], step_seconds,
        )
    finally:
        spice.spkcls(handle)


@pytest.fixture(scope="session")
def kernel_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    directory = tmp_path_factory.mktemp("kernels")
    _generate_test_kernel(directory / "sun_2025.bsp")
    return directory


@pytest.fixture(scope="session")
def ephemeris(kernel_dir: Path) -> Iterable[list[str]]:
    bodies.unload_ephemeris()
    yield bodies.load_ephemeris(str(kernel_dir))
    bodies.unload_ephemeris()
