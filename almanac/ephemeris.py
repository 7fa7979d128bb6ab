"""Locating, and downloading when necessary, the data files behind the almanac.

Two datasets are needed: a JPL DE kernel for the solar-system bodies and the
IERS leap-second table for Terrestrial Time. Either may be named by an
environment variable, as a file or as a directory to look in; anything
missing is fetched from its published URL.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

LOGGER = logging.getLogger(__name__)

DEFAULT_EPHEMERIS_URL = (
    "https://naif.jpl.nasa.gov/pub/naif/generic_kernels/spk/planets/de442.bsp"
)
DEFAULT_EPHEMERIS_FILENAME = "de442.bsp"
DEFAULT_CACHE_DIR = Path.home() / ".almanac" / "kernels"

LEAP_SECONDS_URL = "https://hpiers.obspm.fr/iers/bul/bulc/Leap_Second.dat"
LEAP_SECONDS_FILENAME = "Leap_Second.dat"
BUNDLED_LEAP_SECONDS = Path(__file__).resolve().parent / "data" / "leap_seconds.dat"


class EphemerisAcquisitionError(RuntimeError):
    """Raised when a data file cannot be located or acquired."""


@dataclass(frozen=True)
class RemoteDataset:
    """A published data file: where to fetch it and how local copies are recognised."""

    name: str
    url: str
    filename: str
    suffix: str

    def matches(self, path: Path) -> bool:
        return path.suffix.lower() == self.suffix

    def find_in(self, directory: Path) -> Optional[Path]:
        """The published file name if *directory* has it, else the first file with the suffix."""

        preferred = directory / self.filename
        if preferred.is_file():
            return preferred
        candidates = sorted(p for p in directory.iterdir() if p.is_file() and self.matches(p))
        return candidates[0] if candidates else None


EPHEMERIS = RemoteDataset("ephemeris", DEFAULT_EPHEMERIS_URL, DEFAULT_EPHEMERIS_FILENAME, ".bsp")
LEAP_SECONDS = RemoteDataset("leap_seconds", LEAP_SECONDS_URL, LEAP_SECONDS_FILENAME, ".dat")


def _download_file(url: str, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    received = 0
    try:
        with httpx.stream("GET", url, timeout=httpx.Timeout(120.0, connect=30.0)) as response:
            response.raise_for_status()
            expected = int(response.headers.get("Content-Length", "0")) or None
            with destination.open("wb") as handle:
                for chunk in response.iter_bytes(chunk_size=1 << 20):
                    handle.write(chunk)
                    received += len(chunk)
    except Exception as exc:  # pragma: no cover - network/runtime errors are rare in tests.
        if destination.exists():
            destination.unlink()
        raise EphemerisAcquisitionError(f"Failed to download {url}: {exc}") from exc
    LOGGER.info(
        json.dumps(
            {
                "event": "file_downloaded",
                "url": url,
                "destination": str(destination),
                "bytes": received,
                "total": expected,
            }
        )
    )


def _fetch(dataset: RemoteDataset, destination: Path) -> Path:
    LOGGER.info(
        json.dumps(
            {
                "event": "file_downloading",
                "dataset": dataset.name,
                "url": dataset.url,
                "destination": str(destination),
            }
        )
    )
    _download_file(dataset.url, destination)
    return destination


def _ensure_dataset(dataset: RemoteDataset, path: Path) -> Path:
    """Return a usable copy of *dataset* at *path*, fetching it if absent.

    Parameters
    ----------
    dataset:
        Which file is wanted.
    path:
        Either the file itself or a directory expected to hold one. A path
        that does not exist is taken as a file when it has the dataset's
        suffix and as a directory otherwise.

    Returns
    -------
    Path
        The file, or for directories the directory itself (kernels are
        loaded from every matching file) or the file found in it.
    """

    if path.is_file():
        if not dataset.matches(path):
            raise EphemerisAcquisitionError(
                f"{dataset.name} file must have {dataset.suffix} extension: {path}"
            )
        return path
    if path.exists() and not path.is_dir():
        raise EphemerisAcquisitionError(f"{dataset.name} path is not a file or directory: {path}")
    if not path.exists() and dataset.matches(path):
        return _fetch(dataset, path)

    path.mkdir(parents=True, exist_ok=True)
    if dataset.find_in(path) is None:
        _fetch(dataset, path / dataset.filename)
    return path


def resolve_ephemeris_source() -> Path:
    """Return a path to a usable ephemeris kernel, downloading it if necessary.

    ``DE_BSP`` names a kernel or a directory of kernels; otherwise the default
    kernel is kept under ``DE_BSP_CACHE_DIR`` (``~/.almanac/kernels``).
    """

    override = os.environ.get("DE_BSP")
    if override:
        return _ensure_dataset(EPHEMERIS, Path(override).expanduser())

    cache_root = Path(os.environ.get("DE_BSP_CACHE_DIR", str(DEFAULT_CACHE_DIR))).expanduser()
    return _ensure_dataset(EPHEMERIS, cache_root / EPHEMERIS.filename)


def resolve_leap_second_source() -> Path:
    """Return the leap-second dataset to load.

    ``LEAP_SECONDS_FILE`` overrides the copy bundled with the package. It may
    name the file or a directory holding it; if neither has one yet, the
    current table is downloaded from the IERS.
    """

    override = os.environ.get("LEAP_SECONDS_FILE")
    if not override:
        return BUNDLED_LEAP_SECONDS

    resolved = _ensure_dataset(LEAP_SECONDS, Path(override).expanduser())
    if resolved.is_dir():
        return LEAP_SECONDS.find_in(resolved)
    return resolved
