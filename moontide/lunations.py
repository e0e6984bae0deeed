"""Regenerate the full/new moon table from JPL DE kernels.

Usage::

    python -m moontide.lunations [--bsp PATH] [--output FILE] 2024-2027
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import erfa
import numpy as np
import spiceypy as spice
from spiceypy.utils.exceptions import SpiceyError

from .ephemeris import EphemerisAcquisitionError, resolve_ephemeris_source

__all__ = [
    "EphemerisError",
    "Lunation",
    "load_ephemeris",
    "moon_sun_elongation",
    "find_lunations",
    "build_event_table",
    "parse_year_arguments",
    "main",
]

LOGGER = logging.getLogger(__name__)

NEW_MOON_ELONGATION = 0.0
FULL_MOON_ELONGATION = 180.0
LUNATION_KINDS: Dict[float, str] = {
    NEW_MOON_ELONGATION: "new_moon",
    FULL_MOON_ELONGATION: "full_moon",
}
DEFAULT_STEP = timedelta(hours=6)

_LOADED_FILES: Optional[List[str]] = None
_LOAD_LOCK = Lock()


class EphemerisError(RuntimeError):
    """Raised when kernels are missing or cannot be loaded."""


@dataclass(frozen=True)
class Lunation:
    kind: str
    instant: datetime


def load_ephemeris(source: str) -> List[str]:
    """Load a ``.bsp`` file, or every ``.bsp`` in a directory, into SPICE.

    Loading happens once per process; later calls return the cached list of
    kernel names.
    """

    global _LOADED_FILES

    if _LOADED_FILES is not None:
        return _LOADED_FILES

    path = Path(source).expanduser()
    if path.is_file():
        bsp_files = [path]
    elif path.is_dir():
        bsp_files = sorted(
            file for file in path.iterdir() if file.is_file() and file.suffix.lower() == ".bsp"
        )
    else:
        raise EphemerisError(f"Ephemeris path not found: {path}")
    if not bsp_files:
        raise EphemerisError(f"No .bsp ephemeris files found in directory: {path}")

    with _LOAD_LOCK:
        if _LOADED_FILES is not None:
            return _LOADED_FILES

        loaded: List[str] = []
        for bsp_file in bsp_files:
            try:
                spice.furnsh(str(bsp_file))
            except SpiceyError as exc:
                spice.kclear()
                raise EphemerisError(f"Failed to load ephemeris file '{bsp_file}': {exc}") from exc
            loaded.append(bsp_file.name)

        _LOADED_FILES = loaded
        LOGGER.info(json.dumps({"event": "ephemeris_loaded", "files": loaded}))
        return loaded


def _terrestrial_time(dt: datetime) -> Tuple[float, float]:
    dt_utc = dt.astimezone(UTC)
    utc1, utc2 = erfa.dtf2d(
        "UTC",
        dt_utc.year,
        dt_utc.month,
        dt_utc.day,
        dt_utc.hour,
        dt_utc.minute,
        dt_utc.second + dt_utc.microsecond / 1_000_000,
    )
    tai1, tai2 = erfa.utctai(utc1, utc2)
    return erfa.taitt(tai1, tai2)


def _ecliptic_longitude(vector: Sequence[float], rotation: np.ndarray) -> float:
    x, y, _ = rotation @ np.asarray(vector, dtype=float)
    return math.degrees(math.atan2(y, x)) % 360.0


def moon_sun_elongation(dt: datetime) -> float:
    """Apparent geocentric Moon minus Sun ecliptic longitude, in [0, 360)."""

    if _LOADED_FILES is None:
        raise EphemerisError("Ephemeris kernels have not been loaded")
    tt1, tt2 = _terrestrial_time(dt)
    et = (tt1 - erfa.DJ00) * erfa.DAYSEC + tt2 * erfa.DAYSEC
    rotation = np.array(erfa.ecm06(tt1, tt2), dtype=float)
    moon, _ = spice.spkpos("MOON", et, "J2000", "LT+S", "EARTH")
    sun, _ = spice.spkpos("SUN", et, "J2000", "LT+S", "EARTH")
    return (_ecliptic_longitude(moon, rotation) - _ecliptic_longitude(sun, rotation)) % 360.0


def _offset(elongation: float, target: float) -> float:
    """Signed distance from *target*, wrapped to [-180, 180)."""

    return (elongation - target + 180.0) % 360.0 - 180.0


def _refine_crossing(
    start_dt: datetime,
    end_dt: datetime,
    target: float,
    elongation: Callable[[datetime], float],
    max_iterations: int = 40,
) -> datetime:
    """Bisect the *target* crossing between *start_dt* and *end_dt*."""

    low_dt = start_dt
    high_dt = end_dt
    for _ in range(max_iterations):
        if high_dt - low_dt <= timedelta(seconds=1):
            break
        mid_dt = low_dt + (high_dt - low_dt) / 2
        if _offset(elongation(mid_dt), target) < 0:
            low_dt = mid_dt
        else:
            high_dt = mid_dt
    return low_dt + (high_dt - low_dt) / 2


def find_lunations(
    start: datetime,
    end: datetime,
    step: timedelta = DEFAULT_STEP,
    elongation: Callable[[datetime], float] = moon_sun_elongation,
) -> List[Lunation]:
    """Find new and full moons in ``[start, end)``.

    The elongation is sampled every *step*; a sign change of its offset from
    0 or 180 degrees is refined by bisection. The jump where the offset
    wraps from +180 to -180 is not a crossing and is skipped.
    """

    if end <= start:
        return []

    previous_dt = start
    previous = {target: _offset(elongation(start), target) for target in LUNATION_KINDS}
    events: List[Lunation] = []

    current_dt = start + step
    while current_dt <= end:
        value = elongation(current_dt)
        for target, kind in LUNATION_KINDS.items():
            prev_offset = previous[target]
            curr_offset = _offset(value, target)
            if prev_offset < 0 <= curr_offset and curr_offset - prev_offset < 90.0:
                instant = _refine_crossing(previous_dt, current_dt, target, elongation)
                if start <= instant < end:
                    events.append(Lunation(kind=kind, instant=instant))
            previous[target] = curr_offset
        previous_dt = current_dt
        current_dt += step

    events.sort(key=lambda event: event.instant)
    return events


def build_event_table(
    years: Iterable[int],
    elongation: Callable[[datetime], float] = moon_sun_elongation,
) -> Dict[str, List[str]]:
    """Return sorted UTC calendar dates of full and new moons for *years*."""

    table: Dict[str, set] = {"full_moon": set(), "new_moon": set()}
    for year in years:
        start = datetime(year, 1, 1, tzinfo=UTC)
        end = datetime(year + 1, 1, 1, tzinfo=UTC)
        for event in find_lunations(start, end, elongation=elongation):
            table[event.kind].add(event.instant.astimezone(UTC).date().isoformat())
        LOGGER.info(json.dumps({"event": "lunations_computed", "year": year}))
    return {kind: sorted(dates) for kind, dates in table.items()}


def parse_year_arguments(arg: str) -> List[int]:
    """Parse ``2025``, ``2024-2027`` or ``2024,2026`` into ordered unique years."""

    years: List[int] = []
    parts = [p.strip() for p in arg.split(",") if p.strip()]
    if not parts:
        raise ValueError("empty year argument")

    for part in parts:
        if "-" in part:
            start_str, end_str = part.split("-", 1)
            start, end = int(start_str), int(end_str)
            if end < start:
                raise ValueError(f"range {part} ends before it starts")
            years.extend(range(start, end + 1))
        else:
            years.append(int(part))

    return list(dict.fromkeys(years))


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m moontide.lunations",
        description="Regenerate the full/new moon date table from a JPL DE kernel.",
    )
    parser.add_argument("years", help="year, start-end range, or comma-separated list")
    parser.add_argument("--bsp", help="kernel file or directory (default: DE_BSP / cache)")
    parser.add_argument("--output", help="write JSON here instead of stdout")
    args = parser.parse_args(argv)

    try:
        years = parse_year_arguments(args.years)
    except ValueError as exc:
        parser.error(f"invalid years: {exc}")

    try:
        source = Path(args.bsp) if args.bsp else resolve_ephemeris_source()
        load_ephemeris(str(source))
    except (EphemerisAcquisitionError, EphemerisError) as exc:
        LOGGER.error(json.dumps({"event": "ephemeris_unavailable", "error": str(exc)}))
        return 1

    table = build_event_table(years)
    payload = json.dumps(
        {"source": f"JPL {source.name}, apparent geocentric elongation, UTC dates", **table},
        indent=2,
    )
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
    else:
        sys.stdout.write(payload + "\n")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    raise SystemExit(main())
