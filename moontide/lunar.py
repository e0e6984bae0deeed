"""Moon phase model and the precomputed full/new moon calendar.

Two independent answers live here. :func:`calculate_moon_phase` gives the
approximate phase name for any instant from a mean synodic month, while
:class:`LunarEventTable` flags the exact UTC calendar day of each true full
and new moon from a precomputed ephemeris.
"""

from __future__ import annotations

import json
import logging
import math
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from functools import lru_cache
from importlib import resources
from typing import Dict, Iterable, Optional, Tuple, Union

__all__ = [
    "MoonPhase",
    "FullMoonName",
    "LunarEventTable",
    "PHASE_NAMES",
    "FULL_MOON_NAMES",
    "calculate_moon_phase",
    "default_table",
    "is_date_full_moon",
    "is_date_new_moon",
    "find_most_recent_new_moon",
    "get_full_moon_name",
    "get_moon_emoji",
    "is_full_moon",
]

LOGGER = logging.getLogger(__name__)

DateLike = Union[date, datetime]

REFERENCE_NEW_MOON = datetime(2000, 1, 6, 18, 14, tzinfo=UTC)
SYNODIC_MONTH_DAYS = 29.53058867
SECONDS_PER_DAY = 86400.0

PHASE_NAMES: Tuple[str, ...] = (
    "New Moon",
    "Waxing Crescent",
    "First Quarter",
    "Waxing Gibbous",
    "Full Moon",
    "Waning Gibbous",
    "Last Quarter",
    "Waning Crescent",
)

# Bin edges sit at odd sixteenths of the cycle; Waning Crescent runs to the end.
_PHASE_BOUNDARIES: Tuple[float, ...] = tuple(
    SYNODIC_MONTH_DAYS * (2 * k + 1) / 16.0 for k in range(len(PHASE_NAMES) - 1)
)

_MOON_EMOJI: Dict[str, str] = {
    "New Moon": "🌑",
    "Waxing Crescent": "🌒",
    "First Quarter": "🌓",
    "Waxing Gibbous": "🌔",
    "Full Moon": "🌕",
    "Waning Gibbous": "🌖",
    "Last Quarter": "🌗",
    "Waning Crescent": "🌘",
}


@dataclass(frozen=True)
class MoonPhase:
    phase: str
    illumination: int
    cycle_position: float  # Days since the last mean new moon.


@dataclass(frozen=True)
class FullMoonName:
    name: str
    description: str


FULL_MOON_NAMES: Dict[int, FullMoonName] = {
    1: FullMoonName("Wolf Moon", "Named after howling wolves in winter"),
    2: FullMoonName("Snow Moon", "Named for heavy snowfall"),
    3: FullMoonName("Worm Moon", "When earthworms emerge as soil thaws"),
    4: FullMoonName("Pink Moon", "Named after early spring flowers"),
    5: FullMoonName("Flower Moon", "When flowers bloom abundantly"),
    6: FullMoonName("Strawberry Moon", "When strawberries are harvested"),
    7: FullMoonName("Buck Moon", "When male deer grow new antlers"),
    8: FullMoonName("Sturgeon Moon", "When sturgeon fish are caught"),
    9: FullMoonName("Harvest Moon", "The full moon nearest autumn equinox"),
    10: FullMoonName("Hunter's Moon", "When hunters prepare for winter"),
    11: FullMoonName("Beaver Moon", "When beavers build winter dams"),
    12: FullMoonName("Cold Moon", "The long nights of winter"),
}


def _as_utc(when: DateLike) -> datetime:
    """Interpret dates as UTC midnight and naive datetimes as UTC."""

    if not isinstance(when, datetime):
        return datetime.combine(when, time(), tzinfo=UTC)
    if when.tzinfo is None:
        return when.replace(tzinfo=UTC)
    return when.astimezone(UTC)


def _utc_day(when: DateLike) -> date:
    if not isinstance(when, datetime):
        return when
    return _as_utc(when).date()


def calculate_moon_phase(when: DateLike) -> MoonPhase:
    """Return the named phase and illumination for *when*.

    The model extrapolates linearly from a reference new moon with the mean
    synodic month, so it is deterministic for any date.
    """

    days = (_as_utc(when) - REFERENCE_NEW_MOON).total_seconds() / SECONDS_PER_DAY
    position = days % SYNODIC_MONTH_DAYS
    if position >= SYNODIC_MONTH_DAYS:
        # Float modulo of a tiny negative value can round up to the period.
        position = 0.0

    illumination = round((1 - math.cos(position / SYNODIC_MONTH_DAYS * 2 * math.pi)) * 50)
    phase = PHASE_NAMES[bisect_right(_PHASE_BOUNDARIES, position)]
    return MoonPhase(phase=phase, illumination=illumination, cycle_position=position)


class LunarEventTable:
    """Exact-day membership test over sorted full and new moon dates."""

    def __init__(self, full_moon: Iterable[str], new_moon: Iterable[str]) -> None:
        self._full_moon = self._to_ordinals(full_moon)
        self._new_moon = self._to_ordinals(new_moon)

    @staticmethod
    def _to_ordinals(dates: Iterable[str]) -> Tuple[int, ...]:
        return tuple(sorted({date.fromisoformat(value).toordinal() for value in dates}))

    @staticmethod
    def _contains(ordinals: Tuple[int, ...], value: int) -> bool:
        idx = bisect_left(ordinals, value)
        return idx < len(ordinals) and ordinals[idx] == value

    @classmethod
    def from_json(cls, payload: str) -> "LunarEventTable":
        data = json.loads(payload)
        return cls(full_moon=data["full_moon"], new_moon=data["new_moon"])

    def is_full_moon(self, when: DateLike) -> bool:
        return self._contains(self._full_moon, _utc_day(when).toordinal())

    def is_new_moon(self, when: DateLike) -> bool:
        return self._contains(self._new_moon, _utc_day(when).toordinal())

    def most_recent_new_moon(self, when: DateLike) -> datetime:
        """Latest tabulated new moon on or before *when* (UTC midnight).

        Dates before the table starts fall back to its earliest entry.
        """

        target = _as_utc(when)
        idx = bisect_right(self._new_moon, target.date().toordinal())
        ordinal = self._new_moon[idx - 1] if idx else self._new_moon[0]
        return datetime.combine(date.fromordinal(ordinal), time(), tzinfo=UTC)

    def coverage(self) -> Tuple[Optional[date], Optional[date]]:
        ordinals = self._full_moon + self._new_moon
        if not ordinals:
            return None, None
        return date.fromordinal(min(ordinals)), date.fromordinal(max(ordinals))

    def __len__(self) -> int:
        return len(self._full_moon) + len(self._new_moon)


@lru_cache(maxsize=None)
def default_table() -> LunarEventTable:
    """Load the packaged ephemeris table once."""

    payload = resources.files("moontide").joinpath("data/lunar_events.json").read_text(
        encoding="utf-8"
    )
    table = LunarEventTable.from_json(payload)
    first, last = table.coverage()
    LOGGER.debug(
        json.dumps(
            {
                "event": "lunar_table_loaded",
                "entries": len(table),
                "first": first.isoformat() if first else None,
                "last": last.isoformat() if last else None,
            }
        )
    )
    return table


def is_date_full_moon(when: DateLike) -> bool:
    return default_table().is_full_moon(when)


def is_date_new_moon(when: DateLike) -> bool:
    return default_table().is_new_moon(when)


def find_most_recent_new_moon(when: DateLike) -> datetime:
    return default_table().most_recent_new_moon(when)


def get_full_moon_name(when: DateLike) -> Optional[FullMoonName]:
    """Traditional name of the full moon falling in the month of *when*."""

    return FULL_MOON_NAMES.get(when.month)


def get_moon_emoji(phase: str) -> str:
    return _MOON_EMOJI.get(phase, "🌙")


def is_full_moon(phase: str) -> bool:
    return phase == "Full Moon"
