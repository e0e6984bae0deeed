"""Year-long daylight series re-indexed to start at the summer solstice."""

from __future__ import annotations

import json
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from datetime import date, datetime, time, timedelta
from threading import Lock
from typing import Dict, Optional, Tuple, Union

import numpy as np

from .solar import daylight_minutes_for

__all__ = [
    "SolarDay",
    "SeasonIndices",
    "SolarSeries",
    "SolarSeriesCache",
    "build_solar_series",
    "get_solar_series",
    "current_day_index",
    "interpolate_daylight",
]

LOGGER = logging.getLogger(__name__)

EQUINOX_DAYLIGHT_HR = 12.0
SPRING_MONTHS = (3, 4)
AUTUMN_MONTHS = (9, 10)

CacheKey = Tuple[int, str, str]
_KEY_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class SolarDay:
    date: date  # Sampled at local noon.
    daylight_hr: float


@dataclass(frozen=True)
class SeasonIndices:
    """Positions in the June-shifted frame; equinoxes carry a fractional part."""

    summer: float
    winter: float
    spring: float
    autumn: float


@dataclass(frozen=True)
class SolarSeries:
    year: int
    latitude: float
    longitude: float
    days: Tuple[SolarDay, ...]
    june_shifted_days: Tuple[SolarDay, ...]
    indices: SeasonIndices


def _log_missing_crossing(equinox: str, lat: float, lng: float, year: int) -> None:
    LOGGER.warning(
        json.dumps(
            {
                "event": "equinox_crossing_missing",
                "equinox": equinox,
                "lat": lat,
                "lng": lng,
                "year": year,
            }
        )
    )


def _round_coordinate(value: float) -> str:
    """Two-decimal text with exact ties rounded away from zero."""

    if not math.isfinite(value):
        return str(value)
    return str(Decimal(value).quantize(_KEY_QUANTUM, rounding=ROUND_HALF_UP))


def build_solar_series(lat: float, lng: float, year: int) -> SolarSeries:
    """Compute one daylight sample per calendar day of *year*.

    Solstices are the first running maximum and minimum. Equinoxes are the
    first 12 hour crossings (upward in March-April, downward in
    September-October), linearly interpolated between the straddling days.
    A crossing that never happens leaves its shifted index at ``0``, the
    same position as the summer solstice.
    """

    start = date(year, 1, 1)
    total = (date(year + 1, 1, 1) - start).days
    days = tuple(
        SolarDay(
            date=start + timedelta(days=offset),
            daylight_hr=daylight_minutes_for(start + timedelta(days=offset), lat, lng) / 60.0,
        )
        for offset in range(total)
    )

    summer = winter = 0
    spring: Optional[float] = None
    autumn: Optional[float] = None
    maximum = minimum = days[0].daylight_hr

    for i in range(1, total):
        current = days[i].daylight_hr
        previous = days[i - 1].daylight_hr
        month = days[i].date.month

        if current > maximum:
            maximum = current
            summer = i
        if current < minimum:
            minimum = current
            winter = i

        if spring is None and month in SPRING_MONTHS:
            if previous < EQUINOX_DAYLIGHT_HR <= current:
                spring = i - 1 + (EQUINOX_DAYLIGHT_HR - previous) / (current - previous)
        if autumn is None and month in AUTUMN_MONTHS:
            if previous > EQUINOX_DAYLIGHT_HR >= current:
                autumn = i - 1 + (previous - EQUINOX_DAYLIGHT_HR) / (previous - current)

    def shift(index: float) -> float:
        return (index - summer + total) % total

    def shift_equinox(index: Optional[float], name: str) -> float:
        if index is None:
            _log_missing_crossing(name, lat, lng, year)
            return 0.0
        return shift(index)

    return SolarSeries(
        year=year,
        latitude=lat,
        longitude=lng,
        days=days,
        june_shifted_days=days[summer:] + days[:summer],
        indices=SeasonIndices(
            summer=shift(summer),
            winter=shift(winter),
            spring=shift_equinox(spring, "spring"),
            autumn=shift_equinox(autumn, "autumn"),
        ),
    )


class SolarSeriesCache:
    """Memoizes series by year and coordinates rounded to two decimals.

    Concurrent requests for the same key build the series once; later
    callers wait for the first build and receive the same object. With
    *maxsize* set, the least recently used entry is evicted.
    """

    def __init__(self, maxsize: Optional[int] = None) -> None:
        if maxsize is not None and maxsize < 1:
            raise ValueError("maxsize must be a positive integer or None")
        self._maxsize = maxsize
        self._entries: "OrderedDict[CacheKey, SolarSeries]" = OrderedDict()
        self._building: Dict[CacheKey, Lock] = {}
        self._lock = Lock()

    @staticmethod
    def key_for(lat: float, lng: float, year: int) -> CacheKey:
        return (year, _round_coordinate(lat), _round_coordinate(lng))

    def _lookup(self, key: CacheKey) -> Optional[SolarSeries]:
        series = self._entries.get(key)
        if series is not None:
            self._entries.move_to_end(key)
        return series

    def get(self, lat: float, lng: float, year: int) -> SolarSeries:
        key = self.key_for(lat, lng, year)
        with self._lock:
            series = self._lookup(key)
            if series is not None:
                return series
            key_lock = self._building.setdefault(key, Lock())

        with key_lock:
            with self._lock:
                series = self._lookup(key)
            if series is not None:
                return series

            series = build_solar_series(lat, lng, year)
            with self._lock:
                self._entries[key] = series
                self._building.pop(key, None)
                if self._maxsize is not None:
                    while len(self._entries) > self._maxsize:
                        self._entries.popitem(last=False)
            LOGGER.info(
                json.dumps(
                    {
                        "event": "solar_series_built",
                        "year": year,
                        "lat": key[1],
                        "lng": key[2],
                        "days": len(series.days),
                    }
                )
            )
            return series

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


def get_solar_series(
    lat: float,
    lng: float,
    year: int,
    cache: Optional[SolarSeriesCache] = None,
) -> SolarSeries:
    """Return the series for *year*, through *cache* when one is supplied."""

    if cache is None:
        return build_solar_series(lat, lng, year)
    return cache.get(lat, lng, year)


def current_day_index(series: SolarSeries, when: Union[date, datetime]) -> float:
    """Fractional position of *when* in the June-shifted frame."""

    start = series.june_shifted_days[0].date
    if isinstance(when, datetime):
        anchor = datetime.combine(start, time(12), tzinfo=when.tzinfo)
        diff = (when - anchor).total_seconds() / timedelta(days=1).total_seconds()
    else:
        diff = float((when - start).days)
    total = len(series.june_shifted_days)
    return diff + total if diff < 0 else diff


def interpolate_daylight(series: SolarSeries, index: float) -> float:
    """Daylight hours at a fractional June-shifted index, wrapping at the end."""

    hours = np.array([day.daylight_hr for day in series.june_shifted_days], dtype=float)
    total = len(hours)
    if not math.isfinite(index):
        return math.nan
    return float(np.interp(index, np.arange(total), hours, period=total))
