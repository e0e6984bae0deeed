"""Sunrise, sunset and daylight duration from a low-precision solar ephemeris."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import MINYEAR, UTC, date, datetime, timedelta, tzinfo
from typing import Optional, Tuple, Union

import erfa
import numpy as np

__all__ = [
    "SolarTimes",
    "SolarEvent",
    "calculate_solar_times",
    "daylight_minutes_for",
    "solstice_reference",
    "get_solar_event",
]

DateLike = Union[date, datetime]

J2000 = 2451545.0
J2000_EPOCH = datetime(2000, 1, 1, 12, tzinfo=UTC)
SUNRISE_ALTITUDE_DEG = -0.833  # Refraction plus solar semi-diameter.
OBLIQUITY_DEG = 23.4397
PERIHELION_DEG = 102.9372
MINUTES_PER_DAY = 1440

_UNKNOWN_TIME = "--:--"
_UNKNOWN_DURATION = "--"


@dataclass(frozen=True)
class SolarTimes:
    """Sun facts for one calendar day at one location."""

    sunrise: str
    sunset: str
    sunrise_utc: Optional[datetime]
    sunset_utc: Optional[datetime]
    daylight_minutes: float
    darkness_minutes: float
    daylight: str
    darkness: str
    change_from_previous: str
    change_since_solstice: str
    solstice_reference: Optional[date]


@dataclass(frozen=True)
class SolarEvent:
    name: str
    emoji: str
    description: str


def _calendar_day(day: DateLike) -> date:
    if isinstance(day, datetime):
        return day.date()
    return day


def _days_since_j2000(day: date) -> float:
    """Whole days between J2000.0 and noon (UT) of *day*."""

    djm0, djm = erfa.cal2jd(day.year, day.month, day.day)
    return float(round(djm0 + djm + 0.5 - J2000))


def _transit_and_hour_angle(day: date, lat: float, lng: float) -> Tuple[float, float]:
    """Return the Julian date of solar transit and the sunrise hour angle (degrees).

    The hour angle is ``nan`` when the sun never crosses the sunrise altitude
    on that day (polar day or polar night).
    """

    j_star = _days_since_j2000(day) - lng / 360.0
    mean_anomaly = (357.5291 + 0.98560028 * j_star) % 360.0
    m_rad = math.radians(mean_anomaly)
    center = 1.9148 * math.sin(m_rad) + 0.02 * math.sin(2 * m_rad) + 0.0003 * math.sin(3 * m_rad)
    ecliptic_longitude = (mean_anomaly + center + 180.0 + PERIHELION_DEG) % 360.0
    l_rad = math.radians(ecliptic_longitude)

    transit = J2000 + j_star + 0.0053 * math.sin(m_rad) - 0.0069 * math.sin(2 * l_rad)

    sin_dec = math.sin(l_rad) * math.sin(math.radians(OBLIQUITY_DEG))
    cos_dec = math.cos(math.asin(sin_dec))
    lat_rad = math.radians(lat)
    cos_omega = (
        math.sin(math.radians(SUNRISE_ALTITUDE_DEG)) - math.sin(lat_rad) * sin_dec
    ) / (math.cos(lat_rad) * cos_dec)
    with np.errstate(invalid="ignore"):
        omega = float(np.degrees(np.arccos(cos_omega)))
    return transit, omega


def _julian_to_datetime(jd: float) -> Optional[datetime]:
    if not math.isfinite(jd):
        return None
    try:
        return J2000_EPOCH + timedelta(days=jd - J2000)
    except OverflowError:
        # Instants outside the datetime range at the ends of the calendar.
        return None


def _format_clock(instant: Optional[datetime], tz: tzinfo) -> str:
    if instant is None:
        return _UNKNOWN_TIME
    try:
        return instant.astimezone(tz).strftime("%H:%M")
    except OverflowError:
        return _UNKNOWN_TIME


def _format_duration(minutes: float) -> str:
    if not math.isfinite(minutes):
        return _UNKNOWN_DURATION
    hours, rest = divmod(int(round(minutes)), 60)
    return f"{hours}h {rest}m"


def _format_daily_change(delta: float) -> str:
    if not math.isfinite(delta):
        return _UNKNOWN_DURATION
    if abs(delta) < 1:
        return "same as yesterday"
    hours, minutes = divmod(int(round(abs(delta))), 60)
    amount = f"{hours}h {minutes}m" if hours else f"{minutes}m"
    if delta > 0:
        return f"+{amount} longer"
    return f"-{amount} shorter"


def _format_signed_duration(delta: float) -> str:
    if not math.isfinite(delta):
        return _UNKNOWN_DURATION
    sign = "+" if delta >= 0 else "-"
    return sign + _format_duration(abs(delta))


def daylight_minutes_for(day: DateLike, lat: float, lng: float) -> float:
    """Unrounded minutes of daylight on *day*; ``nan`` at polar latitudes."""

    _, omega = _transit_and_hour_angle(_calendar_day(day), lat, lng)
    # Sunset minus sunrise spans 2 * omega / 360 of a day.
    return omega / 180.0 * MINUTES_PER_DAY


def solstice_reference(day: DateLike) -> Optional[date]:
    """Pick the solstice a day's daylight is compared against.

    Days on or after June 21 compare against that June 21; earlier days
    compare against December 21 of the previous year, or ``None`` in year 1
    where that December does not exist.
    """

    day = _calendar_day(day)
    june = date(day.year, 6, 21)
    if day >= june:
        return june
    if day.year == MINYEAR:
        return None
    return date(day.year - 1, 12, 21)


def calculate_solar_times(
    day: DateLike,
    lat: float,
    lng: float,
    tz: Optional[tzinfo] = None,
) -> SolarTimes:
    """Compute sunrise, sunset and daylight metrics for a calendar day.

    Parameters
    ----------
    day:
        Date or datetime; only the calendar day is used.
    lat, lng:
        Geographic coordinates in degrees (east-positive longitude). Values
        are not validated; unreachable geometry degrades to ``nan``.
    tz:
        Zone used for the ``sunrise``/``sunset`` strings. Defaults to the
        tzinfo of an aware *day*, else UTC.

    Returns
    -------
    SolarTimes
    """

    if tz is None:
        tz = day.tzinfo if isinstance(day, datetime) and day.tzinfo is not None else UTC
    calendar_day = _calendar_day(day)

    transit, omega = _transit_and_hour_angle(calendar_day, lat, lng)
    sunrise_utc = _julian_to_datetime(transit - omega / 360.0)
    sunset_utc = _julian_to_datetime(transit + omega / 360.0)

    raw_minutes = omega / 180.0 * MINUTES_PER_DAY
    if math.isfinite(raw_minutes):
        daylight_minutes: float = round(raw_minutes)
    else:
        daylight_minutes = math.nan
    darkness_minutes = MINUTES_PER_DAY - daylight_minutes

    previous_minutes = math.nan
    if calendar_day > date.min:
        previous_minutes = daylight_minutes_for(calendar_day - timedelta(days=1), lat, lng)
    reference = solstice_reference(calendar_day)
    reference_minutes = math.nan
    if reference is not None:
        reference_minutes = daylight_minutes_for(reference, lat, lng)

    return SolarTimes(
        sunrise=_format_clock(sunrise_utc, tz),
        sunset=_format_clock(sunset_utc, tz),
        sunrise_utc=sunrise_utc,
        sunset_utc=sunset_utc,
        daylight_minutes=daylight_minutes,
        darkness_minutes=darkness_minutes,
        daylight=_format_duration(daylight_minutes),
        darkness=_format_duration(darkness_minutes),
        change_from_previous=_format_daily_change(raw_minutes - previous_minutes),
        change_since_solstice=_format_signed_duration(raw_minutes - reference_minutes),
        solstice_reference=reference,
    )


def get_solar_event(day: DateLike) -> Optional[SolarEvent]:
    """Return the approximate named solstice/equinox for *day*, if any."""

    day = _calendar_day(day)
    if day.month == 3 and 19 <= day.day <= 21:
        return SolarEvent("Spring Equinox", "☀️", "First day of spring")
    if day.month == 6 and 20 <= day.day <= 22:
        return SolarEvent("Summer Solstice", "☀️", "Longest day of the year")
    if day.month == 9 and 21 <= day.day <= 23:
        return SolarEvent("Autumn Equinox", "☀️", "First day of autumn")
    if day.month == 12 and 20 <= day.day <= 22:
        return SolarEvent("Winter Solstice", "☀️", "Shortest day of the year")
    return None
