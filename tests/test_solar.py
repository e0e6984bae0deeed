from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

import pytest

from moontide.solar import (
    _format_daily_change,
    calculate_solar_times,
    daylight_minutes_for,
    get_solar_event,
    solstice_reference,
)

NEWPORT_LAT, NEWPORT_LNG = 41.4353, -71.4616
SVALBARD_LAT, SVALBARD_LNG = 78.2232, 15.6469


def test_calculation_is_deterministic():
    first = calculate_solar_times(date(2025, 8, 3), NEWPORT_LAT, NEWPORT_LNG)
    second = calculate_solar_times(date(2025, 8, 3), NEWPORT_LAT, NEWPORT_LNG)
    assert first == second


@pytest.mark.parametrize(
    "day",
    [date(2025, 1, 15), date(2025, 3, 20), date(2025, 6, 21), date(2025, 11, 2)],
)
def test_daylight_and_darkness_fill_the_day(day: date):
    times = calculate_solar_times(day, NEWPORT_LAT, NEWPORT_LNG)
    assert times.daylight_minutes + times.darkness_minutes == 1440
    assert 0 <= times.daylight_minutes <= 1440
    hours, minutes = times.daylight.rstrip("m").split("h ")
    assert int(hours) * 60 + int(minutes) == times.daylight_minutes


def test_newport_summer_solstice_is_near_annual_maximum():
    solstice = calculate_solar_times(date(2025, 6, 21), NEWPORT_LAT, NEWPORT_LNG)
    spring = calculate_solar_times(date(2025, 3, 20), NEWPORT_LAT, NEWPORT_LNG)
    autumn = calculate_solar_times(date(2025, 9, 22), NEWPORT_LAT, NEWPORT_LNG)

    assert 880 <= solstice.daylight_minutes <= 960
    assert solstice.daylight_minutes > spring.daylight_minutes
    assert solstice.daylight_minutes > autumn.daylight_minutes

    year_max = max(
        daylight_minutes_for(date(2025, 1, 1) + timedelta(days=i), NEWPORT_LAT, NEWPORT_LNG)
        for i in range(365)
    )
    assert solstice.daylight_minutes == pytest.approx(year_max, abs=1.0)


def test_sunrise_uses_requested_zone():
    edt = timezone(timedelta(hours=-4))
    times = calculate_solar_times(date(2025, 6, 21), NEWPORT_LAT, NEWPORT_LNG, tz=edt)
    assert times.sunrise.startswith("05:")
    assert times.sunset.startswith("20:")
    assert times.sunrise_utc is not None and times.sunrise_utc.tzinfo is not None
    assert 8 <= times.sunrise_utc.hour <= 10


def test_aware_datetime_supplies_default_zone():
    edt = timezone(timedelta(hours=-4))
    aware = calculate_solar_times(datetime(2025, 6, 21, 9, 30, tzinfo=edt), NEWPORT_LAT, NEWPORT_LNG)
    explicit = calculate_solar_times(date(2025, 6, 21), NEWPORT_LAT, NEWPORT_LNG, tz=edt)
    assert aware.sunrise == explicit.sunrise
    assert aware.daylight_minutes == explicit.daylight_minutes


def test_change_from_previous_reports_direction():
    spring = calculate_solar_times(date(2025, 3, 20), NEWPORT_LAT, NEWPORT_LNG)
    autumn = calculate_solar_times(date(2025, 9, 22), NEWPORT_LAT, NEWPORT_LNG)
    solstice = calculate_solar_times(date(2025, 6, 21), NEWPORT_LAT, NEWPORT_LNG)

    assert spring.change_from_previous.startswith("+")
    assert spring.change_from_previous.endswith("m longer")
    assert autumn.change_from_previous.startswith("-")
    assert autumn.change_from_previous.endswith("m shorter")
    assert solstice.change_from_previous == "same as yesterday"


@pytest.mark.parametrize(
    "delta, expected",
    [
        (62.0, "+1h 2m longer"),
        (-75.4, "-1h 15m shorter"),
        (2.6, "+3m longer"),
        (-0.5, "same as yesterday"),
        (math.nan, "--"),
    ],
)
def test_daily_change_format(delta: float, expected: str):
    assert _format_daily_change(delta) == expected


@pytest.mark.parametrize(
    "day, expected",
    [
        (date(2025, 6, 21), date(2025, 6, 21)),
        (date(2025, 6, 20), date(2024, 12, 21)),
        (date(2025, 1, 2), date(2024, 12, 21)),
        (date(2025, 12, 31), date(2025, 6, 21)),
    ],
)
def test_solstice_reference_follows_summer_window(day: date, expected: date):
    assert solstice_reference(day) == expected
    assert calculate_solar_times(day, NEWPORT_LAT, NEWPORT_LNG).solstice_reference == expected


def test_change_since_solstice_sign():
    on_solstice = calculate_solar_times(date(2025, 6, 21), NEWPORT_LAT, NEWPORT_LNG)
    late_winter = calculate_solar_times(date(2025, 3, 1), NEWPORT_LAT, NEWPORT_LNG)
    early_winter = calculate_solar_times(date(2025, 12, 1), NEWPORT_LAT, NEWPORT_LNG)

    assert on_solstice.change_since_solstice == "+0h 0m"
    assert late_winter.change_since_solstice.startswith("+")
    assert early_winter.change_since_solstice.startswith("-")
    hours = int(early_winter.change_since_solstice[1:].split("h")[0])
    assert 5 <= hours <= 7


def test_polar_day_degrades_to_nan():
    times = calculate_solar_times(date(2025, 6, 21), SVALBARD_LAT, SVALBARD_LNG)
    assert math.isnan(times.daylight_minutes)
    assert math.isnan(times.darkness_minutes)
    assert times.sunrise == "--:--"
    assert times.sunset == "--:--"
    assert times.sunrise_utc is None
    assert times.daylight == "--"


def test_out_of_range_latitude_does_not_raise():
    times = calculate_solar_times(date(2025, 6, 21), 120.0, 0.0)
    assert times.solstice_reference == date(2025, 6, 21)


@pytest.mark.parametrize(
    "day, name",
    [
        (date(2025, 3, 20), "Spring Equinox"),
        (date(2025, 6, 22), "Summer Solstice"),
        (date(2025, 9, 21), "Autumn Equinox"),
        (date(2025, 12, 20), "Winter Solstice"),
    ],
)
def test_named_solar_events(day: date, name: str):
    event = get_solar_event(day)
    assert event is not None
    assert event.name == name


def test_ordinary_day_has_no_solar_event():
    assert get_solar_event(date(2025, 5, 5)) is None


def test_first_calendar_days_do_not_raise():
    first = calculate_solar_times(date.min, NEWPORT_LAT, NEWPORT_LNG)
    assert first.change_from_previous == "--"
    assert first.solstice_reference is None
    assert first.change_since_solstice == "--"
    assert 0 < first.daylight_minutes < 1440

    spring = calculate_solar_times(date(1, 3, 1), NEWPORT_LAT, NEWPORT_LNG)
    assert spring.change_from_previous.endswith("longer")
    assert spring.change_since_solstice == "--"

    summer = calculate_solar_times(date(1, 7, 1), NEWPORT_LAT, NEWPORT_LNG)
    assert summer.solstice_reference == date(1, 6, 21)
    assert summer.change_since_solstice != "--"


def test_last_calendar_day_does_not_raise():
    # Sunset falls after 9999-12-31 UTC on the western side of the date line.
    times = calculate_solar_times(date.max, NEWPORT_LAT, -179.0)
    assert times.sunset_utc is None
    assert times.sunset == "--:--"
    assert times.sunrise != "--:--"
    assert times.solstice_reference == date(9999, 6, 21)
    assert math.isfinite(times.daylight_minutes)
