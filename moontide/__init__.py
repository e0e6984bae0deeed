"""Solar and lunar computations for the Moontide dashboard."""

from .lunar import (
    MoonPhase,
    calculate_moon_phase,
    find_most_recent_new_moon,
    is_date_full_moon,
    is_date_new_moon,
)
from .nature import NatureEventRule, evaluate_rules
from .series import SolarSeries, SolarSeriesCache, get_solar_series
from .solar import SolarTimes, calculate_solar_times

__all__ = [
    "calculate_solar_times",
    "calculate_moon_phase",
    "is_date_full_moon",
    "is_date_new_moon",
    "find_most_recent_new_moon",
    "get_solar_series",
    "evaluate_rules",
    "MoonPhase",
    "NatureEventRule",
    "SolarSeries",
    "SolarSeriesCache",
    "SolarTimes",
]
