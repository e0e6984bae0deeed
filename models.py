"""Pydantic models for API requests and responses."""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SunQueryParams(BaseModel):
    """Validated query parameters for the ``/sun`` endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")
    day: date = Field(..., alias="date", description="Calendar date (YYYY-MM-DD)")
    offset_hours: Optional[float] = Field(
        None,
        description="Fixed UTC offset in hours used for local sunrise/sunset strings",
    )

    @field_validator("offset_hours")
    @classmethod
    def validate_offset_hours(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return value
        # timezone() requires the offset to be strictly inside one day.
        if not -24.0 < value < 24.0 or abs(timedelta(hours=value)) >= timedelta(hours=24):
            raise ValueError("offset_hours must be strictly between -24 and 24 hours")
        return value


class MoonQueryParams(BaseModel):
    """Validated query parameters for the ``/moon`` endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(..., alias="date", description="UTC calendar date (YYYY-MM-DD)")


class SeriesQueryParams(BaseModel):
    """Validated query parameters for the ``/series`` endpoint."""

    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in degrees")
    lon: float = Field(..., ge=-180.0, le=180.0, description="Longitude in degrees")
    year: int = Field(..., ge=1, le=9998, description="Calendar year")


class SolarEventModel(BaseModel):
    name: str
    emoji: str
    description: str


class SunResponse(BaseModel):
    """Sunrise/sunset and daylight metrics for one day."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    day: date = Field(..., alias="date")
    latitude: float
    longitude: float
    sunrise: str = Field(..., description="Local sunrise (HH:MM)")
    sunset: str = Field(..., description="Local sunset (HH:MM)")
    sunrise_utc: Optional[str] = Field(None, description="Sunrise in UTC (ISO-8601)")
    sunset_utc: Optional[str] = Field(None, description="Sunset in UTC (ISO-8601)")
    daylight_minutes: Optional[int] = Field(
        None, description="Minutes of daylight; null when the sun does not rise or set"
    )
    darkness_minutes: Optional[int] = None
    daylight: str
    darkness: str
    change_from_previous: str
    change_since_solstice: str
    solstice_reference: Optional[date] = None
    solar_event: Optional[SolarEventModel] = None


class FullMoonNameModel(BaseModel):
    name: str
    description: str


class MoonResponse(BaseModel):
    """Moon phase plus exact-day ephemeris flags."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    day: date = Field(..., alias="date", description="UTC calendar date")
    phase: str
    illumination: int = Field(..., ge=0, le=100)
    cycle_position: float = Field(..., description="Days since the last mean new moon")
    emoji: str
    is_full_moon: bool
    is_new_moon: bool
    full_moon_name: Optional[FullMoonNameModel] = None
    last_new_moon: date


class SolarDayModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: date = Field(..., alias="date")
    daylight_hr: Optional[float] = None


class SeasonIndicesModel(BaseModel):
    summer: float
    winter: float
    spring: float
    autumn: float


class SeriesResponse(BaseModel):
    """A year of daylight samples in calendar and June-shifted order."""

    ok: bool = True
    year: int
    latitude: float
    longitude: float
    days: List[SolarDayModel]
    june_shifted_days: List[SolarDayModel]
    indices: SeasonIndicesModel


class NatureRuleModel(BaseModel):
    id: str
    trigger: Literal["photoperiod"] = "photoperiod"
    threshold: float = Field(..., description="Daylight hours threshold")
    label: str


class NatureEvalRequest(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)
    year: int = Field(..., ge=1, le=9998)
    rules: List[NatureRuleModel] = Field(default_factory=list)


class BandModel(BaseModel):
    start: float
    end: float
    label: str


class MarkerModel(BaseModel):
    index: float
    label: str


class NatureEvalResponse(BaseModel):
    ok: bool = True
    bands: List[BandModel]
    markers: List[MarkerModel]


class HealthResponse(BaseModel):
    """Health-check response."""

    ok: bool = True
    lunar_table_entries: int
    lunar_table_first: Optional[date] = None
    lunar_table_last: Optional[date] = None
    cached_series: int


class ErrorResponse(BaseModel):
    """Error payload."""

    ok: bool = False
    code: str
    error: str
