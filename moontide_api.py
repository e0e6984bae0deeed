"""FastAPI application exposing solar and lunar computations."""

from __future__ import annotations

import json
import logging
import math
import os
import time
from datetime import UTC, datetime, timedelta, timezone
from typing import Annotated, Optional, Sequence

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from models import (
    BandModel,
    ErrorResponse,
    FullMoonNameModel,
    HealthResponse,
    MarkerModel,
    MoonQueryParams,
    MoonResponse,
    NatureEvalRequest,
    NatureEvalResponse,
    SeasonIndicesModel,
    SeriesQueryParams,
    SeriesResponse,
    SolarDayModel,
    SolarEventModel,
    SunQueryParams,
    SunResponse,
)
from moontide.lunar import calculate_moon_phase, default_table, get_full_moon_name, get_moon_emoji
from moontide.nature import NatureEventRule, evaluate_rules
from moontide.series import SolarDay, SolarSeriesCache
from moontide.solar import calculate_solar_times, get_solar_event

logging.basicConfig(level=logging.INFO, format="%(message)s")
LOGGER = logging.getLogger("moontide-api")

APP_DESCRIPTION = "Sunrise, daylight, moon phase and seasonal daylight series"

DEFAULT_CORS_ORIGINS = "http://localhost:5173"


def _series_cache_from_env() -> SolarSeriesCache:
    raw = os.environ.get("MOONTIDE_SERIES_CACHE_SIZE")
    if not raw:
        return SolarSeriesCache()
    try:
        return SolarSeriesCache(maxsize=int(raw))
    except ValueError:
        LOGGER.warning(
            json.dumps(
                {
                    "event": "config_invalid",
                    "variable": "MOONTIDE_SERIES_CACHE_SIZE",
                    "value": raw,
                    "fallback": "unbounded",
                }
            )
        )
        return SolarSeriesCache()


app = FastAPI(
    title="Moontide API",
    description=APP_DESCRIPTION,
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        origin.strip()
        for origin in os.environ.get("MOONTIDE_CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.series_cache = _series_cache_from_env()


def _format_utc(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _finite_int(value: float) -> Optional[int]:
    if not math.isfinite(value):
        return None
    return int(value)


def _finite_float(value: float) -> Optional[float]:
    if not math.isfinite(value):
        return None
    return value


def _day_models(days: Sequence[SolarDay]) -> list[SolarDayModel]:
    return [SolarDayModel(day=day.date, daylight_hr=_finite_float(day.daylight_hr)) for day in days]


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    payload = ErrorResponse(code=code, error=message)
    LOGGER.error(json.dumps({"event": "error", "code": code, "message": message}))
    return JSONResponse(status_code=status_code, content=payload.model_dump())


def _log_request(event: str, start_time: float, **fields: object) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000.0
    LOGGER.info(json.dumps({"event": event, **fields, "duration_ms": round(duration_ms, 3)}))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = ", ".join(error["msg"] for error in exc.errors())
    return _error_response(422, "validation_error", messages)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        message = detail.get("error") or detail.get("message") or str(detail)
    elif isinstance(detail, list):
        message = ", ".join(str(item) for item in detail)
    else:
        message = str(detail)
    return _error_response(exc.status_code, f"http_{exc.status_code}", message)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception("Unhandled exception", exc_info=exc)
    return _error_response(500, "internal_error", "Unhandled server error")


@app.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    table = default_table()
    first, last = table.coverage()
    return HealthResponse(
        ok=True,
        lunar_table_entries=len(table),
        lunar_table_first=first,
        lunar_table_last=last,
        cached_series=len(request.app.state.series_cache),
    )


@app.get(
    "/sun",
    response_model=SunResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def sun_endpoint(params: Annotated[SunQueryParams, Query()]) -> SunResponse:
    start_time = time.perf_counter()
    tz = UTC
    if params.offset_hours is not None:
        tz = timezone(timedelta(hours=params.offset_hours))

    times = calculate_solar_times(params.day, params.lat, params.lon, tz=tz)
    event = get_solar_event(params.day)

    response = SunResponse(
        day=params.day,
        latitude=params.lat,
        longitude=params.lon,
        sunrise=times.sunrise,
        sunset=times.sunset,
        sunrise_utc=_format_utc(times.sunrise_utc),
        sunset_utc=_format_utc(times.sunset_utc),
        daylight_minutes=_finite_int(times.daylight_minutes),
        darkness_minutes=_finite_int(times.darkness_minutes),
        daylight=times.daylight,
        darkness=times.darkness,
        change_from_previous=times.change_from_previous,
        change_since_solstice=times.change_since_solstice,
        solstice_reference=times.solstice_reference,
        solar_event=SolarEventModel(
            name=event.name, emoji=event.emoji, description=event.description
        )
        if event
        else None,
    )
    _log_request(
        "sun",
        start_time,
        lat=params.lat,
        lon=params.lon,
        date=params.day.isoformat(),
        daylight_minutes=response.daylight_minutes,
    )
    return response


@app.get(
    "/moon",
    response_model=MoonResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def moon_endpoint(params: Annotated[MoonQueryParams, Query()]) -> MoonResponse:
    start_time = time.perf_counter()
    table = default_table()
    moon = calculate_moon_phase(params.day)
    name = get_full_moon_name(params.day)
    full = table.is_full_moon(params.day)

    response = MoonResponse(
        day=params.day,
        phase=moon.phase,
        illumination=moon.illumination,
        cycle_position=moon.cycle_position,
        emoji=get_moon_emoji(moon.phase),
        is_full_moon=full,
        is_new_moon=table.is_new_moon(params.day),
        full_moon_name=FullMoonNameModel(name=name.name, description=name.description)
        if full and name
        else None,
        last_new_moon=table.most_recent_new_moon(params.day).date(),
    )
    _log_request("moon", start_time, date=params.day.isoformat(), phase=moon.phase)
    return response


@app.get(
    "/series",
    response_model=SeriesResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def series_endpoint(
    request: Request, params: Annotated[SeriesQueryParams, Query()]
) -> SeriesResponse:
    start_time = time.perf_counter()
    series = request.app.state.series_cache.get(params.lat, params.lon, params.year)
    response = SeriesResponse(
        year=series.year,
        latitude=series.latitude,
        longitude=series.longitude,
        days=_day_models(series.days),
        june_shifted_days=_day_models(series.june_shifted_days),
        indices=SeasonIndicesModel(
            summer=series.indices.summer,
            winter=series.indices.winter,
            spring=series.indices.spring,
            autumn=series.indices.autumn,
        ),
    )
    _log_request("series", start_time, lat=params.lat, lon=params.lon, year=params.year)
    return response


@app.post(
    "/nature/evaluate",
    response_model=NatureEvalResponse,
    responses={422: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def nature_endpoint(request: Request, body: NatureEvalRequest) -> NatureEvalResponse:
    start_time = time.perf_counter()
    series = request.app.state.series_cache.get(body.lat, body.lon, body.year)
    rules = [
        NatureEventRule(id=rule.id, trigger=rule.trigger, threshold=rule.threshold, label=rule.label)
        for rule in body.rules
    ]
    result = evaluate_rules(series, rules)
    _log_request("nature_evaluate", start_time, year=body.year, rules=len(rules))
    return NatureEvalResponse(
        bands=[BandModel(start=b.start, end=b.end, label=b.label) for b in result.bands],
        markers=[MarkerModel(index=m.index, label=m.label) for m in result.markers],
    )
