"""FastAPI application exposing rise, set, twilight and transit searches."""

from __future__ import annotations

import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, Any, Optional, Tuple

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from almanac.bodies import EphemerisError, FixedPosition, load_ephemeris, loaded_files, position_for
from almanac.ephemeris import (
    EphemerisAcquisitionError,
    resolve_ephemeris_source,
    resolve_leap_second_source,
)
from almanac.events import (
    MOON_ALTITUDE,
    STAR_ALTITUDE,
    TRANSIT_AZIMUTH,
    TWILIGHT_ANGLES,
    EventKind,
    EventResult,
    EventSearch,
    PositionFunction,
)
from almanac.terrestrial_time import LeapSecondError, TerrestrialTime, load_leap_seconds
from models import (
    Body,
    ErrorResponse,
    EventQueryParams,
    EventResponse,
    HealthResponse,
    Phenomenon,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
LOGGER = logging.getLogger("almanac-api")

APP_DESCRIPTION = "Rise, set, twilight and transit times for a fixed observer"


def _load_time_model() -> TerrestrialTime:
    source = resolve_leap_second_source()
    model = TerrestrialTime(load_leap_seconds(source))
    LOGGER.info(json.dumps({"event": "time_model_ready", "source": str(source)}))
    return model


def _load_kernels() -> None:
    source = resolve_ephemeris_source()
    files = load_ephemeris(str(source))
    LOGGER.info(json.dumps({"event": "kernels_ready", "source": str(source), "files": files}))


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - exercised in integration tests
    try:
        app.state.time_model = _load_time_model()
        _load_kernels()
    except (EphemerisAcquisitionError, LeapSecondError, EphemerisError) as exc:
        LOGGER.error(json.dumps({"event": "startup_failed", "error": str(exc)}))
        raise
    yield


app = FastAPI(
    title="Almanac API",
    description=APP_DESCRIPTION,
    version="1.0.0",
    lifespan=lifespan,
)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    LOGGER.error(json.dumps({"event": "request_failed", "status": status_code, "code": code, "error": message}))
    return JSONResponse(status_code=status_code, content=ErrorResponse(code=code, error=message).model_dump())


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        field = ".".join(str(item) for item in error.get("loc", ()) if item != "query")
        parts.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "; ".join(parts)


def _detail_message(detail: Any) -> str:
    if isinstance(detail, dict):
        return str(detail.get("error") or detail)
    if isinstance(detail, (list, tuple)):
        return "; ".join(str(item) for item in detail)
    return str(detail)


@app.exception_handler(RequestValidationError)
async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(422, "validation_error", _validation_message(exc))


@app.exception_handler(HTTPException)
async def on_http_error(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(exc.status_code, f"http_{exc.status_code}", _detail_message(exc.detail))


@app.exception_handler(Exception)
async def on_unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception(json.dumps({"event": "unhandled_exception", "path": request.url.path}), exc_info=exc)
    return _error_response(500, "internal_error", "Unhandled server error")


def _altitude_target(params: EventQueryParams) -> float:
    if params.target_deg is not None:
        return params.target_deg
    if params.body is Body.sun:
        return TWILIGHT_ANGLES[params.twilight.value]
    if params.body is Body.moon:
        return MOON_ALTITUDE
    return STAR_ALTITUDE


def _build_search(
    params: EventQueryParams, time_model: TerrestrialTime
) -> Tuple[EventSearch, PositionFunction, float]:
    location = params.to_location()
    if params.phenomenon is Phenomenon.transit:
        target = TRANSIT_AZIMUTH if params.target_deg is None else params.target_deg
        search = EventSearch.azimuth(location, time_model, params.bracket_minutes, target)
    else:
        target = _altitude_target(params)
        kind = EventKind(params.phenomenon.value)
        search = EventSearch.altitude(location, time_model, params.bracket_minutes, target, kind)

    if params.body is Body.star:
        position: PositionFunction = FixedPosition.from_degrees(params.ra_deg, params.dec_deg)
    else:
        position = position_for(params.body.value)
    return search, position, target


@app.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    time_model = getattr(request.app.state, "time_model", None)
    files = loaded_files()
    return HealthResponse(
        ok=True,
        leap_seconds_loaded=time_model is not None,
        leap_second_count=len(time_model.leap_seconds.instants) if time_model else 0,
        ephemeris_loaded=bool(files),
        files=files,
    )


def _to_response(
    params: EventQueryParams, target: float, result: Optional[EventResult]
) -> EventResponse:
    response = EventResponse(
        status="no_event" if result is None else "ok",
        date_local=params.day.isoformat(),
        body=params.body,
        phenomenon=params.phenomenon,
        target_deg=target,
        bracket_minutes=params.bracket_minutes,
    )
    if result is None:
        return response
    companion = round(result.companion_degrees, 4)
    update = {"time_local": result.time.to_nearest_second().isoformat()}
    if result.kind is EventKind.AZIMUTH:
        update["altitude_deg"] = companion
    else:
        update["azimuth_deg"] = companion
    return response.model_copy(update=update)


@app.get(
    "/events",
    response_model=EventResponse,
    responses={status: {"model": ErrorResponse} for status in (400, 422, 500)},
)
def events_endpoint(
    request: Request, params: Annotated[EventQueryParams, Query()]
) -> EventResponse:
    started = time.perf_counter()
    try:
        search, position, target = _build_search(params, request.app.state.time_model)
        result = search.search(params.day, position)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except EphemerisError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    response = _to_response(params, target, result)
    LOGGER.info(
        json.dumps(
            {
                "event": "event_search",
                "observer": [params.lat, params.lon, params.to_location().offset_total_minutes],
                "date": response.date_local,
                "body": params.body.value,
                "phenomenon": params.phenomenon.value,
                "bracket_minutes": params.bracket_minutes,
                "result": response.status,
                "time_local": response.time_local,
                "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 3),
            }
        )
    )
    return response
