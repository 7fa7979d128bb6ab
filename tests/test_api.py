from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

import pytest
from fastapi.testclient import TestClient

from models import EventQueryParams


@pytest.fixture(scope="session")
def api_client(kernel_dir: Path, ephemeris: list[str]) -> Iterable[TestClient]:
    with pytest.MonkeyPatch.context() as patch:
        patch.setenv("DE_BSP", str(kernel_dir))
        patch.delenv("LEAP_SECONDS_FILE", raising=False)
        from almanac_api import app

        with TestClient(app) as client:
            yield client


def test_health_endpoint(api_client: TestClient) -> None:
    response = api_client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["leap_seconds_loaded"] is True
    assert payload["leap_second_count"] == 28
    assert payload["ephemeris_loaded"] is True
    assert payload["files"] == ["sun_2025.bsp"]


def test_sunrise_at_greenwich(api_client: TestClient) -> None:
    response = api_client.get(
        "/events",
        params={"lat": 51.4779, "lon": 0.0, "date": "2025-03-20", "bracket_minutes": 5},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["body"] == "sun"
    assert payload["phenomenon"] == "rising"
    assert payload["target_deg"] == pytest.approx(-0.9)
    assert payload["time_local"].startswith("2025-03-20T06:0")
    assert 85.0 < payload["azimuth_deg"] < 92.0
    assert payload["altitude_deg"] is None


def test_civil_dusk_in_local_time(api_client: TestClient) -> None:
    response = api_client.get(
        "/events",
        params={
            "lat": 39.9042,
            "lon": 116.4074,
            "offset_hours": 8,
            "date": "2025-10-21",
            "phenomenon": "setting",
            "twilight": "civil",
        },
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["target_deg"] == pytest.approx(-6.0)
    assert payload["time_local"].startswith("2025-10-21T17:")


def test_polar_day_has_no_sunrise(api_client: TestClient) -> None:
    response = api_client.get(
        "/events",
        params={"lat": 78.2232, "lon": 15.6267, "offset_hours": 1, "date": "2025-06-21"},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "no_event"
    assert payload["time_local"] is None
    assert payload["azimuth_deg"] is None


def test_star_transit(api_client: TestClient) -> None:
    response = api_client.get(
        "/events",
        params={
            "lat": 45.0,
            "lon": 0.0,
            "date": "2025-03-20",
            "body": "star",
            "phenomenon": "transit",
            "ra_deg": 45.0,
            "dec_deg": 0.0,
            "bracket_minutes": 5,
        },
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["target_deg"] == pytest.approx(180.0)
    assert payload["altitude_deg"] == pytest.approx(45.0, abs=0.05)
    assert payload["azimuth_deg"] is None


def test_star_needs_coordinates(api_client: TestClient) -> None:
    response = api_client.get(
        "/events",
        params={"lat": 45.0, "lon": 0.0, "date": "2025-03-20", "body": "star"},
    )
    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == "validation_error"
    assert "ra_deg" in payload["error"]


@pytest.mark.parametrize(
    "overrides",
    [{"lat": 95}, {"bracket_minutes": 0}, {"offset_minutes": 60}, {"date": "2025-02-30"}, {"twilight": "golden"}],
)
def test_validation_error(api_client: TestClient, overrides: dict) -> None:
    params = {"lat": 45.0, "lon": 0.0, "date": "2025-03-20"}
    params.update(overrides)
    response = api_client.get("/events", params=params)
    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == "validation_error"
    assert payload["ok"] is False


def test_body_missing_from_kernel(api_client: TestClient) -> None:
    response = api_client.get(
        "/events",
        params={"lat": 45.0, "lon": 0.0, "date": "2025-03-20", "body": "moon"},
    )
    assert response.status_code == 500
    payload = response.json()
    assert payload["code"] == "http_500"
    assert "MOON" in payload["error"]


def test_query_model_accepts_field_names_and_aliases() -> None:
    by_alias = EventQueryParams.model_validate({"lat": 1.0, "lon": 2.0, "date": "2025-01-01"})
    by_name = EventQueryParams(lat=1.0, lon=2.0, day="2025-01-01")
    assert by_alias == by_name
    location = by_alias.to_location()
    assert location.offset_hours == 0


def test_client_environment_is_scoped(api_client: TestClient, kernel_dir: Path) -> None:
    assert os.environ.get("DE_BSP") == str(kernel_dir)
