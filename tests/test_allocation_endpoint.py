from __future__ import annotations

from dataclasses import replace

from fastapi import FastAPI
from fastapi.testclient import TestClient

from stageplan.controllers.allocation_controller import router
from stageplan.services.allocation_service import StageAllocationService
from stageplan.services.popularity_service import PopularitySampler
from stageplan.utils.config import get_settings


def _build_test_settings(**overrides):
    get_settings.cache_clear()
    base = get_settings()
    defaults = {
        "allocation_policy": "Popularity",
        "allocation_turnover_slots": 1,
        "allocation_random_seed": None,
        "allocation_max_stages": None,
        "popularity_random_seed": 5,
    }
    defaults.update(overrides)
    return replace(base, **defaults)


def _build_client(**overrides) -> TestClient:
    settings = _build_test_settings(**overrides)
    app = FastAPI()
    app.include_router(router)
    app.state.allocation_service = StageAllocationService(
        settings=settings,
        popularity_sampler=PopularitySampler(settings),
    )
    return TestClient(app)


def test_allocate_endpoint_success():
    client = _build_client()
    response = client.post(
        "/allocate",
        json={
            "shows": [
                {"start": 1, "end": 3, "priority": 5},
                {"start": 2, "end": 4, "priority": 5},
                {"start": 5, "end": 6, "priority": 5},
            ],
            "policy": "DenseMainStage",
            "turnover_slots": 1,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["stage_count"] == 2
    assert body["minimum_stages"] == 2
    assert [item["stage"] for item in body["assignments"]] == [1, 2, 1]
    assert body["timetable"] == [[2, 2, 2, 1, 2, 2], [0, 2, 2, 2, 0, 0]]
    assert body["report"][1] == "Show: 2, Priority: 5, Stage: 2, Timeslot: 2-4"


def test_allocate_endpoint_escalates_from_initial_stage_count():
    client = _build_client()
    response = client.post(
        "/allocate",
        json={
            "shows": [
                {"start": 1, "end": 5, "priority": 9},
                {"start": 1, "end": 5, "priority": 1},
            ],
            "policy": "Popularity",
            "turnover_slots": 0,
            "initial_stages": 1,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["passes"] == 2
    assert [item["stage"] for item in body["assignments"]] == [1, 2]


def test_allocate_endpoint_samples_missing_priorities():
    client = _build_client(popularity_min=1, popularity_max=10)
    response = client.post(
        "/allocate",
        json={"shows": [{"start": 1, "end": 2}, {"start": 2, "end": 3}]},
    )

    assert response.status_code == 200
    assert all(1 <= item["priority"] <= 10 for item in response.json()["assignments"])


def test_allocate_endpoint_rejects_reversed_interval():
    client = _build_client()
    response = client.post(
        "/allocate",
        json={"shows": [{"start": 4, "end": 2, "priority": 1}]},
    )

    assert response.status_code == 422


def test_allocate_endpoint_rejects_negative_turnover():
    client = _build_client()
    response = client.post(
        "/allocate",
        json={"shows": [{"start": 1, "end": 2, "priority": 1}], "turnover_slots": -1},
    )

    assert response.status_code == 422


def test_allocate_endpoint_reports_ceiling_failure():
    client = _build_client()
    response = client.post(
        "/allocate",
        json={
            "shows": [
                {"start": 1, "end": 5, "priority": 2},
                {"start": 1, "end": 5, "priority": 1},
            ],
            "turnover_slots": 0,
            "max_stages": 1,
        },
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["stage_count"] == 1
    assert detail["show_id"] == 2


def test_minimum_stages_endpoint():
    client = _build_client()
    response = client.post(
        "/minimum_stages",
        json={
            "shows": [{"start": 1, "end": 5}, {"start": 1, "end": 5}, {"start": 1, "end": 5}],
            "turnover_slots": 0,
        },
    )

    assert response.status_code == 200
    assert response.json() == {"minimum_stages": 3}


def test_simulate_endpoint_validates_unknown_show():
    client = _build_client()
    response = client.post(
        "/simulate",
        json={
            "shows": [{"start": 1, "end": 2, "priority": 3}],
            "priority_override": {"9999": 5},
        },
    )

    assert response.status_code == 400
    assert "unknown show_id" in response.json()["detail"]


def test_simulate_endpoint_returns_delta():
    client = _build_client(allocation_turnover_slots=0)
    response = client.post(
        "/simulate",
        json={
            "shows": [
                {"start": 1, "end": 2, "priority": 9},
                {"start": 2, "end": 3, "priority": 9},
                {"start": 4, "end": 5, "priority": 9},
                {"start": 3, "end": 4, "priority": 1},
            ],
            "policy": "DenseMainStage",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["baseline"]["stage_count"] == 3
    assert body["simulation"]["stage_count"] == 2
    assert body["delta"]["stage_count_change"] == -1


def test_simulate_endpoint_reports_ceiling_failure():
    client = _build_client(allocation_turnover_slots=0, allocation_max_stages=1)
    response = client.post(
        "/simulate",
        json={
            "shows": [
                {"start": 1, "end": 5, "priority": 2},
                {"start": 1, "end": 5, "priority": 1},
            ],
            "policy": "DenseMainStage",
        },
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["stage_count"] == 1
    assert detail["show_id"] == 2
    assert "stage ceiling reached" in detail["message"]


def test_endpoints_unavailable_without_service():
    app = FastAPI()
    app.include_router(router)
    client = TestClient(app)

    response = client.post("/minimum_stages", json={"shows": []})
    assert response.status_code == 503
    assert client.get("/health").json()["status"] == "starting"
