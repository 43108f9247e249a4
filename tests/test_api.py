"""Tests for the Formation HTTP API."""

import time

import pytest
from fastapi.testclient import TestClient

from formation.compute import InlineComputeHost, process_isolation_available

from formation_api.app_factory import AppContext, create_app
from formation_api.models import AgentModel


def _agent(agent_id, role_id, x, y, **attributes):
    return {"id": agent_id, "role_id": role_id, "position": {"x": x, "y": y}, "attributes": attributes}


FORMATION = {
    "id": "f-1",
    "name": "Two up front",
    "slots": [
        {"id": "1", "role": "GK", "preferred_roles": ["gk"]},
        {"id": "2", "role": "FW", "preferred_roles": ["cf"]},
    ],
}

AGENTS = [
    _agent("X", "gk", 5, 50, positioning=90, reflexes=90, diving=90, handling=90),
    _agent("Y", "cf", 80, 50, shooting=90, speed=90, dribbling=85, finishing=90),
]


@pytest.fixture
def client():
    app = create_app(compute_mode="inline", production_mode=False)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "compute_mode": "inline", "pending": 0}


def test_optimize(client):
    response = client.post("/api/formations/optimize", json={"agents": AGENTS, "formation": FORMATION})

    assert response.status_code == 200
    data = response.json()
    assert [(slot["id"], slot["agent_id"]) for slot in data["optimized_formation"]["slots"]] == [
        ("1", "X"),
        ("2", "Y"),
    ]
    assert data["score"] > 80
    assert data["improvements"] == []
    assert data["alternatives"] == []


def test_optimize_optimal(client):
    response = client.post(
        "/api/formations/optimize/optimal",
        json={"agents": AGENTS, "formation": FORMATION, "constraints": {"maintain_chemistry": True}},
    )

    assert response.status_code == 200
    slots = response.json()["optimized_formation"]["slots"]
    assert {slot["id"]: slot["agent_id"] for slot in slots} == {"1": "X", "2": "Y"}


def test_optimize_with_no_agents(client):
    response = client.post("/api/formations/optimize", json={"agents": [], "formation": FORMATION})

    assert response.status_code == 200
    assert response.json()["score"] == 0


def test_validate_position_conflict(client):
    response = client.post(
        "/api/formations/validate-position",
        json={"agent_id": "X", "position": {"x": 78, "y": 50}, "agents": AGENTS},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["is_valid"] is False
    assert data["conflicts"] == ["Y"]
    assert data["suggestions"] == ["Consider moving to avoid player overlaps"]
    assert "optimized_position" in data


def test_validate_position_clear(client):
    response = client.post(
        "/api/formations/validate-position",
        json={"agent_id": "X", "position": {"x": 20, "y": 20}, "agents": AGENTS, "formation": FORMATION},
    )

    assert response.status_code == 200
    data = response.json()
    assert data == {"is_valid": True, "conflicts": [], "suggestions": []}


def test_score(client):
    response = client.post(
        "/api/formations/score",
        json={
            "agent": {
                "id": "s",
                "role_id": "cf",
                "position": {"x": 80, "y": 50},
                "attributes": {"pace": 90, "shooting": 85, "passing": 60},
                "form": "Excellent",
                "morale": "Good",
            },
            "slot": {"id": "fw", "role": "FW", "preferred_roles": ["cf", "tf"]},
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["role_fit"] == 100
    assert data["condition"] == 100
    assert data["total"] == pytest.approx(88.875)


def test_invalid_body_is_rejected(client):
    response = client.post("/api/formations/optimize", json={"agents": AGENTS})

    assert response.status_code == 422


def test_attribute_range_is_validated(client):
    agent = _agent("Z", "cm", 50, 50, passing=150)
    response = client.post("/api/formations/optimize", json={"agents": [agent], "formation": FORMATION})

    assert response.status_code == 422


def test_compute_timeout_maps_to_504(client, monkeypatch):
    from concurrent.futures import Future

    from formation.exceptions import ComputeTimeoutError

    def timed_out(request):
        future = Future()
        future.set_exception(ComputeTimeoutError("Request msg_1 timed out after 5s"))
        return future

    host = client.app.state.context.compute_host
    monkeypatch.setattr(host, "optimize_formation", timed_out)

    response = client.post("/api/formations/optimize", json={"agents": AGENTS, "formation": FORMATION})

    assert response.status_code == 504
    assert "timed out" in response.json()["detail"]


def test_terminated_host_maps_to_503(client):
    client.app.state.context.compute_host.terminate()

    response = client.post("/api/formations/optimize", json={"agents": AGENTS, "formation": FORMATION})

    assert response.status_code == 503


def test_lifespan_tears_down_compute_host():
    context = AppContext()
    app = create_app(compute_mode="inline", context=context)

    with TestClient(app):
        host = context.compute_host
        assert host is not None and not host.terminated

    assert host.terminated
    assert context.compute_host is None


def test_pace_alias_is_accepted_by_request_model():
    model = AgentModel(id="a", role_id="cf", position={"x": 1, "y": 2}, attributes={"pace": 80})

    assert model.attributes.pace == 80
    assert model.attributes.speed is None


def test_analyze(client):
    formation = {
        "id": "f-1",
        "name": "Filled",
        "slots": [
            {"id": "1", "role": "GK", "preferred_roles": ["gk"], "agent_id": "X"},
            {"id": "2", "role": "FW", "preferred_roles": ["cf"]},
        ],
    }

    response = client.post("/api/formations/analyze", json={"agents": AGENTS, "formation": formation})

    assert response.status_code == 200
    data = response.json()
    assert [p["slot_id"] for p in data["positions"]] == ["1"]
    assert data["positions"][0]["fitness"] == "good"
    assert data["recommendations"][0]["slot_id"] == "2"
    assert data["recommendations"][0]["priority"] == "high"
    assert data["average_score"] == 89


class _FailedHost(InlineComputeHost):
    @property
    def healthy(self):
        return False


def test_unhealthy_host_reported_and_refused(client):
    client.app.state.context.compute_host = _FailedHost()

    health = client.get("/health").json()
    response = client.post("/api/formations/optimize", json={"agents": AGENTS, "formation": FORMATION})

    assert health["status"] == "failed"
    assert response.status_code == 503


@pytest.mark.skipif(
    not process_isolation_available("spawn"), reason="process isolation unavailable"
)
def test_worker_death_surfaces_as_503(monkeypatch):
    monkeypatch.setenv("FORMATION_COMPUTE_TIMEOUT_SECONDS", "30")
    app = create_app(compute_mode="process", production_mode=False)

    with TestClient(app) as test_client:
        host = app.state.context.compute_host
        host._process.kill()
        host._process.join(timeout=10)

        deadline = time.monotonic() + 10
        while test_client.get("/health").json()["status"] == "ok" and time.monotonic() < deadline:
            time.sleep(0.05)

        health = test_client.get("/health").json()
        response = test_client.post(
            "/api/formations/optimize", json={"agents": AGENTS, "formation": FORMATION}
        )

    assert health == {"status": "failed", "compute_mode": "process", "pending": 0}
    assert response.status_code == 503
