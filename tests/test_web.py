"""
Run Server Tests

Tests the HTTP API over a progression backed by the in-memory store.
"""

import pytest
from fastapi.testclient import TestClient

from web.server import create_app


@pytest.fixture
def client(progression):
    return TestClient(create_app(progression))


@pytest.fixture
def started_client(client):
    response = client.post("/api/run/start", json={"faction_id": "f_iron"})
    assert response.status_code == 200
    return client


class TestRunEndpoints:

    def test_no_run(self, client):
        assert client.get("/api/run").json() == {"active": False}

    def test_start(self, started_client):
        data = started_client.get("/api/run").json()
        assert data["active"] is True
        assert data["state"]["fortress_max_hp"] == 550
        assert data["stage"]["id"] == "stage_a"
        assert data["accessible_node_ids"] == ["a_start"]

    def test_start_with_difficulty(self, client):
        data = client.post("/api/run/start", json={"faction_id": "f_iron", "difficulty": 2}).json()
        assert data["state"]["curses"] == ["pact"]

    def test_start_bad_difficulty(self, client):
        response = client.post("/api/run/start", json={"difficulty": "hard"})
        assert response.status_code == 400

    def test_load_without_save(self, client):
        assert client.post("/api/run/load").status_code == 404

    def test_load_after_start(self, started_client):
        response = started_client.post("/api/run/load")
        assert response.status_code == 200
        assert response.json()["state"]["current_node_id"] == "a_start"

    def test_abandon(self, started_client):
        assert started_client.post("/api/run/abandon").json() == {"abandoned": True}
        assert started_client.get("/api/run").json() == {"active": False}


class TestNodeEndpoints:

    def test_move_and_complete(self, started_client):
        data = started_client.post("/api/nodes/a_start/complete").json()
        assert data["completion"]["gold_awarded"] == 50
        assert sorted(data["accessible_node_ids"]) == ["a_elite", "a_shop"]

        data = started_client.post("/api/nodes/a_elite/move").json()
        assert data["state"]["current_node_id"] == "a_elite"

    def test_move_to_inaccessible(self, started_client):
        assert started_client.post("/api/nodes/a_boss/move").status_code == 409

    def test_complete_twice(self, started_client):
        started_client.post("/api/nodes/a_start/complete")
        assert started_client.post("/api/nodes/a_start/complete").status_code == 409

    def test_requires_run(self, client):
        assert client.post("/api/nodes/a_start/move").status_code == 409
        assert client.post("/api/nodes/a_start/complete").status_code == 409

    def test_take_relic_choice(self, started_client):
        started_client.post("/api/nodes/a_start/complete")
        started_client.post("/api/nodes/a_elite/move")
        choices = started_client.post("/api/nodes/a_elite/complete").json()["completion"]["relic_choices"]
        data = started_client.post(f"/api/relics/{choices[0]}").json()
        assert choices[0] in data["state"]["relics"]
        assert started_client.post(f"/api/relics/{choices[0]}").status_code == 409


class TestReadEndpoints:

    def test_stage(self, started_client):
        data = started_client.get("/api/stages/1").json()
        assert data["id"] == "stage_b"
        assert started_client.get("/api/stages/7").status_code == 404

    def test_modifiers(self, started_client):
        data = started_client.get("/api/modifiers").json()
        assert data["relics"] == ["plating"]
        assert data["modifiers"]["fortress_hp"] == 50

    def test_notifications(self, started_client):
        history = started_client.get("/api/notifications").json()
        assert "run-started" in [n["type"] for n in history]

        filtered = started_client.get("/api/notifications", params={"type": "stage-entered"}).json()
        assert [n["payload"]["id"] for n in filtered] == ["stage_a"]

    def test_notifications_unknown_type(self, started_client):
        response = started_client.get("/api/notifications", params={"type": "nope"})
        assert response.status_code == 400
