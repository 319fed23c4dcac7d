import importlib

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("STATE_DIR", str(tmp_path / "state"))
    monkeypatch.delenv("REDIS_URL", raising=False)
    import server.main as main

    main = importlib.reload(main)
    return TestClient(main.app)


def test_healthz(client):
    assert client.get("/healthz").json() == {"status": "healthy"}


def test_full_round(client, tmp_path):
    r = client.post("/matching/rounds", json={"level": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["action_key"].startswith(str(body["action"]["grid_size"]) + "_")

    for ok in (True, False, True):
        assert client.post("/matching/moves", json={"is_correct": ok}).json() == {"ok": True}
    assert client.post("/matching/matches").status_code == 200

    r = client.post("/matching/rounds/finish", json={"completed": True, "remaining_time": 10})
    assert r.status_code == 200
    out = r.json()
    assert out["session"]["moves"] == 3 and out["session"]["matches"] == 1
    assert -100 <= out["reward"] <= 100
    assert 1 <= out["recommendation"]["level"] <= 25

    stats = client.get("/matching/stats").json()
    assert stats["total_pulls"] == 1
    assert (tmp_path / "state" / "matching_bandit_state.json").exists()


def test_finish_without_round_conflicts(client):
    r = client.post("/disk_puzzle/rounds/finish", json={"completed": True, "remaining_time": 1})
    assert r.status_code == 409
    assert client.post("/disk_puzzle/rounds/abandon").status_code == 409


def test_abandon(client):
    client.post("/tone_sequence/rounds", json={"level": 1})
    out = client.post("/tone_sequence/rounds/abandon").json()
    assert out["session"]["completed"] is False
    assert out["metrics"]["time_efficiency"] == 0.0


def test_client_clock_start_time(client):
    client.post("/tone_sequence/rounds", json={"level": 1, "timestamp": 1000.0})
    client.post("/tone_sequence/moves", json={"is_correct": True, "timestamp": 1300.0})
    client.post("/tone_sequence/moves", json={"is_correct": False, "timestamp": 1600.0})
    out = client.post("/tone_sequence/rounds/finish", json={"completed": False, "remaining_time": 0}).json()
    assert out["session"]["avg_reaction_time"] == 300.0
    assert out["session"]["move_intervals"] == [300.0]


def test_unknown_game(client):
    assert client.post("/chess/rounds", json={"level": 1}).status_code == 404
    assert client.get("/chess/stats").status_code == 404


def test_invalid_level_rejected(client):
    assert client.post("/matching/rounds", json={"level": 0}).status_code == 422
