"""Tests for main.py (FastAPI endpoints)"""

import pytest
from fastapi.testclient import TestClient

import main
from proficiency_store import ProficiencyStore


@pytest.fixture
def client(monkeypatch, fake_redis):
    monkeypatch.setattr(main, "store", ProficiencyStore(client=fake_redis, prefix="test"))
    monkeypatch.setattr(main, "sessions", {})
    return TestClient(main.app)


def start(client, session_id="s1"):
    response = client.post("/sessions", json={
        "learner_id": "alice", "skill": "algebra", "session_id": session_id,
    })
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_start_session_cold_start(client):
    body = start(client)
    assert body["session_id"] == "s1"
    assert body["phase"] == "warmup"
    assert body["proficiency"]["theta"] == -1.0
    assert body["proficiency"]["mastery_achieved"] is False


def test_record_answer_by_label(client):
    start(client)
    body = client.post("/sessions/s1/answers", json={"is_correct": True, "difficulty": "medium"}).json()

    assert body["new_theta"] == pytest.approx(-0.677, abs=1e-3)
    assert body["new_sigma"] == pytest.approx(1.14, abs=1e-3)
    assert body["phase"] == "warmup"
    assert body["recent_accuracy"] == 1.0
    assert body["stop"] == {"stop": False, "reason": None}


def test_record_answer_with_explicit_parameters(client):
    start(client)
    body = client.post("/sessions/s1/answers", json={"is_correct": False, "a": 1.0, "b": -1.0}).json()
    assert body["predicted_probability"] == pytest.approx(0.5)


def test_rejects_non_positive_discrimination(client):
    start(client)
    response = client.post("/sessions/s1/answers", json={"is_correct": True, "a": 0.0, "b": 0.0})
    assert response.status_code == 422


def test_next_item_filters_by_skill(client):
    start(client)
    candidates = [
        {"id": "g1", "skill": "geometry", "difficulty": "easy"},
        {"id": "a1", "skill": "algebra", "difficulty": "medium"},
    ]
    body = client.post("/sessions/s1/next-item", json={"candidates": candidates}).json()
    assert body["item"]["id"] == "a1"
    assert body["suggested_difficulty"] == "medium"  # target -0.7


def test_next_item_none_for_off_skill_pool(client):
    start(client)
    body = client.post("/sessions/s1/next-item", json={
        "candidates": [{"id": "g1", "skill": "geometry", "difficulty": "easy"}],
    }).json()
    assert body["item"] is None


def test_proficiency_persisted_across_sessions(client):
    start(client, "s1")
    client.post("/sessions/s1/answers", json={"is_correct": True, "difficulty": "hard"})
    client.delete("/sessions/s1")

    body = client.get("/proficiency/alice/algebra").json()
    assert body["question_count"] == 1
    assert body["theta"] > -1.0

    assert start(client, "s2")["proficiency"]["question_count"] == 1


def test_stop_endpoint(client):
    start(client)
    assert client.get("/sessions/s1/stop").json() == {"stop": False, "reason": None}


def test_unknown_session_is_404(client):
    assert client.get("/sessions/nope/stop").status_code == 404
    assert client.post("/sessions/nope/answers", json={"is_correct": True}).status_code == 404


@pytest.mark.parametrize("partial", [{"a": 2.0}, {"b": 1.0}])
def test_rejects_half_specified_parameters(client, partial):
    start(client)
    response = client.post("/sessions/s1/answers", json={"is_correct": True, "difficulty": "easy", **partial})
    assert response.status_code == 422
    assert main.sessions["s1"].answered == 0


def test_oldest_session_evicted_past_limit(client, monkeypatch):
    monkeypatch.setattr(main, "MAX_SESSIONS", 2)
    start(client, "s1")
    start(client, "s2")
    start(client, "s3")

    assert list(main.sessions) == ["s2", "s3"]
    assert client.get("/sessions/s1/stop").status_code == 404


def test_restarting_a_session_id_does_not_evict_others(client, monkeypatch):
    monkeypatch.setattr(main, "MAX_SESSIONS", 2)
    start(client, "s1")
    start(client, "s2")
    start(client, "s2")

    assert list(main.sessions) == ["s1", "s2"]
