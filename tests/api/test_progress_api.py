"""Tests for the /users/progress endpoints."""

from fastapi.testclient import TestClient

AUTH = {"Authorization": "Bearer player-1"}

PAYLOAD = {
    "gameProgress": [
        {
            "mapId": "1",
            "npcId": "john",
            "isUnlocked": True,
            "isCompleted": True,
            "dialogStep": "fact",
            "factIndex": 2,
        },
        {
            "mapId": "2",
            "npcId": "ana",
            "isUnlocked": True,
            "isCompleted": False,
            "dialogStep": "question",
            "factIndex": 0,
        },
    ],
    "unlockedMaps": ["1", "2"],
}


def test_requires_authorization(client: TestClient) -> None:
    assert client.get("/users/progress").status_code == 401
    assert client.post("/users/progress", json=PAYLOAD).status_code == 401
    response = client.get("/users/progress", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401


def test_new_player_gets_empty_progress(client: TestClient) -> None:
    response = client.get("/users/progress", headers=AUTH)
    assert response.status_code == 200
    assert response.json() == {"gameProgress": [], "unlockedMaps": []}


def test_save_then_load(client: TestClient) -> None:
    response = client.post("/users/progress", json=PAYLOAD, headers=AUTH)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    loaded = client.get("/users/progress", headers=AUTH).json()
    assert loaded == PAYLOAD


def test_resave_is_idempotent(client: TestClient) -> None:
    client.post("/users/progress", json=PAYLOAD, headers=AUTH)
    client.post("/users/progress", json=PAYLOAD, headers=AUTH)
    assert client.get("/users/progress", headers=AUTH).json() == PAYLOAD


def test_players_are_isolated(client: TestClient) -> None:
    client.post("/users/progress", json=PAYLOAD, headers=AUTH)
    other = client.get("/users/progress", headers={"Authorization": "Bearer player-2"})
    assert other.json()["gameProgress"] == []


def test_invalid_payload_rejected(client: TestClient) -> None:
    bad = {"gameProgress": [{"mapId": "1", "npcId": "john", "factIndex": -1}]}
    response = client.post("/users/progress", json=bad, headers=AUTH)
    assert response.status_code == 422


def test_health_counts_players(client: TestClient) -> None:
    client.post("/users/progress", json=PAYLOAD, headers=AUTH)
    data = client.get("/health").json()
    assert data["players"] == 1
