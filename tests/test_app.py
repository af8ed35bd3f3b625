import pytest

import app as host


@pytest.fixture
def client():
    host.app.config["TESTING"] = True
    return host.app.test_client()


def test_lobby_flow_over_http(client):
    response = client.post("/games/http-lobby", json={"host_id": "h1", "host_name": "Host"})
    assert response.status_code == 200
    assert response.get_json()["state"]["phase"] == "LOBBY"

    duplicate = client.post("/games/http-lobby", json={"host_id": "h2"})
    assert duplicate.status_code == 400
    assert duplicate.get_json()["error"] == "GameInProgress"

    joined = client.post("/games/http-lobby/players", json={"player_id": "u2", "name": "Bea"})
    assert joined.get_json()["success"]

    start = client.post("/games/http-lobby/start", json={"requester_id": "h1"})
    assert start.status_code == 400
    assert start.get_json()["error"] == "NotEnoughPlayers"

    state = client.get("/games/http-lobby/state?viewer=u2").get_json()
    assert [p["id"] for p in state["players"]] == ["h1", "u2"]

    cancel = client.post("/games/http-lobby/cancel", json={"requester_id": "h1"})
    assert cancel.get_json()["success"]
    assert "http-lobby" not in host.registry


def test_unknown_game_is_404(client):
    assert client.get("/games/nowhere/state").status_code == 404
    assert client.post("/games/nowhere/vote", json={"voter_id": "x", "choice": "skip"}).status_code == 404


def test_create_requires_host(client):
    assert client.post("/games/no-host", json={}).status_code == 400


def test_night_action_outside_night_is_rejected(client):
    client.post("/games/http-early", json={"host_id": "h1"})
    response = client.post("/games/http-early/night_action", json={"player_id": "h1", "choice": "attack:x"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidState"


def test_non_numeric_ai_fill_gets_structured_error(client):
    client.post("/games/http-fill", json={"host_id": "h1"})
    response = client.post("/games/http-fill/start", json={"requester_id": "h1", "ai_fill_count": "lots"})
    assert response.status_code == 400
    body = response.get_json()
    assert body["success"] is False
    assert body["error"] == "GameError"
    assert body["message"]
    client.post("/games/http-fill/cancel", json={"requester_id": "h1"})


def test_uncaught_errors_reach_the_log(monkeypatch):
    logged = []
    monkeypatch.setattr(host, "log_exception", lambda error, message: logged.append((error, message)))
    error = RuntimeError("boom")

    host.sys.excepthook(RuntimeError, error, None)

    assert logged == [(error, "Uncaught error in the host process")]
