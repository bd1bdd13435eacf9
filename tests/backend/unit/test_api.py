import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")
from fastapi.testclient import TestClient

from quizroom.backend.api import create_app, create_services
from quizroom.backend.store import InMemoryStore

QUESTIONS = [
    {"question": "2 + 2?", "options": ["3", "4"], "correctAnswer": 1, "timeLimit": 30},
    {"text": "Capital of Norway?", "options": ["Oslo", "Bergen"], "correctAnswer": "Oslo"},
]


@pytest.fixture()
def client() -> TestClient:
    services = create_services(store=InMemoryStore(), server_salt="test-salt")
    return TestClient(create_app(services=services))


def _create_room(client: TestClient, name: str = "QUIZ A") -> dict:
    response = client.post("/api/rooms", json={"name": name, "password": "1234"})
    assert response.status_code == 200
    return response.json()


def test_post_rooms_returns_id_and_host_token(client) -> None:
    data = _create_room(client)

    assert data["id"]
    assert data["hostToken"]
    assert data["name"] == "QUIZ A"
    assert isinstance(data["createdAt"], int)


def test_post_rooms_rejects_duplicate_name_with_conflict(client) -> None:
    _create_room(client)

    response = client.post("/api/rooms", json={"roomName": "QUIZ A", "roomPassword": "x"})

    assert response.status_code == 409
    assert response.json()["error"] == "duplicate_room_name"


def test_get_room_hides_secrets_and_reports_missing_room(client) -> None:
    created = _create_room(client)

    found = client.get(f"/api/rooms/{created['id']}")
    missing = client.get("/api/rooms/nope")

    assert found.status_code == 200
    assert "password" not in found.json()
    assert "hostTokenHash" not in found.json()
    assert missing.status_code == 404
    assert missing.json()["error"] == "room_not_found"


def test_full_room_game_over_http(client) -> None:
    created = _create_room(client)
    room_id = created["id"]
    red = client.post(f"/api/rooms/{room_id}/join", json={"groupName": "TEAM RED"}).json()["participant"]
    blue = client.post(f"/api/rooms/{room_id}/join", json={"groupName": "TEAM BLUE"}).json()["participant"]
    rejoin = client.post(f"/api/rooms/{room_id}/join", json={"groupName": "TEAM RED"}).json()
    assert rejoin["participant"]["id"] == red["id"]

    started = client.post(f"/api/rooms/{room_id}/start", json={"questions": QUESTIONS})
    assert started.status_code == 200
    assert started.json()["room"]["status"] == "playing"
    assert started.json()["room"]["questions"][0]["timeLimitSeconds"] == 30

    answer = client.post(
        f"/api/rooms/{room_id}/answer",
        json={"participantId": red["id"], "questionIndex": 0, "selectedAnswer": 1, "timeSpent": 2},
    )
    assert answer.json() == {"isCorrect": True, "points": 1, "currentScore": 1}
    duplicate = client.post(
        f"/api/rooms/{room_id}/answer",
        json={"participantId": red["id"], "questionIndex": 0, "value": 1},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "duplicate_answer"
    client.post(f"/api/rooms/{room_id}/answer", json={"participantId": blue["id"], "questionIndex": 0, "answer": "3"})

    forbidden = client.post(f"/api/rooms/{room_id}/next", json={"hostToken": "guess"})
    assert forbidden.status_code == 403

    client.post(f"/api/rooms/{room_id}/next", json={"hostToken": created["hostToken"]})
    for participant in (red, blue):
        client.post(
            f"/api/rooms/{room_id}/answer",
            json={"participantId": participant["id"], "questionIndex": 1, "answer": "Oslo"},
        )
    finished = client.post(f"/api/rooms/{room_id}/next", json={"hostToken": created["hostToken"]}).json()["room"]

    assert finished["status"] == "finished"
    assert [(r["groupName"], r["score"], r["position"]) for r in finished["gameResults"]] == [
        ("TEAM RED", 2, 1),
        ("TEAM BLUE", 1, 2),
    ]

    ranking = client.get(f"/api/rooms/{room_id}/ranking").json()
    assert [row["groupName"] for row in ranking["ranking"]] == ["TEAM RED", "TEAM BLUE"]
    assert ranking["gameResults"][0]["position"] == 1

    late = client.post(
        f"/api/rooms/{room_id}/answer",
        json={"participantId": blue["id"], "questionIndex": 1, "answer": "Oslo"},
    )
    assert late.status_code == 409
    assert late.json()["error"] == "invalid_transition"


def test_start_game_validation_errors(client) -> None:
    created = _create_room(client)
    room_id = created["id"]

    no_participants = client.post(f"/api/rooms/{room_id}/start", json={"questions": QUESTIONS})
    assert no_participants.status_code == 400
    assert no_participants.json()["error"] == "no_participants"

    client.post(f"/api/rooms/{room_id}/join", json={"groupName": "TEAM RED"})
    bad_index = client.post(
        f"/api/rooms/{room_id}/start",
        json={"questions": [{"text": "?", "options": ["a", "b"], "correctAnswer": 4}]},
    )
    assert bad_index.status_code == 400
    assert bad_index.json()["error"] == "invalid_question"

    one_option = client.post(
        f"/api/rooms/{room_id}/start",
        json={"questions": [{"text": "?", "options": ["a"], "correctAnswer": 0}]},
    )
    assert one_option.status_code == 422


def test_list_and_delete_rooms(client) -> None:
    created = _create_room(client)
    _create_room(client, name="QUIZ B")

    assert {room["name"] for room in client.get("/api/rooms").json()} == {"QUIZ A", "QUIZ B"}

    forbidden = client.delete(f"/api/rooms/{created['id']}", params={"token": "wrong"})
    deleted = client.delete(f"/api/rooms/{created['id']}", params={"token": created["hostToken"]})

    assert forbidden.status_code == 403
    assert deleted.status_code == 200
    assert [room["name"] for room in client.get("/api/rooms").json()] == ["QUIZ B"]


def test_session_flow_and_leaderboard(client) -> None:
    invalid = client.post("/api/sessions", json={"groupName": "team red"})
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "invalid_group_name"

    session = client.post("/api/sessions", json={"groupName": "TEAM RED"}).json()
    assert session["isActive"] is True

    active = client.get("/api/sessions/active/TEAM RED").json()
    assert active["id"] == session["id"]

    updated = client.put(f"/api/sessions/{session['id']}/score", json={"score": 7})
    assert updated.json()["currentScore"] == 7

    player = client.post(f"/api/sessions/{session['id']}/finish").json()
    assert player["group"] == "TEAM RED"
    assert player["score"] == 7
    assert player["position"] == 1

    assert client.get("/api/sessions/active/TEAM RED").json() is None
    assert [p["group"] for p in client.get("/api/players").json()] == ["TEAM RED"]

    missing = client.put("/api/sessions/missing/score", json={"score": 1})
    assert missing.status_code == 404


def test_clear_leaderboard_and_history(client) -> None:
    session = client.post("/api/sessions", json={"groupName": "TEAM RED"}).json()
    client.post(f"/api/sessions/{session['id']}/finish")

    cleared = client.delete("/api/players").json()
    history = client.get("/api/ranking-history").json()

    assert cleared["success"] is True
    assert len(history) == 1
    assert history[0]["id"] == cleared["historyEntryId"]
    assert history[0]["totalPlayers"] == 1
    assert client.get("/api/players").json() == []

    client.delete("/api/data")
    assert client.get("/api/sessions/active/TEAM RED").json() is None

    assert client.delete(f"/api/ranking-history/{history[0]['id']}").status_code == 200
    assert client.delete(f"/api/ranking-history/{history[0]['id']}").status_code == 404


def test_health_reports_version(client) -> None:
    data = client.get("/api/health").json()

    assert data["status"] == "ok"
    assert data["version"]


def test_rooms_all_includes_finished_rooms_without_secrets(client) -> None:
    created = _create_room(client)
    _create_room(client, name="QUIZ B")
    participant = client.post(f"/api/rooms/{created['id']}/join", json={"groupName": "TEAM RED"}).json()["participant"]
    client.post(f"/api/rooms/{created['id']}/start", json={"questions": QUESTIONS[:1]})
    client.post(
        f"/api/rooms/{created['id']}/answer",
        json={"participantId": participant["id"], "questionIndex": 0, "value": 1},
    )
    client.post(f"/api/rooms/{created['id']}/next", json={"hostToken": created["hostToken"]})

    every_room = client.get("/api/rooms-all").json()

    assert [room["name"] for room in client.get("/api/rooms").json()] == ["QUIZ B"]
    assert {room["name"]: room["status"] for room in every_room} == {"QUIZ A": "finished", "QUIZ B": "waiting"}
    assert all("password" not in room and "hostTokenHash" not in room for room in every_room)


def test_quiz_config_save_and_reset(client) -> None:
    default = client.get("/api/quiz-config").json()
    short = client.post("/api/quiz-config", json={"selectedQuestions": ["q1", "q2"]}).json()
    full = client.post("/api/quiz-config", json={"selectedQuestions": list(range(1, 8))}).json()
    stored = client.get("/api/quiz-config").json()
    reset = client.delete("/api/quiz-config").json()

    assert default == {"selectedQuestions": [], "lastUpdated": None, "minQuestions": 7, "isValid": False}
    assert short["config"]["isValid"] is False
    assert short["message"] == "partial selection saved"
    assert full["config"]["isValid"] is True
    assert full["message"] == "configuration saved"
    assert stored["selectedQuestions"] == [1, 2, 3, 4, 5, 6, 7]
    assert isinstance(stored["lastUpdated"], int)
    assert reset["config"] == default
    assert client.get("/api/quiz-config").json() == default


def test_quiz_config_rejects_non_list_selection(client) -> None:
    response = client.post("/api/quiz-config", json={"selectedQuestions": "q1"})

    assert response.status_code == 422
