import pytest
from fastapi.testclient import TestClient

from conftest import FakeLLM
from hmi_agent.config import Settings, get_settings
from hmi_agent.errors import LLMError
from hmi_agent.main import app, get_llm, sessions


@pytest.fixture
def client(settings):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_llm] = lambda: FakeLLM(error=LLMError("offline"))
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, text: str, filename: str = "fds.txt"):
    return client.post("/api/generate-workflow", files={"fdsDocument": (filename, text.encode("utf-8"), "text/plain")})


def test_health(client) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["hasLlmCredentials"] is True
    assert body["llmModel"]


def test_prompts_are_listed(client) -> None:
    body = client.get("/api/prompts").json()
    assert "screen_identification" in body["prompts"]
    assert "{SECTIONS_JSON}" in body["prompts"]["screen_identification"]


def test_two_step_generation(client, fds_text: str) -> None:
    response = _upload(client, fds_text)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["step"] == 1
    assert body["nextStep"] == "generate-screens"
    session_id = body["sessionId"]
    assert session_id.startswith("session_")
    workflow = body["data"]
    assert workflow["systemOverview"]["totalScreens"] == 3
    assert workflow["navigationFlow"]["transitions"][0]["from"] == "Home Screen"

    response = client.post("/api/generate-screens", json={"sessionId": session_id})
    assert response.status_code == 200
    body = response.json()
    assert body["step"] == 2
    summary = body["data"]["summary"]
    assert summary["successfulScreens"] == 3
    assert summary["status"] == "completed"
    assert len(body["data"]["screenImages"]) == 5
    assert all(image["imageUrl"].startswith("/outputs/") for image in body["data"]["screenImages"])

    progress = client.get(f"/api/progress/{session_id}").json()
    assert progress["status"] == "completed"
    assert {event["step"] for event in progress["events"]} >= {"upload", "workflow", "screen-generation"}


def test_one_shot_generation_discards_session(client, fds_text: str) -> None:
    before = len(sessions)
    response = client.post("/api/generate-hmi", files={"fdsDocument": ("fds.txt", fds_text.encode(), "text/plain")})
    assert response.status_code == 200
    assert response.json()["data"]["summary"]["totalScreens"] == 3
    assert len(sessions) == before


def test_unsupported_upload_is_rejected(client) -> None:
    response = _upload(client, "hello", filename="notes.xlsx")
    assert response.status_code == 400


def test_oversized_upload_is_rejected(client, settings) -> None:
    settings.max_upload_mb = 0
    response = _upload(client, "x" * 10)
    assert response.status_code == 413


def test_unknown_session(client) -> None:
    assert client.post("/api/generate-screens", json={"sessionId": "session_0_missing"}).status_code == 404
    assert client.get("/api/progress/session_0_missing").status_code == 404
    assert client.delete("/api/sessions/session_0_missing").status_code == 404


def test_busy_session_conflicts(client, fds_text: str) -> None:
    session_id = _upload(client, fds_text).json()["sessionId"]
    session = sessions.get(session_id)
    session.lock.acquire()
    try:
        response = client.post("/api/generate-screens", json={"sessionId": session_id})
    finally:
        session.lock.release()
    assert response.status_code == 409


def test_cancel_discards_session(client, fds_text: str) -> None:
    session_id = _upload(client, fds_text).json()["sessionId"]
    assert client.delete(f"/api/sessions/{session_id}").status_code == 200
    assert client.get(f"/api/progress/{session_id}").status_code == 404


def test_missing_credentials_fail_fast(tmp_path, fds_text: str) -> None:
    app.dependency_overrides[get_settings] = lambda: Settings(groq_api_key=None, output_dir=str(tmp_path))
    try:
        response = _upload(TestClient(app), fds_text)
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500
    assert "GROQ_API_KEY" in response.json()["detail"]


def test_finished_sessions_are_released(client, fds_text: str, monkeypatch) -> None:
    monkeypatch.setattr(sessions, "ttl_seconds", 0)
    sessions.sweep()
    before = len(sessions)
    for _ in range(3):
        session_id = _upload(client, fds_text).json()["sessionId"]
        assert client.post("/api/generate-screens", json={"sessionId": session_id}).status_code == 200
    sessions.sweep()
    assert len(sessions) == before


def test_progress_stays_readable_after_screens(client, fds_text: str) -> None:
    session_id = _upload(client, fds_text).json()["sessionId"]
    client.post("/api/generate-screens", json={"sessionId": session_id})
    assert client.get(f"/api/progress/{session_id}").json()["status"] == "completed"
