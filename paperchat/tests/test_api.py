import pytest
from fastapi.testclient import TestClient

from paperchat.api.main import app
from paperchat.config.settings import settings

@pytest.fixture
def client(tmp_path, monkeypatch, pipeline, session_service):
    """TestClient whose app state uses tmp_path stores and the mocked LLM."""
    monkeypatch.setattr(settings.storage, "papers_path", str(tmp_path / "app-papers"))
    monkeypatch.setattr(settings.storage, "chat_path", str(tmp_path / "app-chat"))
    with TestClient(app) as c:
        app.state.chat_pipeline = pipeline
        app.state.session_service = session_service
        yield c

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}

def test_chat_endpoint(client):
    print("Testing POST /api/papers/{id}/chat...")
    res = client.post("/api/papers/paper-1/chat", json={"message": "Summarize this paper"})
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["response"] == "Mocked answer about the paper."
    assert body["context"]["query_type"] == "SUMMARY"
    print("Chat endpoint PASSED")

def test_chat_endpoint_reports_failures_in_body(client):
    res = client.post("/api/papers/missing/chat", json={"message": "Summarize this paper"})
    assert res.status_code == 200
    assert res.json()["success"] is False
    assert "Paper not found" in res.json()["error"]

def test_chat_request_validation(client):
    assert client.post("/api/papers/paper-1/chat", json={"message": ""}).status_code == 422
    assert client.post("/api/papers/paper-1/chat", json={"message": "x" * 2001}).status_code == 422

def test_session_lifecycle(client):
    print("Testing session endpoints...")
    res = client.post("/api/papers/paper-1/sessions",
                      json={"initial_message": "Summarize this paper", "custom_title": "Notes"})
    assert res.status_code == 200
    session_id = res.json()["session"]["session_id"]

    listed = client.get("/api/papers/paper-1/sessions").json()
    assert [s["session_id"] for s in listed] == [session_id]

    res = client.post(f"/api/sessions/{session_id}/messages", json={"message": "What does Figure 3 show?"})
    assert res.status_code == 200
    assert res.json()["session_id"] == session_id

    history = client.get(f"/api/sessions/{session_id}").json()
    assert history["stats"]["total_messages"] == 4

    res = client.patch(f"/api/sessions/{session_id}", json={"title": "Renamed"})
    assert res.json()["title"] == "Renamed"

    assert client.delete(f"/api/sessions/{session_id}").json()["success"] is True
    assert client.get("/api/papers/paper-1/sessions").json() == []
    print("Session endpoints PASSED")

def test_session_error_mapping(client):
    res = client.post("/api/papers/missing/sessions", json={"initial_message": "hi"})
    assert res.status_code == 404
    res = client.post("/api/papers/paper-2/sessions", json={"initial_message": "hi"})
    assert res.status_code == 409
    assert client.get("/api/sessions/nope").status_code == 404
    assert client.patch("/api/sessions/nope", json={"title": "x"}).status_code == 404
    assert client.delete("/api/sessions/nope").status_code == 404
    assert client.post("/api/sessions/nope/messages", json={"message": "hi"}).status_code == 404

if __name__ == "__main__":
    print("Run with pytest: the client fixture wires tmp_path stores into the app.")
