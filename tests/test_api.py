"""Tests for the FastAPI endpoints."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from kinfolk.models import MutationOutcome, MutationStatus, TurnResult
from kinfolk.server import app
from kinfolk.services.store import InMemoryStore
from kinfolk.tools.registry import CATALOG_VERSION


@pytest.fixture
def mock_agent(people):
    """Wire a mock agent, a store and an empty session table into app state."""
    agent = MagicMock()
    app.state.agent = agent
    app.state.store = InMemoryStore(people)
    app.state.orchestrator = MagicMock(configured=True)
    app.state.sessions = {}
    yield agent
    app.state.agent = None


@pytest.fixture
def client(mock_agent):
    return TestClient(app)


def _result(text="Added it!", mutations=None) -> TurnResult:
    return TurnResult(text=text, mutations=mutations or [])


class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "kinfolk-assistant"
        assert data["model_configured"] is True
        assert data["catalog_version"] == CATALOG_VERSION


class TestPeopleEndpoints:
    def test_list_people(self, client):
        response = client.get("/api/people")
        assert response.status_code == 200
        assert [p["name"] for p in response.json()] == ["Mom", "Dad"]

    def test_create_person(self, client):
        response = client.post("/api/people", json={"name": "Grandma", "relation": "Grandmother"})
        assert response.status_code == 201
        assert response.json()["name"] == "Grandma"
        assert len(client.get("/api/people").json()) == 3

    def test_create_person_validates_name(self, client):
        response = client.post("/api/people", json={"name": "", "relation": "Friend"})
        assert response.status_code == 422


class TestChatEndpoint:
    @patch("kinfolk.api.routes.dispatch_turn")
    def test_chat_returns_reply_and_mutations(self, mock_dispatch, client):
        mock_dispatch.return_value = _result(
            mutations=[
                MutationOutcome(
                    tool_name="add_todo", person_name="Mom",
                    status=MutationStatus.APPLIED, message="Added todo 'Book flight' for Mom",
                )
            ]
        )
        response = client.post("/api/chat", json={"message": "Add it", "session_id": "s1"})
        assert response.status_code == 200
        data = response.json()
        assert data["reply"] == "Added it!"
        assert data["session_id"] == "s1"
        assert data["mutations"][0]["status"] == "applied"
        assert data["mutations"][0]["message"] == "Added todo 'Book flight' for Mom"

    @patch("kinfolk.api.routes.dispatch_turn")
    def test_chat_passes_snapshot_and_reuses_session(self, mock_dispatch, client, mock_agent):
        mock_dispatch.return_value = _result()
        client.post("/api/chat", json={"message": "one", "session_id": "s1"})
        client.post("/api/chat", json={"message": "two", "session_id": "s1"})

        first, second = mock_dispatch.call_args_list
        agent, session, message, people = first[0]
        assert agent is mock_agent
        assert message == "one"
        assert [p.name for p in people] == ["Mom", "Dad"]
        assert second[0][1] is session

    def test_chat_validates_empty_message(self, client):
        response = client.post("/api/chat", json={"message": "", "session_id": "s1"})
        assert response.status_code == 422

    def test_chat_validates_missing_session(self, client):
        response = client.post("/api/chat", json={"message": "Hello!"})
        assert response.status_code == 422

    @patch("kinfolk.api.routes.dispatch_turn", side_effect=RuntimeError("graph exploded"))
    def test_chat_handles_unexpected_error(self, _mock_dispatch, client):
        response = client.post("/api/chat", json={"message": "Hello!", "session_id": "s1"})
        assert response.status_code == 500
        detail = response.json()["detail"]
        assert "graph exploded" not in detail
        assert "internal error" in detail.lower()

    @patch("kinfolk.api.routes.dispatch_turn")
    def test_client_supplied_request_id_is_echoed(self, mock_dispatch, client):
        mock_dispatch.return_value = _result()
        response = client.post(
            "/api/chat",
            json={"message": "Hello!", "session_id": "s1"},
            headers={"X-Request-ID": "my-trace-id-123"},
        )
        assert response.headers["X-Request-ID"] == "my-trace-id-123"


class TestSessions:
    @patch("kinfolk.api.routes.dispatch_turn")
    def test_forget_session(self, mock_dispatch, client):
        mock_dispatch.return_value = _result()
        client.post("/api/chat", json={"message": "hi", "session_id": "s1"})
        assert client.delete("/api/sessions/s1").status_code == 204
        assert "s1" not in app.state.sessions

    def test_forget_unknown_session(self, client):
        assert client.delete("/api/sessions/nope").status_code == 404

    @patch("kinfolk.config.MAX_SESSIONS", 2)
    @patch("kinfolk.api.routes.dispatch_turn")
    def test_least_recently_used_session_is_evicted(self, mock_dispatch, client):
        mock_dispatch.return_value = _result()
        for session_id in ("s1", "s2", "s1", "s3"):
            client.post("/api/chat", json={"message": "hi", "session_id": session_id})
        assert list(app.state.sessions) == ["s1", "s3"]

    @patch("kinfolk.config.MAX_SESSIONS", 1)
    @patch("kinfolk.api.routes.dispatch_turn")
    def test_busy_session_is_not_evicted(self, mock_dispatch, client):
        mock_dispatch.return_value = _result()
        busy = MagicMock(spec=asyncio.Lock)
        busy.locked.return_value = True
        app.state.sessions["busy"] = (MagicMock(), busy)
        client.post("/api/chat", json={"message": "hi", "session_id": "s1"})
        assert set(app.state.sessions) == {"busy", "s1"}


class TestAgentNotReady:
    def test_returns_503_when_agent_not_initialised(self):
        with TestClient(app) as tc:
            app.state.agent = None
            response = tc.post("/api/chat", json={"message": "Hello!", "session_id": "s1"})
            assert response.status_code == 503
            assert "starting up" in response.json()["detail"].lower()


class TestRootEndpoint:
    def test_root_returns_service_info(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "Kinfolk Assistant"
        assert "docs" in data
