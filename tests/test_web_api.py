"""Tests for the HTTP API."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from transitbot.agent.errors import ErrorLogger
from transitbot.agent.loop import AgentLoop
from transitbot.agent.service import TransitAssistant
from transitbot.agent.tools import build_default_registry
from transitbot.config.schema import SessionConfig
from transitbot.providers.base import CompletionError, LLMResponse
from transitbot.session.store import SessionStore
from transitbot.transit.provider import StaticSnapshotProvider
from transitbot.web.app import create_app


def build_assistant(*responses) -> TransitAssistant:
    provider = MagicMock()
    provider.chat = AsyncMock(
        side_effect=[LLMResponse(content=r) if isinstance(r, str) else r for r in responses]
    )
    agent = AgentLoop(
        provider=provider,
        tools=build_default_registry(timezone="UTC"),
        error_logger=ErrorLogger(),
    )
    store = SessionStore(SessionConfig(), timezone="UTC")
    return TransitAssistant(agent, store, StaticSnapshotProvider({}))


@pytest.fixture
def assistant() -> TransitAssistant:
    return build_assistant("Bus 5 is on its way.")


@pytest.fixture
def client(assistant: TransitAssistant) -> TestClient:
    return TestClient(create_app(assistant))


def test_chat(client: TestClient) -> None:
    resp = client.post(
        "/api/chat",
        json={"userId": "rider-1", "message": "next bus?", "userLocation": {"lat": 1.0, "lng": 2.0}},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["userId"] == "rider-1"
    assert body["message"] == "Bus 5 is on its way."
    assert body["contextActive"] is True
    assert body["degraded"] is False
    assert body["sessionInfo"]["hasLocation"] is True
    assert body["sessionInfo"]["messageCount"] == 2
    assert "timestamp" in body


def test_chat_requires_message(client: TestClient) -> None:
    resp = client.post("/api/chat", json={"userId": "rider-1"})
    assert resp.status_code == 422


def test_chat_rejects_empty_user_id(client: TestClient) -> None:
    resp = client.post("/api/chat", json={"userId": "", "message": "hi"})
    assert resp.status_code == 422


def test_chat_degraded_reply_is_still_200() -> None:
    assistant = build_assistant(CompletionError("Invalid API key (401)"))
    assistant.agent.config.max_attempts = 1
    client = TestClient(create_app(assistant))

    resp = client.post("/api/chat", json={"userId": "rider-1", "message": "hi"})

    assert resp.status_code == 200
    assert resp.json()["degraded"] is True
    assert resp.json()["canRetry"] is False


def test_conversation_view(client: TestClient) -> None:
    client.post("/api/chat", json={"userId": "rider-1", "message": "next bus?"})

    body = client.get("/api/conversation/rider-1").json()

    assert body["isActive"] is True
    assert body["summary"]["userId"] == "rider-1"
    assert [m["role"] for m in body["recentHistory"]] == ["user", "assistant"]


def test_conversation_view_unknown_user(client: TestClient) -> None:
    body = client.get("/api/conversation/nobody").json()
    assert body["isActive"] is False
    assert body["recentHistory"] == []


def test_reset(client: TestClient, assistant: TransitAssistant) -> None:
    client.post("/api/chat", json={"userId": "rider-1", "message": "next bus?"})

    resp = client.post("/api/context/rider-1/reset")

    assert resp.json() == {
        "success": True,
        "message": "Conversation context reset successfully",
        "userId": "rider-1",
    }
    assert assistant.store.get_or_create("rider-1").message_history == []


def test_health(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["sessions"] == 0
    assert body["errors"]["total_errors"] == 0


def test_lifespan_runs_sweeper(assistant: TransitAssistant) -> None:
    app = create_app(assistant, sweep_interval_s=60)

    with TestClient(app):
        assert app.state.sweeper.running is True

    assert app.state.sweeper.running is False
