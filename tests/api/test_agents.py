"""Tests for the ElevenLabs proxy routes."""

from unittest.mock import AsyncMock

import httpx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.config.settings import Settings, get_settings
from src.services.elevenlabs_client import ElevenLabsAPIError


class TestConfig:
    """GET /api/config."""

    def test_returns_agent_id(self, client: TestClient) -> None:
        """Configured agent ID is exposed."""
        response = client.get("/api/config")
        assert response.status_code == 200
        assert response.json() == {"agentId": "agent-default"}

    def test_missing_agent_id(self, app: FastAPI, client: TestClient) -> None:
        """No agent ID returns 500."""
        app.dependency_overrides[get_settings] = lambda: Settings(
            elevenlabs_api_key="k",
            elevenlabs_agent_id="",
        )
        response = client.get("/api/config")
        assert response.status_code == 500
        assert response.json() == {"error": "Server missing agent configuration"}


class TestSessionCredentials:
    """POST /api/webrtc-token and /api/signed-url."""

    def test_token_uses_default_agent(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Without a body the configured agent is used."""
        upstream.get_conversation_token.return_value = {"token": "tok"}
        response = client.post("/api/webrtc-token")
        assert response.status_code == 200
        assert response.json() == {"token": "tok"}
        upstream.get_conversation_token.assert_awaited_once_with("agent-default")

    def test_token_for_requested_agent(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """agentId in the body selects the agent."""
        upstream.get_conversation_token.return_value = {"token": "tok"}
        client.post("/api/webrtc-token", json={"agentId": "agent-custom"})
        upstream.get_conversation_token.assert_awaited_once_with("agent-custom")

    def test_signed_url(self, client: TestClient, upstream: AsyncMock) -> None:
        """Signed URL is proxied."""
        upstream.get_signed_url.return_value = {"signed_url": "wss://x"}
        response = client.post("/api/signed-url", json={})
        assert response.json() == {"signed_url": "wss://x"}

    def test_upstream_error_passthrough(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Upstream status and details are passed through."""
        upstream.get_conversation_token.side_effect = ElevenLabsAPIError(
            401,
            {"detail": "invalid key"},
        )
        response = client.post("/api/webrtc-token")
        assert response.status_code == 401
        assert response.json() == {
            "error": "Failed to fetch WebRTC token",
            "details": {"detail": "invalid key"},
        }

    def test_transport_error(self, client: TestClient, upstream: AsyncMock) -> None:
        """Transport failures become a 500."""
        upstream.get_signed_url.side_effect = httpx.ConnectError("refused")
        response = client.post("/api/signed-url")
        assert response.status_code == 500
        assert response.json()["error"].startswith("Unexpected error")

    def test_missing_config(self, unconfigured_client: TestClient) -> None:
        """No API key returns the missing configuration error."""
        response = unconfigured_client.post("/api/webrtc-token")
        assert response.status_code == 500
        assert response.json() == {
            "error": "Server missing ElevenLabs configuration",
        }


class TestAgentCrud:
    """/api/agents routes."""

    def test_list_agents(self, client: TestClient, upstream: AsyncMock) -> None:
        """Agent list is proxied."""
        upstream.list_agents.return_value = {"agents": [{"agent_id": "a"}]}
        response = client.get("/api/agents")
        assert response.json() == {"agents": [{"agent_id": "a"}]}

    def test_get_agent_not_found(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Upstream 404 is passed through."""
        upstream.get_agent.side_effect = ElevenLabsAPIError(404, "not found")
        response = client.get("/api/agents/missing")
        assert response.status_code == 404
        assert response.json()["details"] == "not found"

    def test_create_agent(self, client: TestClient, upstream: AsyncMock) -> None:
        """Simple agents are created with defaults filled in."""
        upstream.create_agent.return_value = {"agent_id": "agent-new"}
        response = client.post(
            "/api/agents",
            json={"prompt": "  Be helpful.  ", "firstMessage": "Hello"},
        )
        assert response.json() == {"agent_id": "agent-new"}
        body = upstream.create_agent.await_args.args[0]
        assert body["name"] == "Custom Agent"
        assert body["conversation_config"]["agent"] == {
            "prompt": {"prompt": "Be helpful."},
            "first_message": "Hello",
            "language": "en",
        }

    def test_create_agent_requires_prompt(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Blank prompt is rejected before any upstream call."""
        response = client.post("/api/agents", json={"name": "A", "prompt": "  "})
        assert response.status_code == 422
        assert response.json() == {
            "error": "Please enter a system prompt for your agent.",
        }
        upstream.create_agent.assert_not_awaited()

    def test_update_agent(self, client: TestClient, upstream: AsyncMock) -> None:
        """Only provided fields are patched."""
        upstream.update_agent.return_value = {"agent_id": "agent-1"}
        client.patch("/api/agents/agent-1", json={"name": "Renamed"})
        upstream.update_agent.assert_awaited_once_with("agent-1", {"name": "Renamed"})

    def test_delete_agent(self, client: TestClient, upstream: AsyncMock) -> None:
        """Delete returns a success marker."""
        upstream.delete_agent.return_value = {}
        response = client.delete("/api/agents/agent-1")
        assert response.json() == {"success": True, "agent_id": "agent-1"}

    def test_delete_agent_error(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Delete failures keep the upstream status."""
        upstream.delete_agent.side_effect = ElevenLabsAPIError(403, "forbidden")
        response = client.delete("/api/agents/agent-1")
        assert response.status_code == 403


class TestVoices:
    """Voice listing and library routes."""

    def test_list_voices(self, client: TestClient, upstream: AsyncMock) -> None:
        """Voices are proxied."""
        upstream.list_voices.return_value = {"voices": []}
        assert client.get("/api/voices").json() == {"voices": []}

    def test_voice_library_clamps_page_size(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Oversized pages are clamped and filters forwarded."""
        upstream.search_voice_library.return_value = {"voices": []}
        client.get(
            "/api/voice-library",
            params={"search": " old man ", "gender": "male", "page_size": 500},
        )
        upstream.search_voice_library.assert_awaited_once_with(
            search="old man",
            language="",
            gender="male",
            page_size=100,
        )

    def test_voice_library_rejects_gender(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Unknown gender filters are rejected."""
        response = client.get("/api/voice-library", params={"gender": "robot"})
        assert response.status_code == 422
        upstream.search_voice_library.assert_not_awaited()

    def test_add_library_voice(
        self,
        client: TestClient,
        upstream: AsyncMock,
    ) -> None:
        """Shared voices are copied into the account."""
        upstream.add_library_voice.return_value = {"voice_id": "copied"}
        response = client.post(
            "/api/voice-library/add",
            json={"public_owner_id": "o", "voice_id": "v", "name": "Grandpa"},
        )
        assert response.json() == {"voice_id": "copied"}
        upstream.add_library_voice.assert_awaited_once_with(
            public_owner_id="o",
            voice_id="v",
            name="Grandpa",
        )
