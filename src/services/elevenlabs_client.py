"""ElevenLabs Conversational AI service client."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

CONVAI_PATH = "/v1/convai"
AGENTS_PATH = f"{CONVAI_PATH}/agents"
TOKEN_PATH = f"{CONVAI_PATH}/conversation/token"
SIGNED_URL_PATH = f"{CONVAI_PATH}/conversation/get-signed-url"
VOICES_PATH = "/v1/voices"
SHARED_VOICES_PATH = "/v1/shared-voices"


class ElevenLabsAPIError(Exception):
    """Non-2xx response from the ElevenLabs API.

    Attributes:
        status_code: Upstream HTTP status.
        details: Parsed JSON error body, or raw text if not JSON.
    """

    def __init__(self, status_code: int, details: Any) -> None:
        """Initialize ElevenLabsAPIError.

        Args:
            status_code: Upstream HTTP status.
            details: Parsed error body.
        """
        super().__init__(f"ElevenLabs API returned {status_code}")
        self.status_code = status_code
        self.details = details


def safe_json_parse(value: str) -> Any:
    """Parse JSON text, returning the raw text when it is not JSON.

    Args:
        value: Response body text.

    Returns:
        Decoded JSON value or the original string.
    """
    try:
        return json.loads(value)
    except ValueError:
        return value


def build_agent_body(
    *,
    name: str,
    prompt: str,
    first_message: str = "",
    voice_id: str = "",
    language: str = "",
    workflow: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the request body for POST /v1/convai/agents/create.

    Args:
        name: Agent display name.
        prompt: Agent system prompt.
        first_message: First message the agent says.
        voice_id: TTS voice identifier, omitted when blank.
        language: Agent language code, omitted when blank.
        workflow: Optional workflow graph with nodes and edges.

    Returns:
        Body matching the ElevenLabs agent schema.
    """
    agent: dict[str, Any] = {
        "prompt": {"prompt": prompt},
        "first_message": first_message,
    }
    if language:
        agent["language"] = language
    config: dict[str, Any] = {"agent": agent}
    if voice_id:
        config["tts"] = {"voice_id": voice_id}
    body: dict[str, Any] = {"name": name, "conversation_config": config}
    if workflow is not None:
        body["workflow"] = workflow
    return body


def build_agent_update_body(
    *,
    name: str | None = None,
    prompt: str | None = None,
    first_message: str | None = None,
    voice_id: str | None = None,
    language: str | None = None,
    workflow: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a PATCH body carrying only the fields that were provided.

    Args:
        name: New agent name.
        prompt: New system prompt.
        first_message: New first message; an empty string clears it.
        voice_id: New TTS voice identifier.
        language: New agent language code.
        workflow: Replacement workflow graph.

    Returns:
        Partial agent body for PATCH /v1/convai/agents/{agent_id}.
    """
    agent: dict[str, Any] = {}
    if prompt:
        agent["prompt"] = {"prompt": prompt}
    if first_message is not None:
        agent["first_message"] = first_message
    if language:
        agent["language"] = language
    config: dict[str, Any] = {}
    if agent:
        config["agent"] = agent
    if voice_id:
        config["tts"] = {"voice_id": voice_id}
    body: dict[str, Any] = {}
    if name:
        body["name"] = name
    if config:
        body["conversation_config"] = config
    if workflow is not None:
        body["workflow"] = workflow
    return body


def payload_to_agent_body(
    payload: dict[str, Any],
    *,
    language: str = "",
) -> dict[str, Any]:
    """Convert an adaptive patient payload into an agent create body.

    Args:
        payload: Output of patient_workflow.to_agent_payload.
        language: Agent language code.

    Returns:
        Body in the remote agent record shape.
    """
    return build_agent_body(
        name=payload["name"],
        prompt=payload["prompt"],
        first_message=payload.get("first_message", ""),
        voice_id=payload.get("voice_id", ""),
        language=language,
        workflow=payload.get("workflow"),
    )


class ElevenLabsClient:
    """Client for the ElevenLabs agent, voice and conversation APIs.

    Attributes:
        api_key: ElevenLabs API key.
        base_url: API root URL.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.elevenlabs.io",
        timeout: float = 30.0,
    ) -> None:
        """Initialize ElevenLabsClient.

        Args:
            api_key: ElevenLabs API key.
            base_url: API root URL.
            timeout: Per-request timeout in seconds.
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and decode the JSON response.

        Args:
            method: HTTP method.
            path: Path below base_url.
            params: Query parameters.
            json_body: JSON request body.

        Returns:
            Decoded JSON body, or an empty dict for an empty body.

        Raises:
            ElevenLabsAPIError: If the API returns a non-2xx status
                or a success body that is not JSON.
            httpx.HTTPError: On transport failures.
        """
        async with httpx.AsyncClient() as client:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=json_body,
                headers={"xi-api-key": self.api_key},
                timeout=self.timeout,
            )
        if response.status_code >= 400:
            details = safe_json_parse(response.text)
            logger.warning(
                "elevenlabs_request_failed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                },
            )
            raise ElevenLabsAPIError(response.status_code, details)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.warning(
                "elevenlabs_invalid_json",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                },
            )
            raise ElevenLabsAPIError(502, response.text) from exc

    async def list_agents(self) -> dict[str, Any]:
        """List agents in the workspace.

        Returns:
            Dict with an ``agents`` list.
        """
        return await self._request("GET", AGENTS_PATH)

    async def get_agent(self, agent_id: str) -> dict[str, Any]:
        """Fetch a full agent record including workflow.

        Args:
            agent_id: ElevenLabs agent ID.

        Returns:
            Agent record dict.
        """
        return await self._request("GET", f"{AGENTS_PATH}/{agent_id}")

    async def create_agent(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create an agent.

        Args:
            body: Agent body from build_agent_body.

        Returns:
            Dict with the new ``agent_id``.
        """
        result = await self._request(
            "POST",
            f"{AGENTS_PATH}/create",
            json_body=body,
        )
        logger.info(
            "agent_created",
            extra={
                "agent_id": result.get("agent_id"),
                "has_workflow": "workflow" in body,
            },
        )
        return result

    async def update_agent(
        self,
        agent_id: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """Update an agent with a partial body.

        Args:
            agent_id: ElevenLabs agent ID.
            body: Partial agent body.

        Returns:
            Updated agent record.
        """
        result = await self._request(
            "PATCH",
            f"{AGENTS_PATH}/{agent_id}",
            json_body=body,
        )
        logger.info(
            "agent_updated",
            extra={"agent_id": agent_id, "fields": sorted(body)},
        )
        return result

    async def delete_agent(self, agent_id: str) -> dict[str, Any]:
        """Delete an agent.

        Args:
            agent_id: ElevenLabs agent ID.

        Returns:
            Upstream response body (usually empty).
        """
        result = await self._request("DELETE", f"{AGENTS_PATH}/{agent_id}")
        logger.info("agent_deleted", extra={"agent_id": agent_id})
        return result

    async def list_voices(self) -> dict[str, Any]:
        """List voices available to the account.

        Returns:
            Dict with a ``voices`` list.
        """
        return await self._request("GET", VOICES_PATH)

    async def search_voice_library(
        self,
        *,
        search: str = "",
        language: str = "",
        gender: str = "",
        page_size: int = 30,
    ) -> dict[str, Any]:
        """Search the shared voice library.

        Args:
            search: Free-text search term.
            language: Language filter.
            gender: Gender filter.
            page_size: Maximum results.

        Returns:
            Dict with a ``voices`` list.
        """
        params: dict[str, Any] = {"page_size": page_size}
        if search:
            params["search"] = search
        if language:
            params["language"] = language
        if gender:
            params["gender"] = gender
        return await self._request("GET", SHARED_VOICES_PATH, params=params)

    async def add_library_voice(
        self,
        *,
        public_owner_id: str,
        voice_id: str,
        name: str,
    ) -> dict[str, Any]:
        """Copy a shared library voice into the account.

        Args:
            public_owner_id: Public user ID of the voice owner.
            voice_id: Shared voice ID.
            name: Name to give the copied voice.

        Returns:
            Dict with the new ``voice_id``.
        """
        result = await self._request(
            "POST",
            f"{VOICES_PATH}/add/{public_owner_id}/{voice_id}",
            json_body={"new_name": name},
        )
        logger.info(
            "library_voice_added",
            extra={"voice_id": result.get("voice_id")},
        )
        return result

    async def get_conversation_token(self, agent_id: str) -> dict[str, Any]:
        """Request a WebRTC conversation token for an agent.

        Args:
            agent_id: ElevenLabs agent ID.

        Returns:
            Dict with a ``token`` key.
        """
        return await self._request(
            "GET",
            TOKEN_PATH,
            params={"agent_id": agent_id},
        )

    async def get_signed_url(self, agent_id: str) -> dict[str, Any]:
        """Request a signed WebSocket URL for an agent.

        Args:
            agent_id: ElevenLabs agent ID.

        Returns:
            Dict with a ``signed_url`` key.
        """
        return await self._request(
            "GET",
            SIGNED_URL_PATH,
            params={"agent_id": agent_id},
        )


def get_elevenlabs_client() -> ElevenLabsClient | None:
    """Build a client from settings.

    Returns:
        ElevenLabsClient, or None when no API key is configured.
    """
    from src.config.settings import get_settings

    settings = get_settings()
    if not settings.elevenlabs_configured:
        return None
    return ElevenLabsClient(
        api_key=settings.elevenlabs_api_key,
        base_url=settings.elevenlabs_base_url,
        timeout=settings.elevenlabs_timeout_seconds,
    )
