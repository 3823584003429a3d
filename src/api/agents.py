"""Proxy routes for ElevenLabs agents, voices and conversation tokens.

Each route forwards to the ElevenLabs API with the server-side API key
so the browser client never sees it.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from src.api.errors import error_response, missing_config_response, proxy_call
from src.config.settings import Settings, get_settings
from src.services.elevenlabs_client import (
    ElevenLabsClient,
    build_agent_body,
    build_agent_update_body,
    get_elevenlabs_client,
)
from src.shared.types import VOICE_LIBRARY_PAGE_SIZE
from src.shared.validators import (
    clamp_page_size,
    is_blank,
    validate_voice_gender,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["agents"])


# --- Request Models ---


class ConversationRequest(BaseModel):
    """Request body for token and signed URL issuance.

    Attributes:
        agent_id: Agent to start a session with; defaults to the
            configured agent.
    """

    model_config = ConfigDict(populate_by_name=True)

    agent_id: str | None = Field(default=None, alias="agentId")


class CreateAgentRequest(BaseModel):
    """Request body for creating a simple prompt-only agent."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    prompt: str = ""
    first_message: str = Field(default="", alias="firstMessage")
    voice_id: str = Field(default="", alias="voiceId")
    language: str = ""


class UpdateAgentRequest(BaseModel):
    """Request body for a partial agent update."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    prompt: str | None = None
    first_message: str | None = Field(default=None, alias="firstMessage")
    voice_id: str | None = Field(default=None, alias="voiceId")
    language: str | None = None


class AddLibraryVoiceRequest(BaseModel):
    """Request body for copying a shared voice into the account."""

    public_owner_id: str
    voice_id: str
    name: str


# --- Config & Session Tokens ---


@router.get("/config", response_model=None)
async def get_config(
    settings: Settings = Depends(get_settings),
) -> Any:
    """Expose the default agent ID to the browser client.

    Args:
        settings: Injected application settings.

    Returns:
        Dict with agentId, or a 500 when it is not configured.
    """
    if not settings.elevenlabs_agent_id:
        return error_response(500, "Server missing agent configuration")
    return {"agentId": settings.elevenlabs_agent_id}


async def _session_credential(
    body: ConversationRequest | None,
    settings: Settings,
    client: ElevenLabsClient | None,
    *,
    signed_url: bool,
) -> Any:
    """Fetch a WebRTC token or signed URL for the requested agent."""
    agent_id = (body.agent_id if body else None) or settings.elevenlabs_agent_id
    if client is None or not agent_id:
        return missing_config_response()
    if signed_url:
        return await proxy_call(
            client.get_signed_url(agent_id),
            failure_message="Failed to fetch signed URL",
        )
    return await proxy_call(
        client.get_conversation_token(agent_id),
        failure_message="Failed to fetch WebRTC token",
    )


@router.post("/webrtc-token", response_model=None)
async def webrtc_token(
    body: ConversationRequest | None = None,
    settings: Settings = Depends(get_settings),
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Issue an ephemeral WebRTC conversation token.

    Args:
        body: Optional request naming the agent.
        settings: Injected application settings.
        client: Injected ElevenLabs client.

    Returns:
        Upstream token dict or an error response.
    """
    return await _session_credential(body, settings, client, signed_url=False)


@router.post("/signed-url", response_model=None)
async def signed_url(
    body: ConversationRequest | None = None,
    settings: Settings = Depends(get_settings),
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Issue a signed WebSocket URL (fallback transport).

    Args:
        body: Optional request naming the agent.
        settings: Injected application settings.
        client: Injected ElevenLabs client.

    Returns:
        Upstream signed URL dict or an error response.
    """
    return await _session_credential(body, settings, client, signed_url=True)


# --- Agent CRUD ---


@router.get("/agents", response_model=None)
async def list_agents(
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """List agents in the workspace."""
    if client is None:
        return missing_config_response()
    return await proxy_call(
        client.list_agents(),
        failure_message="Failed to list agents",
    )


@router.get("/agents/{agent_id}", response_model=None)
async def get_agent(
    agent_id: str,
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Fetch one agent record."""
    if client is None:
        return missing_config_response()
    return await proxy_call(
        client.get_agent(agent_id),
        failure_message="Failed to fetch agent",
    )


@router.post("/agents", response_model=None)
async def create_agent(
    body: CreateAgentRequest,
    settings: Settings = Depends(get_settings),
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Create a simple prompt-only agent.

    Args:
        body: Agent fields from the simple agent form.
        settings: Injected application settings.
        client: Injected ElevenLabs client.

    Returns:
        Upstream create result with agent_id, or an error response.
    """
    if is_blank(body.prompt):
        return error_response(422, "Please enter a system prompt for your agent.")
    if client is None:
        return missing_config_response()
    agent_body = build_agent_body(
        name=body.name.strip() or settings.default_agent_name,
        prompt=body.prompt.strip(),
        first_message=body.first_message.strip(),
        voice_id=body.voice_id,
        language=body.language or settings.default_language,
    )
    return await proxy_call(
        client.create_agent(agent_body),
        failure_message="Failed to create agent",
    )


@router.patch("/agents/{agent_id}", response_model=None)
async def update_agent(
    agent_id: str,
    body: UpdateAgentRequest,
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Apply a partial update to an agent.

    Blank name and prompt values leave the stored value unchanged.

    Args:
        agent_id: ElevenLabs agent ID.
        body: Fields to change.
        client: Injected ElevenLabs client.

    Returns:
        Upstream update result or an error response.
    """
    if client is None:
        return missing_config_response()
    agent_body = build_agent_update_body(
        name=(body.name or "").strip() or None,
        prompt=(body.prompt or "").strip() or None,
        first_message=(
            body.first_message.strip() if body.first_message is not None else None
        ),
        voice_id=body.voice_id or None,
        language=body.language or None,
    )
    return await proxy_call(
        client.update_agent(agent_id, agent_body),
        failure_message="Failed to update agent",
    )


@router.delete("/agents/{agent_id}", response_model=None)
async def delete_agent(
    agent_id: str,
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Delete an agent."""
    if client is None:
        return missing_config_response()
    result = await proxy_call(
        client.delete_agent(agent_id),
        failure_message="Failed to delete agent",
    )
    if isinstance(result, dict):
        return {"success": True, "agent_id": agent_id}
    return result


# --- Voices ---


@router.get("/voices", response_model=None)
async def list_voices(
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """List voices available to the account."""
    if client is None:
        return missing_config_response()
    return await proxy_call(
        client.list_voices(),
        failure_message="Failed to fetch voices",
    )


@router.get("/voice-library", response_model=None)
async def search_voice_library(
    search: str = "",
    language: str = "",
    gender: str = "",
    page_size: int = VOICE_LIBRARY_PAGE_SIZE,
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Search the shared voice library.

    Args:
        search: Free-text search term.
        language: Language filter.
        gender: Gender filter.
        page_size: Maximum results, clamped to the accepted range.
        client: Injected ElevenLabs client.

    Returns:
        Upstream search result or an error response.
    """
    if not validate_voice_gender(gender):
        return error_response(422, f"Unsupported gender filter: {gender}")
    if client is None:
        return missing_config_response()
    return await proxy_call(
        client.search_voice_library(
            search=search.strip(),
            language=language,
            gender=gender,
            page_size=clamp_page_size(page_size),
        ),
        failure_message="Failed to search voice library",
    )


@router.post("/voice-library/add", response_model=None)
async def add_library_voice(
    body: AddLibraryVoiceRequest,
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Copy a shared library voice into the account."""
    if client is None:
        return missing_config_response()
    return await proxy_call(
        client.add_library_voice(
            public_owner_id=body.public_owner_id,
            voice_id=body.voice_id,
            name=body.name,
        ),
        failure_message="Failed to add voice",
    )
