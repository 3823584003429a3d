"""Adaptive patient designer routes.

Compiles designer form input into an ElevenLabs workflow agent and
decompiles existing agents back into the form for editing.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.errors import error_response, missing_config_response, proxy_call
from src.config.settings import Settings, get_settings
from src.services.elevenlabs_client import (
    ElevenLabsClient,
    build_agent_update_body,
    get_elevenlabs_client,
    payload_to_agent_body,
)
from src.services.patient_editor import WorkflowEditorState
from src.services.patient_workflow import EmptyWorkflowError, PatientProfile
from src.shared.scenarios import DEFAULT_SCENARIO_ID, list_scenarios
from src.shared.validators import validate_age

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["patients"])


# --- Request Models ---


class ProfileInput(BaseModel):
    """Patient identity fields from the designer form."""

    name: str = ""
    age: str = ""
    gender: str = ""
    complaint: str = ""
    diagnosis: str = ""
    initial_presentation: str = ""
    first_message: str = ""
    voice_id: str = ""


class PivotInput(BaseModel):
    """One behavioral pivot row from the designer form."""

    id: str | None = None
    label: str = ""
    condition: str = ""
    response: str = ""


class PatientDesignRequest(BaseModel):
    """Complete designer submission.

    Attributes:
        profile: Patient identity and scenario.
        pivots: Behavioral pivots in display order.
        language: Agent language code.
    """

    profile: ProfileInput = ProfileInput()
    pivots: list[PivotInput] = []
    language: str = ""


# --- Helpers ---


def _editor_from_request(body: PatientDesignRequest) -> WorkflowEditorState:
    """Build editor state from a designer submission.

    Raises:
        ValueError: If two pivots share an ID.
    """
    profile = PatientProfile(**body.profile.model_dump())
    return WorkflowEditorState.from_form(
        profile,
        [p.model_dump() for p in body.pivots],
    )


def _warnings(state: WorkflowEditorState) -> list[str]:
    """Collect non-blocking issues with a design."""
    warnings: list[str] = []
    if not validate_age(state.profile.age):
        warnings.append("Age is not a whole number; it will be used as written.")
    for pivot in state.pivots:
        if not pivot.condition.strip():
            warnings.append(f"Pivot '{pivot.pivot_id}' has no trigger condition.")
    return warnings


def _compile_request(
    body: PatientDesignRequest,
) -> tuple[WorkflowEditorState, dict[str, Any]] | Any:
    """Compile a submission, or return a 422 response on bad input."""
    try:
        state = _editor_from_request(body)
    except ValueError as exc:
        return error_response(422, str(exc))
    try:
        payload = state.to_agent_payload()
    except EmptyWorkflowError as exc:
        logger.info(
            "patient_design_rejected",
            extra={"pivot_count": len(state.pivots)},
        )
        return error_response(422, str(exc))
    return state, payload


# --- Routes ---


@router.get("/scenarios")
async def get_scenarios() -> dict[str, list[str]]:
    """List bundled example scenarios.

    Returns:
        Dict with a ``scenarios`` list.
    """
    return {"scenarios": list_scenarios()}


@router.get("/example", response_model=None)
async def get_example(scenario: str = DEFAULT_SCENARIO_ID) -> Any:
    """Return a bundled scenario in designer form shape.

    Args:
        scenario: Scenario ID.

    Returns:
        Designer form with preview rows, or 404 if unknown.
    """
    try:
        state = WorkflowEditorState.from_example(scenario)
    except FileNotFoundError:
        return error_response(404, f"Scenario not found: {scenario}")
    return {**state.to_form(), "preview": state.preview()}


@router.post("/preview", response_model=None)
async def preview_patient(body: PatientDesignRequest) -> Any:
    """Compile a design without contacting ElevenLabs.

    Args:
        body: Designer submission.

    Returns:
        Compiled payload, preview rows and warnings.
    """
    compiled = _compile_request(body)
    if not isinstance(compiled, tuple):
        return compiled
    state, payload = compiled
    return {
        "payload": payload,
        "preview": state.preview(),
        "warnings": _warnings(state),
    }


@router.post("", response_model=None)
async def create_patient(
    body: PatientDesignRequest,
    settings: Settings = Depends(get_settings),
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Compile a design and create the workflow agent.

    Validation runs before any upstream call.

    Args:
        body: Designer submission.
        settings: Injected application settings.
        client: Injected ElevenLabs client.

    Returns:
        Dict with agent_id and name, or an error response.
    """
    compiled = _compile_request(body)
    if not isinstance(compiled, tuple):
        return compiled
    state, payload = compiled
    if client is None:
        return missing_config_response()

    agent_body = payload_to_agent_body(
        payload,
        language=body.language or settings.default_language,
    )
    result = await proxy_call(
        client.create_agent(agent_body),
        failure_message="Failed to create patient agent",
    )
    if not isinstance(result, dict):
        return result
    logger.info(
        "patient_agent_created",
        extra={
            "agent_id": result.get("agent_id"),
            "pivot_count": len(state.pivots),
        },
    )
    return {"agent_id": result.get("agent_id"), "name": payload["name"]}


@router.get("/{agent_id}", response_model=None)
async def get_patient(
    agent_id: str,
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Load an agent and decompile it into the designer form.

    Args:
        agent_id: ElevenLabs agent ID.
        client: Injected ElevenLabs client.

    Returns:
        Designer form with preview rows, or an error response.
    """
    if client is None:
        return missing_config_response()
    record = await proxy_call(
        client.get_agent(agent_id),
        failure_message="Failed to load agent",
    )
    if not isinstance(record, dict):
        return record
    state = WorkflowEditorState.from_agent_record(record)
    return {"agent_id": agent_id, **state.to_form(), "preview": state.preview()}


@router.patch("/{agent_id}", response_model=None)
async def update_patient(
    agent_id: str,
    body: PatientDesignRequest,
    client: ElevenLabsClient | None = Depends(get_elevenlabs_client),
) -> Any:
    """Recompile a design and replace the agent's prompt and workflow.

    Args:
        agent_id: ElevenLabs agent ID.
        body: Designer submission.
        client: Injected ElevenLabs client.

    Returns:
        Dict with agent_id and name, or an error response.
    """
    compiled = _compile_request(body)
    if not isinstance(compiled, tuple):
        return compiled
    _state, payload = compiled
    if client is None:
        return missing_config_response()

    agent_body = build_agent_update_body(
        name=payload["name"],
        prompt=payload["prompt"],
        first_message=payload["first_message"],
        voice_id=payload["voice_id"] or None,
        language=body.language or None,
        workflow=payload["workflow"],
    )
    result = await proxy_call(
        client.update_agent(agent_id, agent_body),
        failure_message="Failed to update patient agent",
    )
    if not isinstance(result, dict):
        return result
    return {"agent_id": agent_id, "name": payload["name"]}
