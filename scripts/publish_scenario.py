#!/usr/bin/env python3
"""Publish a bundled patient scenario as an ElevenLabs workflow agent.

Compiles patient_scenarios/<scenario>.yaml into a workflow agent
payload and creates the agent. With --dry-run the compiled create
body is printed instead and nothing is sent.

Reads ELEVENLABS_API_KEY from the environment or .env.

Usage:
    python scripts/publish_scenario.py marcus_johnson
    python scripts/publish_scenario.py sarah_chen --dry-run
"""

import asyncio
import json
import sys

from src.config.settings import get_settings
from src.services.elevenlabs_client import (
    ElevenLabsAPIError,
    ElevenLabsClient,
    payload_to_agent_body,
)
from src.services.patient_editor import WorkflowEditorState
from src.shared.scenarios import DEFAULT_SCENARIO_ID, list_scenarios


def build_scenario_body(scenario_id: str, language: str) -> dict:
    """Compile a bundled scenario into an agent create body.

    Args:
        scenario_id: Scenario filename without extension.
        language: Agent language code.

    Returns:
        Agent create body including the workflow graph.
    """
    state = WorkflowEditorState.from_example(scenario_id)
    return payload_to_agent_body(state.to_agent_payload(), language=language)


async def main() -> None:
    """Compile the requested scenario and create the agent."""
    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    dry_run = "--dry-run" in sys.argv[1:]
    scenario_id = args[0] if args else DEFAULT_SCENARIO_ID

    if scenario_id not in list_scenarios():
        print(f"ERROR: Unknown scenario '{scenario_id}'.")
        print(f"Available: {', '.join(list_scenarios())}")
        sys.exit(1)

    settings = get_settings()
    body = build_scenario_body(scenario_id, settings.default_language)
    nodes = body["workflow"]["nodes"]
    print(f"Compiled '{scenario_id}': {len(nodes)} nodes, "
          f"{len(body['workflow']['edges'])} edges")

    if dry_run:
        print(json.dumps(body, indent=2))
        return

    if not settings.elevenlabs_configured:
        print("ERROR: Set ELEVENLABS_API_KEY environment variable.")
        sys.exit(1)

    client = ElevenLabsClient(
        api_key=settings.elevenlabs_api_key,
        base_url=settings.elevenlabs_base_url,
        timeout=settings.elevenlabs_timeout_seconds,
    )
    try:
        result = await client.create_agent(body)
    except ElevenLabsAPIError as exc:
        print(f"FAILED: {exc.status_code}")
        print(f"    {json.dumps(exc.details)[:300]}")
        sys.exit(1)
    print(f"Done! Created agent {result.get('agent_id')}")


if __name__ == "__main__":
    asyncio.run(main())
