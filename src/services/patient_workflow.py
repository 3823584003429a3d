"""Adaptive patient workflow compiler for ElevenLabs Agent Workflows.

Turns a standardized-patient design (identity fields plus an ordered
list of behavioral pivots) into the node/edge graph the ElevenLabs
workflow API consumes, and decomposes an existing agent record back
into editable form fields.

Graph shape:
    start_node -> initial_state -> state_<pivot_id> (one per pivot)

Each pivot node is an override_agent whose additional_prompt replaces
the active persona instructions once the platform LLM decides the
pivot's trigger condition has been met.
"""

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from src.shared.types import Gender, PivotTone
from src.shared.validators import has_workflow_content, is_blank

logger = logging.getLogger(__name__)

START_NODE_ID = "start_node"
INITIAL_NODE_ID = "initial_state"
START_EDGE_ID = "edge_start_to_initial"

DEFAULT_PATIENT_NAME = "Patient"
DEFAULT_AGENT_NAME = "Adaptive Patient"
DEFAULT_GENDER = Gender.MALE.value
AGE_FALLBACK = "Not specified"


class EmptyWorkflowError(ValueError):
    """Raised when a design has neither a complaint nor any pivot trigger."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class NodeType(enum.StrEnum):
    """ElevenLabs workflow node type."""

    START = "start"
    OVERRIDE_AGENT = "override_agent"


class ConditionType(enum.StrEnum):
    """Forward condition type attached to a workflow edge."""

    UNCONDITIONAL = "unconditional"
    LLM = "llm"


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatientProfile:
    """Identity and clinical scenario of a standardized patient.

    Attributes:
        name: Patient display name.
        age: Free-text age, usually a non-negative integer.
        gender: male, female, or free text.
        complaint: Presenting complaint.
        diagnosis: Hidden diagnosis revealed only after rapport.
        initial_presentation: Narrative for the initial state.
        first_message: First line the patient speaks.
        voice_id: ElevenLabs TTS voice identifier.
    """

    name: str = ""
    age: str = ""
    gender: str = ""
    complaint: str = ""
    diagnosis: str = ""
    initial_presentation: str = ""
    first_message: str = ""
    voice_id: str = ""


@dataclass(frozen=True)
class Pivot:
    """One behavioral branch of the patient.

    Attributes:
        pivot_id: Identifier, unique within a workflow.
        label: Short title shown in the editor and on the node.
        condition: Natural-language trigger evaluated by the platform LLM.
        response: How the patient behaves once triggered.
    """

    pivot_id: str
    label: str = ""
    condition: str = ""
    response: str = ""

    @property
    def tone(self) -> PivotTone:
        """Display classification derived from the label."""
        return classify_pivot(self.label)


@dataclass(frozen=True)
class ForwardCondition:
    """Predicate guarding an edge transition."""

    condition_type: ConditionType = ConditionType.UNCONDITIONAL
    condition: str = ""


@dataclass(frozen=True)
class WorkflowEdge:
    """Directed edge between two workflow nodes.

    Attributes:
        source: Source node ID.
        target: Target node ID.
        forward_condition: Predicate that fires the transition.
    """

    source: str
    target: str
    forward_condition: ForwardCondition = field(default_factory=ForwardCondition)


@dataclass
class WorkflowNode:
    """A node in the patient workflow graph.

    Attributes:
        node_type: start or override_agent.
        label: Human-readable node label.
        additional_prompt: Prompt text layered on top of the persona.
        position: Canvas coordinates as (x, y).
        edge_order: Outgoing edge IDs in evaluation priority order.
    """

    node_type: NodeType
    label: str = ""
    additional_prompt: str = ""
    position: tuple[int, int] = (0, 0)
    edge_order: list[str] = field(default_factory=list)


@dataclass
class WorkflowGraph:
    """Compiled workflow: node and edge maps keyed by ID."""

    nodes: dict[str, WorkflowNode] = field(default_factory=dict)
    edges: dict[str, WorkflowEdge] = field(default_factory=dict)

    def get_node(self, node_id: str) -> WorkflowNode | None:
        """Look up a node by its ID.

        Args:
            node_id: The node identifier to search for.

        Returns:
            The matching node, or None if not found.
        """
        return self.nodes.get(node_id)

    def validate(self) -> list[str]:
        """Check that edges and edge orders reference existing items.

        Returns:
            List of error messages, empty when the graph is consistent.
        """
        errors: list[str] = []
        for edge_id, edge in self.edges.items():
            for end in (edge.source, edge.target):
                if end not in self.nodes:
                    errors.append(
                        f"Edge '{edge_id}' references unknown node '{end}'"
                    )
        for node_id, node in self.nodes.items():
            for edge_id in node.edge_order:
                edge = self.edges.get(edge_id)
                if edge is None:
                    errors.append(
                        f"Node '{node_id}' orders unknown edge '{edge_id}'"
                    )
                elif edge.source != node_id:
                    errors.append(
                        f"Node '{node_id}' orders edge '{edge_id}' "
                        f"owned by '{edge.source}'"
                    )
        return errors

    def to_api(self) -> dict[str, Any]:
        """Serialize to the ElevenLabs ``workflow`` object.

        Returns:
            Dict with ``nodes`` and ``edges`` maps.
        """
        return {
            "nodes": {
                node_id: _serialize_node(node)
                for node_id, node in self.nodes.items()
            },
            "edges": {
                edge_id: _serialize_edge(edge)
                for edge_id, edge in self.edges.items()
            },
        }


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

PERSONA_INTRO = (
    "You are a standardized patient for medical education. You are "
    "role-playing as a patient in a clinical encounter with a medical student."
)

HIDDEN_INFO_LABEL = (
    "HIDDEN INFORMATION (reveal only if the student builds rapport "
    "and asks the right questions):"
)

PERSONA_INSTRUCTIONS = (
    "IMPORTANT INSTRUCTIONS:\n"
    "1. Stay in character as the patient at all times\n"
    "2. Respond naturally and realistically to the student's questions\n"
    "3. Your emotional state and willingness to share information should "
    "depend on how the student treats you\n"
    "4. If the student is empathetic and professional, you can open up more\n"
    "5. If the student is rushed, dismissive, or uses too much jargon, "
    "become more guarded\n"
    "6. Never break character to explain what you're doing or why\n"
    "7. React emotionally as a real patient would - show anxiety, "
    "frustration, relief, etc.\n"
    "8. Don't volunteer all information at once - let the student discover "
    "things through good questioning"
)

INITIAL_STATE_PREFIX = "CURRENT STATE: Initial presentation."

INITIAL_STATE_GUIDANCE = (
    "You are in your initial state. Present your symptoms as described but "
    "don't volunteer too much information yet. Wait to see how the medical "
    "student approaches you before deciding how open to be."
)

PIVOT_STATE_PREFIX = "BEHAVIORAL STATE:"

PIVOT_LEAD_IN = (
    "The medical student has triggered this response. Your behavior now:"
)

PIVOT_CLOSING = (
    "Continue the conversation in this emotional state. If the student's "
    "approach changes significantly, you may shift to a different state."
)

# Anchors used by parse_persona_text; value is the rest of the line.
PERSONA_ANCHORS: dict[str, re.Pattern[str]] = {
    "name": re.compile(r"^-\s*Name:[ \t]*(.*)$", re.MULTILINE),
    "age": re.compile(r"^-\s*Age:[ \t]*(.*)$", re.MULTILINE),
    "gender": re.compile(r"^-\s*Gender:[ \t]*(.*)$", re.MULTILINE),
    "complaint": re.compile(r"^PRESENTING COMPLAINT:[ \t]*(.*)$", re.MULTILINE),
    "diagnosis": re.compile(r"^HIDDEN INFORMATION[^:\n]*:[ \t]*(.*)$", re.MULTILINE),
}

GOOD_TONE_PATTERN = re.compile(r"empathy|concern|interest|validates", re.IGNORECASE)
BAD_TONE_PATTERN = re.compile(r"dismiss|cold|slow down|hostile", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Encode path
# ---------------------------------------------------------------------------


def pivot_node_id(pivot_id: str) -> str:
    """Return the node ID generated for a pivot."""
    return f"state_{pivot_id}"


def pivot_edge_id(pivot_id: str) -> str:
    """Return the edge ID generated for a pivot."""
    return f"edge_initial_to_{pivot_id}"


def build_patient_prompt(profile: PatientProfile) -> str:
    """Build the base persona prompt for a standardized patient.

    The hidden-information block is included only when the profile
    carries a diagnosis.

    Args:
        profile: Patient identity and scenario.

    Returns:
        Persona system prompt text.
    """
    sections = [
        PERSONA_INTRO,
        (
            "PATIENT IDENTITY:\n"
            f"- Name: {profile.name or DEFAULT_PATIENT_NAME}\n"
            f"- Age: {profile.age or AGE_FALLBACK}\n"
            f"- Gender: {profile.gender or DEFAULT_GENDER}"
        ),
        f"PRESENTING COMPLAINT: {profile.complaint}",
    ]
    if not is_blank(profile.diagnosis):
        sections.append(f"{HIDDEN_INFO_LABEL} {profile.diagnosis}")
    sections.append(PERSONA_INSTRUCTIONS)
    return "\n\n".join(sections)


def build_initial_state_prompt(initial_presentation: str) -> str:
    """Build the additional prompt for the initial_state node."""
    return (
        f"{INITIAL_STATE_PREFIX} {initial_presentation}\n\n"
        f"{INITIAL_STATE_GUIDANCE}"
    )


def build_pivot_prompt(label: str, response: str) -> str:
    """Build the additional prompt for a pivot's override node.

    Args:
        label: Pivot title.
        response: Behavior narrative for the triggered state.

    Returns:
        Override prompt text.
    """
    return (
        f"{PIVOT_STATE_PREFIX} {label}\n\n"
        f"{PIVOT_LEAD_IN}\n"
        f"{response}\n\n"
        f"{PIVOT_CLOSING}"
    )


def compile_workflow(
    profile: PatientProfile,
    pivots: list[Pivot],
) -> WorkflowGraph:
    """Compile a patient design into a workflow graph.

    Emits the fixed start and initial nodes joined by an unconditional
    edge, then one override node and one LLM-conditioned edge per
    pivot, in declaration order. Node and edge IDs derive from pivot
    IDs only, so identical input yields an identical graph.

    Args:
        profile: Patient identity and scenario.
        pivots: Ordered behavioral pivots; may be empty.

    Returns:
        WorkflowGraph ready for serialization.
    """
    initial_node = WorkflowNode(
        node_type=NodeType.OVERRIDE_AGENT,
        label="Initial Presentation",
        additional_prompt=build_initial_state_prompt(
            profile.initial_presentation,
        ),
        position=(200, 0),
    )
    graph = WorkflowGraph(
        nodes={
            START_NODE_ID: WorkflowNode(
                node_type=NodeType.START,
                position=(0, 0),
                edge_order=[START_EDGE_ID],
            ),
            INITIAL_NODE_ID: initial_node,
        },
        edges={
            START_EDGE_ID: WorkflowEdge(
                source=START_NODE_ID,
                target=INITIAL_NODE_ID,
            ),
        },
    )

    for index, pivot in enumerate(pivots):
        node_id = pivot_node_id(pivot.pivot_id)
        edge_id = pivot_edge_id(pivot.pivot_id)
        label = pivot.label or f"State {index + 1}"
        graph.nodes[node_id] = WorkflowNode(
            node_type=NodeType.OVERRIDE_AGENT,
            label=label,
            additional_prompt=build_pivot_prompt(label, pivot.response),
            position=(400, index * 100),
        )
        graph.edges[edge_id] = WorkflowEdge(
            source=INITIAL_NODE_ID,
            target=node_id,
            forward_condition=ForwardCondition(
                condition_type=ConditionType.LLM,
                condition=pivot.condition,
            ),
        )
        initial_node.edge_order.append(edge_id)

    logger.debug(
        "patient_workflow_compiled",
        extra={"node_count": len(graph.nodes), "edge_count": len(graph.edges)},
    )
    return graph


def to_agent_payload(
    profile: PatientProfile,
    pivots: list[Pivot],
) -> dict[str, Any]:
    """Assemble the create/update payload for an adaptive patient.

    Args:
        profile: Patient identity and scenario.
        pivots: Ordered behavioral pivots.

    Returns:
        Dict with name, prompt, first_message, voice_id and workflow.

    Raises:
        EmptyWorkflowError: If the complaint and all pivot triggers
            are blank.
    """
    if not has_workflow_content(
        profile.complaint,
        [p.condition for p in pivots],
    ):
        msg = (
            "Patient design needs a presenting complaint or at least "
            "one pivot trigger condition"
        )
        raise EmptyWorkflowError(msg)

    graph = compile_workflow(profile, pivots)
    return {
        "name": profile.name or DEFAULT_AGENT_NAME,
        "prompt": build_patient_prompt(profile),
        "first_message": profile.first_message,
        "voice_id": profile.voice_id,
        "workflow": graph.to_api(),
    }


def _serialize_position(position: tuple[int, int]) -> dict[str, int]:
    """Serialize a position tuple to an x/y dict."""
    x, y = position
    return {"x": x, "y": y}


def _serialize_start_node(node: WorkflowNode) -> dict[str, Any]:
    """Serialize a START node.

    Args:
        node: The workflow node to serialize.

    Returns:
        Dict with type, position and edge_order.
    """
    return {
        "type": str(NodeType.START),
        "position": _serialize_position(node.position),
        "edge_order": list(node.edge_order),
    }


def _serialize_override_node(node: WorkflowNode) -> dict[str, Any]:
    """Serialize an OVERRIDE_AGENT node.

    Args:
        node: The workflow node to serialize.

    Returns:
        Dict in ElevenLabs override_agent format.
    """
    return {
        "type": str(NodeType.OVERRIDE_AGENT),
        "label": node.label,
        "additional_prompt": node.additional_prompt,
        "position": _serialize_position(node.position),
        "edge_order": list(node.edge_order),
    }


def _serialize_node(node: WorkflowNode) -> dict[str, Any]:
    """Route a node to its type-specific serializer.

    Args:
        node: The workflow node to serialize.

    Returns:
        Dict in the appropriate ElevenLabs API node format.

    Raises:
        ValueError: If node_type is not recognized.
    """
    serializers = {
        NodeType.START: _serialize_start_node,
        NodeType.OVERRIDE_AGENT: _serialize_override_node,
    }
    serializer = serializers.get(node.node_type)
    if serializer is None:
        msg = f"Unknown node type: {node.node_type}"
        raise ValueError(msg)
    return serializer(node)


def _serialize_edge(edge: WorkflowEdge) -> dict[str, Any]:
    """Serialize an edge and its forward condition.

    Args:
        edge: The workflow edge to serialize.

    Returns:
        Dict with source, target and forward_condition.
    """
    condition: dict[str, str] = {
        "type": str(edge.forward_condition.condition_type),
    }
    if edge.forward_condition.condition_type == ConditionType.LLM:
        condition["condition"] = edge.forward_condition.condition
    return {
        "source": edge.source,
        "target": edge.target,
        "forward_condition": condition,
    }


# ---------------------------------------------------------------------------
# Decode path
# ---------------------------------------------------------------------------


def classify_pivot(label: str) -> PivotTone:
    """Infer a display tone from a pivot label.

    Args:
        label: Pivot title.

    Returns:
        GOOD, BAD or NEUTRAL by keyword match.
    """
    if GOOD_TONE_PATTERN.search(label or ""):
        return PivotTone.GOOD
    if BAD_TONE_PATTERN.search(label or ""):
        return PivotTone.BAD
    return PivotTone.NEUTRAL


def parse_persona_text(prompt: str) -> dict[str, str]:
    """Extract profile fields from persona prompt text.

    Best-effort: each field is the remainder of the line after its
    anchor (see PERSONA_ANCHORS). A missing anchor yields an empty
    string. The age placeholder decodes to an empty age.

    Args:
        prompt: Persona prompt, usually produced by build_patient_prompt.

    Returns:
        Dict with name, age, gender, complaint and diagnosis.
    """
    text = prompt if isinstance(prompt, str) else ""
    fields: dict[str, str] = {}
    for key, pattern in PERSONA_ANCHORS.items():
        match = pattern.search(text)
        fields[key] = match.group(1).strip() if match else ""
    if fields["age"] == AGE_FALLBACK:
        fields["age"] = ""
    return fields


def parse_initial_presentation(additional_prompt: str) -> str:
    """Strip the encoder boilerplate from an initial_state prompt."""
    if not isinstance(additional_prompt, str):
        return ""
    text = additional_prompt.replace(INITIAL_STATE_PREFIX, "", 1)
    text = text.replace(INITIAL_STATE_GUIDANCE, "")
    return text.strip()


def parse_pivot_response(additional_prompt: str) -> str:
    """Strip the encoder boilerplate from a pivot node prompt."""
    if not isinstance(additional_prompt, str):
        return ""
    kept = [
        line
        for line in additional_prompt.strip().splitlines()
        if not line.startswith(PIVOT_STATE_PREFIX)
        and line.strip() not in (PIVOT_LEAD_IN, PIVOT_CLOSING)
    ]
    return "\n".join(kept).strip()


def _as_dict(value: Any) -> dict[str, Any]:
    """Return value when it is a dict, else an empty dict."""
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str:
    """Return value when it is a string, else an empty string."""
    return value if isinstance(value, str) else ""


def _read_record_fields(record: dict[str, Any]) -> dict[str, str]:
    """Pull prompt, first message, voice and name from an agent record.

    Accepts the remote record shape (``conversation_config``) and
    falls back to the flat create-payload shape.
    """
    config = _as_dict(record.get("conversation_config"))
    agent = _as_dict(config.get("agent"))
    prompt = _as_dict(agent.get("prompt")).get("prompt")
    first_message = agent.get("first_message")
    voice_id = _as_dict(config.get("tts")).get("voice_id")
    flat_prompt = record.get("prompt")
    return {
        "name": _as_str(record.get("name")),
        "prompt": _as_str(prompt) or _as_str(flat_prompt),
        "first_message": _as_str(first_message)
        or _as_str(record.get("first_message")),
        "voice_id": _as_str(voice_id) or _as_str(record.get("voice_id")),
    }


def _recover_pivot_id(node_id: str) -> str:
    """Map ``state_<id>`` back to ``<id>``."""
    return node_id.removeprefix("state_") or node_id


def _pivot_node_ids(
    nodes: dict[str, Any],
    edges: dict[str, Any],
) -> list[str]:
    """Order pivot node IDs by initial_state edge_order, then map order."""
    candidates = [
        node_id
        for node_id, node in nodes.items()
        if node_id not in (START_NODE_ID, INITIAL_NODE_ID)
        and _as_dict(node).get("type") == NodeType.OVERRIDE_AGENT
    ]
    edge_order = _as_dict(nodes.get(INITIAL_NODE_ID)).get("edge_order")
    ordered: list[str] = []
    for edge_id in edge_order if isinstance(edge_order, list) else []:
        if not isinstance(edge_id, str):
            continue
        target = _as_dict(edges.get(edge_id)).get("target")
        if target in candidates and target not in ordered:
            ordered.append(target)
    ordered.extend(n for n in candidates if n not in ordered)
    return ordered


def _find_condition(node_id: str, edges: dict[str, Any]) -> str:
    """Return the trigger text of the edge targeting node_id."""
    for raw_edge in edges.values():
        edge = _as_dict(raw_edge)
        if edge.get("target") != node_id:
            continue
        forward = _as_dict(edge.get("forward_condition"))
        return _as_str(forward.get("condition"))
    return ""


def decompile_agent(
    record: dict[str, Any],
) -> tuple[PatientProfile, list[Pivot]]:
    """Decompose an agent record into a profile and ordered pivots.

    Never raises on malformed input: missing pieces become empty
    fields, and an absent or unreadable workflow yields no pivots.

    Args:
        record: Remote agent record or a create payload.

    Returns:
        Tuple of (PatientProfile, list of Pivot).
    """
    record = _as_dict(record)
    meta = _read_record_fields(record)
    persona = parse_persona_text(meta["prompt"])

    workflow = _as_dict(record.get("workflow"))
    nodes = _as_dict(workflow.get("nodes"))
    edges = _as_dict(workflow.get("edges"))

    initial = _as_dict(nodes.get(INITIAL_NODE_ID))
    profile = PatientProfile(
        name=persona["name"] or meta["name"],
        age=persona["age"],
        gender=persona["gender"],
        complaint=persona["complaint"],
        diagnosis=persona["diagnosis"],
        initial_presentation=parse_initial_presentation(
            initial.get("additional_prompt"),
        ),
        first_message=meta["first_message"],
        voice_id=meta["voice_id"],
    )

    pivots: list[Pivot] = []
    for node_id in _pivot_node_ids(nodes, edges):
        node = _as_dict(nodes[node_id])
        pivots.append(
            Pivot(
                pivot_id=_recover_pivot_id(node_id),
                label=_as_str(node.get("label")),
                condition=_find_condition(node_id, edges),
                response=parse_pivot_response(node.get("additional_prompt")),
            )
        )

    if not meta["prompt"]:
        logger.warning(
            "patient_decode_missing_prompt",
            extra={"agent_name": meta["name"]},
        )
    logger.info(
        "patient_workflow_decompiled",
        extra={"pivot_count": len(pivots), "has_workflow": bool(nodes)},
    )
    return profile, pivots
