"""Editor state for the adaptive patient designer.

Holds the current profile and ordered pivots for one editing session,
and owns the counter used to mint new pivot IDs. The compiler only
ever sees the immutable PatientProfile and Pivot values held here.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any

from src.services.patient_workflow import (
    PatientProfile,
    Pivot,
    WorkflowGraph,
    compile_workflow,
    decompile_agent,
    to_agent_payload,
)
from src.shared.scenarios import DEFAULT_SCENARIO_ID, load_scenario
from src.shared.types import PREVIEW_LABEL_MAX_CHARS

logger = logging.getLogger(__name__)

NEW_PIVOT_LABEL = "Custom Behavioral Pivot"

# Seeded when an edited agent has no recoverable pivots.
PLACEHOLDER_PIVOTS: tuple[tuple[str, str], ...] = (
    ("Shows Empathy", "The student expresses concern for how the patient feels."),
    ("Dismissive Attitude", "The student ignores or brushes off the patient."),
)

_PIVOT_ID_PATTERN = re.compile(r"^pivot-(\d+)$")


def _shorten(label: str, limit: int = PREVIEW_LABEL_MAX_CHARS) -> str:
    """Truncate a label for the branch preview."""
    if len(label) <= limit:
        return label
    return label[: limit - 3] + "..."


class WorkflowEditorState:
    """Mutable editing session over a patient design.

    Attributes:
        profile: Current patient profile.
    """

    def __init__(
        self,
        profile: PatientProfile | None = None,
        pivots: list[Pivot] | None = None,
    ) -> None:
        """Initialize the editor.

        Args:
            profile: Starting profile, blank if omitted.
            pivots: Starting pivots in display order.
        """
        self.profile = profile or PatientProfile()
        self._pivots: list[Pivot] = list(pivots or [])
        self._counter = self._initial_counter()

    def _initial_counter(self) -> int:
        """Start numbering after the highest existing pivot-N ID."""
        highest = len(self._pivots)
        for pivot in self._pivots:
            match = _PIVOT_ID_PATTERN.match(pivot.pivot_id)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    @property
    def pivots(self) -> list[Pivot]:
        """Pivots in display order (a copy)."""
        return list(self._pivots)

    def _index_of(self, pivot_id: str) -> int:
        for index, pivot in enumerate(self._pivots):
            if pivot.pivot_id == pivot_id:
                return index
        raise KeyError(f"Unknown pivot: {pivot_id}")

    def next_pivot_id(self) -> str:
        """Mint a pivot ID not used by any current pivot."""
        taken = {p.pivot_id for p in self._pivots}
        while True:
            self._counter += 1
            pivot_id = f"pivot-{self._counter}"
            if pivot_id not in taken:
                return pivot_id

    def add_pivot(
        self,
        label: str = NEW_PIVOT_LABEL,
        condition: str = "",
        response: str = "",
    ) -> Pivot:
        """Append a new pivot.

        Args:
            label: Pivot title.
            condition: Trigger condition text.
            response: Patient response narrative.

        Returns:
            The newly added Pivot.
        """
        pivot = Pivot(
            pivot_id=self.next_pivot_id(),
            label=label,
            condition=condition,
            response=response,
        )
        self._pivots.append(pivot)
        return pivot

    def remove_pivot(self, pivot_id: str) -> None:
        """Remove a pivot, keeping at least one in the design.

        Args:
            pivot_id: ID of the pivot to remove.

        Raises:
            KeyError: If no pivot has this ID.
            ValueError: If it is the only remaining pivot.
        """
        index = self._index_of(pivot_id)
        if len(self._pivots) <= 1:
            raise ValueError("You need at least one behavioral pivot.")
        del self._pivots[index]

    def update_pivot(self, pivot_id: str, **changes: str) -> Pivot:
        """Replace fields of an existing pivot.

        Args:
            pivot_id: ID of the pivot to change.
            **changes: New values for label, condition or response.

        Returns:
            The updated Pivot.

        Raises:
            KeyError: If no pivot has this ID.
        """
        index = self._index_of(pivot_id)
        updated = dataclasses.replace(self._pivots[index], **changes)
        self._pivots[index] = updated
        return updated

    def update_profile(self, **changes: str) -> PatientProfile:
        """Replace fields of the current profile.

        Args:
            **changes: New values for PatientProfile fields.

        Returns:
            The updated profile.
        """
        self.profile = dataclasses.replace(self.profile, **changes)
        return self.profile

    def compile(self) -> WorkflowGraph:
        """Compile the current design into a workflow graph."""
        return compile_workflow(self.profile, self._pivots)

    def to_agent_payload(self) -> dict[str, Any]:
        """Build the create/update payload for the current design.

        Raises:
            EmptyWorkflowError: If the design has no persona or behavior.
        """
        return to_agent_payload(self.profile, self._pivots)

    def preview(self) -> list[dict[str, str]]:
        """Build the branch preview rows shown next to the designer.

        Returns:
            One dict per pivot with pivot_id, short label and tone.
        """
        return [
            {
                "pivot_id": pivot.pivot_id,
                "label": _shorten(pivot.label or f"Pivot {index + 1}"),
                "tone": pivot.tone.value,
            }
            for index, pivot in enumerate(self._pivots)
        ]

    def to_form(self) -> dict[str, Any]:
        """Serialize the session to the designer form shape.

        Returns:
            Dict with profile fields and a pivots list carrying tones.
        """
        return {
            "profile": dataclasses.asdict(self.profile),
            "pivots": [
                {
                    "id": pivot.pivot_id,
                    "label": pivot.label,
                    "condition": pivot.condition,
                    "response": pivot.response,
                    "tone": pivot.tone.value,
                }
                for pivot in self._pivots
            ],
        }

    def seed_placeholders(self) -> None:
        """Append the placeholder pivots used for an empty edit form."""
        for label, condition in PLACEHOLDER_PIVOTS:
            self.add_pivot(label=label, condition=condition)

    @classmethod
    def from_scenario(cls, scenario: dict[str, Any]) -> WorkflowEditorState:
        """Build an editor from a scenario dict.

        Pivots without an ``id`` get a fresh one that does not collide
        with any explicit ID in the scenario.

        Args:
            scenario: Dict shaped like a patient_scenarios YAML file.

        Returns:
            Editor seeded with the scenario's profile and pivots.

        Raises:
            ValueError: If two pivots share an explicit ID.
        """
        profile_fields = {f.name for f in dataclasses.fields(PatientProfile)}
        profile = PatientProfile(
            **{
                key: str(value)
                for key, value in scenario.items()
                if key in profile_fields and value is not None
            }
        )
        items = [
            {
                "id": str(raw["id"]) if raw.get("id") else None,
                "label": str(raw.get("label", "")),
                "condition": str(raw.get("condition", "")),
                "response": str(raw.get("response", "")),
            }
            for raw in scenario.get("pivots") or []
        ]
        return cls.from_form(profile, items)

    @classmethod
    def from_form(
        cls,
        profile: PatientProfile,
        items: list[dict[str, str | None]],
    ) -> WorkflowEditorState:
        """Build an editor from submitted designer form rows.

        Rows keep their position; rows without an ``id`` get a fresh
        one that does not collide with any submitted ID.

        Args:
            profile: Submitted patient profile.
            items: Rows with id, label, condition and response.

        Returns:
            Editor holding the submitted design.

        Raises:
            ValueError: If two rows share an ID.
        """
        explicit: list[Pivot] = []
        for item in items:
            if item.get("id"):
                explicit.append(
                    Pivot(
                        pivot_id=str(item["id"]),
                        label=item.get("label") or "",
                        condition=item.get("condition") or "",
                        response=item.get("response") or "",
                    )
                )
        ids = [p.pivot_id for p in explicit]
        if len(ids) != len(set(ids)):
            raise ValueError("Pivot IDs must be unique within a workflow.")

        minting = cls(profile=profile, pivots=explicit)
        remaining = iter(explicit)
        ordered: list[Pivot] = []
        for item in items:
            if item.get("id"):
                ordered.append(next(remaining))
                continue
            ordered.append(
                Pivot(
                    pivot_id=minting.next_pivot_id(),
                    label=item.get("label") or "",
                    condition=item.get("condition") or "",
                    response=item.get("response") or "",
                )
            )
        return cls(profile=profile, pivots=ordered)

    @classmethod
    def from_example(
        cls,
        scenario_id: str = DEFAULT_SCENARIO_ID,
    ) -> WorkflowEditorState:
        """Build an editor from a bundled scenario file."""
        return cls.from_scenario(load_scenario(scenario_id))

    @classmethod
    def from_agent_record(cls, record: dict[str, Any]) -> WorkflowEditorState:
        """Build an editor from a remote agent record.

        Seeds placeholder pivots when none could be recovered so the
        edit form is never empty.

        Args:
            record: Remote agent record.

        Returns:
            Editor holding the decompiled design.
        """
        profile, pivots = decompile_agent(record)
        state = cls(profile=profile, pivots=pivots)
        if not pivots:
            logger.info(
                "patient_editor_seeded_placeholders",
                extra={"agent_name": profile.name},
            )
            state.seed_placeholders()
        return state
