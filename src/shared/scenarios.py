"""Bundled patient scenario loading."""

from pathlib import Path

import yaml

_SCENARIOS_DIR = Path(__file__).parent.parent.parent / "patient_scenarios"

DEFAULT_SCENARIO_ID = "marcus_johnson"


def load_scenario(scenario_id: str = DEFAULT_SCENARIO_ID) -> dict:
    """Load a patient scenario from YAML.

    Args:
        scenario_id: Scenario filename without extension.

    Returns:
        Parsed scenario dict with profile fields and a pivots list.

    Raises:
        FileNotFoundError: If scenario file does not exist.
    """
    if scenario_id not in list_scenarios():
        raise FileNotFoundError(f"Scenario not found: {scenario_id}")
    path = _SCENARIOS_DIR / f"{scenario_id}.yaml"
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    data.setdefault("pivots", [])
    return data


def list_scenarios() -> list[str]:
    """List all bundled scenario names.

    Returns:
        Sorted scenario IDs (filenames without .yaml extension).
    """
    return sorted(p.stem for p in _SCENARIOS_DIR.glob("*.yaml"))
