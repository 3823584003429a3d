"""Shared test fixtures for Adaptive Patient Studio test suite."""

import pytest

from src.config.settings import Settings
from src.services.patient_workflow import PatientProfile, Pivot


@pytest.fixture
def settings() -> Settings:
    """Provide test settings with safe defaults.

    Returns:
        Settings configured for testing (no real API calls).
    """
    return Settings(
        elevenlabs_api_key="xi-test-fake-key",
        elevenlabs_agent_id="agent-default",
        elevenlabs_base_url="https://api.test.local",
    )


@pytest.fixture
def marcus() -> PatientProfile:
    """Chest pain patient without a hidden diagnosis."""
    return PatientProfile(
        name="Marcus Johnson",
        age="54",
        gender="male",
        complaint="chest pain",
        diagnosis="",
        initial_presentation="You keep rubbing your chest.",
        first_message="Hi doc.",
        voice_id="voice-123",
    )


@pytest.fixture
def empathy_pivot() -> Pivot:
    """A single good-tone pivot."""
    return Pivot(
        pivot_id="pivot-1",
        label="Shows Empathy",
        condition="student expresses concern",
        response="patient relaxes and shares more",
    )


@pytest.fixture
def three_pivots() -> list[Pivot]:
    """Three pivots in a fixed declaration order."""
    return [
        Pivot("pivot-1", "Shows Empathy", "student is warm", "open up"),
        Pivot("pivot-2", "Dismissive Attitude", "student interrupts", "shut down"),
        Pivot("pivot-3", "Neutral Inquiry", "routine questions", "answer plainly"),
    ]
