"""Shared input validators for the patient designer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.shared.types import VOICE_LIBRARY_MAX_PAGE_SIZE, VoiceGender

if TYPE_CHECKING:
    from collections.abc import Iterable


def is_blank(text: str | None) -> bool:
    """Check whether a free-text field is empty or whitespace.

    Args:
        text: Raw field value.

    Returns:
        True if the value is None, empty, or only whitespace.
    """
    return not text or not text.strip()


def has_workflow_content(
    complaint: str | None,
    conditions: Iterable[str | None],
) -> bool:
    """Check that a patient design carries a persona or a behavior.

    Args:
        complaint: Presenting complaint text.
        conditions: Trigger condition text of every pivot.

    Returns:
        True if the complaint or any trigger condition is non-blank.
    """
    if not is_blank(complaint):
        return True
    return any(not is_blank(c) for c in conditions)


def validate_age(age: str | None) -> bool:
    """Validate a free-text age.

    Args:
        age: Age as entered in the designer.

    Returns:
        True if blank or a non-negative integer.
    """
    if is_blank(age):
        return True
    return age.strip().isdigit()


def clamp_page_size(page_size: int) -> int:
    """Clamp a voice library page size into the accepted range.

    Args:
        page_size: Requested page size.

    Returns:
        Page size between 1 and VOICE_LIBRARY_MAX_PAGE_SIZE.
    """
    return max(1, min(page_size, VOICE_LIBRARY_MAX_PAGE_SIZE))


def validate_voice_gender(gender: str | None) -> bool:
    """Validate a voice library gender filter.

    Args:
        gender: Filter value, blank meaning no filter.

    Returns:
        True if blank or a known VoiceGender value.
    """
    if is_blank(gender):
        return True
    return gender in {g.value for g in VoiceGender}
