"""Shared types, enums, and constants used across the application."""

import enum


class PivotTone(str, enum.Enum):
    """Display classification of a behavioral pivot."""

    GOOD = "good"
    BAD = "bad"
    NEUTRAL = "neutral"


class Gender(str, enum.Enum):
    """Gender options offered by the patient designer.

    The designer also accepts free text, so values outside this enum
    are passed through unchanged.
    """

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class VoiceGender(str, enum.Enum):
    """Gender filter accepted by the shared voice library search."""

    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"


DEFAULT_LANGUAGE = "en"
VOICE_LIBRARY_PAGE_SIZE = 30
VOICE_LIBRARY_MAX_PAGE_SIZE = 100
PREVIEW_LABEL_MAX_CHARS = 25
