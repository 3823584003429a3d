"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from src.shared.types import DEFAULT_LANGUAGE


class Settings(BaseSettings):
    """Central configuration for Adaptive Patient Studio.

    Args loaded from .env file and environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ElevenLabs
    elevenlabs_api_key: str = ""
    elevenlabs_agent_id: str = ""
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    elevenlabs_timeout_seconds: float = 30.0

    # Agent defaults
    default_language: str = DEFAULT_LANGUAGE
    default_agent_name: str = "Custom Agent"

    # Static browser client
    public_dir: str = "public"

    # CORS
    cors_allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    @property
    def elevenlabs_configured(self) -> bool:
        """Whether an API key is available for upstream calls."""
        return bool(self.elevenlabs_api_key)


def get_settings() -> Settings:
    """Return a Settings instance.

    Returns:
        Application settings loaded from env.
    """
    return Settings()
