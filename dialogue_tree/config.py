"""Application configuration loaded from environment variables and .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Values are loaded from environment variables first,
    then from a .env file in the project root as fallback.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    DATABASE_URL: str = "sqlite:///./dialogues.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Localization
    DEFAULT_LANGUAGE: str = "en"
    SUPPORTED_LANGUAGES: list[str] = ["en", "fr"]

    # Choice feedback hints passed to the display layer (milliseconds)
    EVALUATED_FEEDBACK_DELAY_MS: int = 800
    NEUTRAL_FEEDBACK_DELAY_MS: int = 300

    # Finished playback sessions kept for result lookup
    FINISHED_SESSION_LIMIT: int = 100

    # Auto-layout for imported runtime scripts
    LAYOUT_COLUMN_X: float = 250.0
    LAYOUT_ROW_SPACING: float = 200.0


settings = Settings()
