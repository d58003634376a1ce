from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application runtime settings loaded from environment/.env."""

    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_api_root: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_ROOT",
    )
    generation_timeout: float = Field(default=60.0, alias="GENERATION_TIMEOUT")
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    # Presentation timings; the card fades out/in around these
    transition_delay_ms: int = Field(default=500, alias="TRANSITION_DELAY_MS")
    reveal_delay_ms: int = Field(default=100, alias="REVEAL_DELAY_MS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        extra="ignore",
    )

    @property
    def transition_delay(self) -> float:
        return self.transition_delay_ms / 1000.0

    @property
    def reveal_delay(self) -> float:
        return self.reveal_delay_ms / 1000.0
