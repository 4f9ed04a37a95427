from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SIXBALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Everything after the first separator in a command is a comment.
    comment_separator: str = Field(default="#", min_length=1)

    # Rolls kept per conversation before the oldest is dropped.
    tray_capacity: int = Field(default=10, ge=1)

    # Upper bound on recursive reroll and explode generations.
    max_generations: int = Field(default=100, ge=1)

    log_level: str = "INFO"
    log_file: str | None = None


settings = Settings()
