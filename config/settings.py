"""Application settings and configuration management."""
from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

RULES_FILE = Path(__file__).resolve().parent / "rules.yaml"


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    RULES_PATH: str = Field(default=str(RULES_FILE))

    INSTRUCTION_SECONDS: int = Field(default=60, ge=0)
    CODING_SECONDS: int = Field(default=15 * 60, ge=0)
    MAX_SCORE: float = Field(default=10.0, gt=0)

    FRONTEND_URL: str = "http://localhost:3000"
    HOST: str = "0.0.0.0"
    PORT: int = 5000

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", validate_assignment=True)


settings = Settings()
