# config.py
# Runtime settings, read from the environment (and a .env file if present).

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

ENV_PREFIX = "SWARM_RELAY_"
DEFAULT_MAX_TURNS = 10


class Settings(BaseModel):
    """Knobs for the orchestrator and the bundled OpenAI-compatible client."""

    model: str = Field(default="openai/gpt-4o-mini", description="Default model when neither agent nor caller sets one.")
    base_url: str = Field(default="https://openrouter.ai/api/v1")
    api_key_env: str = Field(default="OPENROUTER_API_KEY", description="Name of the env var holding the API key.")
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=0)
    temperature: float | None = Field(default=0.7, ge=0.0, le=2.0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        values: dict[str, str] = {}
        for field in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{field.upper()}")
            if raw is not None and raw != "":
                values[field] = raw
        return cls.model_validate(values)
