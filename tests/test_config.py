import logging

import pytest
from pydantic import ValidationError
from rich.logging import RichHandler

from swarm_relay.config import DEFAULT_MAX_TURNS, Settings
from swarm_relay.logging_utils import ROOT_LOGGER, configure_logging


@pytest.fixture
def clean_env(monkeypatch):
    for field in Settings.model_fields:
        monkeypatch.delenv(f"SWARM_RELAY_{field.upper()}", raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env(dotenv=False)
    assert settings.max_turns == DEFAULT_MAX_TURNS
    assert settings.api_key_env == "OPENROUTER_API_KEY"
    assert settings.temperature == 0.7


def test_environment_overrides(clean_env):
    clean_env.setenv("SWARM_RELAY_MODEL", "anthropic/claude-3-haiku")
    clean_env.setenv("SWARM_RELAY_MAX_TURNS", "3")
    clean_env.setenv("SWARM_RELAY_TEMPERATURE", "0.1")
    clean_env.setenv("SWARM_RELAY_LOG_LEVEL", "")

    settings = Settings.from_env(dotenv=False)

    assert settings.model == "anthropic/claude-3-haiku"
    assert settings.max_turns == 3
    assert settings.temperature == 0.1
    assert settings.log_level == "INFO"


def test_invalid_values_are_rejected(clean_env):
    clean_env.setenv("SWARM_RELAY_MAX_TURNS", "-2")
    with pytest.raises(ValidationError):
        Settings.from_env(dotenv=False)


def test_dotenv_file_is_read(clean_env, tmp_path):
    (tmp_path / ".env").write_text("SWARM_RELAY_MAX_TURNS=4\n")
    clean_env.chdir(tmp_path)
    # Recorded so teardown removes whatever load_dotenv sets.
    clean_env.setenv("SWARM_RELAY_MAX_TURNS", "")
    clean_env.delenv("SWARM_RELAY_MAX_TURNS")

    assert Settings.from_env().max_turns == 4


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def test_configure_logging_is_idempotent():
    logger = configure_logging("debug")
    configure_logging("warning")

    handlers = [h for h in logger.handlers if isinstance(h, RichHandler)]
    assert len(handlers) == 1
    assert logger.name == ROOT_LOGGER
    assert logger.level == logging.WARNING
    assert logger.propagate is False
