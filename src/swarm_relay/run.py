# run.py
# Entry point. Config and wiring only. No logic lives here.
#
# Reads SWARM_RELAY_* settings (and the API key env var they name) from the
# environment or a .env file. Any OpenAI-compatible endpoint works.

from swarm_relay import display
from swarm_relay.config import Settings
from swarm_relay.errors import FatalOrchestrationError, ProviderError
from swarm_relay.logging_utils import configure_logging
from swarm_relay.models import Message
from swarm_relay.openai_client import OpenAIChatClient
from swarm_relay.orchestrator import Orchestrator
from swarm_relay.tools import build_agents

PROMPTS = [
    # Hand-off: triage → weather agent → get_weather
    "What's the weather like in San Francisco, CA?",

    # Chained calls in one turn: get_weather → send_email
    "Check the weather in Boston, MA and email it to ada@example.com.",

    # No tools needed
    "Hi! What can you help me with?",
]


def main() -> None:
    settings = Settings.from_env()
    logger = configure_logging(settings.log_level)

    client = OpenAIChatClient.from_settings(settings, logger=logger.getChild("openai"))
    orchestrator = Orchestrator(client, logger=logger.getChild("orchestrator"), settings=settings)
    triage_agent, _ = build_agents()

    display.banner(settings.model, triage_agent.name)

    for prompt in PROMPTS:
        display.prompt_received(prompt)
        try:
            result = orchestrator.run_sync(
                triage_agent,
                [Message.user(prompt)],
                {"user_name": "Ada", "temperature_unit": "fahrenheit"},
            )
        except (ProviderError, FatalOrchestrationError) as exc:
            display.halt(str(exc))
            continue
        display.render_result(result)


if __name__ == "__main__":
    main()
