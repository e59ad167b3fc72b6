# tools.py
# Demo function registry: a weather desk behind a triage agent.
#
# The triage agent owns a single transfer function. Calling it returns the
# weather agent, which the orchestrator picks up as a hand-off.

import re
from collections.abc import Mapping
from typing import Annotated, Any

from swarm_relay.agents import Agent, basic_instructions
from swarm_relay.models import Result

EMAIL_PATTERN = re.compile(r"^[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,6}$", re.IGNORECASE)

WEATHER_INSTRUCTIONS = """\
You are a helpful weather assistant that can check the weather and send emails.
You can:
1. Get the current weather for a location using get_weather()
2. Send emails about the weather using send_email()

When asked about the weather, always use get_weather() to get accurate information.
When asked to send an email about the weather, first get the weather then use send_email().
If there's an error getting the weather, explain the issue to the user.

Be concise and friendly in your responses.\
"""


def get_weather(
    location: Annotated[str, "The city and state, e.g. San Francisco, CA"],
    context: Mapping[str, Any],
) -> Result:
    """Get the current weather in a given location."""
    if not location.strip():
        raise ValueError("Location cannot be empty")

    celsius = context.get("temperature_unit") == "celsius"
    report = (
        f"Current weather in {location}:\n"
        f"Temperature: {'22°C' if celsius else '72°F'}\n"
        "Conditions: Sunny\n"
        "Humidity: 45%\n"
        "Wind: 10 mph NW\n"
        "Forecast: Clear skies for the next 24 hours"
    )
    return Result(value=report).with_context_update("last_location", location)


def send_email(
    to: Annotated[str, "Email recipient"],
    body: Annotated[str, "Email body"],
    subject: Annotated[str, "Email subject"] = "Weather Update",
) -> str:
    """Send an email with the weather information."""
    if not EMAIL_PATTERN.match(to):
        raise ValueError("Invalid email address format")
    if not body.strip():
        raise ValueError("Email body cannot be empty")
    return f"Email sent to {to} with subject: {subject}"


def _triage_instructions(variables: Mapping[str, Any]) -> str:
    prompt = basic_instructions("front-desk assistant", "routing requests to specialists")
    user_name = variables.get("user_name")
    if user_name:
        prompt += f"\n\nYou are talking to {user_name}."
    return prompt + "\n\nTransfer any weather or email request to the weather agent."


def build_agents(model: str | None = None) -> tuple[Agent, Agent]:
    """Return (triage_agent, weather_agent)."""
    weather_agent = Agent(
        name="Weather Agent",
        model=model,
        instructions=WEATHER_INSTRUCTIONS,
        functions=[get_weather, send_email],
    )

    def transfer_to_weather_agent() -> Agent:
        """Hand the conversation to the weather specialist."""
        return weather_agent

    triage_agent = Agent(
        name="Triage Agent",
        model=model,
        instructions=_triage_instructions,
        functions=[transfer_to_weather_agent],
    )
    return triage_agent, weather_agent
