import json

import pytest

from swarm_relay.agents import (
    Agent,
    AgentDescriptor,
    basic_instructions,
    handoff_target,
    is_agent,
    specialized_instructions,
)
from swarm_relay.errors import (
    ContextValidationError,
    FatalOrchestrationError,
    InvalidArgumentsError,
    ProviderError,
    ToolExecutionError,
    ToolNotFoundError,
)
from swarm_relay.models import Result, RunResult, RunStatus, ToolChoiceMode
from swarm_relay.recovery import ErrorKind, classify, fallback_message, is_recoverable


def echo(text: str) -> str:
    return text


class MinimalAgent:
    """Satisfies the agent contract without subclassing anything."""

    def system_prompt(self, variables):
        return "minimal"

    @property
    def tool_choice_mode(self):
        return ToolChoiceMode.NONE

    @property
    def function_registry(self):
        return {}


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------


def test_agent_defaults():
    agent = Agent()
    assert agent.name == "Agent"
    assert agent.tool_choice_mode is ToolChoiceMode.AUTO
    assert agent.function_registry == {}
    assert agent.system_prompt({}) == "You are a helpful agent."


def test_agent_builds_registry_once():
    agent = Agent(functions=[echo])
    assert agent.function_registry is agent.function_registry
    assert list(agent.function_registry) == ["echo"]


def test_agent_rejects_duplicate_function_names():
    with pytest.raises(ValueError):
        Agent(functions=[echo, echo])


def test_callable_instructions_receive_variables():
    agent = Agent(instructions=lambda variables: f"Unit: {variables['unit']}")
    assert agent.system_prompt({"unit": "celsius"}) == "Unit: celsius"


def test_agent_str_is_json():
    assert json.loads(str(Agent(name="Weather Agent"))) == {"assistant": "Weather Agent"}


# ---------------------------------------------------------------------------
# Hand-off detection
# ---------------------------------------------------------------------------


def test_structural_agents_are_recognised():
    minimal = MinimalAgent()
    assert isinstance(minimal, AgentDescriptor)
    assert is_agent(minimal)
    assert handoff_target(minimal) is minimal


@pytest.mark.parametrize("value", ["text", None, 42, {"agent": "x"}, Result(value="no handoff")])
def test_non_agents_are_not_handoffs(value):
    assert handoff_target(value) is None


def test_result_agent_is_a_handoff():
    target = Agent(name="Target")
    assert handoff_target(Result(value="moving on", agent=target)) is target


# ---------------------------------------------------------------------------
# Instruction templates
# ---------------------------------------------------------------------------


def test_basic_instructions():
    text = basic_instructions("weather assistant", "forecasts")
    assert text.startswith("You are a weather assistant with expertise in forecasts.")
    assert "Stay focused on your area of expertise" in text


def test_specialized_instructions_include_constraints():
    text = specialized_instructions("analyst", "weather data", "- Only use metric units")
    assert text.startswith("You are a specialized analyst with deep expertise in weather data.")
    assert "Constraints and Rules:\n- Only use metric units" in text


# ---------------------------------------------------------------------------
# Recovery
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "error,kind,recoverable",
    [
        (InvalidArgumentsError("bad", "f"), ErrorKind.INVALID_ARGUMENTS, True),
        (ToolNotFoundError("missing", "f"), ErrorKind.TOOL_NOT_FOUND, True),
        (ToolExecutionError("f", RuntimeError("x")), ErrorKind.TOOL_EXECUTION_FAILED, True),
        (ContextValidationError("nope"), ErrorKind.CONTEXT_ERROR, True),
        (ProviderError("down", 503), ErrorKind.PROVIDER_ERROR, False),
        (FatalOrchestrationError("boom"), ErrorKind.FATAL, False),
        (RuntimeError("other"), ErrorKind.FATAL, False),
    ],
)
def test_classification(error, kind, recoverable):
    assert classify(error) is kind
    assert is_recoverable(error) is recoverable
    assert fallback_message(error)


def test_failed_run_result_exposes_fallback():
    result = RunResult(
        history=[],
        active_agent=Agent(),
        context={},
        status=RunStatus.FAILED,
        error=ContextValidationError("bad key"),
    )
    assert result.fallback_message == fallback_message(ContextValidationError("x"))
    assert "context" in result.fallback_message
