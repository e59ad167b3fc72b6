# agents.py
# Agent personas and hand-off detection.
#
# Anything exposing system_prompt / tool_choice_mode / function_registry is an
# agent as far as the orchestrator is concerned. Agent is the stock
# implementation: a pydantic model whose registry is built once at construction.

import json
from collections.abc import Mapping
from typing import Any, Callable, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from swarm_relay.models import FunctionDescriptor, Result, ToolChoiceMode
from swarm_relay.registry import build_registry


@runtime_checkable
class AgentDescriptor(Protocol):
    """Structural contract the orchestrator consumes."""

    def system_prompt(self, variables: Mapping[str, Any]) -> str: ...

    @property
    def tool_choice_mode(self) -> ToolChoiceMode: ...

    @property
    def function_registry(self) -> Mapping[str, FunctionDescriptor]: ...


class Agent(BaseModel):
    """
    A named persona: instructions, a tool-choice mode and a function registry.

    `instructions` may be a string or a callable receiving the current context
    variables. `functions` accepts plain callables and FunctionDescriptors.

    Example:
        weather = Agent(
            name="Weather Agent",
            instructions="You answer weather questions.",
            functions=[get_weather],
        )
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = "Agent"
    model: str | None = Field(default=None, description="Overrides the client's default model.")
    instructions: str | Callable[[Mapping[str, Any]], str] = "You are a helpful agent."
    tool_choice: ToolChoiceMode = ToolChoiceMode.AUTO
    functions: list[Any] = Field(default_factory=list)
    temperature: float | None = None

    _registry: dict[str, FunctionDescriptor] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._registry = build_registry(self.functions)

    def system_prompt(self, variables: Mapping[str, Any]) -> str:
        if callable(self.instructions):
            return self.instructions(variables)
        return self.instructions

    @property
    def tool_choice_mode(self) -> ToolChoiceMode:
        return self.tool_choice

    @property
    def function_registry(self) -> Mapping[str, FunctionDescriptor]:
        return self._registry

    def __str__(self) -> str:
        return json.dumps({"assistant": self.name})


def is_agent(value: Any) -> bool:
    return isinstance(value, AgentDescriptor)


def handoff_target(value: Any) -> AgentDescriptor | None:
    """The agent a tool return value hands control to, if any."""
    if isinstance(value, Result):
        return value.agent if is_agent(value.agent) else None
    if is_agent(value):
        return value
    return None


# ---------------------------------------------------------------------------
# Instruction templates
# ---------------------------------------------------------------------------


_CAPABILITIES = """\
Your capabilities:
1. You can use tools by calling functions
2. You maintain context between interactions
3. You can delegate to other agents when needed"""


def basic_instructions(role: str, expertise: str) -> str:
    return (
        f"You are a {role} with expertise in {expertise}.\n\n"
        f"{_CAPABILITIES}\n\n"
        "Guidelines:\n"
        "1. Be direct and efficient in your responses\n"
        "2. Use appropriate tools when necessary\n"
        "3. Stay focused on your area of expertise\n"
        "4. Ask for clarification when needed"
    )


def specialized_instructions(role: str, expertise: str, constraints: str) -> str:
    return (
        f"You are a specialized {role} with deep expertise in {expertise}.\n\n"
        f"{_CAPABILITIES}\n\n"
        f"Constraints and Rules:\n{constraints}\n\n"
        "Guidelines:\n"
        "1. Be direct and efficient in your responses\n"
        "2. Use appropriate tools when necessary\n"
        "3. Stay within your defined constraints\n"
        "4. Ask for clarification when needed"
    )
