# models.py
# Data contracts for the orchestration core.
# No business logic lives here, only schema and small helpers.

from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from swarm_relay import recovery
from swarm_relay.coercion import json_schema_for
from swarm_relay.errors import RecoverableError, SwarmRelayError

CONTEXT_PARAMETER = "context"


# ---------------------------------------------------------------------------
# Conversation
# ---------------------------------------------------------------------------


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCall(BaseModel):
    """A model-emitted request to invoke one function."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique within a single response.")
    name: str
    arguments: str = Field(default="{}", description="Raw JSON arguments as emitted by the model.")


class Message(BaseModel):
    """One history entry. Immutable once appended."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_call_id: str | None = None
    tool_name: str | None = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str | None = None, tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(
            role=Role.ASSISTANT,
            content=content,
            tool_calls=tuple(tool_calls) if tool_calls else None,
        )

    @classmethod
    def tool(cls, tool_call: ToolCall, content: str) -> "Message":
        return cls(
            role=Role.TOOL,
            content=content,
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
        )

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_wire(self) -> dict[str, Any]:
        """Provider-neutral dict form; optional fields are omitted when unset."""
        wire: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            wire["tool_calls"] = [call.model_dump() for call in self.tool_calls]
        if self.tool_call_id is not None:
            wire["tool_call_id"] = self.tool_call_id
        if self.tool_name is not None:
            wire["tool_name"] = self.tool_name
        return wire


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


class ToolChoiceMode(str, Enum):
    AUTO = "auto"
    NONE = "none"
    REQUIRED = "required"


class ParameterSpec(BaseModel):
    """Declared parameter of a registered function."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    declared_type: Any = Field(default=Any)
    required: bool = True
    default: Any = Field(default=None, description="Bound (after coercion) when the argument is absent.")
    description: str = ""

    @property
    def is_context(self) -> bool:
        return self.name == CONTEXT_PARAMETER


class ToolSchema(BaseModel):
    """Function schema as offered to the model."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})


class FunctionDescriptor(BaseModel):
    """A named, typed callable unit in an agent's registry."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    description: str = ""
    parameters: tuple[ParameterSpec, ...] = ()
    invoker: Callable[..., Any]

    def to_schema(self) -> ToolSchema:
        properties: dict[str, Any] = {}
        definitions: dict[str, Any] = {}
        required: list[str] = []

        for param in self.parameters:
            if param.is_context:
                continue
            schema = json_schema_for(param.declared_type)
            definitions.update(schema.pop("$defs", {}))
            schema.pop("title", None)
            if param.description:
                schema["description"] = param.description
            properties[param.name] = schema
            if param.required:
                required.append(param.name)

        parameters: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            parameters["required"] = required
        if definitions:
            parameters["$defs"] = definitions
        return ToolSchema(name=self.name, description=self.description, parameters=parameters)


class Result(BaseModel):
    """
    Rich tool return value.

    A tool may return a plain value, an agent (hand-off), or a Result that
    carries any combination of a value, a hand-off target and context updates.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Any = ""
    agent: Any = None
    context_updates: dict[str, Any] = Field(default_factory=dict)

    def with_context_update(self, key: str, value: Any) -> "Result":
        self.context_updates[key] = value
        return self

    def with_context_updates(self, updates: dict[str, Any]) -> "Result":
        self.context_updates.update(updates)
        return self


class ToolOutcome(BaseModel):
    """Tagged result of dispatching one tool call: a value or a classified failure."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tool_call: ToolCall
    value: Any = None
    error: RecoverableError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Chat-completion boundary
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    model: str
    messages: list[Message]
    tools: list[ToolSchema] = Field(default_factory=list)
    tool_choice: str | None = None
    temperature: float | None = None
    stream: bool = False


class ProviderErrorInfo(BaseModel):
    message: str = "Unknown error"
    code: Any = None
    provider_metadata: dict[str, Any] = Field(default_factory=dict)


class Choice(BaseModel):
    message: Message
    finish_reason: str | None = None


class ChatResponse(BaseModel):
    choices: list[Choice] = Field(default_factory=list)
    error: ProviderErrorInfo | None = None


class ToolCallDelta(BaseModel):
    """Fragment of a streamed tool call; fragments sharing an index are merged."""

    index: int = 0
    id: str | None = None
    name: str | None = None
    arguments: str = ""


class ChatChunk(BaseModel):
    """One increment of a streamed response."""

    content: str | None = None
    tool_calls: list[ToolCallDelta] = Field(default_factory=list)
    finish_reason: str | None = None
    error: ProviderErrorInfo | None = None


# ---------------------------------------------------------------------------
# Run result
# ---------------------------------------------------------------------------


class RunStatus(str, Enum):
    COMPLETED = "completed"
    MAX_TURNS = "max_turns"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunResult(BaseModel):
    """Read-only snapshot returned when the turn loop ends."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    history: list[Message]
    active_agent: Any
    context: dict[str, Any]
    status: RunStatus = RunStatus.COMPLETED
    turns: int = 0
    error: SwarmRelayError | None = None
    session_id: str | None = None

    @property
    def fallback_message(self) -> str | None:
        """User-facing text for a failed run, None otherwise."""
        if self.error is None:
            return None
        return recovery.fallback_message(self.error)
