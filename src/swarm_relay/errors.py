# errors.py
# Exception taxonomy for the orchestration core.
#
# Four categories end a run gracefully with partial history (RecoverableError).
# ProviderError and FatalOrchestrationError propagate to the caller.

from typing import Any


class SwarmRelayError(Exception):
    """Base class for every error raised by swarm_relay."""

    code = "SWARM_ERROR"


class RecoverableError(SwarmRelayError):
    """Ends the current run but still yields a best-effort RunResult."""


# ---------------------------------------------------------------------------
# Tool errors
# ---------------------------------------------------------------------------


class ToolError(RecoverableError):
    """A tool call could not be resolved, bound, or executed."""

    def __init__(self, message: str, tool_name: str | None = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class InvalidArgumentsError(ToolError):
    """Tool-call JSON is malformed, a required parameter is missing, or coercion failed."""

    code = "INVALID_ARGUMENTS"


class ToolNotFoundError(ToolError):
    """The model referenced a function absent from the active agent's registry."""

    code = "TOOL_NOT_FOUND"


class ToolExecutionError(ToolError):
    """The invoked function itself raised. The original exception is kept as `cause`."""

    code = "TOOL_EXECUTION_FAILED"

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        super().__init__(f"Function '{tool_name}' execution failed: {cause}", tool_name)
        self.cause = cause


# ---------------------------------------------------------------------------
# Context errors
# ---------------------------------------------------------------------------


class ContextValidationError(RecoverableError):
    """A context write violated a Context Store rule. Nothing was written."""

    code = "CONTEXT_ERROR"


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------


class ProviderError(SwarmRelayError):
    """The chat-completion boundary reported an error or the transport failed."""

    code = "LLM_ERROR"

    def __init__(
        self,
        message: str,
        code: Any = None,
        provider_metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = code
        self.provider_metadata = provider_metadata or {}

    def __str__(self) -> str:
        text = super().__str__()
        if self.error_code is not None:
            text = f"{text} (Code: {self.error_code})"
        provider = self.provider_metadata.get("provider_name")
        if provider:
            text = f"{text} [provider: {provider}]"
        return text


class FatalOrchestrationError(SwarmRelayError):
    """Unclassified failure during a turn. Wraps the original exception."""

    code = "FATAL_ERROR"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class AgentConfigurationError(SwarmRelayError, ValueError):
    """The agent's tool-choice mode requires tools but its registry is empty."""

    code = "AGENT_CONFIGURATION"
