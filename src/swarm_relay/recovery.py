# recovery.py
# Error classification and user-facing fallback text for run-ending failures.

from enum import Enum

from swarm_relay.errors import (
    ContextValidationError,
    FatalOrchestrationError,
    InvalidArgumentsError,
    ProviderError,
    RecoverableError,
    ToolExecutionError,
    ToolNotFoundError,
)


class ErrorKind(str, Enum):
    INVALID_ARGUMENTS = "invalid_arguments"
    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_EXECUTION_FAILED = "tool_execution_failed"
    CONTEXT_ERROR = "context_error"
    PROVIDER_ERROR = "provider_error"
    FATAL = "fatal"


_KINDS: list[tuple[type[BaseException], ErrorKind]] = [
    (InvalidArgumentsError, ErrorKind.INVALID_ARGUMENTS),
    (ToolNotFoundError, ErrorKind.TOOL_NOT_FOUND),
    (ToolExecutionError, ErrorKind.TOOL_EXECUTION_FAILED),
    (ContextValidationError, ErrorKind.CONTEXT_ERROR),
    (ProviderError, ErrorKind.PROVIDER_ERROR),
    (FatalOrchestrationError, ErrorKind.FATAL),
]

FALLBACK_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.TOOL_NOT_FOUND: (
        "I encountered an error with the requested tool. "
        "The tool you're trying to use is not available. "
        "Please try a different approach or ask for available tools."
    ),
    ErrorKind.INVALID_ARGUMENTS: (
        "I couldn't process the tool call because the arguments were invalid. "
        "Please check the required parameters and try again."
    ),
    ErrorKind.TOOL_EXECUTION_FAILED: (
        "A tool failed while handling your request. "
        "Please try again or rephrase what you need."
    ),
    ErrorKind.CONTEXT_ERROR: (
        "There was an error accessing or updating the context. "
        "Some information might be temporarily unavailable."
    ),
    ErrorKind.PROVIDER_ERROR: (
        "I encountered an error communicating with the language model. "
        "This might be due to connectivity issues or rate limiting. "
        "Please try again in a moment."
    ),
    ErrorKind.FATAL: (
        "I encountered an unexpected error. "
        "Please try again or contact support if the issue persists."
    ),
}


def classify(exc: BaseException) -> ErrorKind:
    for error_type, kind in _KINDS:
        if isinstance(exc, error_type):
            return kind
    return ErrorKind.FATAL


def is_recoverable(exc: BaseException) -> bool:
    """True for the categories that end a run with a RunResult instead of raising."""
    return isinstance(exc, RecoverableError)


def fallback_message(exc: BaseException) -> str:
    return FALLBACK_MESSAGES[classify(exc)]
