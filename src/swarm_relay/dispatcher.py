# dispatcher.py
# Resolves a model-emitted tool call against a function registry, binds and
# coerces its arguments, and invokes the function.
#
# invoke() raises classified errors. dispatch() is what the orchestrator uses:
# it folds recoverable errors into a tagged ToolOutcome instead.

import inspect
import json
import logging
from collections.abc import Mapping
from typing import Any

from swarm_relay.coercion import CoercionError, coerce, type_name
from swarm_relay.context import ExecutionContext
from swarm_relay.errors import (
    InvalidArgumentsError,
    RecoverableError,
    SwarmRelayError,
    ToolExecutionError,
    ToolNotFoundError,
)
from swarm_relay.models import FunctionDescriptor, ParameterSpec, ToolCall, ToolOutcome


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_arguments(arguments_json: str | None, tool_name: str | None = None) -> dict[str, Any]:
    """Parse a tool call's raw JSON arguments into a mapping."""
    if arguments_json is None or not arguments_json.strip():
        return {}
    try:
        parsed = json.loads(arguments_json)
    except json.JSONDecodeError as exc:
        raise InvalidArgumentsError(
            f"Arguments for '{tool_name}' are not valid JSON: {exc.msg} (position {exc.pos})",
            tool_name,
        ) from exc
    if not isinstance(parsed, dict):
        raise InvalidArgumentsError(
            f"Arguments for '{tool_name}' must be a JSON object, got {type(parsed).__name__}",
            tool_name,
        )
    return parsed


def _coerce_parameter(descriptor: FunctionDescriptor, spec: ParameterSpec, raw: Any) -> Any:
    try:
        return coerce(raw, spec.declared_type)
    except CoercionError as exc:
        raise InvalidArgumentsError(
            f"Failed to convert parameter '{spec.name}' of '{descriptor.name}' "
            f"from {raw!r} to type '{type_name(spec.declared_type)}': {exc}",
            descriptor.name,
        ) from exc


# ---------------------------------------------------------------------------
# ToolDispatcher
# ---------------------------------------------------------------------------


class ToolDispatcher:
    """
    Binds model arguments to FunctionDescriptor parameters and runs the function.

    A parameter named `context` never comes from the model: it receives a
    read-only view of the session's variables.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def bind(
        self,
        descriptor: FunctionDescriptor,
        arguments: Mapping[str, Any],
        context: ExecutionContext | None,
    ) -> dict[str, Any]:
        bound: dict[str, Any] = {}
        for spec in descriptor.parameters:
            if spec.is_context:
                bound[spec.name] = context.variables if context is not None else {}
                continue

            if spec.name in arguments:
                bound[spec.name] = _coerce_parameter(descriptor, spec, arguments[spec.name])
            elif spec.default is not None:
                bound[spec.name] = _coerce_parameter(descriptor, spec, spec.default)
            elif spec.required:
                raise InvalidArgumentsError(
                    f"Required parameter '{spec.name}' of type '{type_name(spec.declared_type)}' "
                    f"is missing for '{descriptor.name}'",
                    descriptor.name,
                )
            else:
                bound[spec.name] = None

        unexpected = set(arguments) - {spec.name for spec in descriptor.parameters}
        if unexpected:
            self._logger.debug("Ignoring unexpected arguments for %s: %s", descriptor.name, sorted(unexpected))
        return bound

    async def invoke(
        self,
        descriptor: FunctionDescriptor,
        arguments_json: str | None,
        context: ExecutionContext | None = None,
    ) -> Any:
        """
        Parse, bind and run one function.

        Raises InvalidArgumentsError for bad arguments and ToolExecutionError
        when the function itself fails. Errors the function raises from this
        package's own taxonomy pass through unchanged.
        """
        arguments = parse_arguments(arguments_json, descriptor.name)
        bound = self.bind(descriptor, arguments, context)

        self._logger.debug("Invoking %s with %s", descriptor.name, sorted(bound))
        try:
            result = descriptor.invoker(**bound)
            if inspect.isawaitable(result):
                result = await result
        except SwarmRelayError:
            raise
        except Exception as exc:
            raise ToolExecutionError(descriptor.name, exc) from exc
        return result

    async def dispatch(
        self,
        registry: Mapping[str, FunctionDescriptor],
        tool_call: ToolCall,
        context: ExecutionContext | None = None,
    ) -> ToolOutcome:
        """Resolve and invoke `tool_call`; recoverable failures come back as a tagged outcome."""
        descriptor = registry.get(tool_call.name)
        if descriptor is None:
            error = ToolNotFoundError(f"Function '{tool_call.name}' not found", tool_call.name)
            self._logger.warning("Tool call %s references unknown function %s", tool_call.id, tool_call.name)
            return ToolOutcome(tool_call=tool_call, error=error)

        try:
            value = await self.invoke(descriptor, tool_call.arguments, context)
        except RecoverableError as exc:
            self._logger.warning("Tool call %s (%s) failed: %s", tool_call.id, tool_call.name, exc)
            return ToolOutcome(tool_call=tool_call, error=exc)
        return ToolOutcome(tool_call=tool_call, value=value)
