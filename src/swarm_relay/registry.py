# registry.py
# Builds FunctionDescriptors from plain Python callables.
#
# The orchestration core only consumes name -> FunctionDescriptor mappings.
# This module is one way of producing them: it reads a callable's signature
# and type hints once, at agent-construction time.

import inspect
import typing
from typing import Any, Callable, Iterable, get_args, get_origin

from swarm_relay.models import CONTEXT_PARAMETER, FunctionDescriptor, ParameterSpec

_OVERRIDES_ATTR = "__swarm_tool__"


def tool(
    fn: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    descriptions: dict[str, str] | None = None,
):
    """
    Mark a callable with registry overrides. Usable bare or with arguments:

        @tool
        def get_weather(location: str) -> str: ...

        @tool(name="lookup", descriptions={"query": "What to look up"})
        def search(query: str) -> str: ...
    """

    def decorate(func: Callable[..., Any]) -> Callable[..., Any]:
        setattr(
            func,
            _OVERRIDES_ATTR,
            {"name": name, "description": description, "descriptions": descriptions or {}},
        )
        return func

    if fn is not None:
        return decorate(fn)
    return decorate


def _type_hints(fn: Callable[..., Any]) -> dict[str, Any]:
    target = fn.__call__ if not inspect.isroutine(fn) and callable(fn) else fn
    try:
        return typing.get_type_hints(target, include_extras=True)
    except (NameError, TypeError):
        return dict(getattr(target, "__annotations__", {}))


def _split_annotated(annotation: Any) -> tuple[Any, str]:
    """Annotated[T, "text"] -> (T, "text")."""
    if get_origin(annotation) is typing.Annotated:
        base, *extras = get_args(annotation)
        text = next((extra for extra in extras if isinstance(extra, str)), "")
        return base, text
    return annotation, ""


def _summary(fn: Callable[..., Any]) -> str:
    doc = inspect.getdoc(fn) or ""
    return doc.split("\n\n", 1)[0].strip()


def function_descriptor(
    fn: Callable[..., Any],
    *,
    name: str | None = None,
    description: str | None = None,
    descriptions: dict[str, str] | None = None,
) -> FunctionDescriptor:
    """Describe `fn` as a registry entry. Explicit arguments beat @tool overrides."""
    overrides = getattr(fn, _OVERRIDES_ATTR, {})
    param_docs = {**overrides.get("descriptions", {}), **(descriptions or {})}
    hints = _type_hints(fn)

    parameters: list[ParameterSpec] = []
    for param in inspect.signature(fn).parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            # Arguments are bound by name.
            raise ValueError(
                f"Parameter '{param.name}' of {getattr(fn, '__name__', fn)!r} is positional-only"
            )

        declared, annotated_doc = _split_annotated(hints.get(param.name, param.annotation))
        has_default = param.default is not inspect.Parameter.empty
        parameters.append(
            ParameterSpec(
                name=param.name,
                declared_type=declared,
                required=not has_default and param.name != CONTEXT_PARAMETER,
                default=param.default if has_default else None,
                description=param_docs.get(param.name, annotated_doc),
            )
        )

    resolved_name = name or overrides.get("name") or getattr(fn, "__name__", None)
    if not resolved_name:
        raise ValueError(f"Cannot determine a function name for {fn!r}")

    return FunctionDescriptor(
        name=resolved_name,
        description=description or overrides.get("description") or _summary(fn),
        parameters=tuple(parameters),
        invoker=fn,
    )


def build_registry(functions: Iterable[Callable[..., Any] | FunctionDescriptor]) -> dict[str, FunctionDescriptor]:
    """Map function names to descriptors. Duplicate names are rejected."""
    registry: dict[str, FunctionDescriptor] = {}
    for item in functions:
        descriptor = item if isinstance(item, FunctionDescriptor) else function_descriptor(item)
        if descriptor.name in registry:
            raise ValueError(f"Duplicate function name in registry: '{descriptor.name}'")
        registry[descriptor.name] = descriptor
    return registry
