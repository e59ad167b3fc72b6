from collections.abc import Mapping
from typing import Annotated, Any

import pytest
from pydantic import BaseModel

from swarm_relay.models import FunctionDescriptor, ParameterSpec
from swarm_relay.registry import build_registry, function_descriptor, tool


class Filters(BaseModel):
    tag: str
    limit: int = 10


def search(query: Annotated[str, "What to search for"], filters: Filters, page: int = 1) -> str:
    """Search the catalogue.

    Longer explanation that should not end up in the schema.
    """
    return query


def remember(note: str, context: Mapping[str, Any]) -> str:
    return note


# ---------------------------------------------------------------------------
# function_descriptor
# ---------------------------------------------------------------------------


def test_descriptor_from_signature():
    descriptor = function_descriptor(search)

    assert descriptor.name == "search"
    assert descriptor.description == "Search the catalogue."
    assert [p.name for p in descriptor.parameters] == ["query", "filters", "page"]

    query, filters, page = descriptor.parameters
    assert query.declared_type is str and query.required and query.description == "What to search for"
    assert filters.declared_type is Filters and filters.required
    assert page.declared_type is int and not page.required and page.default == 1


def test_context_parameter_is_never_required():
    descriptor = function_descriptor(remember)
    context = descriptor.parameters[1]
    assert context.is_context
    assert not context.required


def test_schema_excludes_context_and_lists_required():
    schema = function_descriptor(remember).to_schema()
    assert schema.parameters["properties"] == {"note": {"type": "string"}}
    assert schema.parameters["required"] == ["note"]


def test_schema_hoists_model_definitions():
    schema = function_descriptor(search).to_schema().parameters

    assert schema["required"] == ["query", "filters"]
    assert schema["properties"]["query"] == {"type": "string", "description": "What to search for"}
    assert schema["properties"]["filters"]["properties"]["limit"]["type"] == "integer"
    assert "title" not in schema["properties"]["page"]


def test_tool_decorator_overrides():
    @tool(name="lookup", description="Look something up", descriptions={"term": "The term"})
    def _lookup(term: str) -> str:
        return term

    descriptor = function_descriptor(_lookup)
    assert descriptor.name == "lookup"
    assert descriptor.description == "Look something up"
    assert descriptor.parameters[0].description == "The term"


def test_bare_tool_decorator():
    @tool
    def ping() -> str:
        """Ping."""
        return "pong"

    assert function_descriptor(ping).name == "ping"


# ---------------------------------------------------------------------------
# build_registry
# ---------------------------------------------------------------------------


def test_build_registry_accepts_callables_and_descriptors():
    manual = FunctionDescriptor(
        name="manual",
        parameters=(ParameterSpec(name="x", declared_type=int),),
        invoker=lambda x: x,
    )
    registry = build_registry([search, manual])
    assert list(registry) == ["search", "manual"]
    assert registry["manual"] is manual


def test_build_registry_rejects_duplicates():
    with pytest.raises(ValueError, match="Duplicate function name"):
        build_registry([search, function_descriptor(remember, name="search")])


def test_positional_only_parameters_are_rejected():
    def scale(x: float, /, factor: float = 2.0) -> float:
        return x * factor

    with pytest.raises(ValueError, match="positional-only"):
        build_registry([scale])
