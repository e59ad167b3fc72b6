from collections.abc import Mapping
from typing import Any

import pytest

from swarm_relay.context import ContextStore
from swarm_relay.dispatcher import ToolDispatcher, parse_arguments
from swarm_relay.errors import InvalidArgumentsError, ToolExecutionError, ToolNotFoundError
from swarm_relay.registry import build_registry, function_descriptor

from scripted import call


def add(a: int, b: int = 1) -> int:
    return a + b


def toggle(enabled: bool) -> str:
    return "on" if enabled else "off"


def greet(context: Mapping[str, Any]) -> str:
    return f"Hello, {context.get('user_name', 'stranger')}"


async def slow_echo(text: str) -> str:
    return text.upper()


def explode(reason: str) -> str:
    raise RuntimeError(reason)


@pytest.fixture
def dispatcher():
    return ToolDispatcher()


# ---------------------------------------------------------------------------
# parse_arguments
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_empty_arguments_parse_to_empty_mapping(raw):
    assert parse_arguments(raw) == {}


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '"text"', "42"])
def test_bad_arguments_are_rejected(raw):
    with pytest.raises(InvalidArgumentsError):
        parse_arguments(raw, "add")


# ---------------------------------------------------------------------------
# invoke
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_string_arguments_are_coerced(dispatcher):
    assert await dispatcher.invoke(function_descriptor(add), '{"a": "42", "b": "8"}') == 50


@pytest.mark.asyncio
async def test_defaults_fill_missing_optional_parameters(dispatcher):
    assert await dispatcher.invoke(function_descriptor(add), '{"a": 2}') == 3


@pytest.mark.asyncio
async def test_missing_required_parameter(dispatcher):
    with pytest.raises(InvalidArgumentsError, match="Required parameter 'a'"):
        await dispatcher.invoke(function_descriptor(add), '{"b": 2}')


@pytest.mark.asyncio
async def test_uncoercible_argument_names_parameter_and_type(dispatcher):
    with pytest.raises(InvalidArgumentsError) as excinfo:
        await dispatcher.invoke(function_descriptor(add), '{"a": "4.5"}')

    message = str(excinfo.value)
    assert "'a'" in message
    assert "'4.5'" in message
    assert "int" in message
    assert excinfo.value.tool_name == "add"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw,expected", [("1", "on"), ("0", "off"), ('"true"', "on")])
async def test_boolean_coercion(dispatcher, raw, expected):
    assert await dispatcher.invoke(function_descriptor(toggle), f'{{"enabled": {raw}}}') == expected


@pytest.mark.asyncio
async def test_unexpected_arguments_are_ignored(dispatcher):
    assert await dispatcher.invoke(function_descriptor(add), '{"a": 1, "c": 99}') == 2


@pytest.mark.asyncio
async def test_context_parameter_receives_session_variables(dispatcher):
    ctx = ContextStore().initialize("s1", {"user_name": "Ada"})
    assert await dispatcher.invoke(function_descriptor(greet), "{}", ctx) == "Hello, Ada"


@pytest.mark.asyncio
async def test_context_parameter_cannot_be_supplied_by_model(dispatcher):
    ctx = ContextStore().initialize("s1", {"user_name": "Ada"})
    result = await dispatcher.invoke(function_descriptor(greet), '{"context": {"user_name": "Eve"}}', ctx)
    assert result == "Hello, Ada"


@pytest.mark.asyncio
async def test_context_parameter_without_session(dispatcher):
    assert await dispatcher.invoke(function_descriptor(greet), "{}") == "Hello, stranger"


@pytest.mark.asyncio
async def test_async_functions_are_awaited(dispatcher):
    assert await dispatcher.invoke(function_descriptor(slow_echo), '{"text": "hi"}') == "HI"


@pytest.mark.asyncio
async def test_function_failure_is_wrapped(dispatcher):
    with pytest.raises(ToolExecutionError) as excinfo:
        await dispatcher.invoke(function_descriptor(explode), '{"reason": "boom"}')

    assert isinstance(excinfo.value.cause, RuntimeError)
    assert "boom" in str(excinfo.value)
    assert excinfo.value.tool_name == "explode"


# ---------------------------------------------------------------------------
# dispatch
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_dispatch_success(dispatcher):
    outcome = await dispatcher.dispatch(build_registry([add]), call("add", {"a": 1, "b": 2}))
    assert outcome.ok
    assert outcome.value == 3
    assert outcome.tool_call.name == "add"


@pytest.mark.asyncio
async def test_dispatch_unknown_function(dispatcher):
    outcome = await dispatcher.dispatch(build_registry([add]), call("send_fax"))
    assert not outcome.ok
    assert isinstance(outcome.error, ToolNotFoundError)
    assert "send_fax" in str(outcome.error)


@pytest.mark.asyncio
async def test_dispatch_folds_recoverable_errors(dispatcher):
    registry = build_registry([add, explode])

    bad_args = await dispatcher.dispatch(registry, call("add", "{broken"))
    failed = await dispatcher.dispatch(registry, call("explode", {"reason": "nope"}))

    assert isinstance(bad_args.error, InvalidArgumentsError)
    assert isinstance(failed.error, ToolExecutionError)
