# orchestrator.py
# The turn loop.
#
# The Orchestrator owns control flow: it assembles each request, calls the
# chat-completion boundary, dispatches tool calls strictly in emission order,
# applies context updates, swaps agents on hand-off and decides when to stop.
#
# Control flow per turn:
#   cancel? → system prompt + history + tool schemas → completion
#   → cancel? → append response → no tool calls? done
#   → for each call: dispatch → failure? stop → context updates → hand-off?
#     → append tool result → cancel?

import asyncio
import json
import logging
import uuid
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from swarm_relay.agents import AgentDescriptor, handoff_target, is_agent
from swarm_relay.client import ChatCompletionClient, assemble_stream
from swarm_relay.config import Settings
from swarm_relay.context import ContextStore, ExecutionContext
from swarm_relay.dispatcher import ToolDispatcher
from swarm_relay.errors import (
    AgentConfigurationError,
    ContextValidationError,
    FatalOrchestrationError,
    ProviderError,
    RecoverableError,
)
from swarm_relay.models import (
    ChatRequest,
    Message,
    Result,
    RunResult,
    RunStatus,
    ToolChoiceMode,
    ToolOutcome,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def stringify_result(value: Any) -> str:
    """Text placed in the tool-result message the model will read."""
    if isinstance(value, Result):
        if value.agent is not None and value.value in ("", None):
            return str(value.agent)
        value = value.value
    if is_agent(value):
        return str(value)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump_json()
    if isinstance(value, (dict, list, tuple, int, float, bool)):
        return json.dumps(value, default=str)
    return str(value)


def _agent_name(agent: Any) -> str:
    return getattr(agent, "name", None) or type(agent).__name__


def _is_cancelled(cancel: Any) -> bool:
    return cancel is not None and cancel.is_set()


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class Orchestrator:
    """
    Drives a conversation between a model and an agent's local functions.

    Example:
        orchestrator = Orchestrator(OpenAIChatClient.from_settings(settings))
        result = orchestrator.run_sync(
            weather_agent,
            [Message.user("What's the weather in Paris?")],
            {"user_name": "Ada"},
        )
        print(result.history[-1].content)
    """

    def __init__(
        self,
        client: ChatCompletionClient,
        *,
        context_store: ContextStore | None = None,
        dispatcher: ToolDispatcher | None = None,
        logger: logging.Logger | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._client = client
        self._settings = settings or Settings()
        self._logger = logger or logging.getLogger(__name__)
        self._store = context_store or ContextStore(logger=self._logger.getChild("context"))
        self._dispatcher = dispatcher or ToolDispatcher(logger=self._logger.getChild("dispatcher"))

    @property
    def context_store(self) -> ContextStore:
        return self._store

    # ------------------------------------------------------------------
    # Request assembly
    # ------------------------------------------------------------------

    @staticmethod
    def check_agent(agent: AgentDescriptor) -> None:
        """Raise AgentConfigurationError if the agent's mode needs tools it does not have."""
        mode = ToolChoiceMode(agent.tool_choice_mode)
        if mode is not ToolChoiceMode.NONE and not agent.function_registry:
            raise AgentConfigurationError(
                f"Agent '{_agent_name(agent)}' uses tool choice '{mode.value}' but has no functions"
            )

    def build_request(
        self,
        agent: AgentDescriptor,
        history: Sequence[Message],
        variables: Mapping[str, Any],
        model_override: str | None = None,
        stream: bool = False,
    ) -> ChatRequest:
        self.check_agent(agent)
        mode = ToolChoiceMode(agent.tool_choice_mode)

        tools = []
        if mode is not ToolChoiceMode.NONE:
            tools = [descriptor.to_schema() for descriptor in agent.function_registry.values()]

        temperature = getattr(agent, "temperature", None)
        model = (
            model_override
            or getattr(agent, "model", None)
            or getattr(self._client, "default_model", None)
            or self._settings.model
        )
        return ChatRequest(
            model=model,
            messages=[Message.system(agent.system_prompt(variables)), *history],
            tools=tools,
            tool_choice=mode.value,
            temperature=temperature if temperature is not None else self._settings.temperature,
            stream=stream,
        )

    # ------------------------------------------------------------------
    # Chat-completion boundary
    # ------------------------------------------------------------------

    async def _complete(self, request: ChatRequest) -> Message:
        try:
            if request.stream:
                response = await assemble_stream(self._client.stream(request))
            else:
                response = await self._client.complete(request)
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"Chat completion failed: {exc}") from exc

        if response.error is not None:
            raise ProviderError(
                response.error.message,
                response.error.code,
                response.error.provider_metadata,
            )
        if not response.choices:
            raise ProviderError("No completion choices returned")
        return response.choices[0].message

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    def _apply_outcome(self, outcome: ToolOutcome, context: ExecutionContext) -> AgentDescriptor | None:
        """Write context updates carried by a successful outcome; return its hand-off target."""
        value = outcome.value
        if isinstance(value, Result) and value.context_updates:
            self._store.update(context.session_id, value.context_updates)
        return handoff_target(value)

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------

    async def _turn_loop(
        self,
        agent: AgentDescriptor,
        context: ExecutionContext,
        model_override: str | None,
        stream: bool,
        max_turns: int,
        cancel: Any,
    ) -> tuple[AgentDescriptor, RunStatus, int, RecoverableError | None]:
        active = agent
        turn = 0

        while turn < max_turns:
            if _is_cancelled(cancel):
                self._logger.info("Run cancelled before turn %d", turn + 1)
                return active, RunStatus.CANCELLED, turn, None

            turn += 1
            self._logger.debug("Starting turn %d/%d with agent %s", turn, max_turns, _agent_name(active))

            try:
                request = self.build_request(active, context.history, context.variables, model_override, stream)
                response = await self._complete(request)

                if _is_cancelled(cancel):
                    self._logger.info("Run cancelled during turn %d; discarding response", turn)
                    return active, RunStatus.CANCELLED, turn, None

                context.append(response)
                if not response.has_tool_calls:
                    self._logger.debug("No tool calls in response, ending run")
                    return active, RunStatus.COMPLETED, turn, None

                self._logger.debug("Processing %d tool call(s)", len(response.tool_calls))
                # Calls resolve against the registry offered in this request.
                requesting = active
                for tool_call in response.tool_calls:
                    outcome = await self._dispatcher.dispatch(requesting.function_registry, tool_call, context)
                    if not outcome.ok:
                        return active, RunStatus.FAILED, turn, outcome.error

                    target = self._apply_outcome(outcome, context)
                    if target is not None:
                        self._logger.info("Agent switched: %s -> %s", _agent_name(active), _agent_name(target))
                        active = target

                    context.append(Message.tool(tool_call, stringify_result(outcome.value)))
                    self._logger.debug("Tool call result for %s appended", tool_call.name)

                    if _is_cancelled(cancel):
                        self._logger.info("Run cancelled after tool call %s", tool_call.id)
                        return active, RunStatus.CANCELLED, turn, None

            except RecoverableError as exc:
                self._logger.warning("Turn %d ended the run: %s", turn, exc)
                return active, RunStatus.FAILED, turn, exc
            except ProviderError as exc:
                self._logger.error("Provider error during turn %d: %s", turn, exc)
                raise
            except FatalOrchestrationError:
                raise
            except Exception as exc:
                self._logger.exception("Fatal error during turn %d", turn)
                raise FatalOrchestrationError(f"Unhandled error during turn {turn}: {exc}", exc) from exc

        self._logger.info("Reached max turns (%d)", max_turns)
        return active, RunStatus.MAX_TURNS, turn, None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(
        self,
        agent: AgentDescriptor,
        messages: Sequence[Message] | None = None,
        context_variables: Mapping[str, Any] | None = None,
        *,
        model_override: str | None = None,
        stream: bool = False,
        max_turns: int | None = None,
        session_id: str | None = None,
        cancel: Any = None,
    ) -> RunResult:
        """
        Run the turn loop until completion, the turn bound, a run-ending
        failure or cancellation.

        Recoverable failures come back as RunStatus.FAILED with the partial
        history. ProviderError and FatalOrchestrationError are raised.
        `cancel` is anything with is_set() (asyncio.Event, threading.Event).
        """
        max_turns = self._settings.max_turns if max_turns is None else max_turns
        if max_turns < 0:
            raise ValueError(f"max_turns must be >= 0, got {max_turns}")
        self.check_agent(agent)

        seed = list(messages or [])
        ephemeral = session_id is None
        session_id = session_id or uuid.uuid4().hex

        self._logger.info(
            "Starting run with agent %s (session %s, stream=%s, max_turns=%d)",
            _agent_name(agent),
            session_id,
            stream,
            max_turns,
        )

        try:
            context = self._store.initialize(session_id, context_variables or {})
        except ContextValidationError as exc:
            self._logger.warning("Rejected initial context variables: %s", exc)
            return RunResult(
                history=seed,
                active_agent=agent,
                context={},
                status=RunStatus.FAILED,
                error=exc,
                session_id=None if ephemeral else session_id,
            )

        context.append(*seed)
        try:
            active, status, turns, error = await self._turn_loop(
                agent, context, model_override, stream, max_turns, cancel
            )
        finally:
            if ephemeral:
                self._store.remove(session_id)

        self._logger.info("Run finished: %s after %d turn(s)", status.value, turns)
        return RunResult(
            history=list(context.history),
            active_agent=active,
            context=context.snapshot(),
            status=status,
            turns=turns,
            error=error,
            session_id=None if ephemeral else session_id,
        )

    def run_sync(self, *args: Any, **kwargs: Any) -> RunResult:
        """Blocking wrapper around run() for callers without an event loop."""
        return asyncio.run(self.run(*args, **kwargs))
