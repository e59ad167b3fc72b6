# openai_client.py
# ChatCompletionClient backed by the openai SDK. Works against any
# OpenAI-compatible endpoint (OpenAI, OpenRouter, Ollama's /v1, ...).

import logging
import os
from collections.abc import AsyncIterator
from typing import Any

from openai import APIError, APIStatusError, AsyncOpenAI

from swarm_relay.config import Settings
from swarm_relay.errors import ProviderError
from swarm_relay.models import (
    ChatChunk,
    ChatRequest,
    ChatResponse,
    Choice,
    Message,
    ProviderErrorInfo,
    Role,
    ToolCall,
    ToolCallDelta,
)


# ---------------------------------------------------------------------------
# Wire translation
# ---------------------------------------------------------------------------


def to_openai_message(message: Message) -> dict[str, Any]:
    payload: dict[str, Any] = {"role": message.role.value, "content": message.content}
    if message.tool_calls:
        payload["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.name, "arguments": call.arguments},
            }
            for call in message.tool_calls
        ]
    if message.role is Role.TOOL:
        payload["tool_call_id"] = message.tool_call_id
    return payload


def to_openai_kwargs(request: ChatRequest) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "model": request.model,
        "messages": [to_openai_message(message) for message in request.messages],
    }
    # tool_choice without tools is rejected by the API.
    if request.tools:
        kwargs["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": schema.name,
                    "description": schema.description,
                    "parameters": schema.parameters,
                },
            }
            for schema in request.tools
        ]
        if request.tool_choice:
            kwargs["tool_choice"] = request.tool_choice
    if request.temperature is not None:
        kwargs["temperature"] = request.temperature
    return kwargs


def _error_info(raw: Any) -> ProviderErrorInfo:
    if isinstance(raw, dict):
        return ProviderErrorInfo(
            message=str(raw.get("message") or "Unknown error"),
            code=raw.get("code"),
            provider_metadata=raw.get("metadata") or {},
        )
    return ProviderErrorInfo(message=str(raw))


def from_openai_completion(completion: Any) -> ChatResponse:
    error = getattr(completion, "error", None)
    if error:
        return ChatResponse(error=_error_info(error))

    choices: list[Choice] = []
    for choice in completion.choices or []:
        raw = choice.message
        tool_calls = [
            ToolCall(id=call.id, name=call.function.name, arguments=call.function.arguments or "{}")
            for call in (raw.tool_calls or [])
        ]
        choices.append(
            Choice(
                message=Message.assistant(content=raw.content, tool_calls=tool_calls),
                finish_reason=choice.finish_reason,
            )
        )
    return ChatResponse(choices=choices)


def _provider_error(exc: APIError) -> ProviderError:
    code = exc.status_code if isinstance(exc, APIStatusError) else getattr(exc, "code", None)
    metadata = exc.body.get("metadata", {}) if isinstance(exc.body, dict) else {}
    return ProviderError(exc.message, code, metadata)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OpenAIChatClient:
    """
    Chat-completion boundary over AsyncOpenAI.

    Example:
        client = OpenAIChatClient.from_settings(Settings.from_env())
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        default_model: str,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._default_model = default_model
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings, logger: logging.Logger | None = None) -> "OpenAIChatClient":
        client = AsyncOpenAI(
            base_url=settings.base_url,
            api_key=os.getenv(settings.api_key_env),
        )
        return cls(client, settings.model, logger=logger)

    @property
    def default_model(self) -> str:
        return self._default_model

    async def complete(self, request: ChatRequest) -> ChatResponse:
        kwargs = to_openai_kwargs(request)
        self._logger.debug("Requesting completion from %s (%d messages)", request.model, len(request.messages))
        try:
            completion = await self._client.chat.completions.create(**kwargs)
        except APIError as exc:
            raise _provider_error(exc) from exc
        return from_openai_completion(completion)

    async def stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]:
        kwargs = to_openai_kwargs(request)
        self._logger.debug("Streaming completion from %s (%d messages)", request.model, len(request.messages))
        try:
            response = await self._client.chat.completions.create(**kwargs, stream=True)
            async for event in response:
                error = getattr(event, "error", None)
                if error:
                    yield ChatChunk(error=_error_info(error))
                    return
                if not event.choices:
                    continue
                choice = event.choices[0]
                delta = choice.delta
                yield ChatChunk(
                    content=delta.content,
                    tool_calls=[
                        ToolCallDelta(
                            index=call.index,
                            id=call.id,
                            name=call.function.name if call.function else None,
                            arguments=(call.function.arguments or "") if call.function else "",
                        )
                        for call in (delta.tool_calls or [])
                    ],
                    finish_reason=choice.finish_reason,
                )
        except APIError as exc:
            raise _provider_error(exc) from exc
