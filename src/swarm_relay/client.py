# client.py
# The abstract chat-completion boundary consumed by the orchestrator, plus
# reassembly of streamed chunks into a single logical response.

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from swarm_relay.models import ChatChunk, ChatRequest, ChatResponse, Choice, Message, ToolCall


@runtime_checkable
class ChatCompletionClient(Protocol):
    """Implemented by provider adapters (see openai_client.OpenAIChatClient)."""

    @property
    def default_model(self) -> str: ...

    async def complete(self, request: ChatRequest) -> ChatResponse: ...

    def stream(self, request: ChatRequest) -> AsyncIterator[ChatChunk]: ...


async def assemble_stream(chunks: AsyncIterator[ChatChunk]) -> ChatResponse:
    """
    Drain a chunk stream into one ChatResponse.

    Content deltas are concatenated in arrival order. Tool-call fragments are
    merged by index: id and name take the first non-empty value, arguments are
    concatenated. An error chunk ends the stream with an error response.
    """
    content_parts: list[str] = []
    calls: dict[int, dict[str, str]] = {}
    finish_reason: str | None = None

    async for chunk in chunks:
        if chunk.error is not None:
            return ChatResponse(error=chunk.error)
        if chunk.content:
            content_parts.append(chunk.content)
        for delta in chunk.tool_calls:
            slot = calls.setdefault(delta.index, {"id": "", "name": "", "arguments": ""})
            if delta.id and not slot["id"]:
                slot["id"] = delta.id
            if delta.name and not slot["name"]:
                slot["name"] = delta.name
            slot["arguments"] += delta.arguments
        if chunk.finish_reason:
            finish_reason = chunk.finish_reason

    tool_calls = [
        ToolCall(id=slot["id"] or f"call_{index}", name=slot["name"], arguments=slot["arguments"] or "{}")
        for index, slot in sorted(calls.items())
    ]
    message = Message.assistant(
        content="".join(content_parts) if content_parts else None,
        tool_calls=tool_calls,
    )
    return ChatResponse(choices=[Choice(message=message, finish_reason=finish_reason)])
