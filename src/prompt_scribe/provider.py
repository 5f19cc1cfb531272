# provider.py
# The model boundary.
#
# CompletionProvider is the only thing the orchestrator knows about a model:
# give it a prompt, the prior history, a system prompt and tool definitions,
# and it yields StreamEvents. OpenAIChatProvider implements it for any
# OpenAI-compatible chat completions endpoint (OpenRouter by default).

import json
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import Any

import openai
from openai import AsyncOpenAI

from prompt_scribe.config import ScribeConfig
from prompt_scribe.errors import ProtocolViolation, ProviderError
from prompt_scribe.models import (
    AssistantMessage,
    Message,
    ReasoningDelta,
    StreamEvent,
    TextDelta,
    ToolCall,
    ToolCallRequest,
    ToolDefinition,
    ToolResultMessage,
    UsageReport,
    UserMessage,
)


class CompletionProvider(ABC):
    """Streaming completion capability consumed by the orchestrator."""

    @abstractmethod
    def stream(
        self,
        prompt: Message,
        history: Sequence[Message],
        *,
        system: str = "",
        tools: Sequence[ToolDefinition] = (),
    ) -> AsyncIterator[StreamEvent]:
        """
        Return an async iterator of events for one model turn.

        Implementations either yield a StreamFailure or raise ProviderError
        to report a terminal error. Closing the iterator early must release
        the underlying request.
        """


# ---------------------------------------------------------------------------
# Wire conversion
# ---------------------------------------------------------------------------


def to_openai_messages(
    system: str, history: Sequence[Message], prompt: Message
) -> list[dict[str, Any]]:
    """Render system prompt + history + prompt as chat completion messages."""
    messages: list[dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})

    for message in [*history, prompt]:
        if isinstance(message, UserMessage):
            messages.append({"role": "user", "content": message.content})
        elif isinstance(message, AssistantMessage):
            entry: dict[str, Any] = {"role": "assistant", "content": message.content or None}
            if message.tool_calls:
                entry["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {
                            "name": call.name,
                            "arguments": json.dumps(call.arguments),
                        },
                    }
                    for call in message.tool_calls
                ]
            messages.append(entry)
        elif isinstance(message, ToolResultMessage):
            messages.append(
                {"role": "tool", "tool_call_id": message.id, "content": message.content}
            )
        else:
            raise TypeError(f"Unsupported message type: {type(message).__name__}")
    return messages


def to_openai_tools(tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                # Descriptions cannot exceed 1024 characters with OpenAI.
                "description": tool.description[:1024],
                "parameters": tool.parameters,
            },
        }
        for tool in tools
    ]


def _assemble_tool_call(slot: dict[str, str]) -> ToolCall:
    """Turn accumulated tool call fragments into a ToolCall."""
    raw = slot["arguments"].strip() or "{}"
    try:
        arguments = json.loads(raw, strict=False)
    except json.JSONDecodeError as exc:
        raise ProtocolViolation(
            f"Tool call '{slot['name']}' has malformed JSON arguments: {exc}"
        ) from exc
    if not isinstance(arguments, dict):
        raise ProtocolViolation(f"Tool call '{slot['name']}' arguments are not a JSON object")
    if not slot["name"]:
        raise ProtocolViolation("Tool call is missing a function name")

    return ToolCall(
        id=slot["id"] or f"call_{uuid.uuid4().hex[:12]}",
        name=slot["name"],
        arguments=arguments,
    )


# ---------------------------------------------------------------------------
# OpenAI-compatible provider
# ---------------------------------------------------------------------------


class OpenAIChatProvider(CompletionProvider):
    """
    Streams chat completions from an OpenAI-compatible endpoint.

    Tool call fragments are reassembled per index and emitted once the
    choice finishes, so the orchestrator only ever sees complete calls.

    Example:
        provider = OpenAIChatProvider.from_config(ScribeConfig.from_env())
    """

    def __init__(
        self, client: AsyncOpenAI, model: str, temperature: float | None = None
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature

    @classmethod
    def from_config(cls, config: ScribeConfig) -> "OpenAIChatProvider":
        client = AsyncOpenAI(base_url=config.base_url, api_key=config.api_key())
        return cls(client, config.model)

    @property
    def model(self) -> str:
        return self._model

    async def stream(
        self,
        prompt: Message,
        history: Sequence[Message],
        *,
        system: str = "",
        tools: Sequence[ToolDefinition] = (),
    ) -> AsyncIterator[StreamEvent]:
        request: dict[str, Any] = {
            "model": self._model,
            "messages": to_openai_messages(system, history, prompt),
            "stream": True,
        }
        if tools:
            request["tools"] = to_openai_tools(tools)
        if self._temperature is not None:
            request["temperature"] = self._temperature

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.OpenAIError as exc:
            raise ProviderError(f"Completion request failed: {exc}") from exc

        pending: dict[int, dict[str, str]] = {}
        try:
            async for chunk in response:
                usage = getattr(chunk, "usage", None)
                if usage is not None:
                    yield UsageReport(
                        prompt_tokens=usage.prompt_tokens or 0,
                        completion_tokens=usage.completion_tokens or 0,
                    )
                if not chunk.choices:
                    continue

                choice = chunk.choices[0]
                delta = choice.delta

                # OpenRouter names it "reasoning"; DeepSeek-style APIs use "reasoning_content".
                reasoning = getattr(delta, "reasoning", None) or getattr(
                    delta, "reasoning_content", None
                )
                if reasoning:
                    yield ReasoningDelta(text=reasoning)
                if delta.content:
                    yield TextDelta(text=delta.content)

                for fragment in delta.tool_calls or []:
                    slot = pending.setdefault(
                        fragment.index, {"id": "", "name": "", "arguments": ""}
                    )
                    if fragment.id:
                        slot["id"] = fragment.id
                    if fragment.function is not None:
                        slot["name"] += fragment.function.name or ""
                        slot["arguments"] += fragment.function.arguments or ""

                if choice.finish_reason is not None and pending:
                    for index in sorted(pending):
                        yield ToolCallRequest(call=_assemble_tool_call(pending[index]))
                    pending.clear()

            # Some gateways end the stream without a finish_reason.
            for index in sorted(pending):
                yield ToolCallRequest(call=_assemble_tool_call(pending[index]))
        except openai.OpenAIError as exc:
            raise ProviderError(f"Completion stream failed: {exc}") from exc
        finally:
            await response.close()
