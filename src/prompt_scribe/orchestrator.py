# orchestrator.py
# Multi-turn agent loop.
#
# The Orchestrator owns all control flow. The model is a passive responder:
# it streams text and tool call requests, the orchestrator executes the
# tools against the registry, folds the results into the conversation and
# decides whether another round is needed.
#
# Control flow per round:
#   Requesting → Streaming → ExecutingTools → Requesting …
#                          ↘ Done | Failed
#
# The loop never retries. Provider errors, protocol violations and tool
# failures end the whole attempt.

import asyncio
import enum
from collections.abc import AsyncIterator, Sequence

from prompt_scribe.conversation import Conversation
from prompt_scribe.errors import ProviderError, RoundLimitExceeded, ScribeError
from prompt_scribe.models import (
    Message,
    ReasoningDelta,
    StreamEvent,
    StreamFailure,
    TextDelta,
    ToolCall,
    ToolCallRequest,
    ToolResult,
    UserMessage,
)
from prompt_scribe.observability import get_logger
from prompt_scribe.provider import CompletionProvider
from prompt_scribe.registry import ToolRegistry

logger = get_logger(__name__)

_END = object()


class LoopState(str, enum.Enum):
    REQUESTING = "requesting"
    STREAMING = "streaming"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"


class Orchestrator:
    """
    Drives one prompt to completion against a model and a tool registry.

    An Orchestrator holds configuration only; each call to stream() owns its
    own Conversation, so one instance can serve concurrent requests.

    Example:
        orchestrator = Orchestrator(provider, ToolRegistry([WebSearcher()]))
        async for chunk in orchestrator.stream("Find prompt best practices"):
            print(chunk, end="")
    """

    def __init__(
        self,
        provider: CompletionProvider,
        registry: ToolRegistry | None = None,
        *,
        system: str = "",
        max_rounds: int = 10,
        round_timeout: float | None = None,
    ) -> None:
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1.")
        self._provider = provider
        self._registry = registry if registry is not None else ToolRegistry()
        self._system = system
        self._max_rounds = max_rounds
        self._round_timeout = round_timeout

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run(self, prompt: str | Message, conversation: Conversation | None = None) -> str:
        """Run to completion and return every text and reasoning chunk joined."""
        return "".join([chunk async for chunk in self.stream(prompt, conversation)])

    async def stream(
        self, prompt: str | Message, conversation: Conversation | None = None
    ) -> AsyncIterator[str]:
        """
        Yield text and reasoning chunks as the model produces them.

        `conversation` is extended in place when given, which lets callers
        inspect the history afterwards. Closing the iterator early cancels
        in-flight tool executions and closes the provider stream.
        """
        history = conversation if conversation is not None else Conversation()
        if isinstance(prompt, str):
            prompt = UserMessage(content=prompt)
        history.append(prompt)

        definitions = self._registry.definitions()
        round_number = 0

        while True:
            round_number += 1
            if round_number > self._max_rounds:
                logger.error("round_limit_exceeded", max_rounds=self._max_rounds)
                raise RoundLimitExceeded(self._max_rounds)

            logger.debug(
                "round_started",
                round=round_number,
                state=LoopState.REQUESTING.value,
                history=len(history),
            )

            calls: list[ToolCall] = []
            tasks: list[asyncio.Task] = []
            text_parts: list[str] = []
            tool_ran = False

            events = self._provider.stream(
                history.last(),
                history.prior(),
                system=self._system,
                tools=definitions,
            )
            iterator = events.__aiter__()
            deadline = self._deadline()
            logger.debug("round_streaming", round=round_number, state=LoopState.STREAMING.value)

            try:
                while True:
                    event = await self._next_event(iterator, deadline)
                    if event is _END:
                        break

                    if isinstance(event, TextDelta):
                        if event.text:
                            text_parts.append(event.text)
                            yield event.text
                        tool_ran = False
                    elif isinstance(event, ReasoningDelta):
                        if event.text:
                            yield event.text
                        tool_ran = False
                    elif isinstance(event, ToolCallRequest):
                        calls.append(event.call)
                        tasks.append(asyncio.create_task(self._registry.dispatch(event.call)))
                        tool_ran = True
                    elif isinstance(event, StreamFailure):
                        logger.error("stream_failed", round=round_number, error=event.message)
                        raise ProviderError(f"Model stream failed: {event.message}")
                    # Anything else (usage reports, unknown events) is ignored.

                if tasks:
                    logger.debug(
                        "executing_tools",
                        round=round_number,
                        state=LoopState.EXECUTING_TOOLS.value,
                        tools=[call.name for call in calls],
                    )
                results: list[ToolResult] = list(await asyncio.gather(*tasks))
            except Exception:
                logger.debug("round_failed", round=round_number, state=LoopState.FAILED.value)
                raise
            finally:
                await self._release(events, tasks)

            if calls:
                history.append_tool_round(calls, results, content="".join(text_parts))
            else:
                history.append_assistant("".join(text_parts))

            if not tool_ran:
                logger.debug(
                    "loop_finished",
                    rounds=round_number,
                    state=LoopState.DONE.value,
                    history=len(history),
                )
                return

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _deadline(self) -> float | None:
        if self._round_timeout is None:
            return None
        return asyncio.get_running_loop().time() + self._round_timeout

    async def _next_event(
        self, iterator: AsyncIterator[StreamEvent], deadline: float | None
    ) -> StreamEvent | object:
        """Pull one event, mapping timeouts and stray provider exceptions to ProviderError."""
        try:
            if deadline is None:
                return await iterator.__anext__()
            remaining = max(deadline - asyncio.get_running_loop().time(), 0)
            return await asyncio.wait_for(_pull(iterator), timeout=remaining)
        except StopAsyncIteration:
            return _END
        except asyncio.TimeoutError as exc:
            logger.error("stream_failed", error="round timeout")
            raise ProviderError(f"Model round exceeded {self._round_timeout}s") from exc
        except ScribeError:
            raise
        except Exception as exc:
            logger.error("stream_failed", error=str(exc))
            raise ProviderError(f"Model stream failed: {exc}") from exc

    @staticmethod
    async def _release(
        events: AsyncIterator[StreamEvent], tasks: Sequence[asyncio.Task]
    ) -> None:
        """Cancel unfinished tool tasks and close the provider stream."""
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        aclose = getattr(events, "aclose", None)
        if aclose is not None:
            await aclose()


async def _pull(iterator: AsyncIterator[StreamEvent]) -> StreamEvent:
    return await iterator.__anext__()
