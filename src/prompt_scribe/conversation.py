# conversation.py
# Ordered, append-only message history for one orchestration run.
#
# The orchestrator is the only writer. Every ToolResultMessage must follow
# the AssistantMessage that carried the matching ToolCall id; append_*
# enforces that instead of trusting callers.

from collections.abc import Iterable, Iterator, Sequence

from prompt_scribe.errors import ProtocolViolation
from prompt_scribe.models import (
    AssistantMessage,
    Message,
    ToolCall,
    ToolResult,
    ToolResultMessage,
    UserMessage,
)


class Conversation:
    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = []
        self._pending_ids: set[str] = set()
        self._answered_ids: set[str] = set()
        for message in messages:
            self.append(message)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __getitem__(self, index):
        return self._messages[index]

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def last(self) -> Message:
        if not self._messages:
            raise IndexError("Conversation is empty")
        return self._messages[-1]

    def prior(self) -> list[Message]:
        """Everything before the last message: the history sent alongside a prompt."""
        return list(self._messages[:-1])

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def append(self, message: Message) -> None:
        if isinstance(message, AssistantMessage):
            for call in message.tool_calls:
                if call.id in self._pending_ids or call.id in self._answered_ids:
                    raise ProtocolViolation(f"Duplicate tool call id '{call.id}'")
                self._pending_ids.add(call.id)
        elif isinstance(message, ToolResultMessage):
            if message.id not in self._pending_ids:
                raise ProtocolViolation(
                    f"Tool result '{message.id}' has no matching tool call in history"
                )
            self._pending_ids.discard(message.id)
            self._answered_ids.add(message.id)
        self._messages.append(message)

    def append_user(self, content: str) -> UserMessage:
        message = UserMessage(content=content)
        self.append(message)
        return message

    def append_assistant(self, content: str) -> AssistantMessage:
        message = AssistantMessage(content=content)
        self.append(message)
        return message

    def append_tool_round(
        self,
        calls: Sequence[ToolCall],
        results: Sequence[ToolResult],
        content: str = "",
    ) -> None:
        """
        Append one assistant turn bundling `calls`, then one result message per
        entry in `results`. Result order need not match call order; each result
        is linked by id.
        """
        if not calls:
            raise ValueError("A tool round needs at least one tool call.")

        expected = {call.id for call in calls}
        received = [result.id for result in results]
        if sorted(received) != sorted(expected):
            raise ProtocolViolation(
                f"Tool results {sorted(received)} do not match tool calls {sorted(expected)}"
            )

        self.append(AssistantMessage(content=content, tool_calls=list(calls)))
        for result in results:
            self.append(ToolResultMessage.from_result(result))
