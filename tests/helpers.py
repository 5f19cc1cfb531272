# helpers.py
# Scripted fakes shared by the test modules.

import asyncio

from pydantic import BaseModel

from prompt_scribe.errors import ToolFailure
from prompt_scribe.models import TextDelta, ToolCall, ToolCallRequest
from prompt_scribe.provider import CompletionProvider
from prompt_scribe.registry import Tool


class Pause:
    """Script item: sleep mid-stream."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds


class ScriptedProvider(CompletionProvider):
    """
    Replays one scripted event list per round.

    `script` is either a list of rounds or a callable taking the 0-based
    round index. Exception instances in a round are raised mid-stream and
    Pause items sleep. Every request is recorded in `calls`.
    """

    def __init__(self, script) -> None:
        self._script = script
        self.calls: list[dict] = []
        self.closed = 0

    def _round(self, index: int) -> list:
        if callable(self._script):
            return self._script(index)
        if index >= len(self._script):
            raise AssertionError(f"Provider asked for unscripted round {index}")
        return self._script[index]

    async def stream(self, prompt, history, *, system="", tools=()):
        self.calls.append(
            {"prompt": prompt, "history": list(history), "system": system, "tools": list(tools)}
        )
        events = self._round(len(self.calls) - 1)
        try:
            for item in events:
                if isinstance(item, BaseException):
                    raise item
                if isinstance(item, Pause):
                    await asyncio.sleep(item.seconds)
                    continue
                yield item
        finally:
            self.closed += 1


def text(*chunks: str) -> list:
    return [TextDelta(text=chunk) for chunk in chunks]


def tool_call(call_id: str, name: str = "echo", call_ref: str | None = None, **arguments):
    return ToolCallRequest(call=ToolCall(id=call_id, call_id=call_ref, name=name, arguments=arguments))


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class EchoArgs(BaseModel):
    message: str


class EchoTool(Tool):
    name = "echo"
    description = "Echo a message back."
    args_model = EchoArgs

    def __init__(self) -> None:
        self.seen: list[str] = []

    async def run(self, args: EchoArgs) -> str:
        self.seen.append(args.message)
        return f"echo: {args.message}"


class FailingTool(Tool):
    name = "explode"
    description = "Always fails."
    args_model = EchoArgs

    async def run(self, args: EchoArgs) -> str:
        raise ToolFailure(self.name, "upstream query failed")


class CrashingTool(Tool):
    name = "crash"
    description = "Raises an unexpected exception."
    args_model = EchoArgs

    async def run(self, args: EchoArgs) -> str:
        raise RuntimeError("boom")


class SlowTool(Tool):
    name = "slow"
    description = "Sleeps until cancelled."
    args_model = EchoArgs

    def __init__(self, seconds: float = 10.0) -> None:
        self.seconds = seconds
        self.started = False
        self.cancelled = False

    async def run(self, args: EchoArgs) -> str:
        self.started = True
        try:
            await asyncio.sleep(self.seconds)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return args.message


class RendezvousTool(Tool):
    """Completes only once `expected` calls are in flight at the same time."""

    name = "rendezvous"
    description = "Waits for its siblings."
    args_model = EchoArgs

    def __init__(self, expected: int) -> None:
        self.expected = expected
        self.arrived = 0
        self.all_here = asyncio.Event()

    async def run(self, args: EchoArgs) -> str:
        self.arrived += 1
        if self.arrived == self.expected:
            self.all_here.set()
        await asyncio.wait_for(self.all_here.wait(), timeout=1.0)
        return args.message
