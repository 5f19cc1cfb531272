import asyncio

import pytest

from helpers import (
    CrashingTool,
    EchoTool,
    FailingTool,
    Pause,
    RendezvousTool,
    ScriptedProvider,
    SlowTool,
    text,
    tool_call,
)
from prompt_scribe.conversation import Conversation
from prompt_scribe.errors import (
    ProtocolViolation,
    ProviderError,
    RoundLimitExceeded,
    ToolFailure,
    ToolNotFoundError,
)
from prompt_scribe.models import (
    AssistantMessage,
    ReasoningDelta,
    StreamFailure,
    TextDelta,
    ToolResultMessage,
    UsageReport,
    UserMessage,
)
from prompt_scribe.orchestrator import Orchestrator
from prompt_scribe.registry import ToolRegistry

pytestmark = pytest.mark.asyncio


def _orchestrator(provider, *tools, **kwargs) -> Orchestrator:
    return Orchestrator(provider, ToolRegistry(tools or [EchoTool()]), **kwargs)


# ---------------------------------------------------------------------------
# Termination
# ---------------------------------------------------------------------------


async def test_no_tool_calls_finishes_after_one_round():
    provider = ScriptedProvider([text("Be ", "concise.")])
    conversation = Conversation()

    result = await _orchestrator(provider).run("write a function", conversation)

    assert result == "Be concise."
    assert len(provider.calls) == 1
    assert provider.calls[0]["prompt"] == UserMessage(content="write a function")
    assert provider.calls[0]["history"] == []
    assert [m.role for m in conversation] == ["user", "assistant"]
    assert conversation.last().content == "Be concise."


@pytest.mark.parametrize("n", [1, 2, 4])
async def test_n_tool_rounds_finish_after_n_plus_one_rounds(n):
    def script(index):
        if index < n:
            return [tool_call(f"call-{index}", message=f"m{index}")]
        return text("done")

    provider = ScriptedProvider(script)
    echo = EchoTool()
    conversation = Conversation()

    result = await _orchestrator(provider, echo).run("go", conversation)

    assert result == "done"
    assert len(provider.calls) == n + 1
    assert echo.seen == [f"m{i}" for i in range(n)]

    # History sent with each request grows strictly.
    lengths = [len(call["history"]) for call in provider.calls]
    assert lengths == sorted(set(lengths))

    # Every tool result follows the assistant turn carrying its call id.
    seen_ids = set()
    for message in conversation:
        if isinstance(message, AssistantMessage):
            seen_ids.update(call.id for call in message.tool_calls)
        elif isinstance(message, ToolResultMessage):
            assert message.id in seen_ids

    assert len(conversation) == 2 * n + 2


async def test_next_round_prompt_is_the_latest_tool_result():
    provider = ScriptedProvider([[tool_call("call-1", message="hi")], text("ok")])

    await _orchestrator(provider).run("go")

    second = provider.calls[1]
    assert second["prompt"] == ToolResultMessage(id="call-1", content="echo: hi")
    assert [m.role for m in second["history"]] == ["user", "assistant"]
    assert second["history"][1].tool_calls[0].id == "call-1"


async def test_text_after_a_tool_call_ends_the_loop():
    provider = ScriptedProvider([[tool_call("call-1", message="hi"), TextDelta(text="final")]])
    conversation = Conversation()

    result = await _orchestrator(provider).run("go", conversation)

    assert result == "final"
    assert len(provider.calls) == 1
    assert [m.role for m in conversation] == ["user", "assistant", "tool"]
    assert conversation[1].content == "final"


async def test_round_limit_is_enforced():
    provider = ScriptedProvider(lambda i: [tool_call(f"call-{i}", message="again")])

    with pytest.raises(RoundLimitExceeded):
        await _orchestrator(provider, max_rounds=3).run("loop forever")

    assert len(provider.calls) == 3


# ---------------------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------------------


async def test_text_is_forwarded_before_the_stream_ends():
    provider = ScriptedProvider([text("first", "second")])
    stream = _orchestrator(provider).stream("go")

    assert await stream.__anext__() == "first"
    assert provider.closed == 0

    await stream.aclose()
    assert provider.closed == 1


async def test_reasoning_is_forwarded_and_other_events_ignored():
    provider = ScriptedProvider(
        [
            [
                ReasoningDelta(text="thinking. "),
                ReasoningDelta(text=""),
                UsageReport(prompt_tokens=3, completion_tokens=4),
                TextDelta(text="answer"),
            ]
        ]
    )
    conversation = Conversation()

    chunks = [c async for c in _orchestrator(provider).stream("go", conversation)]

    assert chunks == ["thinking. ", "answer"]
    assert conversation.last().content == "answer"


async def test_request_carries_system_prompt_tools_and_prior_history():
    provider = ScriptedProvider([text("ok")])
    conversation = Conversation([UserMessage(content="hi"), AssistantMessage(content="hello")])

    await _orchestrator(provider, system="be brief").run("again", conversation)

    call = provider.calls[0]
    assert call["system"] == "be brief"
    assert [tool.name for tool in call["tools"]] == ["echo"]
    assert [m.content for m in call["history"]] == ["hi", "hello"]
    assert call["prompt"].content == "again"


# ---------------------------------------------------------------------------
# Tool execution
# ---------------------------------------------------------------------------


async def test_parallel_tool_calls_run_concurrently_and_keep_their_ids():
    rendezvous = RendezvousTool(expected=2)
    provider = ScriptedProvider(
        [
            [
                tool_call("a", name="rendezvous", call_ref="fc-a", message="x"),
                tool_call("b", name="rendezvous", message="y"),
            ],
            text("ok"),
        ]
    )
    conversation = Conversation()

    await _orchestrator(provider, rendezvous).run("go", conversation)

    assistant = conversation[1]
    assert [call.id for call in assistant.tool_calls] == ["a", "b"]
    results = {m.id: m for m in conversation if isinstance(m, ToolResultMessage)}
    assert results["a"].content == "x"
    assert results["a"].call_id == "fc-a"
    assert results["b"].content == "y"
    assert results["b"].call_id is None


async def test_tool_failure_aborts_the_attempt():
    provider = ScriptedProvider([[tool_call("a", name="explode", message="x")], text("never")])

    with pytest.raises(ToolFailure, match="upstream query failed"):
        await _orchestrator(provider, FailingTool()).run("go")

    assert len(provider.calls) == 1


async def test_unexpected_tool_exception_is_wrapped():
    provider = ScriptedProvider([[tool_call("a", name="crash", message="x")]])

    with pytest.raises(ToolFailure, match="boom"):
        await _orchestrator(provider, CrashingTool()).run("go")


async def test_unknown_tool_is_a_protocol_violation():
    provider = ScriptedProvider([[tool_call("a", name="rm_rf", message="x")]])

    with pytest.raises(ToolNotFoundError):
        await _orchestrator(provider).run("go")


async def test_tool_arguments_are_validated():
    provider = ScriptedProvider([[tool_call("a", name="echo", wrong="field")]])

    with pytest.raises(ProtocolViolation):
        await _orchestrator(provider).run("go")


async def test_closing_early_cancels_running_tools():
    slow = SlowTool()
    provider = ScriptedProvider([[tool_call("a", name="slow", message="x"), *text("a", "b")]])
    stream = _orchestrator(provider, slow).stream("go")

    assert await stream.__anext__() == "a"
    await asyncio.sleep(0)
    assert slow.started

    await stream.aclose()

    assert slow.cancelled
    assert provider.closed == 1


# ---------------------------------------------------------------------------
# Provider failures
# ---------------------------------------------------------------------------


async def test_stream_failure_is_fatal_and_stops_consuming():
    echo = EchoTool()
    provider = ScriptedProvider(
        [[TextDelta(text="partial"), StreamFailure(message="quota exceeded"), tool_call("a", message="x")]]
    )

    with pytest.raises(ProviderError, match="quota exceeded"):
        await _orchestrator(provider, echo).run("go")

    assert echo.seen == []
    assert provider.closed == 1


async def test_provider_exception_becomes_provider_error():
    provider = ScriptedProvider([[TextDelta(text="partial"), ConnectionError("reset by peer")]])

    with pytest.raises(ProviderError, match="reset by peer"):
        await _orchestrator(provider).run("go")


async def test_provider_errors_pass_through_unchanged():
    provider = ScriptedProvider([[ProviderError("rate limited")]])

    with pytest.raises(ProviderError, match="rate limited"):
        await _orchestrator(provider).run("go")


async def test_round_timeout_raises_provider_error():
    provider = ScriptedProvider([[TextDelta(text="a"), Pause(5)]])

    with pytest.raises(ProviderError, match="exceeded"):
        await _orchestrator(provider, round_timeout=0.05).run("go")


async def test_max_rounds_must_be_positive():
    with pytest.raises(ValueError):
        Orchestrator(ScriptedProvider([]), max_rounds=0)
