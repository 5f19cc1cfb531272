import pytest

from helpers import ScriptedProvider, text, tool_call
from prompt_scribe.config import ScribeConfig
from prompt_scribe.models import Artifact, Intent, Specification
from prompt_scribe.prompts import (
    BUILDER_SYSTEM_PROMPT,
    CHIEF_SYSTEM_PROMPT,
    OPTIMIZER_SYSTEM_PROMPT,
    PLANNER_SYSTEM_PROMPT,
)
from prompt_scribe.workflow import AgentWorkflow, StagedPipeline

pytestmark = pytest.mark.asyncio


async def test_agent_workflow_embeds_the_intent_and_offers_its_tools():
    provider = ScriptedProvider([text("Be concise.")])
    workflow = AgentWorkflow.from_config(provider, ScribeConfig(signer="Ops"))

    chunks = [c async for c in workflow.stream(Intent(text="write a function"))]

    assert chunks == ["Be concise."]
    assert workflow.signer == "Ops"
    call = provider.calls[0]
    assert call["system"] == OPTIMIZER_SYSTEM_PROMPT
    assert "'write a function'" in call["prompt"].content
    assert [t.name for t in call["tools"]] == ["Deconstructor", "PromptReviewer", "WebSearcher"]


async def test_agent_workflow_runs_deconstructor_through_the_loop():
    provider = ScriptedProvider(
        [
            [tool_call("d1", name="Deconstructor", text="write a function")],
            text("- goal: function"),
            text('{"goal": "Write a function", "constraints": "- typed"}'),
            text("Final prompt."),
        ]
    )
    workflow = AgentWorkflow.from_config(provider, ScribeConfig())

    chunks = [c async for c in workflow.stream(Intent(text="write a function"))]

    assert chunks == ["Final prompt."]
    spec_json = provider.calls[3]["prompt"].content
    assert Specification.model_validate_json(spec_json).goal == "Write a function"


async def test_staged_pipeline_runs_plan_draft_review():
    provider = ScriptedProvider(
        [
            text("  - typed\n- tested  "),
            text("Draft prompt."),
            text("Final ", "prompt."),
        ]
    )
    pipeline = StagedPipeline(provider, signer="Chief Prompt Officer")

    chunks = [c async for c in pipeline.stream(Intent(text="write a function"))]

    assert chunks == ["Final ", "prompt."]
    assert [call["system"] for call in provider.calls] == [
        PLANNER_SYSTEM_PROMPT,
        BUILDER_SYSTEM_PROMPT,
        CHIEF_SYSTEM_PROMPT,
    ]
    assert provider.calls[0]["prompt"].content == "write a function"
    assert "- typed\n- tested" in provider.calls[1]["prompt"].content
    assert "Draft prompt." in provider.calls[2]["prompt"].content
    assert all(call["tools"] == [] for call in provider.calls)


async def test_staged_phases_can_run_individually():
    provider = ScriptedProvider([text("- short"), text(" Draft. "), text("Reviewed.")])
    pipeline = StagedPipeline(provider, signer="Reviewer")

    spec = await pipeline.plan(Intent(text="summarize logs"))
    draft = await pipeline.draft(spec)
    artifact = await pipeline.review(spec, draft)

    assert spec == Specification(goal="summarize logs", constraints="- short")
    assert draft == "Draft."
    assert artifact == Artifact(system_prompt="Reviewed.", signed_by="Reviewer")
