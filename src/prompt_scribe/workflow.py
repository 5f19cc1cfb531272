# workflow.py
# Engines that turn an Intent into system prompt text.
#
# AgentWorkflow lets the prompt officer agent drive its own tools through the
# orchestrator. StagedPipeline runs three fixed tool-less phases
# (plan → draft → review). Both stream text; the facade signs and stores it.

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import aclosing

from prompt_scribe.config import DEFAULT_SIGNER, ScribeConfig
from prompt_scribe.models import Artifact, Intent, Specification
from prompt_scribe.orchestrator import Orchestrator
from prompt_scribe.prompts import (
    BUILDER_SYSTEM_PROMPT,
    CHIEF_SYSTEM_PROMPT,
    DRAFT_INPUT,
    FINAL_REVIEW_INPUT,
    OPTIMIZER_SYSTEM_PROMPT,
    PLANNER_SYSTEM_PROMPT,
    WORKFLOW_PROMPT,
)
from prompt_scribe.provider import CompletionProvider
from prompt_scribe.registry import ToolRegistry
from prompt_scribe.tools import default_tools


class Workflow(ABC):
    signer: str

    @abstractmethod
    def stream(self, intent: Intent) -> AsyncIterator[str]:
        """Yield the final system prompt text incrementally."""


class AgentWorkflow(Workflow):
    """The prompt officer agent with Deconstructor, PromptReviewer and WebSearcher."""

    def __init__(self, orchestrator: Orchestrator, signer: str = DEFAULT_SIGNER) -> None:
        self._orchestrator = orchestrator
        self.signer = signer

    @classmethod
    def from_config(cls, provider: CompletionProvider, config: ScribeConfig) -> "AgentWorkflow":
        registry = ToolRegistry(default_tools(provider, config), tool_timeout=config.tool_timeout)
        orchestrator = Orchestrator(
            provider,
            registry,
            system=OPTIMIZER_SYSTEM_PROMPT,
            max_rounds=config.max_rounds,
            round_timeout=config.round_timeout,
        )
        return cls(orchestrator, config.signer)

    async def stream(self, intent: Intent) -> AsyncIterator[str]:
        prompt = WORKFLOW_PROMPT.format(intent=intent.text)
        async with aclosing(self._orchestrator.stream(prompt)) as chunks:
            async for chunk in chunks:
                yield chunk


class StagedPipeline(Workflow):
    """
    Fixed three-phase pipeline without tools.

    plan:   architect lists constraints and risks for the intent
    draft:  prompt engineer writes a system prompt from goal + constraints
    review: chief officer hardens the draft into the final prompt
    """

    def __init__(
        self,
        provider: CompletionProvider,
        signer: str = DEFAULT_SIGNER,
        round_timeout: float | None = None,
    ) -> None:
        self._provider = provider
        self.signer = signer
        self._round_timeout = round_timeout

    def _agent(self, system: str) -> Orchestrator:
        return Orchestrator(
            self._provider, system=system, max_rounds=1, round_timeout=self._round_timeout
        )

    async def plan(self, intent: Intent) -> Specification:
        constraints = await self._agent(PLANNER_SYSTEM_PROMPT).run(intent.text)
        return Specification(goal=intent.text, constraints=constraints.strip())

    async def draft(self, spec: Specification) -> str:
        prompt = DRAFT_INPUT.format(goal=spec.goal, constraints=spec.constraints)
        return (await self._agent(BUILDER_SYSTEM_PROMPT).run(prompt)).strip()

    async def review(self, spec: Specification, draft: str) -> Artifact:
        text = "".join([chunk async for chunk in self._review_stream(spec, draft)])
        return Artifact(system_prompt=text.strip(), signed_by=self.signer)

    def _review_stream(self, spec: Specification, draft: str) -> AsyncIterator[str]:
        prompt = FINAL_REVIEW_INPUT.format(
            goal=spec.goal, constraints=spec.constraints, draft=draft
        )
        return self._agent(CHIEF_SYSTEM_PROMPT).stream(prompt)

    async def stream(self, intent: Intent) -> AsyncIterator[str]:
        spec = await self.plan(intent)
        draft = await self.draft(spec)
        async with aclosing(self._review_stream(spec, draft)) as chunks:
            async for chunk in chunks:
                yield chunk
