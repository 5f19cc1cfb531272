# tools.py
# Built-in tools available to the prompt officer agent.
#
# Deconstructor and PromptReviewer run nested model conversations of their
# own; WebSearcher queries a search backend. None of them touch the calling
# conversation: they return text and the orchestrator records it.

import asyncio

import httpx

from prompt_scribe.config import ScribeConfig, require_env
from prompt_scribe.errors import ConfigurationError, ToolFailure
from prompt_scribe.extraction import extract
from prompt_scribe.models import Artifact, Intent, ReviewRequest, Specification, Webquery
from prompt_scribe.observability import get_logger
from prompt_scribe.orchestrator import Orchestrator
from prompt_scribe.prompts import (
    ARCHITECT_SYSTEM_PROMPT,
    REVIEW_INPUT,
    REVIEWER_SYSTEM_PROMPT,
)
from prompt_scribe.provider import CompletionProvider
from prompt_scribe.registry import Tool, ToolRegistry

logger = get_logger(__name__)

SERPER_URL = "https://google.serper.dev/search"


# ---------------------------------------------------------------------------
# Web search
# ---------------------------------------------------------------------------


def _search_duckduckgo(query: str, max_results: int) -> list[dict]:
    from ddgs import DDGS

    # Coerce the generator to a list to ensure actual execution
    results = list(DDGS().text(query, max_results=max_results))
    return [
        {"title": r.get("title", "No Title"), "body": r.get("body", ""), "href": r.get("href", "")}
        for r in results
    ]


def _format_results(results: list[dict]) -> str:
    lines = []
    for r in results:
        lines.append(f"[{r['title']}]\n{r['body']}\nSource: {r['href']}")
    return "\n\n".join(lines)


class WebSearcher(Tool):
    """Finds best practices and domain knowledge on the web."""

    name = "WebSearcher"
    description = (
        "A research tool. Use this to find best practices, domain-specific "
        "knowledge, or to verify assumptions about the user's goal."
    )
    args_model = Webquery

    def __init__(
        self,
        backend: str = "duckduckgo",
        max_results: int = 4,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if backend not in ("duckduckgo", "serper"):
            raise ConfigurationError(f"Unknown search backend {backend!r}")
        self._backend = backend
        self._max_results = max_results
        self._api_key = api_key
        self._http_client = http_client

    async def run(self, args: Webquery) -> str:
        query = args.query.strip()
        if not query:
            raise ToolFailure(self.name, "no query provided")

        if self._backend == "serper":
            results = await self._search_serper(query)
        else:
            try:
                results = await asyncio.to_thread(_search_duckduckgo, query, self._max_results)
            except Exception as exc:
                raise ToolFailure(self.name, f"upstream query failed: {exc}") from exc

        if not results:
            return "No results found."
        return _format_results(results)

    async def _search_serper(self, query: str) -> list[dict]:
        try:
            api_key = self._api_key or require_env("SERPER_API_KEY")
        except ConfigurationError as exc:
            raise ToolFailure(self.name, f"missing required credential: {exc}") from exc

        client = self._http_client or httpx.AsyncClient(timeout=10)
        try:
            response = await client.post(
                SERPER_URL,
                headers={"X-API-KEY": api_key},
                json={"q": query, "num": self._max_results},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ToolFailure(self.name, f"upstream query failed: {exc}") from exc
        finally:
            if self._http_client is None:
                await client.aclose()

        return [
            {"title": r.get("title", "No Title"), "body": r.get("snippet", ""), "href": r.get("link", "")}
            for r in payload.get("organic", [])[: self._max_results]
        ]


# ---------------------------------------------------------------------------
# Model-backed tools
# ---------------------------------------------------------------------------


class Deconstructor(Tool):
    """
    Analyzes a raw request and returns its Specification as JSON.

    A nested architect conversation lists goal, constraints and risks; an
    extraction round then restates that analysis as a Specification.
    """

    name = "Deconstructor"
    description = (
        "Takes a raw prompt and gives back its Specification, including the "
        "goal and the constraints."
    )
    args_model = Intent

    def __init__(
        self,
        provider: CompletionProvider,
        max_rounds: int = 10,
        round_timeout: float | None = None,
    ) -> None:
        self._provider = provider
        self._max_rounds = max_rounds
        self._round_timeout = round_timeout

    async def run(self, args: Intent) -> str:
        architect = Orchestrator(
            self._provider,
            system=ARCHITECT_SYSTEM_PROMPT,
            max_rounds=self._max_rounds,
            round_timeout=self._round_timeout,
        )
        analysis = await architect.run(args.text)
        spec = await extract(self._provider, Specification, analysis, self._round_timeout)
        logger.debug("specification_extracted", goal=spec.goal)
        return spec.model_dump_json()


class PromptReviewer(Tool):
    """Critiques a draft against its specification and returns an improved Artifact as JSON."""

    name = "PromptReviewer"
    description = (
        "Takes a raw prompt with its Specification (goal and constraints), "
        "evaluates it critically and returns an improved system prompt."
    )
    args_model = ReviewRequest

    def __init__(
        self,
        provider: CompletionProvider,
        searcher: WebSearcher | None = None,
        max_rounds: int = 10,
        round_timeout: float | None = None,
        tool_timeout: float | None = None,
    ) -> None:
        self._provider = provider
        self._registry = ToolRegistry([searcher or WebSearcher()], tool_timeout=tool_timeout)
        self._max_rounds = max_rounds
        self._round_timeout = round_timeout

    async def run(self, args: ReviewRequest) -> str:
        reviewer = Orchestrator(
            self._provider,
            self._registry,
            system=REVIEWER_SYSTEM_PROMPT,
            max_rounds=self._max_rounds,
            round_timeout=self._round_timeout,
        )
        review = await reviewer.run(
            REVIEW_INPUT.format(
                goal=args.spec.goal,
                constraints=args.spec.constraints,
                draft=args.intent.text,
            )
        )
        artifact = await extract(self._provider, Artifact, review, self._round_timeout)
        logger.debug("review_extracted", signed_by=artifact.signed_by)
        return artifact.model_dump_json()


def default_tools(provider: CompletionProvider, config: ScribeConfig) -> list[Tool]:
    """The prompt officer's toolset, configured from `config`."""
    searcher = WebSearcher(backend=config.search_backend)
    return [
        Deconstructor(provider, config.max_rounds, config.round_timeout),
        PromptReviewer(
            provider, searcher, config.max_rounds, config.round_timeout, config.tool_timeout
        ),
        searcher,
    ]
