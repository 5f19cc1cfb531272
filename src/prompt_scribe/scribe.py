# scribe.py
# Caller-facing facade: get-or-compute artifacts keyed by ScopeId.
#
# The ScopeId alone is the cache key. On a hit the request text is ignored
# and the stored artifact is returned unchanged. Any read failure counts as
# a miss. A write failure after a successful computation never discards the
# result: it is logged and reported on Resolution.storage_error.

import asyncio
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import aclosing

from structlog.contextvars import bound_contextvars

from prompt_scribe.config import ScribeConfig
from prompt_scribe.errors import ArtifactUnavailable, StorageError
from prompt_scribe.models import Artifact, Intent, Resolution, ScopeId
from prompt_scribe.observability import get_logger
from prompt_scribe.provider import OpenAIChatProvider
from prompt_scribe.store import ArtifactStore, key_for
from prompt_scribe.workflow import AgentWorkflow, StagedPipeline, Workflow

logger = get_logger(__name__)


class PromptScribe:
    """
    Turns rough requests into signed system prompts, caching them on disk.

    Example:
        scribe = PromptScribe.from_env("./.prompts_cache")
        artifact = await scribe.resolve("Help users write Clap CLIs", ScopeId(101))
    """

    def __init__(self, workflow: Workflow, store: ArtifactStore) -> None:
        self._workflow = workflow
        self._store = store

    @classmethod
    def from_env(
        cls, cache_dir: str | None = None, staged: bool = False, **overrides
    ) -> "PromptScribe":
        """Wire config, provider, workflow and store from the environment."""
        config = ScribeConfig.from_env(**overrides)
        provider = OpenAIChatProvider.from_config(config)
        if staged:
            workflow: Workflow = StagedPipeline(provider, config.signer, config.round_timeout)
        else:
            workflow = AgentWorkflow.from_config(provider, config)
        return cls(workflow, ArtifactStore(cache_dir or config.cache_dir))

    @property
    def store(self) -> ArtifactStore:
        return self._store

    # ------------------------------------------------------------------
    # Uncached
    # ------------------------------------------------------------------

    async def optimize(self, request: str) -> Artifact:
        """Compute a fresh artifact for `request` without touching the store."""
        return await self._compute(Intent(text=request))

    # ------------------------------------------------------------------
    # Cache-aside
    # ------------------------------------------------------------------

    async def resolve(self, request: str, scope: ScopeId) -> Artifact:
        return (await self.lookup(request, scope)).artifact

    async def lookup(self, request: str, scope: ScopeId) -> Resolution:
        """resolve() with provenance: where the artifact came from, and any write failure."""
        intent = Intent(text=request)
        key = key_for(scope)

        with bound_contextvars(scope=scope):
            cached = await self._load(key)
            if cached is not None:
                return Resolution(artifact=cached, source="cache")

            artifact = await self._compute(intent)
            error = await self._persist(key, artifact)
            return Resolution(artifact=artifact, source="computed", storage_error=error)

    async def stream(self, request: str, scope: ScopeId) -> AsyncIterator[str]:
        """
        Streaming resolve. A hit yields the stored prompt once; a miss yields
        chunks as they arrive and persists the artifact when the stream ends.
        Stopping early persists nothing. Use stream_lookup() to learn where
        the artifact came from and whether persisting it failed.
        """
        async with aclosing(self.stream_lookup(request, scope)) as chunks:
            async for chunk in chunks:
                yield chunk

    def stream_lookup(self, request: str, scope: ScopeId) -> "ResolutionStream":
        """
        stream() with provenance. The request and scope are validated here;
        the returned stream's `resolution` is set once it is exhausted.

        Example:
            chunks = scribe.stream_lookup("write a function", ScopeId(7))
            async for chunk in chunks:
                print(chunk, end="")
            if chunks.resolution.storage_error:
                ...
        """
        intent = Intent(text=request)
        key = key_for(scope)
        return ResolutionStream(lambda outcome: self._relay(outcome, intent, key))

    def invalidate(self, scope: ScopeId) -> bool:
        """Drop the cached artifact for `scope`. Returns False if none existed."""
        return self._store.delete(key_for(scope))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _sign(self, text: str) -> Artifact:
        return Artifact(system_prompt=text.strip(), signed_by=self._workflow.signer)

    async def _compute(self, intent: Intent) -> Artifact:
        text = "".join([chunk async for chunk in self._workflow.stream(intent)])
        return self._sign(text)

    async def _relay(
        self, outcome: "ResolutionStream", intent: Intent, key: str
    ) -> AsyncGenerator[str, None]:
        cached = await self._load(key)
        if cached is not None:
            outcome.resolution = Resolution(artifact=cached, source="cache")
            yield cached.system_prompt
            return

        parts: list[str] = []
        async with aclosing(self._workflow.stream(intent)) as chunks:
            async for chunk in chunks:
                parts.append(chunk)
                yield chunk

        artifact = self._sign("".join(parts))
        error = await self._persist(key, artifact)
        outcome.resolution = Resolution(artifact=artifact, source="computed", storage_error=error)

    async def _load(self, key: str) -> Artifact | None:
        try:
            artifact = await asyncio.to_thread(self._store.get, key)
        except ArtifactUnavailable as exc:
            logger.info("cache_miss", key=key, reason=exc.message)
            return None
        logger.info("cache_hit", key=key)
        return artifact

    async def _persist(self, key: str, artifact: Artifact) -> str | None:
        try:
            await asyncio.to_thread(self._store.put, key, artifact)
        except StorageError as exc:
            logger.error("artifact_persist_failed", key=key, error=str(exc))
            return str(exc)
        logger.info("artifact_persisted", key=key)
        return None


class ResolutionStream:
    """
    Async iterator of prompt chunks from PromptScribe.stream_lookup().

    `resolution` stays None until the chunks are exhausted. A stream closed
    early never gets one, and nothing is persisted.
    """

    def __init__(
        self, relay: Callable[["ResolutionStream"], AsyncGenerator[str, None]]
    ) -> None:
        self.resolution: Resolution | None = None
        self._chunks = relay(self)

    def __aiter__(self) -> "ResolutionStream":
        return self

    async def __anext__(self) -> str:
        return await self._chunks.__anext__()

    async def aclose(self) -> None:
        await self._chunks.aclose()
