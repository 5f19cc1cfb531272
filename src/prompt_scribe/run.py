# run.py
# Command line entry point: argument parsing and wiring, nothing else.
#
# Set OPENROUTER_API_KEY (or point SCRIBE_BASE_URL / SCRIBE_API_KEY_ENV at
# another OpenAI-compatible endpoint) before running.

import argparse
import asyncio

from prompt_scribe import display
from prompt_scribe.config import ScribeConfig
from prompt_scribe.errors import ScribeError
from prompt_scribe.models import ScopeId
from prompt_scribe.observability import setup_logging
from prompt_scribe.scribe import PromptScribe
from prompt_scribe.store import key_for

DEMO_REQUEST = "I want an AI assistant that helps users write Clap CLI tools in Rust."
DEMO_SCOPE = 101


async def _resolve(scribe: PromptScribe, request: str, scope: ScopeId) -> int:
    key = key_for(scope)
    display.request_received(request, scope)

    if scribe.store.contains(key):
        display.cache_hit(scribe.store.path_for(key))
    else:
        display.cache_miss()

    chunks = scribe.stream_lookup(request, scope)
    async for chunk in chunks:
        display.stream_chunk(chunk)

    resolution = chunks.resolution
    if resolution.storage_error:
        display.not_persisted(resolution.storage_error)
    display.final_artifact(resolution.artifact)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="prompt-scribe",
        description="Turn a rough request into a polished, cached system prompt.",
    )
    parser.add_argument("request", nargs="*", help="Request text (a demo request if omitted).")
    parser.add_argument("--scope", type=int, default=DEMO_SCOPE, help="Cache scope id.")
    parser.add_argument("--cache-dir", default=None, help="Artifact cache directory.")
    parser.add_argument("--staged", action="store_true", help="Use the fixed three-phase pipeline.")
    parser.add_argument("--refresh", action="store_true", help="Drop the cached artifact first.")
    args = parser.parse_args(argv)

    request = " ".join(args.request) or DEMO_REQUEST

    try:
        config = ScribeConfig.from_env()
        setup_logging(config.log_level, config.log_format, config.log_dir)
        scribe = PromptScribe.from_env(args.cache_dir, staged=args.staged)
        display.banner(config.model, scribe.store.root)
        if args.refresh:
            scribe.invalidate(ScopeId(args.scope))
        return asyncio.run(_resolve(scribe, request, ScopeId(args.scope)))
    except ScribeError as exc:
        display.halt(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
