# display.py
# All terminal output for the prompt-scribe command.
#
# Library code never prints; it logs. This module owns presentation for
# run.py only.
#
# Colour language:
#   cyan   : routing events (request, cache lookups)
#   blue   : streamed model output
#   green  : success / final artifact
#   yellow : warnings (artifact not persisted)
#   red    : failures and halts

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from prompt_scribe.models import Artifact

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _mono(value: str, max_len: int = 120) -> str:
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


# ---------------------------------------------------------------------------
# Request lifecycle
# ---------------------------------------------------------------------------


def banner(model: str, cache_dir: str) -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]prompt-scribe[/bold cyan]\n"
            "[dim]Rough request in, production system prompt out[/dim]\n\n"
            f"[dim]Model     :[/dim] [white]{model}[/white]\n"
            f"[dim]Cache dir :[/dim] [white]{cache_dir}[/white]",
            border_style="cyan",
            padding=(1, 4),
        )
    )


def request_received(request: str, scope: int) -> None:
    console.print()
    console.print(Rule(f"[cyan]SCOPE {scope}[/cyan]", style="cyan"))
    console.print(
        Panel(
            f"[white]{_mono(request, 400)}[/white]",
            title=_label("REQUEST", "cyan"),
            border_style="cyan",
            padding=(0, 2),
        )
    )


def cache_hit(path: str) -> None:
    console.print()
    console.print(_label("CACHE", "cyan"), f"[cyan] Hit, loading {path}[/cyan]")


def cache_miss() -> None:
    console.print()
    console.print(_label("CACHE", "cyan"), "[cyan] Miss, running the prompt officer…[/cyan]")
    console.print()


def stream_chunk(text: str) -> None:
    console.print(text, end="", style="blue", markup=False, highlight=False)


# ---------------------------------------------------------------------------
# Outcome
# ---------------------------------------------------------------------------


def final_artifact(artifact: Artifact) -> None:
    console.print()
    console.print(
        Panel(
            Text(artifact.system_prompt),
            title=_label("SYSTEM PROMPT", "green"),
            subtitle=f"[dim]signed by {artifact.signed_by}[/dim]",
            border_style="green",
            padding=(1, 2),
        )
    )
    console.print()


def not_persisted(reason: str) -> None:
    console.print(
        Panel(
            f"[white]{reason}[/white]",
            title=_label("NOT CACHED", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def halt(reason: str) -> None:
    console.print()
    console.print(
        Panel(
            f"[bold white]{reason}[/bold white]",
            title=_label("HALT", "red"),
            border_style="red",
            padding=(0, 2),
        )
    )
    console.print()
