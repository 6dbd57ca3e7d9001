"""Terminal output for the aibridge CLI.

All terminal output flows through this module. Other CLI modules import the
helpers here rather than printing directly.
"""

from __future__ import annotations

import logging
import time

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.table import Table
from rich.theme import Theme

from aibridge.services.providers_base import TokenUsage

_theme = Theme(
    {
        "info": "cyan",
        "success": "bold green",
        "error": "bold red",
        "error.detail": "red",
        "warning": "bold yellow",
        "muted": "dim",
        "accent": "bold white",
        "model": "bold cyan",
        "stat": "dim",
    }
)

console = Console(theme=_theme, highlight=False)

_SEP = "  "


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )


def print_banner(provider: str, model: str, key_set: bool) -> None:
    key_dot = "[success]●[/]" if key_set else "[error]○[/]"
    console.print(f"[accent]aibridge[/]  [model]{provider}[/] [muted]/[/] [info]{model}[/]  {key_dot}")
    console.print()


def print_response(text: str) -> None:
    console.print(Markdown(text) if text.strip() else "[muted][empty response][/]")


def print_response_footer(usage: TokenUsage | None = None, elapsed: float = 0.0, finish_reason: str | None = None) -> None:
    parts: list[str] = []
    if usage:
        parts.append(f"▲ {usage.prompt_tokens:,}")
        parts.append(f"▼ {usage.completion_tokens:,}")
    if finish_reason:
        parts.append(finish_reason)
    if elapsed > 0:
        parts.append(f"{elapsed:.1f}s")

    console.print()
    if parts:
        console.print(f"[stat]{_SEP.join(parts)}[/]")


class StreamingDisplay:
    """Prints tokens as they arrive and keeps the accumulated text."""

    def __init__(self, target_console: Console | None = None) -> None:
        self._console = target_console or console
        self._buffer: list[str] = []
        self._start = 0.0

    def start(self) -> None:
        self._buffer.clear()
        self._start = time.monotonic()

    def token(self, text: str) -> None:
        self._buffer.append(text)
        self._console.out(text, end="", highlight=False)

    def finish(self) -> None:
        self._console.out("")

    @property
    def text(self) -> str:
        return "".join(self._buffer)

    @property
    def elapsed(self) -> float:
        if self._start == 0.0:
            return 0.0
        return time.monotonic() - self._start


def print_providers(rows: list[tuple[str, str, bool, bool]]) -> None:
    """Render (provider, default model, needs key, key configured) rows."""
    table = Table(show_header=True, header_style="accent", box=None, padding=(0, 2))
    table.add_column("provider", style="model")
    table.add_column("default model")
    table.add_column("needs key")
    table.add_column("key")
    for provider, model, needs_key, has_key in rows:
        table.add_row(
            provider,
            model,
            "yes" if needs_key else "no",
            "[success]set[/]" if has_key else ("[error]missing[/]" if needs_key else "[muted]-[/]"),
        )
    console.print(table)


def print_error(title: str, detail: str | None = None, suggestion: str | None = None) -> None:
    """Print a structured, actionable error message."""
    console.print(f"[error]✘ {title}[/]")
    if detail:
        console.print(f"  [error.detail]{detail}[/]")
    if suggestion:
        console.print(f"  [muted]→ {suggestion}[/]")


def print_info(message: str) -> None:
    console.print(f"[info]{message}[/]")
