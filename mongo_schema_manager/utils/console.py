"""
Rich console utilities for dual-mode CLI output.

Provides readable terminal output for humans and structured JSON for
automation. All output functions adapt to the global output_mode setting.

This module provides:
- OutputMode: Class to manage output format (text/json/quiet)
- spinner(): context manager for long-running steps
- Output functions: success(), error(), warning(), info()
- Display functions: print_banner(), print_transitions_table(),
  print_plan_table(), print_final_summary()

Human Mode (--format text):
    - Rich spinners, colored tables and panels

Agent Mode (--format json):
    - Structured JSON output to stdout
    - No ANSI codes or spinners

Quiet Mode (--quiet):
    - Tab-separated values, no decorations
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table


class OutputMode:
    """
    Output mode configuration for dual-mode CLI.

    Attributes:
        format: Output format - "text" (human) or "json" (agent)
        quiet: If True, suppress non-essential output
        _json_buffer: Internal buffer for JSON output in agent mode
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        """
        Initialize output mode.

        Raises:
            ValueError: If format_type is not "text" or "json"
        """
        if format_type not in ["text", "json"]:
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        return self.format == "text"

    def is_agent(self) -> bool:
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """Add key-value pair to the JSON buffer flushed by flush_json()."""
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """
        Output buffered JSON to stdout and clear buffer.

        Only outputs in agent mode. In human mode, this is a no-op.
        """
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2, default=str)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()


# Global output mode instance (set by CLI flags)
output_mode = OutputMode()

# Global Rich console instances for human mode
console = Console()  # stdout
console_err = Console(stderr=True)  # stderr


@contextmanager
def spinner(message: str):
    """
    Show a spinner during an operation in human mode; silent otherwise.

    Examples:
        >>> with spinner("Connecting to MongoDB..."):
        ...     store.connect()
    """
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def success(message: str) -> None:
    """Green checkmark in human mode; buffered status in agent mode."""
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[green]✓[/green] {message}")
    elif output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)


def error(message: str) -> None:
    """
    Print an error message.

    Human mode: Red X with message to stderr (also in quiet mode)
    Agent mode: Buffer to JSON
    """
    if output_mode.is_human():
        console_err.print(f"[red]✗[/red] {message}", style="red")
    elif output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)


def warning(message: str) -> None:
    if output_mode.is_human():
        if not output_mode.quiet:
            console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")
    elif output_mode.is_agent():
        output_mode.add_json("warning", message)


def info(message: str) -> None:
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def print_banner(version: str) -> None:
    """Print the startup banner (human mode only)."""
    if not output_mode.is_human() or output_mode.quiet:
        return

    banner = f"""
[bold cyan]╔{"═" * 39}╗
║   Mongo Schema Manager v{version:<13} ║
║   Versioned schemas for MongoDB       ║
╚{"═" * 39}╝[/bold cyan]
"""

    console.print(banner)


def print_transitions_table(transitions: list[dict]) -> None:
    """
    Print applied version transitions.

    Expected dict keys: collection, from_version, to_version, steps (list).

    Human mode: Rich table
    Agent mode: Buffer as JSON array under "transitions"
    Quiet mode: collection, from, to (tab-separated), one line each
    """
    if output_mode.is_agent():
        output_mode.add_json("transitions", transitions)
        return

    if output_mode.quiet:
        for item in transitions:
            print(f"{item['collection']}\t{item['from_version']}\t{item['to_version']}")
        return

    if not transitions:
        return

    table = Table(title="Applied Versions", box=box.ROUNDED)
    table.add_column("Collection", style="cyan", no_wrap=True)
    table.add_column("From", style="magenta")
    table.add_column("To", style="green")
    table.add_column("Steps", justify="right")

    for item in transitions:
        table.add_row(
            item["collection"],
            item["from_version"],
            item["to_version"],
            str(len(item.get("steps", []))),
        )

    console.print(table)


def print_plan_table(plans: list[dict]) -> None:
    """
    Print stored version markers and pending versions per collection.

    Expected dict keys: collection, current_version, pending (list of str).
    """
    if output_mode.is_agent():
        output_mode.add_json("collections", plans)
        return

    if output_mode.quiet:
        for plan in plans:
            print(f"{plan['collection']}\t{plan['current_version']}\t{','.join(plan['pending'])}")
        return

    table = Table(title="Collection Status", box=box.ROUNDED)
    table.add_column("Collection", style="cyan", no_wrap=True)
    table.add_column("Current", style="magenta")
    table.add_column("Pending")

    for plan in plans:
        pending = ", ".join(plan["pending"])
        table.add_row(
            plan["collection"],
            plan["current_version"],
            f"[yellow]{pending}[/yellow]" if pending else "[green]up to date[/green]",
        )

    console.print(table)


def print_final_summary(
    collections: int, applied: int, enumerator_snapshots: int, duration_seconds: float
) -> None:
    """
    Print final run statistics.

    Human mode: Rich panel
    Agent mode: Flush all buffered JSON including these final stats
    Quiet mode: Silent (transitions were already printed)
    """
    if output_mode.is_agent():
        output_mode.add_json("collections_processed", collections)
        output_mode.add_json("versions_applied", applied)
        output_mode.add_json("enumerator_snapshots", enumerator_snapshots)
        output_mode.add_json("duration_seconds", round(duration_seconds, 3))
        output_mode.flush_json()
        return

    if output_mode.quiet:
        return

    summary_text = f"""
[bold]Collections:[/bold] {collections}
[bold]Versions applied:[/bold] {applied}
[bold]Enumerator snapshots written:[/bold] {enumerator_snapshots}
[bold]Duration:[/bold] {duration_seconds:.2f}s
"""

    panel = Panel(
        summary_text.strip(),
        title="[bold green]✓ Processing completed successfully[/bold green]",
        border_style="green",
        box=box.ROUNDED,
    )
    console.print(panel)
