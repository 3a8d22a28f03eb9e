"""Terminal output formatting for the pyspwig CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Formats developer-facing messages for the terminal or as JSON lines."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit one JSON object per message instead of styled text
            quiet: Suppress info and success messages
            console: Console for regular output
            err_console: Console for errors
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def _emit_json(self, level: str, message: str, **extra: Any) -> None:
        payload = {"level": level, "message": message}
        payload.update(extra)
        self.console.print(json.dumps(payload), markup=False, soft_wrap=True)

    def info(self, message: str, **extra: Any) -> None:
        """Print an informational message."""
        if self.quiet:
            return
        if self.json_output:
            self._emit_json("info", message, **extra)
            return
        self.console.print(message)

    def success(self, message: str, **extra: Any) -> None:
        """Print a success message."""
        if self.quiet:
            return
        if self.json_output:
            self._emit_json("success", message, **extra)
            return
        self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str, **extra: Any) -> None:
        """Print a warning. Warnings are shown even in quiet mode."""
        if self.json_output:
            self._emit_json("warning", message, **extra)
            return
        self.console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str, **extra: Any) -> None:
        """Print an error to stderr."""
        if self.json_output:
            payload = {"level": "error", "message": message}
            payload.update(extra)
            self.err_console.print(json.dumps(payload), markup=False)
            return
        self.err_console.print(f"[red]Error: {message}[/red]")

    def print_json(self, data: Any) -> None:
        """Print arbitrary data as JSON."""
        self.console.print(json.dumps(data, indent=2), markup=False)

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column summary table.

        Args:
            title: Table title
            rows: (label, value) pairs
        """
        if self.json_output:
            self.print_json({"title": title, "items": dict(rows)})
            return
        if self.quiet:
            return

        table = Table(title=title, show_header=False, title_justify="left")
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for label, value in rows:
            table.add_row(label, value)
        self.console.print(table)
