"""
Output formatters for CLI commands (JSON and human-readable)
"""

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from zoomvault.models import LinkDescriptor, Recording

STATUS_STYLES = {
    "pending": "dim",
    "downloading": "blue",
    "completed": "green",
    "failed": "red",
}


class OutputFormatter:
    """Format output in different modes"""

    def __init__(self, mode: str = "human"):
        """
        Initialize formatter

        Args:
            mode: Output mode (human, json)
        """
        self.mode = mode.lower()
        self.console = Console()

    def output_recordings(self, recordings: list[Recording]) -> None:
        if self.mode == "json":
            self._output_json([record.to_dict() for record in recordings])
        else:
            self._output_human_recordings(recordings)

    def output_descriptor(self, descriptor: LinkDescriptor) -> None:
        if self.mode == "json":
            self._output_json(descriptor.to_dict())
            return
        table = Table(show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in descriptor.to_dict().items():
            table.add_row(key, value)
        self.console.print(table)

    def output_error(self, message: str, code: str | None = None) -> None:
        if self.mode == "json":
            error: dict[str, Any] = {"message": message}
            if code:
                error["code"] = code
            self._output_json({"status": "error", "error": error})
        else:
            self.console.print(f"[bold red]Error:[/bold red] {message}")

    def output_success(self, message: str) -> None:
        if self.mode == "json":
            self._output_json({"status": "success", "message": message})
        else:
            self.console.print(f"[bold green]✓[/bold green] {message}")

    def output_info(self, message: str) -> None:
        if self.mode == "json":
            self._output_json({"status": "info", "message": message})
        else:
            self.console.print(message)

    def _output_json(self, data: Any) -> None:
        print(json.dumps(data, indent=2, ensure_ascii=False))

    def _output_human_recordings(self, recordings: list[Recording]) -> None:
        if not recordings:
            self.console.print("[yellow]No recordings found[/yellow]")
            return

        table = Table(title="Zoom Recordings")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Title", style="green")
        table.add_column("Date", style="blue")
        table.add_column("Status")
        table.add_column("File", style="yellow")

        for record in recordings:
            style = STATUS_STYLES.get(record.status.value, "")
            table.add_row(
                str(record.id),
                record.title,
                record.date,
                f"[{style}]{record.status.value}[/{style}]" if style else record.status.value,
                record.filename or "-",
            )

        self.console.print(table)
