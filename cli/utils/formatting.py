"""Rich Formatting Utilities for CLI Output"""

import json
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "running": "blue",
    "done": "green",
    "error": "red",
}


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def format_status(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def create_jobs_table(jobs: list[dict[str, Any]]) -> Table:
    """Create a formatted table for a list of jobs"""
    table = Table(title="Jobs", box=box.ROUNDED)

    table.add_column("ID", justify="right", style="cyan", no_wrap=True)
    table.add_column("Kind", justify="left", style="magenta")
    table.add_column("Status", justify="center")
    table.add_column("Created", justify="left", style="white")
    table.add_column("Error", justify="left", style="red")

    for job in jobs:
        table.add_row(
            str(job.get("id", "")),
            job.get("kind", ""),
            format_status(job.get("status", "")),
            job.get("created_at", "")[:19],
            _truncate(job.get("error_message") or "—", 60),
        )

    return table


def create_job_panel(job: dict[str, Any]) -> Panel:
    """Create a detailed panel for one job"""
    lines = [
        f"• Kind: [magenta]{job.get('kind')}[/magenta]",
        f"• Status: {format_status(job.get('status', ''))}",
        f"• Created: {job.get('created_at')}",
        f"• Updated: {job.get('updated_at')}",
        "",
        "[bold]Payload[/bold]",
        json.dumps(job.get("payload", {}), indent=2),
    ]
    if job.get("output") is not None:
        lines += ["", "[bold]Output[/bold]", _truncate(json.dumps(job["output"], indent=2), 2000)]
    if job.get("error_message"):
        lines += ["", f"[bold red]Error:[/bold red] {job['error_message']}"]

    return Panel("\n".join(lines), title=f"Job {job.get('id')}", border_style="cyan")


def create_stats_panel(stats: dict[str, Any]) -> Panel:
    """Create formatted panel for job statistics"""
    by_status = "\n".join(
        f"  {format_status(status)}: {count}"
        for status, count in sorted(stats.get("by_status", {}).items())
    )
    by_kind = "\n".join(
        f"  [magenta]{kind}[/magenta]: {count}"
        for kind, count in sorted(stats.get("by_kind", {}).items())
    )
    content = (
        f"📊 [bold blue]Total jobs:[/bold blue] {stats.get('total_jobs', 0)}\n"
        f"• Queue depth: [yellow]{stats.get('queue_depth', 0)}[/yellow]\n\n"
        f"[bold]By status[/bold]\n{by_status or '  —'}\n\n"
        f"[bold]By kind[/bold]\n{by_kind or '  —'}"
    )

    return Panel(content, title="Job Statistics", border_style="green")


def create_summary_panel(summary: dict[str, int]) -> Panel:
    """Create formatted panel for a runner summary"""
    content = "\n".join(
        f"• {key.replace('_', ' ').capitalize()}: [cyan]{value}[/cyan]"
        for key, value in summary.items()
    )
    return Panel(content, title="Runner Summary", border_style="green")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"
