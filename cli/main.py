"""Job Queue CLI - Main Entry Point"""

from importlib.metadata import PackageNotFoundError, version

import typer
from rich.console import Console
from rich.panel import Panel

from .client.endpoints import JobQueueClient, JobQueueError
from .commands import config, jobs
from .utils.config_manager import config as config_manager
from .utils.formatting import print_error, print_info

console = Console()

app = typer.Typer(
    name="jobqueue",
    help="Enqueue, inspect and run jobs of the Job Queue service",
    rich_markup_mode="rich",
    no_args_is_help=True,
)
app.add_typer(jobs.app, name="jobs")
app.add_typer(config.app, name="config")


def _version_callback(show: bool) -> None:
    if not show:
        return
    try:
        installed = version("jobqueue")
    except PackageNotFoundError:
        installed = "unknown"
    console.print(f"jobqueue {installed}")
    raise typer.Exit()


@app.callback()
def main(
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the CLI version and exit",
    ),
):
    """Job Queue CLI"""


@app.command()
def status():
    """📊 Check API, runner and queue status"""
    base_url = config_manager.get("api.base_url")
    print_info(f"Checking connection to: {base_url}")

    try:
        with JobQueueClient(base_url) as client:
            health = client.health_check()
            runner = client.runner_status()
    except JobQueueError as e:
        print_error(f"Failed to connect: {e}")
        console.print(Panel(
            f"🚫 [red]Connection Failed[/red]\n\n"
            f"No Job Queue API answered at [blue]{base_url}[/blue].\n"
            f"Point the CLI at another server with:\n"
            f"[cyan]jobqueue config set api.base_url <url>[/cyan]",
            title="Connection Error",
            border_style="red",
        ))
        raise typer.Exit(1)

    queue = health.get("runner") or {}
    runner_state = "[green]running[/green]" if runner.get("running") else "[yellow]idle[/yellow]"
    kinds = ", ".join(runner.get("registered_kinds", [])) or "none"
    console.print(Panel(
        f"🚀 [green]Connected Successfully![/green]\n\n"
        f"• Version: [cyan]{health.get('version', 'unknown')}[/cyan]\n"
        f"• Environment: [yellow]{health.get('environment', 'unknown')}[/yellow]\n"
        f"• Runner: {runner_state} "
        f"({runner.get('active_jobs', 0)}/{runner.get('max_concurrent_jobs', '?')} jobs, "
        f"{runner.get('idle_mode', '?')} mode)\n"
        f"• Queue: [yellow]{queue.get('pending_jobs', 0)}[/yellow] pending, "
        f"[blue]{queue.get('running_jobs', 0)}[/blue] running\n"
        f"• Handlers: [magenta]{kinds}[/magenta]",
        title="System Status",
        border_style="green",
    ))


if __name__ == "__main__":
    app()
