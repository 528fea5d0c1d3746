"""Config Commands - CLI settings"""

import typer
from rich.console import Console

from ..utils.config_manager import config
from ..utils.formatting import print_error, print_success

console = Console()
app = typer.Typer(name="config", help="CLI configuration commands")


@app.command("show")
def show():
    """⚙️ Show the current configuration"""
    console.print(config.dump())


@app.command("get")
def get(key: str = typer.Argument(..., help="Key in dot notation, e.g. api.base_url")):
    """Get one configuration value"""
    value = config.get(key)
    if value is None:
        print_error(f"No configuration value for {key}")
        raise typer.Exit(1)
    console.print(value)


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Key in dot notation, e.g. api.base_url"),
    value: str = typer.Argument(..., help="New value"),
):
    """Set one configuration value"""
    stored = config.set(key, value)
    print_success(f"{key} = {stored!r}")


@app.command("reset")
def reset():
    """Reset the configuration to defaults"""
    config.reset()
    print_success("Configuration reset to defaults")
