"""Main entry point for the ProTask CLI."""

import typer

from protask import __version__
from protask.commands import config_command, view_command
from protask.services.config_service import get_config_service
from protask.utils.logger import set_level
from protask.utils.ui.console import get_console

app = typer.Typer(
    name="protask",
    help="Task views and statistics for ProTask",
    no_args_is_help=True,
)

console = get_console()

app.add_typer(config_command.app, name="config", help="Configuration management")
app.command("view")(view_command.view_tasks)
app.command("stats")(view_command.show_stats)


@app.callback()
def main() -> None:
    """Apply the configured log level before any command runs."""
    try:
        set_level(get_config_service().config.logging.level)
    except RuntimeError as e:
        console.print(f"[yellow]Using default log level: {e}[/yellow]")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"[bold]ProTask[/bold] version [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
