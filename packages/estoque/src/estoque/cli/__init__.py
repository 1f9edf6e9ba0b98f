"""Estoque CLI."""

import typer

from estoque.cli._console import console
from estoque.cli.dashboard import dashboard
from estoque.cli.health import health

app = typer.Typer(
    name="estoque",
    help="Inventory dashboard client.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        from estoque import __version__

        console.print(f"[bold]estoque[/bold] [dim]{__version__}[/dim]")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version",
    ),
) -> None:
    """Resilient access to the inventory dashboard metrics."""


# Register commands
app.command()(dashboard)
app.command()(health)
