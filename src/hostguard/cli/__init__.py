"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="hostguard",
    help="hostguard - thread-affinity, async-safety and theming checks for host-framework extensions",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold cyan]hostguard[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit(0)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """
    Static analysis and autofix for host-framework extension code.

    [bold cyan]Examples:[/bold cyan]

      hostguard check src/

      hostguard check src/ --fix --dry-run

      hostguard check src/ -r Threading -r Reliability -f json

      hostguard rules
    """


# Import subcommands to register them
from .check import check as _check  # noqa: F401, E402
from .rules import rules as _rules  # noqa: F401, E402
