"""The rules command: print the rule catalogue."""

from typing import List, Optional

import typer
from rich.table import Table

from ..models import Category, EXIT_CONFIG
from ..rules import get_all_rules
from . import app
from ._common import console, err_console


@app.command()
def rules(
    rulesets: Optional[List[str]] = typer.Option(
        None,
        "-r",
        "--ruleset",
        help="Only list rules in this category; repeat for several",
    ),
):
    """List every built-in rule with its category, severity and fix support."""
    wanted = set()
    for name in rulesets or ():
        try:
            wanted.add(Category.parse(name))
        except ValueError as e:
            err_console.print(f"[red]Fatal configuration error:[/red] {e}")
            raise typer.Exit(EXIT_CONFIG)

    table = Table(title="hostguard rules", expand=False)
    table.add_column("Rule", style="yellow", no_wrap=True)
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Fix", justify="center")
    table.add_column("Description")

    for rule in get_all_rules():
        if wanted and rule.category not in wanted:
            continue
        table.add_row(
            rule.id,
            rule.category.value,
            rule.severity.label,
            "[green]yes[/green]" if rule.fixable else "[dim]no[/dim]",
            rule.description,
        )

    console.print(table)
