"""The check command: analyse files and optionally fix them."""

import threading
from pathlib import Path
from typing import List, Optional

import click
import typer

from ..api import run
from ..exceptions import ConfigurationError, HostguardError, InternalInvariantViolation
from ..formatters import RichFormatter, get_formatter
from ..logging_config import setup_logging, verbosity_from_flags
from ..models import EXIT_CONFIG, EXIT_INTERNAL
from . import app
from ._common import console, err_console, resolve_config

EXIT_INTERRUPTED = 130


@app.command()
def check(
    paths: Optional[List[Path]] = typer.Argument(
        None,
        help="Files or directories to analyse (default: current directory)",
    ),
    rulesets: Optional[List[str]] = typer.Option(
        None,
        "-r",
        "--ruleset",
        help="Category to enable; repeat for several (default: all)",
    ),
    fix: bool = typer.Option(
        False,
        "--fix",
        help="Apply available fixes and write them back",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Compute fixes and show diffs without writing (implies --fix)",
    ),
    fail_on: Optional[str] = typer.Option(
        None,
        "--fail-on",
        help="Lowest severity that fails the run",
        click_type=click.Choice(["error", "warning", "info"], case_sensitive=False),
    ),
    workers: Optional[int] = typer.Option(
        None,
        "-w",
        "--workers",
        help="Parallel workers (default: host parallelism)",
        min=1,
    ),
    output_format: Optional[str] = typer.Option(
        None,
        "-f",
        "--format",
        help="Output format",
        click_type=click.Choice(["human", "json", "github"], case_sensitive=False),
    ),
    config: Optional[Path] = typer.Option(
        None,
        "-c",
        "--config",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    disabled: Optional[List[str]] = typer.Option(
        None,
        "--disable",
        help="Rule id to switch off; repeat for several",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file", hidden=True),
):
    """
    Analyse extension sources and report diagnostics.

    Exit status: 0 clean, 1 diagnostics at or above --fail-on, 2 internal
    failure (unreadable file, engine error), 3 configuration error,
    130 interrupted.

    [bold cyan]Examples:[/bold cyan]

      hostguard check src/

      hostguard check src/Commands --fix

      hostguard check src/ --dry-run -f json --fail-on warning
    """
    log_path = str(log_file) if log_file else None
    logger = setup_logging(verbosity_from_flags(verbose, quiet), log_path)
    cancel = threading.Event()

    try:
        settings = resolve_config(
            config=config,
            rulesets=rulesets,
            fix=fix,
            dry_run=dry_run,
            fail_on=fail_on.lower() if fail_on else None,
            workers=workers,
            output_format=output_format.lower() if output_format else None,
            disabled=disabled,
            verbose=verbose,
            quiet=quiet,
        )
        logger = setup_logging(settings.verbosity, log_path)
        batch = run(settings, [str(p) for p in paths] if paths else ["."], cancel=cancel)

        if settings.output_format == "human":
            RichFormatter(console=console).render(batch)
        else:
            get_formatter(settings.output_format).render(batch)

        if batch.cancelled:
            raise typer.Exit(EXIT_INTERRUPTED)
        raise typer.Exit(batch.exit_code(settings.fail_on_severity))

    except typer.Exit:
        raise

    except ConfigurationError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        err_console.print(f"[red]Fatal configuration error:[/red] {e}")
        raise typer.Exit(EXIT_CONFIG)

    except InternalInvariantViolation as e:
        logger.error(f"{e.code.value} {e}")
        err_console.print(f"[red]Internal error:[/red] {e}")
        raise typer.Exit(EXIT_INTERNAL)

    except HostguardError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(EXIT_INTERNAL)

    except KeyboardInterrupt:
        cancel.set()
        logger.info("Analysis interrupted by user")
        err_console.print("\n[yellow]Analysis interrupted[/yellow]")
        raise typer.Exit(EXIT_INTERRUPTED)
