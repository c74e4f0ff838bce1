"""Shared CLI helpers."""

from pathlib import Path
from typing import Any, List, Optional

from rich.console import Console

from ..config import AnalysisConfig, load_config

console = Console()
err_console = Console(stderr=True)


def resolve_config(
    config: Optional[Path] = None,
    rulesets: Optional[List[str]] = None,
    fix: bool = False,
    dry_run: bool = False,
    fail_on: Optional[str] = None,
    workers: Optional[int] = None,
    output_format: Optional[str] = None,
    disabled: Optional[List[str]] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> AnalysisConfig:
    """Build configuration from CLI options. Unset options leave file and env values alone."""
    overrides: dict[str, Any] = {}
    if rulesets:
        overrides["rulesets"] = tuple(rulesets)
    if fix or dry_run:
        overrides["mode"] = "fix"
    if dry_run:
        overrides["dry_run"] = True
    if fail_on is not None:
        overrides["fail_on"] = fail_on
    if workers is not None:
        overrides["max_workers"] = workers
    if output_format is not None:
        overrides["output_format"] = output_format
    if disabled:
        overrides["disabled_rules"] = tuple(disabled)
    if verbose:
        overrides["verbose"] = True
    if quiet:
        overrides["quiet"] = True
    return load_config(config_file=config, **overrides)
