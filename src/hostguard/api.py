"""Public API for hostguard.

This module provides the main entry point for analysis. Users should call
analyze() instead of building an Analyzer by hand.

Example:
    >>> from hostguard import analyze
    >>>
    >>> # Simple usage
    >>> batch = analyze("src/MyExtension")
    >>>
    >>> # With customization
    >>> batch = analyze(
    ...     ["src/MyExtension", "src/Shared/Helpers.cs"],
    ...     rulesets=["Threading", "Reliability"],
    ...     mode="fix",
    ...     dry_run=True,
    ... )
    >>> batch.exit_code()
    1
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional, Sequence, Union

from .config import AnalysisConfig, load_config
from .driver import Analyzer
from .file_ops import collect_files
from .logging_config import get_logger
from .models import BatchResult

logger = get_logger(__name__)


def analyze(
    paths: Union[str, Path, Sequence[Union[str, Path]]] = ".",
    config_file: Optional[Path] = None,
    cancel: Optional[threading.Event] = None,
    **overrides,
) -> BatchResult:
    """Analyze files and directories and return the aggregated results.

    The pipeline:
    1. Load configuration (auto-discover TOML + apply overrides)
    2. Load the rule set and build the symbol table (fails before any file)
    3. Expand directories into source files
    4. Analyse every file in parallel, fixing them in fix mode

    Args:
        paths: One path or a list of files and directories
        config_file: Optional explicit config file path
        cancel: Event that stops the batch between files when set
        **overrides: Configuration overrides (e.g. mode="fix", fail_on="warning")

    Returns:
        BatchResult with one FileResult per input file, in input order

    Raises:
        InvalidConfigError: If configuration is invalid
        RuleLoadError: If the active rule set is malformed
        InternalInvariantViolation: If the engine breaks its own guarantees
    """
    config = load_config(config_file=config_file, **overrides)
    logger.debug(f"Configuration loaded: mode={config.mode}, rulesets={','.join(config.rulesets)}")
    return run(config, paths, cancel=cancel)


def run(
    config: AnalysisConfig,
    paths: Union[str, Path, Sequence[Union[str, Path]]],
    cancel: Optional[threading.Event] = None,
) -> BatchResult:
    """Run an already-loaded configuration over files and directories."""
    if isinstance(paths, (str, Path)):
        paths = [paths]

    analyzer = Analyzer(config)

    files = collect_files(
        paths,
        extensions=config.extensions,
        exclude_patterns=config.exclude_patterns,
        allow_hidden_files=config.allow_hidden_files,
        follow_symlinks=config.follow_symlinks,
    )
    logger.info(f"Starting analysis of {len(files)} file(s) with {config.workers} worker(s)")

    return analyzer.analyze_files(files, cancel=cancel)
