"""
Logging for hostguard runs.

Diagnostics are output and go to stdout through the formatters. Log records
describe the run itself (skipped files, rolled-back fixes, rules that fail
on a node) and go to stderr, so they never mix with JSON or annotation
output. The amount logged follows the ``verbosity`` setting.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "hostguard"

LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}

LOG_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def level_for(verbosity: str) -> int:
    """Log level for a verbosity setting."""
    try:
        return LEVELS[verbosity]
    except KeyError:
        raise ValueError(f"Unknown verbosity '{verbosity}'; expected one of {', '.join(LEVELS)}") from None


def verbosity_from_flags(verbose: bool = False, quiet: bool = False) -> str:
    """Verbosity named by ``--verbose``/``--quiet``; quiet wins when both are given."""
    if quiet:
        return "quiet"
    if verbose:
        return "verbose"
    return "normal"


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Send the ``hostguard`` logger to stderr, and to ``log_file`` if given.

    May be called again once the configuration is resolved. Each call closes
    and replaces the handlers installed by the previous one. Records do not
    propagate to the root logger, so an embedding application's own logging
    setup is left alone.

    Args:
        verbosity: "quiet" (errors only), "normal" (warnings) or "verbose"
            (debug records with timestamps, call sites and traceback locals)
        log_file: Optional file the same records are appended to

    Returns:
        The configured ``hostguard`` logger

    Raises:
        ValueError: If ``verbosity`` is not a known setting
    """
    level = level_for(verbosity)
    detailed = level <= logging.DEBUG

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=detailed,
            markup=False,
            show_time=detailed,
            show_path=detailed,
        )
    ]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)

    logger = logging.getLogger(ROOT_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a hostguard module; ``get_logger(__name__)`` is the usual call."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)

    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)
