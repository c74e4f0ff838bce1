"""Output formatters for hostguard."""

from typing import Iterable

from ..models import BatchResult, Diagnostic, FileResult
from .base import BaseFormatter
from .github_formatter import GithubFormatter
from .json_formatter import JsonFormatter
from .rich_formatter import RichFormatter


def get_formatter(name: str) -> BaseFormatter:
    """Get a formatter instance by name.

    Args:
        name: One of "human", "json", "github" ("structured" is an alias for "json")

    Returns:
        Formatter instance

    Raises:
        ValueError: If name is not recognized
    """
    formatters = {
        "human": RichFormatter,
        "json": JsonFormatter,
        "structured": JsonFormatter,
        "github": GithubFormatter,
    }
    cls = formatters.get(name)
    if cls is None:
        raise ValueError(f"Unknown formatter: {name!r}. Choose from: {', '.join(sorted(formatters))}")
    return cls()


def format_diagnostics(diagnostics: Iterable[Diagnostic], mode: str = "human") -> str:
    """Render a flat list of diagnostics, grouping them by file in first-seen order."""
    by_path: dict[str, FileResult] = {}
    for d in diagnostics:
        by_path.setdefault(d.path, FileResult(d.path)).diagnostics.append(d)
    return get_formatter(mode).format(BatchResult(files=list(by_path.values())))


__all__ = [
    "BaseFormatter",
    "RichFormatter",
    "JsonFormatter",
    "GithubFormatter",
    "format_diagnostics",
    "get_formatter",
]
