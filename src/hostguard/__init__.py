"""
hostguard - static analyzer and autofixer for host-framework extensions

Finds thread-affinity violations, blocking waits on async work, unguarded
service lookups and non-themed visual resources in extension source code,
and rewrites the ones with a mechanical fix.
"""

__version__ = "0.1.0"

from .api import analyze
from .driver import Analyzer
from .models import BatchResult, Category, Diagnostic, FileResult, Severity

__all__ = [
    "analyze",  # Main entry point
    "Analyzer",  # Advanced usage (reuse one rule set across calls)
    "BatchResult",
    "Category",
    "Diagnostic",
    "FileResult",
    "Severity",
]
