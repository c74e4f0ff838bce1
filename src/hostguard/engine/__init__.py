"""Rule engine: binds a parsed file and runs the active rules over it."""

from .context import RuleContext
from .evaluator import evaluate, recovery_diagnostics

__all__ = ["RuleContext", "evaluate", "recovery_diagnostics"]
