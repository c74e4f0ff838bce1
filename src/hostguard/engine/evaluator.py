"""Rule evaluation over one parsed file.

Pipeline:
  ParseResult → bind symbol tags
             → single pre-order walk, each rule tested once per node of a
               kind it declares
             → bounds check on every span and edit
             → sort (position, severity, rule id)
"""

from __future__ import annotations

from ..exceptions import InternalInvariantViolation
from ..exceptions.taxonomy import ErrorCode
from ..logging_config import get_logger
from ..models import RECOVERABLE_SYNTAX_ID, Diagnostic, Severity, sort_diagnostics
from ..rules.base import RuleSet
from ..symbols.binder import bind
from ..symbols.table import SymbolTable
from ..syntax.parser import ParseResult
from .context import RuleContext

logger = get_logger(__name__)


def evaluate(parsed: ParseResult, symbols: SymbolTable, ruleset: RuleSet) -> list[Diagnostic]:
    """Run every active rule over ``parsed`` and return sorted diagnostics.

    Deterministic: the same text and rule set always give the same list.

    Raises:
        InternalInvariantViolation: A rule reported a span or proposed an
            edit outside the file's text.
    """
    binding = bind(parsed.root, symbols)
    ctx = RuleContext(parsed.source, binding)

    diagnostics: list[Diagnostic] = []
    for node in parsed.root.walk():
        for rule in ruleset.rules_for(node.kind):
            diagnostic = rule.check(node, ctx)
            if diagnostic is not None:
                diagnostics.append(diagnostic)

    _check_bounds(diagnostics, len(parsed.source.text), ctx.path)
    logger.debug(f"{ctx.path}: {len(diagnostics)} diagnostic(s) from {len(ruleset)} rule(s)")
    return sort_diagnostics(diagnostics)


def _check_bounds(diagnostics: list[Diagnostic], length: int, path: str) -> None:
    for diagnostic in diagnostics:
        if diagnostic.span.end > length:
            raise InternalInvariantViolation(
                f"{diagnostic.rule_id} reported span [{diagnostic.span.start}, {diagnostic.span.end}) "
                f"outside a text of length {length}",
                code=ErrorCode.HG900,
                path=path,
            )
        if diagnostic.fix is None:
            continue
        for edit in diagnostic.fix.edits:
            if edit.end > length or edit.start > edit.end:
                raise InternalInvariantViolation(
                    f"{diagnostic.rule_id} proposed edit [{edit.start}, {edit.end}) "
                    f"outside a text of length {length}",
                    code=ErrorCode.HG901,
                    path=path,
                )


def recovery_diagnostics(parsed: ParseResult) -> list[Diagnostic]:
    """One Warning per delimiter the parser closed implicitly at end of file."""
    return [
        Diagnostic(
            path=parsed.source.path,
            rule_id=RECOVERABLE_SYNTAX_ID,
            category=None,
            severity=Severity.WARNING,
            span=recovery.span,
            message=f"Recovered from truncated input: {recovery.message}",
        )
        for recovery in parsed.recoveries
    ]
