"""Apply fix proposals to one file's text.

The fixer is pure: it returns the new text and never touches the file
system. Whether the result is written back is the driver's decision, which
is all a dry run changes.
"""

from __future__ import annotations

import difflib
from typing import Iterable, Optional

from .exceptions import FixConflictError, InternalInvariantViolation, ParseError
from .exceptions.taxonomy import ErrorCode
from .logging_config import get_logger
from .models import Diagnostic, FixOutcome, SkippedFix, TextEdit, sort_diagnostics
from .syntax.parser import parse

logger = get_logger(__name__)


def unified_diff(path: str, before: str, after: str, context: int = 3) -> str:
    """Unified diff of one file, empty when nothing changed."""
    if before == after:
        return ""
    lines = difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        n=context,
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


def _splice(text: str, edits: list[TextEdit]) -> str:
    """Apply non-overlapping edits, last offset first."""
    for edit in sorted(edits, key=lambda e: (e.start, e.end), reverse=True):
        text = text[: edit.start] + edit.replacement + text[edit.end :]
    return text


def apply_fixes(
    text: str,
    diagnostics: Iterable[Diagnostic],
    path: Optional[str] = None,
    verify: bool = True,
) -> FixOutcome:
    """Apply every non-conflicting fix among ``diagnostics`` to ``text``.

    Proposals are considered in diagnostic order. One that overlaps an edit
    already accepted is skipped with a reason. Accepted edits are spliced in
    descending offset order, so the result does not depend on which order
    the proposals arrived in.

    Raises:
        FixConflictError: The fixed text no longer parses (HG300). The caller
            keeps the original text.
        InternalInvariantViolation: A proposal reaches outside ``text``.
    """
    label = path or "<memory>"
    accepted: list[TextEdit] = []
    skipped: list[SkippedFix] = []
    applied = 0

    for diagnostic in sort_diagnostics([d for d in diagnostics if d.fix is not None]):
        proposal = diagnostic.fix
        for edit in proposal.edits:
            if edit.start < 0 or edit.end > len(text):
                raise InternalInvariantViolation(
                    f"{diagnostic.rule_id} fix edits [{edit.start}, {edit.end}) outside the text",
                    code=ErrorCode.HG901,
                    path=label,
                )
        clash = next((a for e in proposal.edits for a in accepted if e.conflicts_with(a)), None)
        if clash is not None:
            line = diagnostic.span.start_line
            reason = f"overlaps an earlier fix at offset {clash.start}"
            logger.warning(f"{label}:{line}: skipped fix for {diagnostic.rule_id}: {reason}")
            skipped.append(SkippedFix(diagnostic, reason))
            continue
        accepted.extend(proposal.edits)
        applied += 1

    new_text = _splice(text, accepted) if accepted else text

    if verify and new_text != text:
        try:
            parse(new_text, path)
        except ParseError as e:
            raise FixConflictError(
                f"fixed text no longer parses ({e.reason} at {e.line}:{e.column})",
                path=label,
                code=ErrorCode.HG300,
            ) from e

    logger.debug(f"{label}: applied {applied} fix(es), skipped {len(skipped)}")
    return FixOutcome(
        original_text=text,
        new_text=new_text,
        applied_count=applied,
        skipped_count=len(skipped),
        skipped=skipped,
        diff=unified_diff(label, text, new_text),
    )
