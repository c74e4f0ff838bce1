"""Data models shared by the engine, fixer, formatters and driver."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .exceptions import FileAccessError, InternalInvariantViolation, ParseError
from .exceptions.taxonomy import ErrorCode


class Severity(Enum):
    """Diagnostic severity. ``rank`` orders Error above Warning above Info."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    def at_least(self, threshold: "Severity") -> bool:
        return self.rank >= threshold.rank

    @classmethod
    def parse(cls, value: str) -> "Severity":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"unknown severity {value!r} (choose from {choices})") from None


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.ERROR: 2}


class Category(Enum):
    """Rule categories; each can be enabled independently."""

    PERFORMANCE = "Performance"
    RELIABILITY = "Reliability"
    THREADING = "Threading"
    DESIGN = "Design"
    THEMING = "Theming"

    @classmethod
    def parse(cls, value: str) -> "Category":
        wanted = value.strip().lower()
        for category in cls:
            if category.value.lower() == wanted:
                return category
        choices = ", ".join(c.value for c in cls)
        raise ValueError(f"unknown category {value!r} (choose from {choices})")


ALL_CATEGORIES = frozenset(Category)

# Rule ids used for records that do not come from a rule.
PARSE_ERROR_ID = "parse-error"
RECOVERABLE_SYNTAX_ID = "recoverable-syntax-error"
FILE_ACCESS_ID = "file-access-error"


@dataclass(frozen=True)
class Span:
    """Half-open range ``[start, end)`` plus 1-based line/column bounds.

    Offsets index the decoded source string (code points, not UTF-8 bytes),
    so ``text[span.start:span.end]`` is the covered source. Columns count
    code points too.
    """

    start: int
    end: int
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end < self.start:
            raise InternalInvariantViolation(
                f"invalid span [{self.start}, {self.end})", code=ErrorCode.HG902
            )

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, other: "Span") -> bool:
        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class TextEdit:
    """Replace ``text[start:end]`` with ``replacement``. Zero width means insert."""

    start: int
    end: int
    replacement: str

    def conflicts_with(self, other: "TextEdit") -> bool:
        if self.start < other.end and other.start < self.end:
            return True
        # Two insertions, or an insertion strictly inside a replacement, at the
        # same anchor have no well-defined order.
        if self.start == other.start and (self.start == self.end or other.start == other.end):
            return True
        return False


@dataclass(frozen=True)
class FixProposal:
    """Ordered, pairwise non-overlapping edits scoped to a single file."""

    description: str
    edits: tuple[TextEdit, ...]

    def __post_init__(self) -> None:
        if not self.edits:
            raise InternalInvariantViolation("fix proposal has no edits", code=ErrorCode.HG901)
        for i, a in enumerate(self.edits):
            for b in self.edits[i + 1 :]:
                if a.conflicts_with(b):
                    raise InternalInvariantViolation(
                        f"overlapping edits in fix proposal {self.description!r}",
                        code=ErrorCode.HG901,
                    )

    @property
    def start(self) -> int:
        return min(e.start for e in self.edits)


@dataclass(frozen=True)
class Diagnostic:
    """A single finding. ``category`` is None for syntax and access records."""

    path: str
    rule_id: str
    category: Optional[Category]
    severity: Severity
    span: Span
    message: str
    fix: Optional[FixProposal] = None

    @property
    def fix_available(self) -> bool:
        return self.fix is not None

    @property
    def sort_key(self) -> tuple:
        return (self.span.start, -self.severity.rank, self.rule_id, self.span.end)

    def to_record(self) -> dict:
        """Self-describing record for downstream tooling."""
        return {
            "file": self.path,
            "ruleId": self.rule_id,
            "category": self.category.value if self.category else None,
            "severity": self.severity.value,
            "startLine": self.span.start_line,
            "startCol": self.span.start_col,
            "endLine": self.span.end_line,
            "endCol": self.span.end_col,
            "message": self.message,
            "fixAvailable": self.fix_available,
        }


def sort_diagnostics(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    """Position ascending, then severity descending, then rule id."""
    return sorted(diagnostics, key=lambda d: d.sort_key)


@dataclass(frozen=True)
class SkippedFix:
    """A proposal the fixer refused, with the reason."""

    diagnostic: Diagnostic
    reason: str


@dataclass
class FixOutcome:
    """Result of running the fixer over one file."""

    original_text: str
    new_text: str
    applied_count: int = 0
    skipped_count: int = 0
    skipped: list[SkippedFix] = field(default_factory=list)
    written: bool = False
    diff: str = ""

    @property
    def changed(self) -> bool:
        return self.new_text != self.original_text


@dataclass
class FileResult:
    """Everything one file produced. Exactly one worker owns it while it runs."""

    path: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    parse_error: Optional[ParseError] = None
    access_error: Optional[FileAccessError] = None
    fix: Optional[FixOutcome] = None
    fix_error: Optional[str] = None
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        """False when analysis could not run to completion for this file."""
        return self.parse_error is None and self.access_error is None and not self.cancelled

    @property
    def failure_reason(self) -> Optional[str]:
        if self.access_error is not None:
            return self.access_error.reason
        if self.parse_error is not None:
            return f"{self.parse_error.reason} at {self.parse_error.line}:{self.parse_error.column}"
        if self.cancelled:
            return "cancelled before analysis started"
        return None

    def count(self, severity: Severity) -> int:
        return sum(1 for d in self.diagnostics if d.severity is severity)


EXIT_CLEAN = 0
EXIT_DIAGNOSTICS = 1
EXIT_INTERNAL = 2
EXIT_CONFIG = 3


@dataclass
class BatchResult:
    """Aggregated results of one run, in input order."""

    files: list[FileResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [d for f in self.files for d in f.diagnostics]

    @property
    def incomplete(self) -> list[FileResult]:
        return [f for f in self.files if not f.completed]

    @property
    def fixed_files(self) -> list[FileResult]:
        return [f for f in self.files if f.fix is not None and f.fix.changed]

    def count(self, severity: Severity) -> int:
        return sum(f.count(severity) for f in self.files)

    def exit_code(self, fail_on: Severity = Severity.ERROR) -> int:
        """0 when nothing at or above ``fail_on`` remains; 2 for internal failures."""
        if any(f.access_error is not None for f in self.files):
            return EXIT_INTERNAL
        if any(d.severity.at_least(fail_on) for d in self.diagnostics):
            return EXIT_DIAGNOSTICS
        return EXIT_CLEAN
