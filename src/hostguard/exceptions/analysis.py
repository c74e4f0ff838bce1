"""Analysis-related exceptions: file access, parsing, fixing, invariants."""

from pathlib import Path
from typing import Optional, Union

from .base import HostguardError
from .taxonomy import ErrorCode


class AnalysisError(HostguardError):
    """Base class for analysis-related errors."""

    pass


class FileAccessError(AnalysisError):
    """Raised when a file cannot be read or written."""

    code = ErrorCode.HG400

    def __init__(self, filepath: Union[str, Path], reason: str, write: bool = False):
        action = "write" if write else "access"
        super().__init__(
            f"Cannot {action} file: {filepath}",
            details={"filepath": str(filepath), "reason": reason},
            code=ErrorCode.HG401 if write else ErrorCode.HG400,
        )
        self.filepath = filepath
        self.reason = reason


class ParseError(AnalysisError):
    """Raised when source text is malformed beyond recovery.

    Unterminated strings, chars and block comments, and stray or mismatched
    closing delimiters end up here. Truncated input does not: open blocks at
    end of file are closed implicitly by the parser.
    """

    code = ErrorCode.HG100

    def __init__(
        self,
        reason: str,
        line: int,
        column: int,
        path: Optional[str] = None,
        offset: int = 0,
    ):
        where = f"{path}:{line}:{column}" if path else f"{line}:{column}"
        super().__init__(
            f"Parse error at {where}: {reason}",
            details={"line": str(line), "column": str(column)},
        )
        self.reason = reason
        self.line = line
        self.column = column
        self.path = path
        self.offset = offset

    def with_path(self, path: str) -> "ParseError":
        """Return a copy of this error that names the file it came from."""
        return ParseError(self.reason, self.line, self.column, path=path, offset=self.offset)


class FixConflictError(AnalysisError):
    """Raised when a batch of fixes cannot be applied safely to one file.

    The caller must keep the pre-fix text.
    """

    code = ErrorCode.HG300

    def __init__(self, reason: str, path: Optional[str] = None, code: ErrorCode = ErrorCode.HG300):
        details = {"reason": reason}
        if path:
            details["path"] = path
        super().__init__(f"Fixes rolled back: {reason}", details=details, code=code)
        self.reason = reason
        self.path = path


class InternalInvariantViolation(AnalysisError):
    """Raised when the engine breaks one of its own guarantees.

    Always fatal: it signals an engine bug, not a user-input problem.
    """

    code = ErrorCode.HG900

    def __init__(self, reason: str, code: ErrorCode = ErrorCode.HG900, path: Optional[str] = None):
        details = {"reason": reason}
        if path:
            details["path"] = path
        super().__init__(f"Internal invariant violated: {reason}", details=details, code=code)
        self.reason = reason
        self.path = path
