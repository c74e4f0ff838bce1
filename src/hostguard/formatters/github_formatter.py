"""GitHub Actions formatter: workflow annotations."""

from ..models import BatchResult, Diagnostic, Severity
from .base import BaseFormatter

_LEVEL = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "notice",
}


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


class GithubFormatter(BaseFormatter):
    """Output ``::error`` / ``::warning`` / ``::notice`` annotations, one per diagnostic."""

    def format(self, batch: BatchResult) -> str:
        lines = [self._annotation(d) for d in batch.diagnostics]
        for result in batch.files:
            if result.cancelled:
                lines.append(f"::warning file={_escape_property(result.path)}::Not analysed: run cancelled")
        return "\n".join(lines)

    @staticmethod
    def _annotation(d: Diagnostic) -> str:
        props = ",".join(
            [
                f"file={_escape_property(d.path)}",
                f"line={d.span.start_line}",
                f"col={d.span.start_col}",
                f"endLine={d.span.end_line}",
                f"endColumn={d.span.end_col}",
                f"title={_escape_property(d.rule_id)}",
            ]
        )
        return f"::{_LEVEL[d.severity]} {props}::{_escape_data(d.message)}"
