"""Human-readable terminal formatter for hostguard."""

import io
from typing import Optional

from rich.console import Console, Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text

from ..models import FILE_ACCESS_ID, PARSE_ERROR_ID, BatchResult, FileResult, Severity
from .base import BaseFormatter

_SEVERITY_STYLE = {
    Severity.ERROR: "red bold",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}

_SEVERITY_HEADING = {
    Severity.ERROR: "Errors",
    Severity.WARNING: "Warnings",
    Severity.INFO: "Info",
}

# Failure records of an incomplete file are shown as "could not complete" instead of as findings.
_FAILURE_IDS = (PARSE_ERROR_ID, FILE_ACCESS_ID)

_COUNT_NOUN = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "info",
}


def _plural(count: int, word: str) -> str:
    if count == 1 or word == "info":
        return f"{count} {word}"
    return f"{count} {word}es" if word.endswith("x") else f"{count} {word}s"


def _findings(result: FileResult) -> list:
    if result.completed:
        return result.diagnostics
    return [d for d in result.diagnostics if d.rule_id not in _FAILURE_IDS]


class RichFormatter(BaseFormatter):
    """Report grouped by file, then by severity, with fix diffs and a summary."""

    def __init__(self, console: Optional[Console] = None, width: int = 100):
        self.console = console
        self.width = width

    def render(self, batch: BatchResult) -> None:
        console = self.console or Console()
        for renderable in self._renderables(batch):
            console.print(renderable)

    def format(self, batch: BatchResult) -> str:
        buffer = io.StringIO()
        console = Console(file=buffer, width=self.width, force_terminal=False, color_system=None, highlight=False)
        for renderable in self._renderables(batch):
            console.print(renderable)
        return buffer.getvalue().rstrip("\n")

    # ── Building blocks ────────────────────────────────────────────

    def _renderables(self, batch: BatchResult) -> list[RenderableType]:
        out: list[RenderableType] = []
        for result in batch.files:
            block = self._file_block(result)
            if block is not None:
                out.append(block)
                out.append(Text(""))
        for result in batch.fixed_files:
            out.append(self._diff_panel(result))
        out.append(self._summary(batch))
        return out

    def _file_block(self, result: FileResult) -> Optional[RenderableType]:
        findings = _findings(result)
        if result.completed and not findings and result.fix_error is None:
            return None

        lines: list[RenderableType] = [Text.from_markup(f"[bold]{escape(result.path)}[/bold]")]
        if not result.completed:
            lines.append(
                Text.from_markup(
                    f"  [red]analysis could not complete:[/red] {escape(result.failure_reason or 'unknown error')}"
                )
            )
        if result.fix_error is not None:
            lines.append(Text.from_markup(f"  [yellow]fixes rolled back:[/yellow] {escape(result.fix_error)}"))

        for severity in (Severity.ERROR, Severity.WARNING, Severity.INFO):
            group = [d for d in findings if d.severity is severity]
            if not group:
                continue
            style = _SEVERITY_STYLE[severity]
            lines.append(Text.from_markup(f"  [{style}]{_SEVERITY_HEADING[severity]} ({len(group)})[/{style}]"))
            for d in group:
                where = f"{d.span.start_line}:{d.span.start_col}"
                fixable = " [green](fixable)[/green]" if d.fix_available else ""
                lines.append(
                    Text.from_markup(
                        f"    {where:>9}  [dim]{escape(d.rule_id)}[/dim]  {escape(d.message)}{fixable}"
                    )
                )

        if result.fix is not None:
            for skipped in result.fix.skipped:
                lines.append(
                    Text.from_markup(
                        f"  [yellow]skipped fix[/yellow] {escape(skipped.diagnostic.rule_id)} "
                        f"at line {skipped.diagnostic.span.start_line}: {escape(skipped.reason)}"
                    )
                )
        return Group(*lines)

    def _diff_panel(self, result: FileResult) -> RenderableType:
        fix = result.fix
        verb = "applied" if fix.written else "would apply"
        title = f"{escape(result.path)}: {verb} {_plural(fix.applied_count, 'fix')}"
        return Panel(Syntax(fix.diff.rstrip("\n"), "diff", theme="ansi_dark"), title=title, expand=False)

    def _summary(self, batch: BatchResult) -> RenderableType:
        incomplete = batch.incomplete
        cancelled = [f for f in incomplete if f.cancelled]
        failed = [f for f in incomplete if not f.cancelled]
        findings = [d for f in batch.files for d in _findings(f)]
        fixed = batch.fixed_files
        fix_line = ""
        if fixed:
            fixes = sum(f.fix.applied_count for f in fixed)
            verb = "applied" if all(f.fix.written for f in fixed) else "proposed"
            fix_line = f"[green]{_plural(fixes, 'fix')} {verb} in {_plural(len(fixed), 'file')}[/green]"

        if not findings and not incomplete:
            clean = f"[green]No issues found[/green] in {_plural(len(batch.files), 'file')}"
            return Panel(
                "\n".join(filter(None, [clean, fix_line])),
                title="[bold cyan]hostguard[/bold cyan]",
                expand=False,
            )

        counts = [
            f"[{_SEVERITY_STYLE[s]}]{_plural(sum(1 for d in findings if d.severity is s), _COUNT_NOUN[s])}[/{_SEVERITY_STYLE[s]}]"
            for s in (Severity.ERROR, Severity.WARNING, Severity.INFO)
        ]
        parts = [", ".join(counts) + f" in {_plural(len(batch.files), 'file')}"]
        if failed:
            parts.append(f"[red]analysis could not complete for {_plural(len(failed), 'file')}[/red]")
        if cancelled:
            parts.append(f"[yellow]run cancelled; {_plural(len(cancelled), 'file')} not analysed[/yellow]")
        if fix_line:
            parts.append(fix_line)
        return Panel("\n".join(parts), title="[bold cyan]Summary[/bold cyan]", expand=False)
