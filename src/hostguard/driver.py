"""Batch driver: read, parse, evaluate and optionally fix a set of files.

Pipeline per file:
  read once → parse → bind + evaluate → (fix → write → re-evaluate)

Files are independent. A file that cannot be read or parsed produces a
record for that file and never stops the others. Only configuration errors
(raised before any file is touched) and internal invariant violations end a
run early.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional

from .config import AnalysisConfig
from .engine import evaluate, recovery_diagnostics
from .exceptions import FileAccessError, FixConflictError, ParseError
from .file_ops import FileLocks, read_source, write_source
from .fixer import apply_fixes
from .logging_config import get_logger
from .models import (
    FILE_ACCESS_ID,
    PARSE_ERROR_ID,
    BatchResult,
    Diagnostic,
    FileResult,
    Severity,
    Span,
    sort_diagnostics,
)
from .rules import RuleSet, load_ruleset
from .symbols import SymbolTable
from .syntax import SourceText, parse

logger = get_logger(__name__)

# Below this many files the pool overhead is not worth it.
PARALLEL_THRESHOLD = 4


def parse_error_diagnostic(error: ParseError, text: str, path: str) -> Diagnostic:
    source = SourceText(text, path)
    offset = max(0, min(error.offset, len(text)))
    return Diagnostic(
        path=path,
        rule_id=PARSE_ERROR_ID,
        category=None,
        severity=Severity.ERROR,
        span=source.span(offset, offset),
        message=f"Cannot parse file: {error.reason}",
    )


def access_error_diagnostic(error: FileAccessError, path: str) -> Diagnostic:
    return Diagnostic(
        path=path,
        rule_id=FILE_ACCESS_ID,
        category=None,
        severity=Severity.ERROR,
        span=Span(0, 0, 1, 1, 1, 1),
        message=f"{error.message}: {error.reason}",
    )


class Analyzer:
    """Runs the pipeline with one rule set and one symbol table for the whole run.

    Both are built in the constructor, so a ``RuleLoadError`` surfaces before
    any file is processed. Neither is mutated afterwards, and worker threads
    share them without locking.
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        ruleset: Optional[RuleSet] = None,
        symbols: Optional[SymbolTable] = None,
    ):
        self.config = config or AnalysisConfig()
        self.ruleset = ruleset if ruleset is not None else load_ruleset(
            self.config.categories, self.config.disabled_rules
        )
        self.symbols = symbols if symbols is not None else SymbolTable.builtin(self.config.symbol_entries())
        self._locks = FileLocks()
        logger.debug(f"Analyzer ready: {len(self.ruleset)} rule(s), {len(self.symbols)} symbol(s)")

    # ── Single file ────────────────────────────────────────────────

    def analyze_text(self, text: str, path: str = "<memory>") -> FileResult:
        """Diagnostics for one in-memory buffer. Never reads or writes files."""
        result = FileResult(path)
        try:
            parsed = parse(text, path)
        except ParseError as e:
            logger.debug(f"{path}: {e}")
            result.parse_error = e
            result.diagnostics = [parse_error_diagnostic(e, text, path)]
            return result
        diagnostics = recovery_diagnostics(parsed) + evaluate(parsed, self.symbols, self.ruleset)
        result.diagnostics = sort_diagnostics(diagnostics)
        return result

    def analyze_file(self, path: str) -> FileResult:
        try:
            text = read_source(path, self.config.max_file_size_bytes)
        except FileAccessError as e:
            logger.warning(f"Skipping {path}: {e.reason}")
            return FileResult(path, diagnostics=[access_error_diagnostic(e, path)], access_error=e)

        result = self.analyze_text(text, path)
        if self.config.fix and result.parse_error is None:
            self._fix(result, text)
        return result

    def _fix(self, result: FileResult, text: str) -> None:
        """Apply fixes to one file, write them unless dry-running, and re-evaluate."""
        fixable = [d for d in result.diagnostics if d.fix is not None]
        if not fixable:
            return
        try:
            outcome = apply_fixes(text, fixable, path=result.path)
        except FixConflictError as e:
            logger.warning(f"{result.path}: {e.reason}; keeping the original text")
            result.fix_error = e.reason
            return
        result.fix = outcome
        if not outcome.changed or self.config.dry_run:
            return

        with self._locks.hold(result.path):
            try:
                if read_source(result.path) != text:
                    result.fix_error = "file changed on disk during the run; fixes not written"
                    logger.warning(f"{result.path}: {result.fix_error}")
                    return
                write_source(result.path, outcome.new_text)
            except FileAccessError as e:
                logger.warning(f"Cannot write fixes to {result.path}: {e.reason}")
                result.access_error = e
                result.diagnostics = sort_diagnostics([*result.diagnostics, access_error_diagnostic(e, result.path)])
                return
        outcome.written = True
        logger.info(f"{result.path}: applied {outcome.applied_count} fix(es)")

        after = self.analyze_text(outcome.new_text, result.path)
        result.diagnostics = after.diagnostics
        result.parse_error = after.parse_error

    # ── Batch ──────────────────────────────────────────────────────

    def analyze_files(self, paths: Iterable[str], cancel: Optional[threading.Event] = None) -> BatchResult:
        """Analyse files in parallel; results keep the input order.

        ``cancel`` is checked before each file starts. Files already running
        finish, and files not yet started come back marked cancelled.
        """
        paths = [str(p) for p in paths]
        cancel = cancel or threading.Event()
        results: list[Optional[FileResult]] = [None] * len(paths)

        def run(path: str) -> FileResult:
            if cancel.is_set():
                return FileResult(path, cancelled=True)
            return self.analyze_file(path)

        workers = min(self.config.workers, max(1, len(paths)))
        if workers == 1 or len(paths) < PARALLEL_THRESHOLD:
            for i, path in enumerate(paths):
                results[i] = run(path)
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {executor.submit(run, path): i for i, path in enumerate(paths)}
                try:
                    for future in as_completed(futures):
                        results[futures[future]] = future.result()
                except BaseException:
                    # Queued files see the flag and return at once; running ones finish.
                    cancel.set()
                    raise

        batch = BatchResult(files=[r for r in results if r is not None], cancelled=cancel.is_set())
        logger.info(
            f"Analysed {len(paths)} file(s): {batch.count(Severity.ERROR)} error(s), "
            f"{batch.count(Severity.WARNING)} warning(s), {len(batch.incomplete)} incomplete"
        )
        return batch
