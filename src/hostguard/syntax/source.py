"""Source text with offset to line/column mapping.

Offsets and columns count code points of the decoded text, not encoded bytes.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field

from ..models import Span


@dataclass(frozen=True)
class SourceText:
    """Immutable file contents plus a line-start table.

    Lines and columns are 1-based; columns count characters.
    """

    text: str
    path: str = "<memory>"
    _line_starts: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        starts = [0]
        for i, ch in enumerate(self.text):
            if ch == "\n":
                starts.append(i + 1)
        object.__setattr__(self, "_line_starts", tuple(starts))

    def __len__(self) -> int:
        return len(self.text)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def line_col(self, offset: int) -> tuple[int, int]:
        offset = max(0, min(offset, len(self.text)))
        line_index = bisect_right(self._line_starts, offset) - 1
        return line_index + 1, offset - self._line_starts[line_index] + 1

    def span(self, start: int, end: int) -> Span:
        start_line, start_col = self.line_col(start)
        end_line, end_col = self.line_col(end)
        return Span(start, end, start_line, start_col, end_line, end_col)

    def line_start(self, offset: int) -> int:
        """Offset of the first character of the line containing ``offset``."""
        line, _ = self.line_col(offset)
        return self._line_starts[line - 1]

    def indentation_at(self, offset: int) -> str:
        """Leading whitespace of the line containing ``offset``."""
        start = self.line_start(offset)
        end = start
        while end < len(self.text) and self.text[end] in " \t":
            end += 1
        return self.text[start:end]

    def slice(self, span: Span) -> str:
        return self.text[span.start : span.end]
