"""Per-file state handed to every rule matcher and fix template."""

from __future__ import annotations

from dataclasses import dataclass

from ..models import Span
from ..symbols.binder import FileBinding
from ..symbols.table import ScopedSymbols
from ..syntax.nodes import AstNode
from ..syntax.source import SourceText


@dataclass(frozen=True)
class RuleContext:
    source: SourceText
    binding: FileBinding

    @property
    def path(self) -> str:
        return self.source.path

    @property
    def scope(self) -> ScopedSymbols:
        return self.binding.scope

    def text(self, node: AstNode) -> str:
        return self.source.slice(node.span)

    def span(self, start: int, end: int) -> Span:
        return self.source.span(start, end)

    def indentation(self, node: AstNode) -> str:
        return self.source.indentation_at(node.span.start)

    def imports(self, namespace: str) -> bool:
        """True if ``namespace`` is in scope through a using directive or enclosing namespace."""
        return namespace in self.scope.namespaces

    def qualify(self, namespace: str, name: str) -> str:
        """``name`` if its namespace is imported, else the fully qualified form."""
        return name if self.imports(namespace) else f"{namespace}.{name}"
