"""Run-scoped symbol table and its per-file views."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from ..logging_config import get_logger
from .registry import BUILTIN_SYMBOLS, SymbolEntry, normalize_name
from .tags import SymbolKind

logger = get_logger(__name__)

_EMPTY: frozenset = frozenset()


class SymbolTable:
    """Known API names mapped to semantic tags.

    Built once per run and never mutated afterwards, so worker threads share
    one instance without locking. Unknown names resolve to the empty set and
    never produce a violation.
    """

    def __init__(self, entries: Iterable[SymbolEntry] = ()):
        exact: dict[str, SymbolEntry] = {}
        suffix: list[SymbolEntry] = []
        for entry in entries:
            if entry.member_suffix:
                suffix.append(entry)
            else:
                exact[entry.qualified_name] = entry
        self._exact: Mapping[str, SymbolEntry] = MappingProxyType(exact)
        # Longest suffix first so ``JoinableTaskFactory.Run`` beats ``Run``.
        self._suffix: tuple[SymbolEntry, ...] = tuple(
            sorted(suffix, key=lambda e: (-e.qualified_name.count("."), -len(e.qualified_name), e.qualified_name))
        )

    @classmethod
    def builtin(cls, extra: Iterable[SymbolEntry] = ()) -> "SymbolTable":
        extra = list(extra)
        if extra:
            logger.debug(f"Adding {len(extra)} configured symbol(s) to the built-in registry")
        return cls([*BUILTIN_SYMBOLS, *extra])

    def __len__(self) -> int:
        return len(self._exact) + len(self._suffix)

    def entries(self) -> list[SymbolEntry]:
        return sorted([*self._exact.values(), *self._suffix], key=lambda e: e.qualified_name)

    def lookup(
        self,
        name: str,
        kind: Optional[SymbolKind] = None,
        namespaces: Iterable[str] = (),
    ) -> Optional[SymbolEntry]:
        """Exact name, then namespace-expanded names, then member suffixes."""
        name = normalize_name(name)
        if not name:
            return None
        entry = self._exact.get(name)
        if entry is not None and (kind is None or entry.kind is kind):
            return entry
        for namespace in namespaces:
            entry = self._exact.get(f"{namespace}.{name}")
            if entry is not None and (kind is None or entry.kind is kind):
                return entry
        for entry in self._suffix:
            if (kind is None or entry.kind is kind) and entry.matches_suffix(name):
                return entry
        return None

    def resolve(self, name: str, kind: Optional[SymbolKind] = None) -> frozenset:
        entry = self.lookup(name, kind)
        return entry.tags if entry is not None else _EMPTY

    def scoped(
        self,
        namespaces: Iterable[str] = (),
        aliases: Optional[Mapping[str, str]] = None,
        local: Optional[Mapping[str, frozenset]] = None,
    ) -> "ScopedSymbols":
        return ScopedSymbols(self, tuple(namespaces), aliases or {}, local or {})


class ScopedSymbols:
    """Immutable view of a ``SymbolTable`` through one file's using directives.

    ``local`` holds tags for methods declared in the file itself; they win
    over the table for unqualified names.
    """

    def __init__(
        self,
        table: SymbolTable,
        namespaces: tuple[str, ...],
        aliases: Mapping[str, str],
        local: Mapping[str, frozenset],
    ):
        self.table = table
        self.namespaces = namespaces
        self.aliases: Mapping[str, str] = MappingProxyType(dict(aliases))
        self.local: Mapping[str, frozenset] = MappingProxyType(dict(local))

    def _expand_alias(self, name: str) -> str:
        head, _, rest = name.partition(".")
        target = self.aliases.get(head)
        if target is None:
            return name
        return f"{target}.{rest}" if rest else target

    def lookup(self, name: Optional[str], kind: Optional[SymbolKind] = None) -> Optional[SymbolEntry]:
        if not name:
            return None
        return self.table.lookup(self._expand_alias(normalize_name(name)), kind, self.namespaces)

    def lookup_attribute(self, name: str) -> Optional[SymbolEntry]:
        """Attributes may be written with or without the ``Attribute`` suffix."""
        name = normalize_name(name)
        if not name.endswith("Attribute"):
            entry = self.lookup(name + "Attribute", SymbolKind.ATTRIBUTE)
            if entry is not None:
                return entry
        return self.lookup(name, SymbolKind.ATTRIBUTE)

    def resolve(self, name: Optional[str], kind: Optional[SymbolKind] = None) -> frozenset:
        if not name:
            return _EMPTY
        name = normalize_name(name)
        if kind in (None, SymbolKind.METHOD) and name in self.local:
            return self.local[name]
        entry = self.lookup(name, kind)
        return entry.tags if entry is not None else _EMPTY
