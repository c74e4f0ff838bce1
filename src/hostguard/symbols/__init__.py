"""Symbol table of well-known host-framework APIs and the binder that applies it."""

from .binder import FileBinding, bind
from .registry import BUILTIN_SYMBOLS, SymbolEntry, custom_entry, is_awaitable_type
from .table import ScopedSymbols, SymbolTable
from .tags import AwaitStrategy, Capability, SymbolKind, SymbolTag

__all__ = [
    "AwaitStrategy",
    "BUILTIN_SYMBOLS",
    "Capability",
    "FileBinding",
    "ScopedSymbols",
    "SymbolEntry",
    "SymbolKind",
    "SymbolTable",
    "SymbolTag",
    "bind",
    "custom_entry",
    "is_awaitable_type",
]
