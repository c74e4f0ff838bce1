"""Built-in registry of well-known host-framework symbols.

Adding a symbol requires one ``SymbolEntry`` below. Rules never compare raw
names; they ask the symbol table for tags, so a new entry is picked up by
every rule that matches its tags.

Entries with ``member_suffix=True`` match any dotted name ending in their
name (``Wait`` matches ``task.Wait`` and ``_pending.Wait``). All other
entries are fully qualified and match through a file's using directives.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .tags import AwaitStrategy, Capability, SymbolKind, SymbolTag

A = SymbolTag.ASYNC_ENTRY_POINT
UI = SymbolTag.UI_THREAD_SWITCH
BW = SymbolTag.BLOCKING_WAIT
SL = SymbolTag.SERVICE_LOCATOR
TT = SymbolTag.THEME_TOKEN
MEF = SymbolTag.MEF_EXPORT
CMD = SymbolTag.COMMAND_HANDLER

# Roles for entries whose meaning is structural rather than a tag.
ROLE_PACKAGE_REGISTRATION = "package-registration"
ROLE_IMPORTING_CONSTRUCTOR = "importing-constructor"


@dataclass(frozen=True)
class SymbolEntry:
    qualified_name: str
    kind: SymbolKind
    tags: frozenset = frozenset()
    capabilities: frozenset = frozenset()
    member_suffix: bool = False
    await_strategy: Optional[AwaitStrategy] = None
    replacement: Optional[str] = None
    role: Optional[str] = None

    @property
    def short_name(self) -> str:
        return self.qualified_name.rsplit(".", 1)[-1]

    def matches_suffix(self, name: str) -> bool:
        return name == self.qualified_name or name.endswith("." + self.qualified_name)


def _type(name, *tags, capabilities=(), replacement=None):
    return SymbolEntry(
        name, SymbolKind.TYPE, frozenset(tags), frozenset(capabilities), replacement=replacement
    )


def _method(name, *tags, suffix=False, strategy=None, replacement=None):
    return SymbolEntry(
        name,
        SymbolKind.METHOD,
        frozenset(tags),
        member_suffix=suffix,
        await_strategy=strategy,
        replacement=replacement,
    )


def _property(name, *tags, suffix=False, strategy=None):
    return SymbolEntry(name, SymbolKind.PROPERTY, frozenset(tags), member_suffix=suffix, await_strategy=strategy)


def _attribute(name, *tags, role=None):
    return SymbolEntry(name, SymbolKind.ATTRIBUTE, frozenset(tags), role=role)


SHELL = "Microsoft.VisualStudio.Shell"
TASKS = "System.Threading.Tasks"
TOOLKIT = "Community.VisualStudio.Toolkit"
MEF_NS = "System.ComponentModel.Composition"

BUILTIN_SYMBOLS: list[SymbolEntry] = [
    # Package and window base types. Their members run on the UI thread.
    _type(
        f"{SHELL}.AsyncPackage",
        A,
        capabilities=(Capability.SUPPORTS_BACKGROUND_LOAD, Capability.SUPPORTS_ASYNC_INIT),
    ),
    _type(
        f"{TOOLKIT}.ToolkitPackage",
        A,
        capabilities=(Capability.SUPPORTS_BACKGROUND_LOAD, Capability.SUPPORTS_ASYNC_INIT),
    ),
    _type(f"{SHELL}.Package", A, replacement="AsyncPackage"),
    _type(f"{SHELL}.ToolWindowPane", A),
    _type("Microsoft.VisualStudio.PlatformUI.DialogWindow", A),
    _type(f"{TOOLKIT}.BaseCommand", A),
    _type(f"{TOOLKIT}.BaseToolWindow", A),
    # Command objects take their handler as the first constructor argument.
    _type("System.ComponentModel.Design.MenuCommand", CMD),
    _type(f"{SHELL}.OleMenuCommand", CMD),
    # Switching to, or asserting, the UI thread.
    _method("SwitchToMainThreadAsync", UI, A, suffix=True),
    _method(f"{SHELL}.ThreadHelper.ThrowIfNotOnUIThread", UI, replacement="ThreadHelper.ThrowIfNotOnUIThread"),
    _method("Dispatcher.VerifyAccess", UI, suffix=True),
    # Blocking waits and their awaiting equivalents.
    _method("Wait", BW, suffix=True, strategy=AwaitStrategy.WAIT),
    _property("Result", BW, suffix=True, strategy=AwaitStrategy.RESULT),
    _method("GetResult", BW, suffix=True, strategy=AwaitStrategy.GET_RESULT),
    _method(f"{TASKS}.Task.WaitAll", BW, strategy=AwaitStrategy.WHEN_ALL, replacement="Task.WhenAll"),
    _method(f"{TASKS}.Task.WaitAny", BW, strategy=AwaitStrategy.WHEN_ANY, replacement="Task.WhenAny"),
    _method("JoinableTaskFactory.Run", BW, suffix=True, strategy=AwaitStrategy.RUN_INLINE),
    _method("System.Threading.Thread.Sleep", BW, strategy=AwaitStrategy.DELAY, replacement="Task.Delay"),
    # Calls that return an awaitable the caller must observe.
    _method("JoinableTaskFactory.RunAsync", A, suffix=True),
    _method(f"{TASKS}.Task.Run", A),
    _method(f"{TASKS}.Task.Delay", A),
    _method(f"{TASKS}.Task.WhenAll", A),
    _method(f"{TASKS}.Task.WhenAny", A),
    # Service location. The synchronous forms may return null.
    _method("GetService", SL, suffix=True),
    _method("GetGlobalService", SL, suffix=True),
    _method("GetServiceAsync", SL, A, suffix=True),
    _method("GetGlobalServiceAsync", SL, A, suffix=True),
    # Properties that take part in theme rendering.
    _property("Background", TT, suffix=True),
    _property("Foreground", TT, suffix=True),
    _property("BorderBrush", TT, suffix=True),
    _property("Fill", TT, suffix=True),
    _property("Stroke", TT, suffix=True),
    _property("Source", TT, suffix=True),
    # Attributes.
    _attribute(f"{MEF_NS}.ExportAttribute", MEF),
    _attribute("System.Composition.ExportAttribute", MEF),
    _attribute(f"{MEF_NS}.ImportingConstructorAttribute", role=ROLE_IMPORTING_CONSTRUCTOR),
    _attribute(f"{SHELL}.PackageRegistrationAttribute", role=ROLE_PACKAGE_REGISTRATION),
]

AWAITABLE_TYPES = frozenset({"Task", "ValueTask", "JoinableTask"})

_GENERIC_ARGS = re.compile(r"<[^<>]*>")


def normalize_name(name: str) -> str:
    """Drop ``global::``, generic arguments, nullable markers and whitespace."""
    name = "".join(name.split())
    if name.startswith("global::"):
        name = name[len("global::") :]
    name = name.replace("::", ".")
    previous = None
    while previous != name:
        previous = name
        name = _GENERIC_ARGS.sub("", name)
    return name.rstrip("?")


def is_awaitable_type(type_name: Optional[str]) -> bool:
    """True for ``Task``, ``Task<T>``, ``ValueTask<T>`` and the like."""
    if not type_name:
        return False
    return normalize_name(type_name).rsplit(".", 1)[-1] in AWAITABLE_TYPES


def get_registry() -> list[SymbolEntry]:
    """Return the built-in registry (snapshot)."""
    return list(BUILTIN_SYMBOLS)


def custom_entry(name: str, tags: frozenset) -> SymbolEntry:
    """Entry declared in configuration. ``*.Name`` makes a member-suffix entry."""
    suffix = name.startswith("*.")
    if suffix:
        name = name[2:]
    return SymbolEntry(normalize_name(name), SymbolKind.METHOD, frozenset(tags), member_suffix=suffix)
