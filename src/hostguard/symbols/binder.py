"""Attach symbol tags to the syntax tree before rules run.

The binder is the only pass that writes ``AstNode.tags``. Rules read tags
and never resolve names themselves, except for the fix templates that need
the matched entry (kept in ``attrs["symbol"]``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..syntax.nodes import AstNode, NodeKind, dotted_name, unwrap
from .registry import SymbolEntry, is_awaitable_type, normalize_name
from .table import ScopedSymbols, SymbolTable
from .tags import SymbolKind, SymbolTag

_EMPTY: frozenset = frozenset()


@dataclass(frozen=True)
class FileBinding:
    """What the binder learned about one file."""

    scope: ScopedSymbols
    event_handlers: frozenset
    command_handlers: frozenset
    async_methods: frozenset


def collect_namespaces(root: AstNode) -> tuple[list[str], dict[str, str]]:
    """Using directives plus enclosing namespace declarations, in source order."""
    namespaces: list[str] = []
    aliases: dict[str, str] = {}
    pending = [root]
    while pending:
        node = pending.pop(0)
        for child in node.children:
            if child.kind is NodeKind.USING_DIRECTIVE:
                name = normalize_name(child.attrs["name"])
                if child.attrs.get("alias"):
                    aliases[child.attrs["alias"]] = name
                else:
                    namespaces.append(name)
            elif child.kind is NodeKind.NAMESPACE_DECL:
                parts = normalize_name(child.attrs["name"]).split(".")
                for i in range(len(parts), 0, -1):
                    namespaces.append(".".join(parts[:i]))
                pending.append(child)
    seen = set()
    ordered = []
    for name in namespaces:
        if name not in seen:
            seen.add(name)
            ordered.append(name)
    return ordered, aliases


def handler_name(expr: Optional[AstNode]) -> Optional[str]:
    """Name of the method a delegate expression refers to, if any."""
    expr = unwrap(expr)
    if expr is None:
        return None
    if expr.kind is NodeKind.IDENTIFIER:
        return expr.attrs["name"]
    if expr.kind is NodeKind.MEMBER_ACCESS:
        return expr.attrs["name"]
    if expr.kind is NodeKind.OBJECT_CREATION and expr.attrs.get("arg_count"):
        # new EventHandler(OnClick)
        return handler_name(expr.children[0])
    return None


def is_callee(node: AstNode) -> bool:
    parent = node.parent
    return parent is not None and parent.kind is NodeKind.CALL_EXPR and parent.children[0] is node


def bind(root: AstNode, table: SymbolTable) -> FileBinding:
    namespaces, aliases = collect_namespaces(root)
    methods = [n for n in root.walk() if n.kind is NodeKind.METHOD_DECL]
    async_methods = frozenset(
        m.attrs["name"]
        for m in methods
        if not m.attrs["is_constructor"] and is_awaitable_type(m.attrs["return_type"])
    )
    local = {name: frozenset({SymbolTag.ASYNC_ENTRY_POINT}) for name in async_methods}
    scope = table.scoped(namespaces, aliases, local)

    event_handlers = set()
    command_handlers = set()
    for node in root.walk():
        if node.kind is NodeKind.ASSIGNMENT and node.attrs["op"] == "+=":
            name = handler_name(node.children[1])
            if name:
                event_handlers.add(name)
        elif node.kind is NodeKind.OBJECT_CREATION and node.attrs.get("type_name") and node.attrs["arg_count"]:
            if SymbolTag.COMMAND_HANDLER in scope.resolve(node.attrs["type_name"], SymbolKind.TYPE):
                name = handler_name(node.children[0])
                if name:
                    command_handlers.add(name)

    _bind_types(root, scope)

    for node in root.walk():
        kind = node.kind
        if kind is NodeKind.METHOD_DECL:
            tags = set()
            if node.attrs["name"] in async_methods and not node.attrs["is_constructor"]:
                tags.add(SymbolTag.ASYNC_ENTRY_POINT)
            if node.attrs["name"] in command_handlers:
                tags.add(SymbolTag.COMMAND_HANDLER)
            node.tags = frozenset(tags)
            node.attrs["event_handler"] = node.attrs["name"] in event_handlers
        elif kind is NodeKind.ATTRIBUTE:
            entry = scope.lookup_attribute(node.attrs["name"])
            node.attrs["symbol"] = entry
            node.tags = entry.tags if entry is not None else _EMPTY
        elif kind is NodeKind.CALL_EXPR:
            target = dotted_name(node.children[0])
            node.attrs["target"] = target
            node.attrs["symbol"] = scope.lookup(target, SymbolKind.METHOD)
            node.tags = scope.resolve(target, SymbolKind.METHOD)
        elif kind is NodeKind.MEMBER_ACCESS and not is_callee(node):
            target = dotted_name(node)
            node.attrs["target"] = target
            node.attrs["symbol"] = scope.lookup(target, SymbolKind.PROPERTY)
            node.tags = scope.resolve(target, SymbolKind.PROPERTY)
        elif kind is NodeKind.OBJECT_CREATION and node.attrs.get("type_name"):
            node.tags = scope.resolve(node.attrs["type_name"], SymbolKind.TYPE)
        elif kind is NodeKind.ASSIGNMENT:
            node.tags = scope.resolve(dotted_name(node.children[0]), SymbolKind.PROPERTY)

    return FileBinding(
        scope=scope,
        event_handlers=frozenset(event_handlers),
        command_handlers=frozenset(command_handlers),
        async_methods=async_methods,
    )


def _bind_types(root: AstNode, scope: ScopedSymbols) -> None:
    """Tag type declarations from their bases and attributes.

    A type deriving from another type in the same file inherits its tags and
    capabilities.
    """
    classes = [n for n in root.walk() if n.kind is NodeKind.CLASS_DECL]
    direct: dict[str, tuple[frozenset, frozenset]] = {}
    for node in classes:
        tags: set = set()
        capabilities: set = set()
        base_symbols: list[Optional[SymbolEntry]] = []
        for base in node.attrs["bases"]:
            entry = scope.lookup(base, SymbolKind.TYPE)
            base_symbols.append(entry)
            if entry is not None:
                tags |= entry.tags
                capabilities |= entry.capabilities
        for attribute in node.of_kind(NodeKind.ATTRIBUTE):
            entry = scope.lookup_attribute(attribute.attrs["name"])
            if entry is not None:
                tags |= entry.tags
        node.attrs["base_symbols"] = tuple(base_symbols)
        direct[node.attrs["name"]] = (frozenset(tags), frozenset(capabilities))

    resolved = dict(direct)
    changed = True
    while changed:
        changed = False
        for node in classes:
            tags, capabilities = resolved[node.attrs["name"]]
            for base in node.attrs["bases"]:
                inherited = resolved.get(normalize_name(base).rsplit(".", 1)[-1])
                if inherited is None or inherited is resolved[node.attrs["name"]]:
                    continue
                # MEF exports are not inherited.
                inherited_tags = inherited[0] - {SymbolTag.MEF_EXPORT}
                if not inherited_tags <= tags or not inherited[1] <= capabilities:
                    tags = tags | inherited_tags
                    capabilities = capabilities | inherited[1]
                    changed = True
            resolved[node.attrs["name"]] = (tags, capabilities)

    for node in classes:
        tags, capabilities = resolved[node.attrs["name"]]
        node.tags = tags
        node.attrs["capabilities"] = capabilities
