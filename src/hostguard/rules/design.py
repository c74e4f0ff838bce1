"""Design rules: component and naming conventions.

mef-constructor-service-lookup
    Scope: call
    Severity: Warning

    Detected when a synchronous service lookup runs directly in the
    constructor of a type exported through MEF. The composition container
    may build parts on any thread and at any time.

async-method-naming
    Scope: method declaration
    Severity: Info

    Detected when a method returns an awaitable type and its name does not
    end in ``Async``. Overrides, ``Main`` and event handlers are exempt. For
    private methods the fix renames the declaration and the unqualified or
    ``this.`` references to it inside the declaring type. Methods that other
    types can call are reported without a fix.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..models import Category, FixProposal, Severity, TextEdit
from ..symbols.registry import is_awaitable_type
from ..symbols.tags import SymbolTag
from ..syntax.nodes import AstNode, NodeKind
from .base import Match, Rule
from .helpers import function_of, snippet, type_of

if TYPE_CHECKING:
    from ..engine.context import RuleContext

ASYNC_SUFFIX = "Async"
EXEMPT_NAMES = frozenset({"Main"})

# Modifiers that let code outside the declaring type call a method.
VISIBLE_MODIFIERS = frozenset({"public", "protected", "internal", "partial"})


def _match_mef_lookup(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if SymbolTag.SERVICE_LOCATOR not in node.tags or SymbolTag.ASYNC_ENTRY_POINT in node.tags:
        return None
    function = function_of(node)
    if function is None or function.kind is not NodeKind.METHOD_DECL or not function.attrs["is_constructor"]:
        return None
    owner = type_of(node)
    if owner is None or SymbolTag.MEF_EXPORT not in owner.tags:
        return None
    return Match(node.span, {"call": snippet(ctx, node), "type": owner.attrs["name"]})


MEF_CONSTRUCTOR_LOOKUP = Rule(
    id="mef-constructor-service-lookup",
    category=Category.DESIGN,
    severity=Severity.WARNING,
    node_kinds=frozenset({NodeKind.CALL_EXPR}),
    matcher=_match_mef_lookup,
    message="MEF part '{type}' looks up '{call}' synchronously in its constructor",
    description="Synchronous service lookups while the composition container builds a part.",
    remediation="Import the service, or resolve it lazily on first use with GetServiceAsync.",
)


def _match_naming(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if node.attrs["is_constructor"] or not is_awaitable_type(node.attrs["return_type"]):
        return None
    name = node.attrs["name"]
    if name.endswith(ASYNC_SUFFIX) or name in EXEMPT_NAMES:
        return None
    if "override" in node.attrs["modifiers"] or node.attrs.get("event_handler"):
        return None
    return Match(node.attrs["name_span"], {"name": name, "suggested": name + ASYNC_SUFFIX})


def _references(scope: AstNode, name: str, ctx: "RuleContext") -> list[TextEdit]:
    edits = []
    text = ctx.source.text
    for node in scope.walk():
        if node.kind is NodeKind.IDENTIFIER and node.attrs["name"] == name and "declared_type" not in node.attrs:
            start = node.span.start
        elif node.kind is NodeKind.MEMBER_ACCESS and node.attrs["name"] == name:
            receiver = node.children[0]
            if receiver.kind is not NodeKind.IDENTIFIER or receiver.attrs["name"] not in ("this", "base"):
                continue
            start = node.attrs["name_span"].start
        else:
            continue
        if text[start : start + len(name)] == name:
            edits.append(TextEdit(start, start + len(name), name + ASYNC_SUFFIX))
    return edits


def _fix_naming(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    owner = type_of(node)
    if VISIBLE_MODIFIERS & set(node.attrs["modifiers"]):
        return None
    if owner is not None and owner.attrs["keyword"] == "interface":
        return None
    name = node.attrs["name"]
    renamed = name + ASYNC_SUFFIX
    scope = owner if owner is not None else next(iter(node.ancestors()), node)
    if any(n.kind is NodeKind.METHOD_DECL and n.attrs["name"] == renamed for n in scope.walk()):
        return None
    name_span = node.attrs["name_span"]
    edits = {name_span.start: TextEdit(name_span.start, name_span.end, renamed)}
    for edit in _references(scope, name, ctx):
        edits.setdefault(edit.start, edit)
    return FixProposal(f"Rename to {renamed}", tuple(edits[k] for k in sorted(edits)))


ASYNC_METHOD_NAMING = Rule(
    id="async-method-naming",
    category=Category.DESIGN,
    severity=Severity.INFO,
    node_kinds=frozenset({NodeKind.METHOD_DECL}),
    matcher=_match_naming,
    message="Method '{name}' returns an awaitable; rename it to '{suggested}'",
    description="Methods returning Task or ValueTask without the Async suffix.",
    remediation="Append 'Async' to the method name and update its callers.",
    fix_template=_fix_naming,
)

RULES = [MEF_CONSTRUCTOR_LOOKUP, ASYNC_METHOD_NAMING]
