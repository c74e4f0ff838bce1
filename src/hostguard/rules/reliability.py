"""Reliability rules: lost exceptions and unchecked nulls.

unobserved-async-result
    Scope: expression statement
    Severity: Warning

    Detected when the statement is a bare call tagged AsyncEntryPoint (a call
    that returns an awaitable) whose result is dropped. Chained
    ``.ConfigureAwait(...)`` calls are looked through. Discarding into ``_``
    marks the call as deliberately fire-and-forget. Fixed by inserting
    ``await`` when the enclosing function is async and the call is not
    inside a ``lock`` or ``unsafe`` block.

async-void-entry
    Scope: method declaration
    Severity: Error

    Detected when an ``async void`` method is subscribed to an event in the
    same file or has the ``(object, ...EventArgs)`` handler shape. Fixed by
    returning ``Task``.

unchecked-service-lookup
    Scope: local declaration, member access
    Severity: Warning

    Detected when the result of a service lookup is dereferenced before any
    null check: either a local initialised from the lookup and used later in
    the same block, or a member access directly on the lookup. A local gets
    ``Assumes.Present(name);`` inserted after its declaration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..models import Category, FixProposal, Severity, TextEdit
from ..symbols.registry import TASKS
from ..symbols.tags import SymbolTag
from ..syntax.nodes import AstNode, NodeKind, unwrap
from .base import Match, Rule
from .helpers import first_use, function_of, inside_no_await_block, is_async_function, receiver, snippet

if TYPE_CHECKING:
    from ..engine.context import RuleContext


def _observed_call(expr: AstNode) -> Optional[AstNode]:
    """The awaitable-returning call an expression statement evaluates, if any."""
    while expr.kind is NodeKind.CALL_EXPR:
        if SymbolTag.ASYNC_ENTRY_POINT in expr.tags:
            return expr
        target = expr.attrs.get("target") or ""
        if not target.endswith("ConfigureAwait"):
            return None
        inner = receiver(expr)
        if inner is None:
            return None
        expr = inner
    return None


def _match_unobserved(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if not node.children:
        return None
    expr = node.children[0]
    call = _observed_call(expr)
    if call is None:
        return None
    return Match(expr.span, {"call": snippet(ctx, call)})


def _fix_unobserved(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    if not is_async_function(function_of(node)) or inside_no_await_block(node):
        return None
    start = node.children[0].span.start
    return FixProposal("Await the call", (TextEdit(start, start, "await "),))


UNOBSERVED_ASYNC_RESULT = Rule(
    id="unobserved-async-result",
    category=Category.RELIABILITY,
    severity=Severity.WARNING,
    node_kinds=frozenset({NodeKind.EXPR_STMT}),
    matcher=_match_unobserved,
    message="Result of async call '{call}' is never observed; exceptions it throws are lost",
    description="Calls returning a task whose result is silently dropped.",
    remediation="Await the call, or assign it to '_' if fire-and-forget is intended.",
    fix_template=_fix_unobserved,
)


def _has_handler_shape(method: AstNode) -> bool:
    params = method.of_kind(NodeKind.PARAMETER)
    if len(params) != 2:
        return False
    sender, args = (p.attrs["type_name"] for p in params)
    return sender.rstrip("?") in ("object", "Object", "System.Object") and args.split("<", 1)[0].endswith("EventArgs")


def _match_async_void(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if node.attrs["is_constructor"] or "async" not in node.attrs["modifiers"]:
        return None
    if node.attrs["return_type"] != "void":
        return None
    if not node.attrs.get("event_handler") and not _has_handler_shape(node):
        return None
    return_span = node.attrs["return_type_span"]
    return Match(
        ctx.span(return_span.start, node.attrs["name_span"].end),
        {"name": node.attrs["name"]},
        data=return_span,
    )


def _fix_async_void(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    return_span = match.data
    task = ctx.qualify(TASKS, "Task")
    return FixProposal(f"Return {task} instead of void", (TextEdit(return_span.start, return_span.end, task),))


ASYNC_VOID_ENTRY = Rule(
    id="async-void-entry",
    category=Category.RELIABILITY,
    severity=Severity.ERROR,
    node_kinds=frozenset({NodeKind.METHOD_DECL}),
    matcher=_match_async_void,
    message="async void event handler '{name}' crashes the host if it throws",
    description="async void methods used as event callbacks; their exceptions cannot be caught.",
    remediation="Return Task and observe it, or catch every exception inside the handler.",
    fix_template=_fix_async_void,
)


def _lookup_call(expr: Optional[AstNode]) -> Optional[AstNode]:
    expr = unwrap(expr)
    if expr is not None and expr.kind is NodeKind.CALL_EXPR and SymbolTag.SERVICE_LOCATOR in expr.tags:
        return expr
    return None


def _match_unchecked_local(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    parent = node.parent
    if parent is None or parent.kind is not NodeKind.BLOCK:
        return None
    following = node.following_siblings()
    for declarator in node.of_kind(NodeKind.VARIABLE_DECLARATOR):
        call = _lookup_call(declarator.child(0))
        if call is None:
            continue
        name = declarator.attrs["name"]
        use = first_use(following, name)
        if use is not None and use[0] == "deref":
            return Match(declarator.span, {"call": snippet(ctx, call), "via": f" through '{name}'"}, data=name)
    return None


def _match_unchecked_member(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if node.attrs["conditional"]:
        return None
    call = _lookup_call(node.children[0])
    if call is None:
        return None
    return Match(node.span, {"call": snippet(ctx, call), "via": ""})


def _match_unchecked(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if node.kind is NodeKind.LOCAL_DECL:
        return _match_unchecked_local(node, ctx)
    return _match_unchecked_member(node, ctx)


def _fix_unchecked(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    if node.kind is not NodeKind.LOCAL_DECL:
        return None
    name = match.data
    at = node.span.end
    assumes = ctx.qualify("Microsoft", "Assumes.Present")
    text = f"\n{ctx.indentation(node)}{assumes}({name});"
    return FixProposal(f"Assert that '{name}' is present", (TextEdit(at, at, text),))


UNCHECKED_SERVICE_LOOKUP = Rule(
    id="unchecked-service-lookup",
    category=Category.RELIABILITY,
    severity=Severity.WARNING,
    node_kinds=frozenset({NodeKind.LOCAL_DECL, NodeKind.MEMBER_ACCESS}),
    matcher=_match_unchecked,
    message="Service lookup '{call}' is dereferenced{via} before a null check",
    description="Service lookups can return null when the service is not registered or not loaded yet.",
    remediation="Check the result for null, or call Assumes.Present before using it.",
    fix_template=_fix_unchecked,
)

RULES = [UNOBSERVED_ASYNC_RESULT, ASYNC_VOID_ENTRY, UNCHECKED_SERVICE_LOOKUP]
