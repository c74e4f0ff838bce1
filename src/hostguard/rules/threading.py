"""Threading rules: code that can block or assert the wrong thread.

blocking-call-on-affinity-thread
    Scope: call or property access tagged BlockingWait
    Severity: Error

    Detected when:
    - The wait sits directly in a method or property of a type tagged
      AsyncEntryPoint, or in a method that itself returns an awaitable
      (lambdas are not followed)
    - No statement that runs earlier in the same method switches to or
      asserts the UI thread

    Fixed when the enclosing method is ``async``, the wait is outside any
    ``lock`` or ``unsafe`` block and it has a known awaiting form. Otherwise
    the message asks for a manual fix.

command-handler-thread-assert
    Scope: method bound as a menu command handler
    Severity: Warning

    Detected when a synchronous handler's first statement does not assert
    the UI thread. The fix inserts ``ThreadHelper.ThrowIfNotOnUIThread();``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..models import Category, FixProposal, Severity, TextEdit
from ..symbols.registry import SHELL, TASKS, SymbolEntry
from ..symbols.tags import AwaitStrategy, SymbolTag
from ..syntax.nodes import AstNode, NodeKind, unwrap
from .base import Match, Rule
from .helpers import (
    await_text,
    call_arguments,
    function_of,
    has_tagged_call,
    inside_no_await_block,
    is_async_function,
    method_body,
    needs_parentheses_as_operand,
    preceded_by,
    receiver,
    snippet,
    type_of,
)

if TYPE_CHECKING:
    from ..engine.context import RuleContext

_MANUAL = "manual fix required: make the caller async or move the wait off the UI thread"


def _switches_thread(statement: AstNode) -> bool:
    return has_tagged_call(statement, SymbolTag.UI_THREAD_SWITCH)


def _awaiter_receiver(call: AstNode) -> Optional[AstNode]:
    """``x`` in ``x.GetAwaiter().GetResult()``."""
    if call.kind is not NodeKind.CALL_EXPR or call_arguments(call):
        return None
    inner = receiver(call)
    if inner is None or inner.kind is not NodeKind.CALL_EXPR or call_arguments(inner):
        return None
    callee = inner.children[0]
    if callee.kind is not NodeKind.MEMBER_ACCESS or callee.attrs["name"] != "GetAwaiter":
        return None
    return callee.children[0]


def _inline_body(lambda_node: AstNode) -> Optional[AstNode]:
    """The awaitable a ``Run(async () => await X)`` delegate produces, if it is that simple."""
    if lambda_node.attrs["params"]:
        return None
    body = lambda_node.children[0]
    if not lambda_node.attrs["is_async"]:
        return None if body.kind is NodeKind.BLOCK else body
    if body.kind is NodeKind.BLOCK:
        if len(body.children) != 1:
            return None
        statement = body.children[0]
        if statement.kind not in (NodeKind.EXPR_STMT, NodeKind.RETURN_STMT) or not statement.children:
            return None
        body = statement.children[0]
    if body.kind is not NodeKind.AWAIT:
        return None
    return body.children[0]


def _with_await(node: AstNode, expression: str) -> str:
    text = f"await {expression}"
    return f"({text})" if needs_parentheses_as_operand(node) else text


def _await_rewrite(node: AstNode, entry: Optional[SymbolEntry], ctx: "RuleContext") -> Optional[str]:
    """Awaiting replacement text for a blocking wait, or None if there is none."""
    strategy = entry.await_strategy if entry is not None else None
    args = call_arguments(node) if node.kind is NodeKind.CALL_EXPR else []
    if strategy is AwaitStrategy.WAIT:
        target = receiver(node)
        if args or target is None:
            return None
        return await_text(ctx, target, node)
    if strategy is AwaitStrategy.RESULT:
        if node.kind is not NodeKind.MEMBER_ACCESS:
            return None
        return await_text(ctx, node.children[0], node)
    if strategy is AwaitStrategy.GET_RESULT:
        target = _awaiter_receiver(node)
        return await_text(ctx, target, node) if target is not None else None
    if strategy in (AwaitStrategy.WHEN_ALL, AwaitStrategy.WHEN_ANY):
        callee = node.children[0]
        parent = node.parent
        if callee.kind is not NodeKind.MEMBER_ACCESS or parent is None or parent.kind is not NodeKind.EXPR_STMT:
            return None
        if args and unwrap(args[-1]).kind is NodeKind.LITERAL:
            return None  # timeout overload
        text = ctx.source.text
        name_span = callee.attrs["name_span"]
        replacement = entry.replacement.rsplit(".", 1)[-1]
        rewritten = text[node.span.start : name_span.start] + replacement + text[name_span.end : node.span.end]
        return f"await {rewritten}"
    if strategy is AwaitStrategy.RUN_INLINE:
        if len(args) != 1 or args[0].kind is not NodeKind.LAMBDA:
            return None
        awaited = _inline_body(args[0])
        return await_text(ctx, awaited, node) if awaited is not None else None
    if strategy is AwaitStrategy.DELAY:
        if len(args) != 1:
            return None
        delay = ctx.qualify(TASKS, entry.replacement)
        return _with_await(node, f"{delay}({ctx.text(args[0])})")
    return None


def _match_blocking(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if SymbolTag.BLOCKING_WAIT not in node.tags:
        return None
    entry = node.attrs.get("symbol")
    if entry is not None and entry.await_strategy is AwaitStrategy.GET_RESULT and _awaiter_receiver(node) is None:
        return None
    function = function_of(node)
    if function is None or function.kind is NodeKind.LAMBDA:
        return None
    owner = type_of(node)
    in_entry_type = owner is not None and SymbolTag.ASYNC_ENTRY_POINT in owner.tags
    if not in_entry_type and SymbolTag.ASYNC_ENTRY_POINT not in function.tags:
        return None
    if preceded_by(node, _switches_thread):
        return None

    awaitable = is_async_function(function) and not inside_no_await_block(node)
    rewrite = _await_rewrite(node, entry, ctx) if awaitable else None
    remedy = f"use '{' '.join(rewrite.split())}' instead" if rewrite else _MANUAL
    return Match(node.span, {"call": snippet(ctx, node), "remedy": remedy}, data=rewrite)


def _fix_blocking(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    if match.data is None:
        return None
    return FixProposal("Await instead of blocking", (TextEdit(node.span.start, node.span.end, match.data),))


BLOCKING_CALL = Rule(
    id="blocking-call-on-affinity-thread",
    category=Category.THREADING,
    severity=Severity.ERROR,
    node_kinds=frozenset({NodeKind.CALL_EXPR, NodeKind.MEMBER_ACCESS}),
    matcher=_match_blocking,
    message="Blocking wait '{call}' can deadlock the UI thread; {remedy}",
    description="Synchronous waits on tasks in UI-affine package and window code.",
    remediation="Make the caller async and await the task, or switch to a background thread first.",
    fix_template=_fix_blocking,
)


def _asserts_ui_thread(statement: AstNode) -> bool:
    if statement.kind is not NodeKind.EXPR_STMT:
        return False
    expr = unwrap(statement.children[0])
    return expr is not None and expr.kind is NodeKind.CALL_EXPR and SymbolTag.UI_THREAD_SWITCH in expr.tags


def _match_command_handler(node: AstNode, ctx: "RuleContext") -> Optional[Match]:
    if SymbolTag.COMMAND_HANDLER not in node.tags or is_async_function(node):
        return None
    body = method_body(node)
    if body is None or body.kind is not NodeKind.BLOCK:
        return None
    first = body.child(0)
    if first is not None and _asserts_ui_thread(first):
        return None
    return Match(node.attrs["name_span"], {"name": node.attrs["name"]}, data=body)


def _fix_command_handler(node: AstNode, match: Match, ctx: "RuleContext") -> Optional[FixProposal]:
    body = match.data
    call = ctx.qualify(SHELL, "ThreadHelper.ThrowIfNotOnUIThread") + "();"
    first = body.child(0)
    if first is not None:
        at = first.span.start
        text = f"{call}\n{ctx.indentation(first)}"
    else:
        at = body.span.start + 1
        text = f"\n{ctx.indentation(body)}    {call}"
    return FixProposal("Assert the UI thread on entry", (TextEdit(at, at, text),))


COMMAND_HANDLER_ASSERT = Rule(
    id="command-handler-thread-assert",
    category=Category.THREADING,
    severity=Severity.WARNING,
    node_kinds=frozenset({NodeKind.METHOD_DECL}),
    matcher=_match_command_handler,
    message="Command handler '{name}' does not assert that it runs on the UI thread",
    description="Menu command handlers that touch UI state without checking the calling thread.",
    remediation="Call ThreadHelper.ThrowIfNotOnUIThread() as the first statement of the handler.",
    fix_template=_fix_command_handler,
)

RULES = [BLOCKING_CALL, COMMAND_HANDLER_ASSERT]
