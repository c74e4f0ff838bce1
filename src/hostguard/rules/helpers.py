"""Tree queries shared by the rule modules."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Callable, Iterator, Optional

from ..symbols.tags import SymbolTag
from ..syntax.nodes import AstNode, NodeKind, dotted_name, unwrap

if TYPE_CHECKING:
    from ..engine.context import RuleContext

FUNCTION_KINDS = (NodeKind.METHOD_DECL, NodeKind.LAMBDA, NodeKind.PROPERTY_DECL)

# Containers whose children run one after another.
SEQUENCE_KINDS = (NodeKind.BLOCK,)

SNIPPET_LIMIT = 60

# Statements whose bodies may not contain 'await'.
NO_AWAIT_KEYWORDS = frozenset({"lock", "unsafe", "fixed"})

# Calls that assert their argument is not null.
PRESENCE_ASSERTIONS = frozenset(
    {
        "Assumes.Present",
        "Assumes.NotNull",
        "Requires.NotNull",
        "Debug.Assert",
        "Trace.Assert",
        "ArgumentNullException.ThrowIfNull",
        "Verify.Operation",
        "Validate.IsNotNull",
    }
)

_HEX_COLOR = re.compile(r'^@?"#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})"$')


def function_of(node: AstNode) -> Optional[AstNode]:
    """Nearest enclosing method, local function, lambda or property."""
    return node.enclosing(*FUNCTION_KINDS)


def type_of(node: AstNode) -> Optional[AstNode]:
    return node.enclosing(NodeKind.CLASS_DECL)


def is_async_function(function: Optional[AstNode]) -> bool:
    if function is None:
        return False
    if function.kind is NodeKind.LAMBDA:
        return bool(function.attrs.get("is_async"))
    return "async" in function.attrs.get("modifiers", ())


def method_body(method: AstNode) -> Optional[AstNode]:
    if not method.attrs.get("has_body") or not method.children:
        return None
    body = method.children[-1]
    return None if body.kind in (NodeKind.ATTRIBUTE, NodeKind.PARAMETER) else body


def walk_local(node: AstNode) -> Iterator[AstNode]:
    """Pre-order walk that does not descend into nested lambdas or local functions."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        for child in reversed(current.children):
            if child.kind in (NodeKind.LAMBDA, NodeKind.METHOD_DECL):
                continue
            stack.append(child)


def has_tagged_call(node: AstNode, tag: SymbolTag) -> bool:
    """True if ``node`` makes a call tagged ``tag`` when it runs."""
    if node.kind in (NodeKind.LAMBDA, NodeKind.METHOD_DECL):
        return False
    return any(n.kind is NodeKind.CALL_EXPR and tag in n.tags for n in walk_local(node))


def preceded_by(node: AstNode, predicate: Callable[[AstNode], bool]) -> bool:
    """True if a statement that runs before ``node`` in its function satisfies ``predicate``.

    Walks outwards through enclosing blocks and checks the statements that
    come before the path to ``node`` in each one. Stops at the enclosing
    function, so code outside a lambda never counts for code inside it.
    """
    current = node
    for ancestor in node.ancestors():
        if ancestor.kind in SEQUENCE_KINDS:
            for sibling in current.preceding_siblings():
                if predicate(sibling):
                    return True
        if ancestor.kind in FUNCTION_KINDS:
            return False
        current = ancestor
    return False


def inside_no_await_block(node: AstNode) -> bool:
    """True if ``await`` is not allowed at ``node``: inside a ``lock`` body or an unsafe context."""
    for ancestor in node.ancestors():
        if ancestor.kind in FUNCTION_KINDS:
            return "unsafe" in ancestor.attrs.get("modifiers", ())
        if ancestor.kind is NodeKind.OTHER_STMT and ancestor.attrs.get("keyword") in NO_AWAIT_KEYWORDS:
            return True
    return False


def snippet(ctx: "RuleContext", node: AstNode, limit: int = SNIPPET_LIMIT) -> str:
    """Source text of ``node`` on one line, shortened for messages."""
    text = " ".join(ctx.text(node).split())
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


def receiver(node: AstNode) -> Optional[AstNode]:
    """Receiver of a member access, or of the callee of a call."""
    if node.kind is NodeKind.CALL_EXPR:
        node = node.children[0]
    if node.kind is NodeKind.MEMBER_ACCESS:
        return node.children[0]
    return None


def call_arguments(call: AstNode) -> list[AstNode]:
    return call.children[1:]


def is_name(node: Optional[AstNode], name: str) -> bool:
    node = unwrap(node)
    return node is not None and node.kind is NodeKind.IDENTIFIER and node.attrs["name"] == name


def needs_parentheses_as_operand(node: AstNode) -> bool:
    """True if replacing ``node`` with ``await x`` changes how its parent binds."""
    parent = node.parent
    if parent is None:
        return False
    if parent.kind in (NodeKind.MEMBER_ACCESS, NodeKind.ELEMENT_ACCESS):
        return parent.children[0] is node
    if parent.kind is NodeKind.CALL_EXPR:
        return parent.children[0] is node
    if parent.kind is NodeKind.UNARY and not parent.attrs.get("prefix"):
        return True
    if parent.kind is NodeKind.BINARY and parent.attrs.get("op") in ("is", "as"):
        return True
    return False


def is_simple_operand(node: AstNode) -> bool:
    return node.kind in (
        NodeKind.IDENTIFIER,
        NodeKind.MEMBER_ACCESS,
        NodeKind.CALL_EXPR,
        NodeKind.ELEMENT_ACCESS,
        NodeKind.PAREN,
        NodeKind.OBJECT_CREATION,
        NodeKind.LITERAL,
    )


def await_text(ctx: "RuleContext", operand: AstNode, replaced: AstNode) -> str:
    """``await <operand>`` as it must be written in place of ``replaced``."""
    inner = ctx.text(operand)
    if not is_simple_operand(operand):
        inner = f"({inner})"
    text = f"await {inner}"
    if needs_parentheses_as_operand(replaced):
        text = f"({text})"
    return text


# -- null checks --


def _is_null(node: Optional[AstNode]) -> bool:
    node = unwrap(node)
    return node is not None and node.kind is NodeKind.LITERAL and node.attrs["literal_kind"] == "null"


def checks_presence(node: AstNode, name: str) -> bool:
    """True if ``node`` itself is a presence check of the local ``name``."""
    kind = node.kind
    if kind is NodeKind.BINARY:
        op = node.attrs["op"]
        left, right = node.children[0], node.children[-1]
        if op in ("==", "!="):
            return (is_name(left, name) and _is_null(right)) or (is_name(right, name) and _is_null(left))
        if op == "is":
            return is_name(left, name)
        if op == "??":
            return is_name(left, name)
    if kind is NodeKind.CALL_EXPR:
        target = node.attrs.get("target") or dotted_name(node.children[0]) or ""
        if any(target == a or target.endswith("." + a) for a in PRESENCE_ASSERTIONS):
            return any(is_name(arg, name) for arg in call_arguments(node))
    if kind is NodeKind.ASSIGNMENT and node.attrs["op"] == "??=":
        return is_name(node.children[0], name)
    return False


def dereferences(node: AstNode, name: str) -> bool:
    """True if ``node`` dereferences the local ``name`` without a null-conditional."""
    kind = node.kind
    if kind is NodeKind.MEMBER_ACCESS and not node.attrs["conditional"]:
        return is_name(node.children[0], name)
    if kind is NodeKind.ELEMENT_ACCESS and not node.attrs.get("conditional"):
        return is_name(node.children[0], name)
    if kind is NodeKind.CALL_EXPR:
        callee = node.children[0]
        return callee.kind is NodeKind.IDENTIFIER and callee.attrs["name"] == name
    return False


def reassigns(node: AstNode, name: str) -> bool:
    return node.kind is NodeKind.ASSIGNMENT and node.attrs["op"] == "=" and is_name(node.children[0], name)


def first_use(statements: list[AstNode], name: str) -> Optional[tuple[str, AstNode]]:
    """First check, dereference or reassignment of ``name`` in execution order.

    Returns ``("check", node)``, ``("deref", node)``, ``("assign", node)`` or
    None when the statements never touch it that way.
    """
    for statement in statements:
        for node in statement.walk():
            if checks_presence(node, name):
                return "check", node
            if reassigns(node, name):
                return "assign", node
            if dereferences(node, name):
                return "deref", node
    return None


# -- visual literals --

VISUAL_CONSTANT_HOLDERS = frozenset({"Brushes", "Colors", "Color", "Pens"})
VISUAL_TYPES = frozenset(
    {"SolidColorBrush", "LinearGradientBrush", "RadialGradientBrush", "ImageBrush", "BitmapImage", "Pen"}
)
VISUAL_FACTORIES = frozenset({"FromRgb", "FromArgb", "FromScRgb", "FromHtml", "FromName", "ConvertFromString"})


def is_visual_literal(node: Optional[AstNode]) -> bool:
    """Named colors and brushes, colour constructors and ``"#RRGGBB"`` strings."""
    node = unwrap(node)
    if node is None:
        return False
    kind = node.kind
    if kind is NodeKind.MEMBER_ACCESS:
        holder = dotted_name(node.children[0])
        return holder is not None and holder.rsplit(".", 1)[-1] in VISUAL_CONSTANT_HOLDERS
    if kind is NodeKind.OBJECT_CREATION:
        type_name = node.attrs.get("type_name") or ""
        return type_name.rsplit(".", 1)[-1].split("<", 1)[0] in VISUAL_TYPES
    if kind is NodeKind.CALL_EXPR:
        target = dotted_name(node.children[0]) or ""
        return "." in target and target.rsplit(".", 1)[-1] in VISUAL_FACTORIES
    if kind is NodeKind.LITERAL and node.attrs["literal_kind"] == "string":
        return bool(_HEX_COLOR.match(node.attrs["value"]))
    return False
