"""Abstract syntax tree for extension source files.

The tree is strict: each node owns its children and no node appears twice.
``parent`` is a weak back-reference used for upward traversal only.

Child layout per kind:
    CompilationUnit     usings, namespaces, types
    UsingDirective      (none); attrs: name, alias
    NamespaceDecl       members; attrs: name
    ClassDecl           attributes, members; attrs: name, keyword, modifiers,
                        bases, base_spans
    MethodDecl          attributes, parameters, body (Block or expression);
                        attrs: name, name_span, modifiers, return_type,
                        return_type_span, is_constructor, is_local
    PropertyDecl        attributes, accessor bodies; attrs: name, type_name
    FieldDecl           attributes, declarators; attrs: type_name, is_event
    Parameter           default value; attrs: name, type_name
    Attribute           arguments; attrs: name, close_paren (offset of ``)``)
    Block               statements
    LocalDecl           declarators; attrs: type_name
    VariableDeclarator  initializer; attrs: name, name_span
    IfStmt              condition, then, else
    ReturnStmt          value
    ExprStmt            expression
    LoopStmt            header expressions, body; attrs: keyword
    TryStmt             blocks; attrs: keyword
    UsingStmt           resource, body
    OtherStmt           any parsed sub-expressions and blocks; attrs: keyword
    CallExpr            callee, arguments
    MemberAccess        receiver; attrs: name, name_span, conditional
    Identifier          attrs: name, type_args
    Literal             attrs: literal_kind, value
    Assignment          target, value; attrs: op
    Binary              left, right; attrs: op, negated (``is not``)
    Unary               operand; attrs: op, prefix
    Await               operand
    ObjectCreation      arguments, initializer expressions; attrs: type_name
    Lambda              body; attrs: params, is_async
    Conditional         condition, when_true, when_false
    Paren               inner
    Cast                operand; attrs: type_name
    ElementAccess       receiver, indices
"""

from __future__ import annotations

import weakref
from enum import Enum
from typing import Any, Iterator, Optional

from ..models import Span


class NodeKind(Enum):
    COMPILATION_UNIT = "CompilationUnit"
    USING_DIRECTIVE = "UsingDirective"
    NAMESPACE_DECL = "NamespaceDecl"
    CLASS_DECL = "ClassDecl"
    METHOD_DECL = "MethodDecl"
    PROPERTY_DECL = "PropertyDecl"
    FIELD_DECL = "FieldDecl"
    PARAMETER = "Parameter"
    ATTRIBUTE = "Attribute"
    BLOCK = "Block"
    LOCAL_DECL = "LocalDecl"
    VARIABLE_DECLARATOR = "VariableDeclarator"
    IF_STMT = "IfStmt"
    RETURN_STMT = "ReturnStmt"
    EXPR_STMT = "ExprStmt"
    LOOP_STMT = "LoopStmt"
    TRY_STMT = "TryStmt"
    USING_STMT = "UsingStmt"
    OTHER_STMT = "OtherStmt"
    CALL_EXPR = "CallExpr"
    MEMBER_ACCESS = "MemberAccess"
    IDENTIFIER = "Identifier"
    LITERAL = "Literal"
    ASSIGNMENT = "Assignment"
    BINARY = "Binary"
    UNARY = "Unary"
    AWAIT = "Await"
    OBJECT_CREATION = "ObjectCreation"
    LAMBDA = "Lambda"
    CONDITIONAL = "Conditional"
    PAREN = "Paren"
    CAST = "Cast"
    ELEMENT_ACCESS = "ElementAccess"


STATEMENT_KINDS = frozenset(
    {
        NodeKind.BLOCK,
        NodeKind.LOCAL_DECL,
        NodeKind.IF_STMT,
        NodeKind.RETURN_STMT,
        NodeKind.EXPR_STMT,
        NodeKind.LOOP_STMT,
        NodeKind.TRY_STMT,
        NodeKind.USING_STMT,
        NodeKind.OTHER_STMT,
        NodeKind.METHOD_DECL,
    }
)

TYPE_DECL_KINDS = frozenset({NodeKind.CLASS_DECL})


class AstNode:
    """One node of the syntax tree."""

    __slots__ = ("kind", "span", "children", "attrs", "tags", "leading_trivia", "_parent", "__weakref__")

    def __init__(
        self,
        kind: NodeKind,
        span: Span,
        children: Optional[list["AstNode"]] = None,
        attrs: Optional[dict[str, Any]] = None,
        leading_trivia: str = "",
    ):
        self.kind = kind
        self.span = span
        self.children: list[AstNode] = []
        self.attrs: dict[str, Any] = dict(attrs or {})
        # Filled in by the binder before rules run.
        self.tags: frozenset = frozenset()
        self.leading_trivia = leading_trivia
        self._parent: Optional[weakref.ReferenceType] = None
        for child in children or ():
            self.append(child)

    def append(self, child: "AstNode") -> None:
        if child._parent is not None and child._parent() is not None:
            raise ValueError(f"{child.kind.value} node already has a parent")
        child._parent = weakref.ref(self)
        self.children.append(child)

    @property
    def parent(self) -> Optional["AstNode"]:
        return self._parent() if self._parent is not None else None

    @property
    def name(self) -> Optional[str]:
        return self.attrs.get("name")

    def child(self, index: int) -> Optional["AstNode"]:
        return self.children[index] if index < len(self.children) else None

    def walk(self) -> Iterator["AstNode"]:
        """Depth-first pre-order traversal."""
        stack: list[AstNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def ancestors(self) -> Iterator["AstNode"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def enclosing(self, *kinds: NodeKind) -> Optional["AstNode"]:
        for node in self.ancestors():
            if node.kind in kinds:
                return node
        return None

    def index_in_parent(self) -> int:
        parent = self.parent
        if parent is None:
            return -1
        for i, c in enumerate(parent.children):
            if c is self:
                return i
        return -1

    def preceding_siblings(self) -> list["AstNode"]:
        parent = self.parent
        if parent is None:
            return []
        return parent.children[: self.index_in_parent()]

    def following_siblings(self) -> list["AstNode"]:
        parent = self.parent
        if parent is None:
            return []
        return parent.children[self.index_in_parent() + 1 :]

    def of_kind(self, kind: NodeKind) -> list["AstNode"]:
        return [c for c in self.children if c.kind is kind]

    def __repr__(self) -> str:
        label = self.attrs.get("name") or self.attrs.get("op") or self.attrs.get("keyword") or ""
        return f"<{self.kind.value} {label} @{self.span.start_line}:{self.span.start_col}>"


def dotted_name(node: Optional[AstNode]) -> Optional[str]:
    """Dotted target name of an expression, e.g. ``ThreadHelper.JoinableTaskFactory.Run``.

    ``this`` and ``base`` contribute nothing and a call contributes its
    callee, so ``this.GetService`` gives ``GetService`` and
    ``x.GetAwaiter().GetResult`` gives ``x.GetAwaiter.GetResult``. Returns None
    for expressions with no name.
    """
    if node is None:
        return None
    if node.kind is NodeKind.IDENTIFIER:
        name = node.attrs["name"]
        return None if name in ("this", "base") else name
    if node.kind is NodeKind.MEMBER_ACCESS:
        receiver = dotted_name(node.children[0]) if node.children else None
        member = node.attrs["name"]
        return f"{receiver}.{member}" if receiver else member
    if node.kind is NodeKind.CALL_EXPR:
        return dotted_name(node.children[0]) if node.children else None
    return None


def unwrap(node: Optional[AstNode]) -> Optional[AstNode]:
    """Strip parentheses, casts, ``as`` conversions, ``!`` and ``await``."""
    while node is not None:
        if node.kind in (NodeKind.PAREN, NodeKind.CAST, NodeKind.AWAIT):
            node = node.child(0)
        elif node.kind is NodeKind.BINARY and node.attrs.get("op") == "as":
            node = node.child(0)
        elif node.kind is NodeKind.UNARY and node.attrs.get("op") == "!" and not node.attrs.get("prefix"):
            node = node.child(0)
        else:
            return node
    return None
