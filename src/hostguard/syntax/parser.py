"""Recursive-descent parser producing the syntax tree.

Declarations and statements are parsed by recursive descent; expressions use
precedence climbing. A statement or member the parser does not understand is
kept as an ``OtherStmt`` spanning its tokens instead of failing the file.
Delimiters are checked up front, so skipping a construct always lands on a
token boundary that belongs to the enclosing construct.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..exceptions import ParseError
from ..models import Span
from .lexer import CLOSERS, OPENERS, Token, TokenKind, check_delimiters, find_matching, tokenize
from .nodes import AstNode, NodeKind
from .source import SourceText

PREDEFINED_TYPES = frozenset(
    "bool byte char decimal double float int long object sbyte short string uint ulong ushort void".split()
)

MEMBER_MODIFIERS = frozenset(
    "public private protected internal static readonly virtual override abstract sealed extern unsafe new const volatile".split()
)
CONTEXTUAL_MODIFIERS = frozenset({"async", "partial", "required", "file"})
LOCAL_MODIFIERS = frozenset({"const", "static", "unsafe", "readonly", "extern"})

ASSIGNMENT_OPS = frozenset({"=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<=", "??="})

BINARY_PRECEDENCE = {
    "??": 1,
    "||": 2,
    "&&": 3,
    "|": 4,
    "^": 5,
    "&": 6,
    "==": 7,
    "!=": 7,
    "<": 8,
    ">": 8,
    "<=": 8,
    ">=": 8,
    "is": 8,
    "as": 8,
    "<<": 9,
    ">>": 9,
    "+": 10,
    "-": 10,
    "*": 11,
    "/": 11,
    "%": 11,
}
RIGHT_ASSOCIATIVE = frozenset({"??"})

PREFIX_OPS = frozenset({"!", "-", "+", "~", "++", "--", "&", "*", "^"})

# Tokens that may follow a generic argument list inside an expression.
TYPE_ARG_FOLLOWERS = frozenset(
    {"(", ")", "]", "}", ":", ";", ",", ".", "?.", "?", "==", "!=", "|", "^", "&&", "||", "&", "["}
)
NULL_FORGIVING_FOLLOWERS = frozenset({".", "?.", ")", ";", ",", "]", "}", "[", "??", ":", "="})
NOT_AN_OPERAND = frozenset({"is", "as", "in", "out", "ref", "switch", "when"})


@dataclass(frozen=True)
class Recovery:
    """An opening delimiter that was closed implicitly at end of file."""

    message: str
    span: Span


@dataclass
class ParseResult:
    root: AstNode
    recoveries: list[Recovery]
    source: SourceText

    @property
    def recovered(self) -> bool:
        return bool(self.recoveries)


class _Bail(Exception):
    """Construct not understood; the enclosing statement or member is skipped."""


def _identifier(tok: Token) -> str:
    return tok.text[1:] if tok.text.startswith("@") else tok.text


class Parser:
    def __init__(self, source: SourceText):
        self.source = source
        self.tokens = tokenize(source)
        unclosed = check_delimiters(self.tokens, source)
        self.recoveries = []
        for tok in unclosed:
            line, col = source.line_col(tok.start)
            self.recoveries.append(
                Recovery(
                    f"{tok.text!r} opened at line {line}, column {col} is not closed before end of file",
                    source.span(tok.start, tok.end),
                )
            )
        self.pos = 0
        self._statement_parsers = {
            "if": self.parse_if,
            "return": self.parse_return,
            "while": self.parse_while,
            "do": self.parse_do,
            "for": self.parse_for,
            "foreach": self.parse_foreach,
            "try": self.parse_try,
            "using": self.parse_using_statement,
            "lock": self.parse_lock,
            "switch": self.parse_switch,
            "throw": self.parse_throw,
            "break": self.parse_jump,
            "continue": self.parse_jump,
            "goto": self.parse_goto,
            "checked": self.parse_guarded_block,
            "unchecked": self.parse_guarded_block,
            "unsafe": self.parse_guarded_block,
            "fixed": self.parse_guarded_block,
        }

    # -- token helpers --

    @property
    def tok(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, k: int = 1) -> Token:
        return self.tokens[min(self.pos + k, len(self.tokens) - 1)]

    def at_eof(self) -> bool:
        return self.tok.kind is TokenKind.EOF

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.kind is not TokenKind.EOF:
            self.pos += 1
        return tok

    def accept(self, *texts: str) -> Optional[Token]:
        if self.tok.is_punct(*texts):
            return self.advance()
        return None

    def expect(self, text: str) -> Optional[Token]:
        """Consume ``text``; closers and ``;`` missing at end of file are implied."""
        if self.tok.is_punct(text):
            return self.advance()
        if self.at_eof() and (text in CLOSERS or text == ";"):
            return None
        raise _Bail(f"expected {text!r}, found {self.tok.text!r}")

    def expect_identifier(self) -> Token:
        if self.tok.kind is TokenKind.IDENTIFIER:
            return self.advance()
        raise _Bail(f"expected an identifier, found {self.tok.text!r}")

    @property
    def last_end(self) -> int:
        return self.tokens[self.pos - 1].end if self.pos > 0 else 0

    def token_span(self, tok: Token) -> Span:
        return self.source.span(tok.start, tok.end)

    def node(self, kind: NodeKind, start: int, children=(), **attrs) -> AstNode:
        first = self.tokens[start]
        end = max(self.last_end, first.start) if self.pos > start else first.start
        return AstNode(kind, self.source.span(first.start, end), list(children), attrs, first.leading_trivia)

    def skip_group(self) -> None:
        match = find_matching(self.tokens, self.pos)
        self.pos = len(self.tokens) - 1 if match is None else match + 1

    def skip_construct(self, start: int, keyword: str) -> AstNode:
        self.pos = start
        while not self.at_eof():
            tok = self.tok
            if tok.is_punct(";"):
                self.advance()
                break
            if tok.kind is TokenKind.PUNCT and tok.text in CLOSERS:
                break
            if tok.kind is TokenKind.PUNCT and tok.text in OPENERS:
                self.skip_group()
                if tok.text == "{":
                    self.accept(";")
                    break
                continue
            self.advance()
        if self.pos == start and not self.at_eof():
            self.advance()
        return self.node(NodeKind.OTHER_STMT, start, keyword=keyword)

    # -- types and names --

    def parse_type(self, allow_nullable: bool = True, allow_arrays: bool = True) -> tuple[str, int, int]:
        first = self.tok
        if first.is_punct("("):
            close = find_matching(self.tokens, self.pos)
            if close is None:
                raise _Bail("unterminated tuple type")
            self.pos = close + 1
        elif first.kind is TokenKind.IDENTIFIER or (first.kind is TokenKind.KEYWORD and first.text in PREDEFINED_TYPES):
            self.advance()
            if self.tok.is_punct("<"):
                self.parse_type_argument_list()
            while self.tok.is_punct(".", "::") and self.peek().kind is TokenKind.IDENTIFIER:
                self.advance()
                self.advance()
                if self.tok.is_punct("<"):
                    self.parse_type_argument_list()
        else:
            raise _Bail(f"expected a type, found {first.text!r}")
        while True:
            if allow_nullable and self.tok.is_punct("?"):
                self.advance()
            elif allow_arrays and self.tok.is_punct("[") and self.peek().is_punct("]", ","):
                self.skip_group()
            else:
                break
        end = self.last_end
        text = "".join(self.source.text[first.start : end].split())
        return text, first.start, end

    def parse_type_argument_list(self) -> list[str]:
        self.advance()  # <
        args = []
        while True:
            if not self.tok.is_punct(",", ">"):
                args.append(self.parse_type()[0])
            if not self.accept(","):
                break
        if not self.tok.is_punct(">"):
            raise _Bail("unterminated type argument list")
        self.advance()
        return args

    def try_type_arguments(self) -> Optional[tuple[str, ...]]:
        if not self.tok.is_punct("<"):
            return None
        save = self.pos
        try:
            args = self.parse_type_argument_list()
        except _Bail:
            self.pos = save
            return None
        nxt = self.tok
        if nxt.kind is TokenKind.EOF or (nxt.kind is TokenKind.PUNCT and nxt.text in TYPE_ARG_FOLLOWERS):
            return tuple(args)
        self.pos = save
        return None

    def skip_type_parameters(self) -> None:
        if not self.tok.is_punct("<"):
            return
        depth = 0
        while not self.at_eof():
            tok = self.advance()
            if tok.is_punct("<"):
                depth += 1
            elif tok.is_punct(">"):
                depth -= 1
                if depth == 0:
                    return

    def skip_constraints(self) -> None:
        while self.tok.is_word("where"):
            self.advance()
            while not self.at_eof() and not self.tok.is_punct("{", ";", "=>") and not self.tok.is_word("where"):
                if self.tok.is_punct("("):
                    self.skip_group()
                else:
                    self.advance()

    # -- declarations --

    def parse_compilation_unit(self) -> AstNode:
        members = self.parse_members(None)
        return AstNode(NodeKind.COMPILATION_UNIT, self.source.span(0, len(self.source.text)), members)

    def parse_members(self, type_name: Optional[str]) -> list[AstNode]:
        members: list[AstNode] = []
        while not self.at_eof() and not self.tok.is_punct("}"):
            start = self.pos
            if type_name is None and self.tok.is_punct("[") and self.peek(2).is_punct(":"):
                members.extend(self.parse_attribute_lists())
                continue
            try:
                member = self.parse_member(type_name)
            except _Bail:
                member = self.skip_construct(start, "member")
            if member is not None:
                members.append(member)
        return members

    def parse_member(self, type_name: Optional[str]) -> Optional[AstNode]:
        start = self.pos
        tok = self.tok
        if tok.is_punct(";"):
            self.advance()
            return None
        if type_name is None:
            if tok.is_keyword("using"):
                return self.parse_using_directive(start)
            if tok.is_word("global") and self.peek().is_keyword("using"):
                self.advance()
                return self.parse_using_directive(start)
            if tok.is_keyword("namespace"):
                return self.parse_namespace(start)

        attributes = self.parse_attribute_lists()
        modifiers = self.parse_modifiers()
        tok = self.tok
        if tok.is_keyword("class", "struct", "interface", "enum") or (
            tok.is_word("record") and (self.peek().kind is TokenKind.IDENTIFIER or self.peek().is_keyword("class", "struct"))
        ):
            return self.parse_type_decl(start, attributes, modifiers)
        if type_name is None or tok.is_keyword("delegate", "implicit", "explicit"):
            raise _Bail("not a member declaration")

        if tok.is_keyword("event"):
            self.advance()
            type_text = self.parse_type()[0]
            name_index = self.pos
            name_tok = self.expect_identifier()
            if self.tok.is_punct("{"):
                return self.parse_property(start, attributes, modifiers, type_text, _identifier(name_tok), is_event=True)
            return self.parse_field(start, attributes, modifiers, type_text, name_index, is_event=True)

        if tok.kind is TokenKind.IDENTIFIER and tok.text == type_name and self.peek().is_punct("("):
            name_index = self.pos
            self.advance()
            return self.parse_method(start, attributes, modifiers, None, name_index, is_constructor=True)

        return_type = self.parse_type()
        if self.tok.is_keyword("operator"):
            raise _Bail("operator declaration")
        if self.tok.is_keyword("this") and self.peek().is_punct("["):
            self.advance()
            return self.parse_property(start, attributes, modifiers, return_type[0], "this")
        name_index = self.pos
        self.expect_identifier()
        # Explicit interface implementations: IFoo.Bar
        while self.tok.is_punct(".") and self.peek().kind is TokenKind.IDENTIFIER:
            self.advance()
            name_index = self.pos
            self.advance()
        name = _identifier(self.tokens[name_index])
        if self.tok.is_punct("(", "<"):
            return self.parse_method(start, attributes, modifiers, return_type, name_index)
        if self.tok.is_punct("{", "=>"):
            return self.parse_property(start, attributes, modifiers, return_type[0], name)
        return self.parse_field(start, attributes, modifiers, return_type[0], name_index)

    def parse_modifiers(self) -> list[str]:
        modifiers = []
        while True:
            tok = self.tok
            if tok.kind is TokenKind.KEYWORD and tok.text in MEMBER_MODIFIERS:
                modifiers.append(self.advance().text)
            elif (
                tok.kind is TokenKind.IDENTIFIER
                and tok.text in CONTEXTUAL_MODIFIERS
                and self.peek().kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD)
            ):
                modifiers.append(self.advance().text)
            else:
                return modifiers

    def parse_using_directive(self, start: int) -> AstNode:
        self.advance()  # using
        is_static = False
        if self.tok.is_keyword("static"):
            self.advance()
            is_static = True
        alias = None
        if self.tok.kind is TokenKind.IDENTIFIER and self.peek().is_punct("="):
            alias = _identifier(self.advance())
            self.advance()
        name = self.parse_type()[0]
        self.expect(";")
        return self.node(NodeKind.USING_DIRECTIVE, start, name=name, alias=alias, is_static=is_static)

    def parse_namespace(self, start: int) -> AstNode:
        self.advance()  # namespace
        name = self.parse_type(allow_nullable=False, allow_arrays=False)[0]
        if self.accept(";"):
            members = self.parse_members(None)
            return self.node(NodeKind.NAMESPACE_DECL, start, members, name=name, file_scoped=True)
        self.expect("{")
        members = self.parse_members(None)
        self.expect("}")
        return self.node(NodeKind.NAMESPACE_DECL, start, members, name=name, file_scoped=False)

    def parse_attribute_lists(self) -> list[AstNode]:
        attributes = []
        while self.tok.is_punct("["):
            self.advance()
            if self.tok.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD) and self.peek().is_punct(":"):
                self.advance()  # target: assembly, return, method ...
                self.advance()
            while not self.tok.is_punct("]") and not self.at_eof():
                attributes.append(self.parse_attribute())
                if not self.accept(","):
                    break
            self.expect("]")
        return attributes

    def parse_attribute(self) -> AstNode:
        start = self.pos
        name, _, name_end = self.parse_type(allow_nullable=False, allow_arrays=False)
        args: list[AstNode] = []
        close_paren = None
        if self.tok.is_punct("("):
            args, close = self.parse_argument_list(")")
            close_paren = close.start if close is not None else None
        return self.node(NodeKind.ATTRIBUTE, start, args, name=name, name_end=name_end, close_paren=close_paren)

    def parse_type_decl(self, start: int, attributes: list[AstNode], modifiers: list[str]) -> AstNode:
        keyword = self.advance().text
        if keyword == "record" and self.tok.is_keyword("class", "struct"):
            self.advance()
        name_tok = self.expect_identifier()
        self.skip_type_parameters()
        if self.tok.is_punct("("):
            self.parse_parameter_list()  # primary constructor
        bases: list[str] = []
        base_spans: list[Span] = []
        if self.accept(":"):
            while True:
                text, base_start, base_end = self.parse_type(allow_nullable=False)
                bases.append(text)
                base_spans.append(self.source.span(base_start, base_end))
                if self.tok.is_punct("("):
                    self.skip_group()
                if not self.accept(","):
                    break
        self.skip_constraints()
        children = list(attributes)
        if keyword == "enum":
            if self.tok.is_punct("{"):
                self.skip_group()
        elif self.tok.is_punct("{"):
            self.advance()
            children.extend(self.parse_members(_identifier(name_tok)))
            self.expect("}")
        else:
            self.expect(";")
        self.accept(";")
        return self.node(
            NodeKind.CLASS_DECL,
            start,
            children,
            name=_identifier(name_tok),
            name_span=self.token_span(name_tok),
            keyword=keyword,
            modifiers=tuple(modifiers),
            bases=tuple(bases),
            base_spans=tuple(base_spans),
        )

    def parse_method(
        self,
        start: int,
        attributes: list[AstNode],
        modifiers: list[str],
        return_type: Optional[tuple[str, int, int]],
        name_index: int,
        is_constructor: bool = False,
        is_local: bool = False,
    ) -> AstNode:
        name_tok = self.tokens[name_index]
        self.skip_type_parameters()
        if not self.tok.is_punct("("):
            raise _Bail("expected a parameter list")
        params = self.parse_parameter_list()
        if is_constructor and self.accept(":"):
            self.advance()  # base or this
            if self.tok.is_punct("("):
                self.skip_group()
        self.skip_constraints()
        body = self.parse_body()
        children = [*attributes, *params]
        if body is not None:
            children.append(body)
        return self.node(
            NodeKind.METHOD_DECL,
            start,
            children,
            name=_identifier(name_tok),
            name_span=self.token_span(name_tok),
            modifiers=tuple(modifiers),
            return_type=return_type[0] if return_type else None,
            return_type_span=self.source.span(return_type[1], return_type[2]) if return_type else None,
            is_constructor=is_constructor,
            is_local=is_local,
            has_body=body is not None,
        )

    def parse_parameter_list(self, closer: str = ")") -> list[AstNode]:
        self.advance()  # ( or [
        params = []
        while not self.tok.is_punct(closer) and not self.at_eof():
            start = self.pos
            self.parse_attribute_lists()
            while self.tok.is_keyword("this", "ref", "out", "in", "params"):
                self.advance()
            type_text = self.parse_type()[0]
            name_tok = self.expect_identifier()
            children = []
            if self.accept("="):
                children.append(self.parse_expression())
            params.append(self.node(NodeKind.PARAMETER, start, children, name=_identifier(name_tok), type_name=type_text))
            if not self.accept(","):
                break
        self.expect(closer)
        return params

    def parse_body(self) -> Optional[AstNode]:
        if self.tok.is_punct("{"):
            return self.parse_block()
        if self.accept("=>"):
            expr = self.parse_expression()
            self.expect(";")
            return expr
        self.expect(";")
        return None

    def parse_property(
        self,
        start: int,
        attributes: list[AstNode],
        modifiers: list[str],
        type_text: str,
        name: str,
        is_event: bool = False,
    ) -> AstNode:
        children = list(attributes)
        if self.tok.is_punct("["):
            self.parse_parameter_list("]")
        if self.accept("=>"):
            children.append(self.parse_expression())
            self.expect(";")
        else:
            self.expect("{")
            while not self.tok.is_punct("}") and not self.at_eof():
                self.parse_attribute_lists()
                while self.tok.is_keyword("private", "protected", "internal", "public", "readonly"):
                    self.advance()
                if not self.tok.is_word("get", "set", "init", "add", "remove"):
                    raise _Bail(f"unexpected accessor {self.tok.text!r}")
                self.advance()
                body = self.parse_body()
                if body is not None:
                    children.append(body)
            self.expect("}")
            if self.accept("="):
                children.append(self.parse_variable_initializer())
                self.expect(";")
        return self.node(
            NodeKind.PROPERTY_DECL,
            start,
            children,
            name=name,
            type_name=type_text,
            modifiers=tuple(modifiers),
            is_event=is_event,
        )

    def parse_field(
        self,
        start: int,
        attributes: list[AstNode],
        modifiers: list[str],
        type_text: str,
        name_index: int,
        is_event: bool = False,
    ) -> AstNode:
        declarators = []
        while True:
            name_tok = self.tokens[name_index]
            children = []
            if self.accept("="):
                children.append(self.parse_variable_initializer())
            declarators.append(
                self.node(
                    NodeKind.VARIABLE_DECLARATOR,
                    name_index,
                    children,
                    name=_identifier(name_tok),
                    name_span=self.token_span(name_tok),
                )
            )
            if not self.accept(","):
                break
            name_index = self.pos
            self.expect_identifier()
        self.expect(";")
        return self.node(
            NodeKind.FIELD_DECL,
            start,
            [*attributes, *declarators],
            type_name=type_text,
            modifiers=tuple(modifiers),
            is_event=is_event,
        )

    # -- statements --

    def parse_block(self) -> AstNode:
        start = self.pos
        if self.expect("{") is None:
            return self.node(NodeKind.BLOCK, start)
        statements = []
        while not self.at_eof() and not self.tok.is_punct("}"):
            statements.append(self.parse_embedded())
        self.expect("}")
        return self.node(NodeKind.BLOCK, start, statements)

    def parse_embedded(self) -> AstNode:
        start = self.pos
        try:
            return self.parse_statement()
        except _Bail:
            return self.skip_construct(start, "unparsed")

    def parse_statement(self) -> AstNode:
        start = self.pos
        tok = self.tok
        if tok.is_punct("{"):
            return self.parse_block()
        if tok.is_punct(";"):
            self.advance()
            return self.node(NodeKind.OTHER_STMT, start, keyword="empty")
        if tok.kind is TokenKind.KEYWORD:
            handler = self._statement_parsers.get(tok.text)
            if handler is not None and not (tok.text in ("checked", "unchecked") and self.peek().is_punct("(")):
                return handler(start)
        elif tok.kind is TokenKind.IDENTIFIER:
            if tok.text == "yield" and self.peek().is_keyword("return", "break"):
                return self.parse_yield(start)
            if tok.text == "await" and self.peek().is_keyword("foreach", "using"):
                self.advance()
                return self._statement_parsers[self.tok.text](start)
            if self.peek().is_punct(":") and not self.peek(2).is_punct(":"):
                self.advance()  # label
                self.advance()
                return self.parse_statement()

        decl = self.try_local_declaration(start)
        if decl is not None:
            return decl
        expr = self.parse_expression()
        self.expect(";")
        return self.node(NodeKind.EXPR_STMT, start, [expr])

    def try_local_declaration(self, start: int, terminated: bool = True) -> Optional[AstNode]:
        reset = self.pos
        modifiers = []
        while True:
            tok = self.tok
            if tok.kind is TokenKind.KEYWORD and tok.text in LOCAL_MODIFIERS:
                modifiers.append(self.advance().text)
            elif tok.is_word("async") and self.peek().kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD):
                modifiers.append(self.advance().text)
            else:
                break
        if self.tok.is_word("await"):
            self.pos = reset
            return None
        try:
            return_type = self.parse_type()
        except _Bail:
            self.pos = reset
            return None
        if self.tok.kind is TokenKind.IDENTIFIER:
            after = self.peek()
            if after.is_punct("(", "<"):
                name_index = self.pos
                self.advance()
                return self.parse_method(start, [], modifiers, return_type, name_index, is_local=True)
            if after.is_punct("=", ";", ","):
                return self.parse_local_rest(start, return_type[0], modifiers, terminated=terminated)
        self.pos = reset
        return None

    def parse_local_rest(
        self, start: int, type_text: str, modifiers: list[str], terminated: bool = True, is_using: bool = False
    ) -> AstNode:
        declarators = []
        while True:
            name_index = self.pos
            name_tok = self.expect_identifier()
            children = []
            if self.accept("="):
                children.append(self.parse_variable_initializer())
            declarators.append(
                self.node(
                    NodeKind.VARIABLE_DECLARATOR,
                    name_index,
                    children,
                    name=_identifier(name_tok),
                    name_span=self.token_span(name_tok),
                )
            )
            if not self.accept(","):
                break
        if terminated:
            self.expect(";")
        return self.node(
            NodeKind.LOCAL_DECL, start, declarators, type_name=type_text, modifiers=tuple(modifiers), is_using=is_using
        )

    def parse_condition(self) -> AstNode:
        if not self.tok.is_punct("("):
            raise _Bail("expected '('")
        self.advance()
        expr = self.parse_expression()
        self.expect(")")
        return expr

    def parse_if(self, start: int) -> AstNode:
        self.advance()
        children = [self.parse_condition(), self.parse_embedded()]
        if self.tok.is_keyword("else"):
            self.advance()
            children.append(self.parse_embedded())
        return self.node(NodeKind.IF_STMT, start, children)

    def parse_return(self, start: int) -> AstNode:
        self.advance()
        children = []
        if not self.tok.is_punct(";") and not self.at_eof():
            children.append(self.parse_expression())
        self.expect(";")
        return self.node(NodeKind.RETURN_STMT, start, children)

    def parse_while(self, start: int) -> AstNode:
        self.advance()
        cond = self.parse_condition()
        body = self.parse_embedded()
        return self.node(NodeKind.LOOP_STMT, start, [cond, body], keyword="while")

    def parse_do(self, start: int) -> AstNode:
        self.advance()
        body = self.parse_embedded()
        if not self.tok.is_keyword("while"):
            raise _Bail("expected 'while'")
        self.advance()
        cond = self.parse_condition()
        self.expect(";")
        return self.node(NodeKind.LOOP_STMT, start, [body, cond], keyword="do")

    def parse_for(self, start: int) -> AstNode:
        self.advance()
        if not self.tok.is_punct("("):
            raise _Bail("expected '('")
        self.advance()
        children = []
        if not self.tok.is_punct(";"):
            decl = self.try_local_declaration(self.pos)
            if decl is not None:
                children.append(decl)
            else:
                children.append(self.parse_expression())
                while self.accept(","):
                    children.append(self.parse_expression())
                self.expect(";")
        else:
            self.advance()
        if not self.tok.is_punct(";"):
            children.append(self.parse_expression())
        self.expect(";")
        while not self.tok.is_punct(")") and not self.at_eof():
            children.append(self.parse_expression())
            if not self.accept(","):
                break
        self.expect(")")
        children.append(self.parse_embedded())
        return self.node(NodeKind.LOOP_STMT, start, children, keyword="for")

    def parse_foreach(self, start: int) -> AstNode:
        self.advance()
        if not self.tok.is_punct("("):
            raise _Bail("expected '('")
        self.advance()
        children = []
        var_start = self.pos
        type_text = self.parse_type()[0]
        if self.tok.is_punct("("):
            self.skip_group()  # deconstruction
        else:
            name_index = self.pos
            name_tok = self.expect_identifier()
            declarator = self.node(
                NodeKind.VARIABLE_DECLARATOR,
                name_index,
                name=_identifier(name_tok),
                name_span=self.token_span(name_tok),
            )
            children.append(self.node(NodeKind.LOCAL_DECL, var_start, [declarator], type_name=type_text, modifiers=()))
        if not self.tok.is_keyword("in"):
            raise _Bail("expected 'in'")
        self.advance()
        children.append(self.parse_expression())
        self.expect(")")
        children.append(self.parse_embedded())
        return self.node(NodeKind.LOOP_STMT, start, children, keyword="foreach")

    def parse_try(self, start: int) -> AstNode:
        self.advance()
        children = [self.parse_block()]
        while self.tok.is_keyword("catch"):
            self.advance()
            if self.tok.is_punct("("):
                self.skip_group()
            if self.tok.is_word("when"):
                self.advance()
                children.append(self.parse_condition())
            children.append(self.parse_block())
        if self.tok.is_keyword("finally"):
            self.advance()
            children.append(self.parse_block())
        return self.node(NodeKind.TRY_STMT, start, children, keyword="try")

    def parse_using_statement(self, start: int) -> AstNode:
        self.advance()
        if self.tok.is_punct("("):
            self.advance()
            resource = self.try_local_declaration(self.pos, terminated=False)
            if resource is None:
                resource = self.parse_expression()
            self.expect(")")
            body = self.parse_embedded()
            return self.node(NodeKind.USING_STMT, start, [resource, body])
        decl_start = self.pos
        try:
            return_type = self.parse_type()
        except _Bail:
            raise _Bail("expected a using declaration") from None
        if self.tok.kind is not TokenKind.IDENTIFIER:
            self.pos = decl_start
            raise _Bail("expected a using declaration")
        return self.parse_local_rest(start, return_type[0], [], is_using=True)

    def parse_lock(self, start: int) -> AstNode:
        self.advance()
        cond = self.parse_condition()
        body = self.parse_embedded()
        return self.node(NodeKind.OTHER_STMT, start, [cond, body], keyword="lock")

    def parse_switch(self, start: int) -> AstNode:
        self.advance()
        children = [self.parse_condition()]
        if self.expect("{") is not None:
            while not self.tok.is_punct("}") and not self.at_eof():
                if self.tok.is_keyword("case") or (self.tok.is_keyword("default") and self.peek().is_punct(":")):
                    self.skip_case_label()
                    continue
                children.append(self.parse_embedded())
            self.expect("}")
        return self.node(NodeKind.OTHER_STMT, start, children, keyword="switch")

    def skip_case_label(self) -> None:
        self.advance()
        while not self.at_eof():
            tok = self.tok
            if tok.kind is TokenKind.PUNCT and tok.text in OPENERS:
                self.skip_group()
            elif tok.is_punct(":"):
                self.advance()
                return
            elif tok.is_punct("}"):
                return
            else:
                self.advance()

    def parse_throw(self, start: int) -> AstNode:
        self.advance()
        children = []
        if not self.tok.is_punct(";") and not self.at_eof():
            children.append(self.parse_expression())
        self.expect(";")
        return self.node(NodeKind.OTHER_STMT, start, children, keyword="throw")

    def parse_yield(self, start: int) -> AstNode:
        self.advance()
        children = []
        if self.advance().text == "return":
            children.append(self.parse_expression())
        self.expect(";")
        return self.node(NodeKind.OTHER_STMT, start, children, keyword="yield")

    def parse_jump(self, start: int) -> AstNode:
        keyword = self.advance().text
        self.expect(";")
        return self.node(NodeKind.OTHER_STMT, start, keyword=keyword)

    def parse_goto(self, start: int) -> AstNode:
        return self.skip_construct(start, "goto")

    def parse_guarded_block(self, start: int) -> AstNode:
        keyword = self.advance().text
        if self.tok.is_punct("("):
            self.skip_group()
        body = self.parse_embedded()
        return self.node(NodeKind.OTHER_STMT, start, [body], keyword=keyword)

    # -- expressions --

    def parse_expression(self) -> AstNode:
        start = self.pos
        left = self.parse_conditional()
        tok = self.tok
        if tok.kind is TokenKind.PUNCT and tok.text in ASSIGNMENT_OPS:
            self.advance()
            value = self.parse_variable_initializer() if self.tok.is_punct("{") else self.parse_expression()
            return self.node(NodeKind.ASSIGNMENT, start, [left, value], op=tok.text)
        return left

    def parse_variable_initializer(self) -> AstNode:
        if self.tok.is_punct("{"):
            start = self.pos
            items = self.parse_initializer_items()
            return self.node(NodeKind.PAREN, start, items, initializer=True)
        return self.parse_expression()

    def parse_conditional(self) -> AstNode:
        start = self.pos
        cond = self.parse_binary(0)
        if self.tok.is_punct("?"):
            self.advance()
            when_true = self.parse_expression()
            if not self.tok.is_punct(":"):
                raise _Bail("expected ':'")
            self.advance()
            when_false = self.parse_expression()
            return self.node(NodeKind.CONDITIONAL, start, [cond, when_true, when_false])
        return cond

    def peek_binary_op(self) -> tuple[Optional[str], int]:
        tok = self.tok
        if tok.is_keyword("is", "as"):
            return tok.text, 1
        if tok.kind is not TokenKind.PUNCT:
            return None, 0
        nxt = self.peek()
        if tok.text == ">" and nxt.is_punct(">") and nxt.start == tok.end:
            return ">>", 2
        if tok.text in BINARY_PRECEDENCE:
            return tok.text, 1
        return None, 0

    def parse_binary(self, min_prec: int) -> AstNode:
        start = self.pos
        left = self.parse_unary()
        while True:
            op, width = self.peek_binary_op()
            if op is None or BINARY_PRECEDENCE[op] < min_prec:
                return left
            prec = BINARY_PRECEDENCE[op]
            for _ in range(width):
                self.advance()
            if op in ("is", "as"):
                negated = False
                if op == "is" and self.tok.is_word("not"):
                    self.advance()
                    negated = True
                right = self.parse_pattern(allow_designation=op == "is")
                left = self.node(
                    NodeKind.BINARY,
                    start,
                    [left, right],
                    op=op,
                    negated=negated,
                    designation=right.attrs.get("designation"),
                )
                continue
            right = self.parse_binary(prec if op in RIGHT_ASSOCIATIVE else prec + 1)
            left = self.node(NodeKind.BINARY, start, [left, right], op=op)

    def parse_pattern(self, allow_designation: bool) -> AstNode:
        start = self.pos
        tok = self.tok
        if tok.kind in (TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR) or tok.is_keyword("null", "true", "false"):
            pattern = self.parse_primary()
        elif tok.is_punct("{", "("):
            self.skip_group()
            pattern = self.node(NodeKind.IDENTIFIER, start, name=tok.text + OPENERS[tok.text], pattern=True)
        elif tok.is_punct("<", ">", "<=", ">="):
            self.advance()
            pattern = self.parse_unary()
        else:
            text = self.parse_type(allow_nullable=False)[0]
            pattern = self.node(NodeKind.IDENTIFIER, start, name=text, is_type=True)
        if self.tok.is_punct("{"):
            self.skip_group()  # property pattern
        if (
            allow_designation
            and self.tok.kind is TokenKind.IDENTIFIER
            and not self.tok.is_word("and", "or", "when")
        ):
            pattern.attrs["designation"] = _identifier(self.advance())
        while self.tok.is_word("and", "or"):
            self.advance()
            if self.tok.is_word("not"):
                self.advance()
            self.parse_pattern(allow_designation)
        return pattern

    def starts_operand(self, tok: Token) -> bool:
        if tok.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR):
            return True
        if tok.kind is TokenKind.KEYWORD:
            return tok.text not in NOT_AN_OPERAND
        return tok.is_punct("(", "!", "[")

    def parse_unary(self) -> AstNode:
        start = self.pos
        tok = self.tok
        if tok.kind is TokenKind.PUNCT and tok.text in PREFIX_OPS:
            self.advance()
            operand = self.parse_unary()
            return self.node(NodeKind.UNARY, start, [operand], op=tok.text, prefix=True)
        if tok.is_word("await") and self.starts_operand(self.peek()):
            self.advance()
            operand = self.parse_unary()
            return self.node(NodeKind.AWAIT, start, [operand])
        if tok.is_keyword("throw"):
            self.advance()
            operand = self.parse_expression()
            return self.node(NodeKind.UNARY, start, [operand], op="throw", prefix=True)
        if tok.is_punct("(") and self.at_cast():
            self.advance()
            type_text = self.parse_type()[0]
            self.expect(")")
            operand = self.parse_unary()
            return self.node(NodeKind.CAST, start, [operand], type_name=type_text)
        return self.parse_postfix(self.parse_primary(), start)

    def at_cast(self) -> bool:
        close = find_matching(self.tokens, self.pos)
        if close is None:
            return False
        save = self.pos
        self.pos += 1
        try:
            self.parse_type()
            is_type = self.pos == close
        except _Bail:
            is_type = False
        finally:
            self.pos = save
        if not is_type:
            return False
        after = self.tokens[close + 1]
        if after.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR):
            return True
        if after.kind is TokenKind.KEYWORD:
            return after.text not in NOT_AN_OPERAND
        if after.is_punct("(", "!", "~"):
            return True
        inner = self.tokens[save + 1]
        return inner.kind is TokenKind.KEYWORD and inner.text in PREDEFINED_TYPES and after.is_punct("-", "+")

    def at_lambda(self) -> bool:
        tok = self.tok
        if tok.is_keyword("delegate"):
            return True
        if tok.is_word("async"):
            nxt = self.peek()
            if nxt.is_keyword("delegate"):
                return True
            if nxt.kind is TokenKind.IDENTIFIER and self.peek(2).is_punct("=>"):
                return True
            if nxt.is_punct("("):
                close = find_matching(self.tokens, self.pos + 1)
                return close is not None and self.tokens[close + 1].is_punct("=>")
            return False
        if tok.kind is TokenKind.IDENTIFIER and self.peek().is_punct("=>"):
            return True
        if tok.is_punct("("):
            close = find_matching(self.tokens, self.pos)
            return close is not None and self.tokens[close + 1].is_punct("=>")
        return False

    def parse_lambda(self) -> AstNode:
        start = self.pos
        is_async = False
        if self.tok.is_word("async"):
            self.advance()
            is_async = True
        if self.tok.is_keyword("delegate"):
            self.advance()
            params = []
            if self.tok.is_punct("("):
                params = [p.attrs["name"] for p in self.parse_parameter_list()]
            body = self.parse_block()
        else:
            if self.tok.kind is TokenKind.IDENTIFIER:
                params = [_identifier(self.advance())]
            else:
                params = self.parse_lambda_parameters()
            if not self.tok.is_punct("=>"):
                raise _Bail("expected '=>'")
            self.advance()
            body = self.parse_block() if self.tok.is_punct("{") else self.parse_expression()
        return self.node(NodeKind.LAMBDA, start, [body], params=tuple(params), is_async=is_async)

    def parse_lambda_parameters(self) -> list[str]:
        self.advance()  # (
        names = []
        last = None
        while not self.tok.is_punct(")") and not self.at_eof():
            if self.tok.kind is TokenKind.PUNCT and self.tok.text in OPENERS:
                self.skip_group()
                continue
            tok = self.advance()
            if tok.is_punct(","):
                if last is not None:
                    names.append(last)
                last = None
            elif tok.kind is TokenKind.IDENTIFIER:
                last = _identifier(tok)
        if last is not None:
            names.append(last)
        self.expect(")")
        return names

    def parse_primary(self) -> AstNode:
        start = self.pos
        tok = self.tok
        if self.at_lambda():
            return self.parse_lambda()
        if tok.kind in (TokenKind.NUMBER, TokenKind.STRING, TokenKind.CHAR):
            self.advance()
            return self.node(NodeKind.LITERAL, start, literal_kind=tok.kind.value, value=tok.text)
        if tok.is_keyword("true", "false"):
            self.advance()
            return self.node(NodeKind.LITERAL, start, literal_kind="bool", value=tok.text)
        if tok.is_keyword("null"):
            self.advance()
            return self.node(NodeKind.LITERAL, start, literal_kind="null", value="null")
        if tok.is_keyword("default"):
            self.advance()
            if self.tok.is_punct("("):
                self.skip_group()
            return self.node(NodeKind.LITERAL, start, literal_kind="default", value="default")
        if tok.is_keyword("typeof", "sizeof"):
            self.advance()
            if not self.tok.is_punct("("):
                raise _Bail(f"expected '(' after {tok.text}")
            close = find_matching(self.tokens, self.pos)
            if close is None:
                raise _Bail(f"unterminated {tok.text}")
            inner = self.source.text[self.tokens[self.pos].end : self.tokens[close].start]
            self.pos = close + 1
            return self.node(NodeKind.LITERAL, start, literal_kind=tok.text, value="".join(inner.split()))
        if tok.is_keyword("new"):
            return self.parse_object_creation()
        if tok.is_keyword("this", "base") or (tok.kind is TokenKind.KEYWORD and tok.text in PREDEFINED_TYPES):
            self.advance()
            return self.node(NodeKind.IDENTIFIER, start, name=tok.text, type_args=None)
        if tok.kind is TokenKind.IDENTIFIER:
            self.advance()
            type_args = self.try_type_arguments()
            return self.node(NodeKind.IDENTIFIER, start, name=_identifier(tok), type_args=type_args)
        if tok.is_punct("("):
            items, _ = self.parse_argument_list(")")
            if not items:
                raise _Bail("empty parentheses")
            return self.node(NodeKind.PAREN, start, items, tuple=len(items) > 1)
        if tok.is_keyword("checked", "unchecked"):
            self.advance()
            inner = self.parse_condition()
            return self.node(NodeKind.PAREN, start, [inner], tuple=False)
        if tok.is_punct("["):
            items, _ = self.parse_argument_list("]")
            return self.node(NodeKind.PAREN, start, items, initializer=True)
        raise _Bail(f"unexpected {tok.text!r} in expression")

    def parse_postfix(self, expr: AstNode, start: int) -> AstNode:
        while True:
            tok = self.tok
            if tok.is_punct(".", "?.", "::"):
                conditional = tok.text == "?."
                if conditional and self.peek().is_punct("["):
                    self.advance()
                    indices, _ = self.parse_argument_list("]")
                    expr = self.node(NodeKind.ELEMENT_ACCESS, start, [expr, *indices], conditional=True)
                    continue
                self.advance()
                name_tok = self.expect_identifier()
                type_args = self.try_type_arguments()
                expr = self.node(
                    NodeKind.MEMBER_ACCESS,
                    start,
                    [expr],
                    name=_identifier(name_tok),
                    name_span=self.token_span(name_tok),
                    conditional=conditional,
                    type_args=type_args,
                )
            elif tok.is_punct("("):
                args, _ = self.parse_argument_list(")")
                expr = self.node(NodeKind.CALL_EXPR, start, [expr, *args])
            elif tok.is_punct("["):
                indices, _ = self.parse_argument_list("]")
                expr = self.node(NodeKind.ELEMENT_ACCESS, start, [expr, *indices], conditional=False)
            elif tok.is_punct("++", "--"):
                self.advance()
                expr = self.node(NodeKind.UNARY, start, [expr], op=tok.text, prefix=False)
            elif tok.is_punct("!") and (self.peek().kind is TokenKind.EOF or self.peek().text in NULL_FORGIVING_FOLLOWERS):
                self.advance()
                expr = self.node(NodeKind.UNARY, start, [expr], op="!", prefix=False)
            elif (tok.is_keyword("switch") or tok.is_word("with")) and self.peek().is_punct("{"):
                self.advance()
                self.skip_group()
                expr = self.node(NodeKind.UNARY, start, [expr], op=tok.text, prefix=False)
            else:
                return expr

    def parse_argument_list(self, closer: str) -> tuple[list[AstNode], Optional[Token]]:
        self.advance()  # ( or [
        args = []
        while not self.tok.is_punct(closer) and not self.at_eof():
            args.append(self.parse_argument())
            if not self.accept(","):
                break
        return args, self.expect(closer)

    def parse_argument(self) -> AstNode:
        if self.tok.kind is TokenKind.IDENTIFIER and self.peek().is_punct(":"):
            self.advance()  # named argument
            self.advance()
        if self.tok.is_keyword("ref", "out", "in"):
            self.advance()
            declared = self.try_declaration_expression()
            if declared is not None:
                return declared
        return self.parse_expression()

    def try_declaration_expression(self) -> Optional[AstNode]:
        save = self.pos
        try:
            type_text = self.parse_type()[0]
        except _Bail:
            self.pos = save
            return None
        if self.tok.kind is TokenKind.IDENTIFIER and self.peek().is_punct(",", ")"):
            name_index = self.pos
            name_tok = self.advance()
            return self.node(NodeKind.IDENTIFIER, name_index, name=_identifier(name_tok), declared_type=type_text)
        self.pos = save
        return None

    def parse_object_creation(self) -> AstNode:
        start = self.pos
        self.advance()  # new
        type_name = None
        args: list[AstNode] = []
        if self.tok.is_punct("("):
            args, _ = self.parse_argument_list(")")
        elif self.tok.is_punct("["):
            self.skip_group()
        elif not self.tok.is_punct("{"):
            type_name = self.parse_type(allow_nullable=False, allow_arrays=False)[0]
            if self.tok.is_punct("["):
                args, _ = self.parse_argument_list("]")
                while self.tok.is_punct("["):
                    self.skip_group()
            elif self.tok.is_punct("("):
                args, _ = self.parse_argument_list(")")
        children = list(args)
        if self.tok.is_punct("{"):
            children.extend(self.parse_initializer_items())
        return self.node(NodeKind.OBJECT_CREATION, start, children, type_name=type_name, arg_count=len(args))

    def parse_initializer_items(self) -> list[AstNode]:
        self.advance()  # {
        items = []
        while not self.tok.is_punct("}") and not self.at_eof():
            if self.tok.is_punct("{"):
                item_start = self.pos
                inner = self.parse_initializer_items()
                items.append(self.node(NodeKind.PAREN, item_start, inner, initializer=True))
            elif self.tok.is_punct("["):
                self.skip_group()  # index initializer
                if not self.tok.is_punct("="):
                    raise _Bail("expected '=' after index initializer")
                self.advance()
                items.append(self.parse_variable_initializer())
            else:
                items.append(self.parse_expression())
            if not self.accept(","):
                break
        self.expect("}")
        return items


def parse(text: str, path: Optional[str] = None) -> ParseResult:
    """Parse ``text`` into a syntax tree.

    Raises:
        ParseError: malformed literals, comments or delimiters. Truncated input
            does not raise; each implicitly closed delimiter is listed in
            ``ParseResult.recoveries``.
    """
    source = SourceText(text, path or "<memory>")
    try:
        parser = Parser(source)
        root = parser.parse_compilation_unit()
    except ParseError as exc:
        if path and exc.path is None:
            raise exc.with_path(path) from None
        raise
    return ParseResult(root, parser.recoveries, source)
