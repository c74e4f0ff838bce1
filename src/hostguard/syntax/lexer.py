"""Tokenizer for the C#-like source language of host extensions.

Whitespace, comments and preprocessor lines are not tokens: they are kept
verbatim as the ``leading_trivia`` of the token that follows them, so a fix
that rewrites a token range can leave the surrounding formatting untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..exceptions import ParseError
from .source import SourceText


class TokenKind(Enum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    NUMBER = "number"
    STRING = "string"
    CHAR = "char"
    PUNCT = "punct"
    EOF = "eof"


KEYWORDS = frozenset(
    """
    abstract as base bool break byte case catch char checked class const continue
    decimal default delegate do double else enum event explicit extern false finally
    fixed float for foreach goto if implicit in int interface internal is lock long
    namespace new null object operator out override params private protected public
    readonly ref return sbyte sealed short sizeof stackalloc static string struct
    switch this throw true try typeof uint ulong unchecked unsafe ushort using virtual
    void volatile while
    """.split()
)

# Longest first so that greedy matching picks ``??=`` over ``??``.
OPERATORS = (
    "<<=", "??=", "...",
    "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", "::", "->",
    "{", "}", "(", ")", "[", "]", ";", ",", ".", ":", "?", "=", "<", ">",
    "+", "-", "*", "/", "%", "&", "|", "^", "!", "~", "@", "#",
)

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int
    leading_trivia: str = ""

    @property
    def trivia_start(self) -> int:
        return self.start - len(self.leading_trivia)

    def is_punct(self, *texts: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.text in texts

    def is_keyword(self, *texts: str) -> bool:
        return self.kind is TokenKind.KEYWORD and self.text in texts

    def is_word(self, *texts: str) -> bool:
        """Identifier or keyword with one of the given spellings."""
        return self.kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD) and self.text in texts

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, {self.start})"


class Lexer:
    """Single forward pass over the text. Raises ParseError on malformed literals."""

    def __init__(self, source: SourceText):
        self.source = source
        self.text = source.text
        self.pos = 0

    # -- public --

    def tokenize(self) -> list[Token]:
        tokens: list[Token] = []
        while True:
            trivia_start = self.pos
            self._skip_trivia()
            trivia = self.text[trivia_start : self.pos]
            if self.pos >= len(self.text):
                tokens.append(Token(TokenKind.EOF, "", self.pos, self.pos, trivia))
                return tokens
            tokens.append(self._next_token(trivia))

    # -- trivia --

    def _skip_trivia(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch in " \t\r\n\f\v\ufeff":
                self.pos += 1
            elif text.startswith("//", self.pos):
                self._skip_to_eol()
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end < 0:
                    self._fail("unterminated block comment", self.pos)
                self.pos = end + 2
            elif ch == "#" and self._at_line_start(self.pos):
                self._skip_to_eol()
            else:
                return

    def _skip_to_eol(self) -> None:
        end = self.text.find("\n", self.pos)
        self.pos = len(self.text) if end < 0 else end

    def _at_line_start(self, offset: int) -> bool:
        i = offset - 1
        while i >= 0 and self.text[i] in " \t":
            i -= 1
        return i < 0 or self.text[i] == "\n"

    # -- tokens --

    def _next_token(self, trivia: str) -> Token:
        text = self.text
        start = self.pos
        ch = text[start]

        if ch in "$@" and self._string_prefix_at(start):
            self._scan_prefixed_string()
            return Token(TokenKind.STRING, text[start : self.pos], start, self.pos, trivia)
        if ch == '"':
            if text.startswith('"""', start):
                self._scan_raw_string()
            else:
                self._scan_regular_string(interpolated=False, verbatim=False)
            return Token(TokenKind.STRING, text[start : self.pos], start, self.pos, trivia)
        if ch == "'":
            self._scan_char()
            return Token(TokenKind.CHAR, text[start : self.pos], start, self.pos, trivia)
        if ch.isdigit() or (ch == "." and start + 1 < len(text) and text[start + 1].isdigit()):
            self._scan_number()
            return Token(TokenKind.NUMBER, text[start : self.pos], start, self.pos, trivia)
        if ch == "_" or ch.isalpha() or (ch == "@" and start + 1 < len(text) and _ident_start(text[start + 1])):
            self.pos += 1
            while self.pos < len(text) and _ident_part(text[self.pos]):
                self.pos += 1
            word = text[start : self.pos]
            kind = TokenKind.KEYWORD if word in KEYWORDS else TokenKind.IDENTIFIER
            return Token(kind, word, start, self.pos, trivia)
        for op in OPERATORS:
            if text.startswith(op, start):
                self.pos += len(op)
                return Token(TokenKind.PUNCT, op, start, self.pos, trivia)
        self._fail(f"unexpected character {ch!r}", start)
        raise AssertionError("unreachable")

    def _string_prefix_at(self, offset: int) -> bool:
        rest = self.text[offset : offset + 3]
        return rest.startswith(('$"', '@"', '$@"', '@$"')) or rest.startswith("$$")

    def _scan_prefixed_string(self) -> None:
        text = self.text
        interpolated = verbatim = False
        while self.pos < len(text) and text[self.pos] in "$@":
            if text[self.pos] == "$":
                interpolated = True
            else:
                verbatim = True
            self.pos += 1
        if text.startswith('"""', self.pos):
            self._scan_raw_string()
        else:
            self._scan_regular_string(interpolated=interpolated, verbatim=verbatim)

    def _scan_regular_string(self, interpolated: bool, verbatim: bool) -> None:
        text = self.text
        start = self.pos
        self.pos += 1  # opening quote
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == '"':
                if verbatim and text.startswith('""', self.pos):
                    self.pos += 2
                    continue
                self.pos += 1
                return
            if ch == "\\" and not verbatim:
                self.pos += 2
                continue
            if ch == "\n" and not verbatim:
                break
            if interpolated and ch == "{":
                if text.startswith("{{", self.pos):
                    self.pos += 2
                    continue
                self._scan_interpolation_hole(start)
                continue
            self.pos += 1
        self._fail("unterminated string literal", start)

    def _scan_interpolation_hole(self, literal_start: int) -> None:
        text = self.text
        depth = 0
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "{":
                depth += 1
                self.pos += 1
            elif ch == "}":
                depth -= 1
                self.pos += 1
                if depth == 0:
                    return
            elif ch == '"':
                self._scan_regular_string(interpolated=False, verbatim=False)
            elif ch == "@" and text.startswith('@"', self.pos):
                self.pos += 1
                self._scan_regular_string(interpolated=False, verbatim=True)
            elif ch == "'":
                self._scan_char()
            elif ch == "\n":
                break
            else:
                self.pos += 1
        self._fail("unterminated string literal", literal_start)

    def _scan_raw_string(self) -> None:
        text = self.text
        start = self.pos
        quotes = 0
        while self.pos < len(text) and text[self.pos] == '"':
            quotes += 1
            self.pos += 1
        closing = '"' * quotes
        end = text.find(closing, self.pos)
        if end < 0:
            self._fail("unterminated raw string literal", start)
        self.pos = end + quotes

    def _scan_char(self) -> None:
        text = self.text
        start = self.pos
        self.pos += 1
        while self.pos < len(text):
            ch = text[self.pos]
            if ch == "\\":
                self.pos += 2
                continue
            if ch == "'":
                self.pos += 1
                return
            if ch == "\n":
                break
            self.pos += 1
        self._fail("unterminated character literal", start)

    def _scan_number(self) -> None:
        text = self.text
        if text.startswith(("0x", "0X", "0b", "0B"), self.pos):
            self.pos += 2
            while self.pos < len(text) and (text[self.pos].isalnum() or text[self.pos] == "_"):
                self.pos += 1
            return
        while self.pos < len(text) and (text[self.pos].isdigit() or text[self.pos] == "_"):
            self.pos += 1
        if self.pos + 1 < len(text) and text[self.pos] == "." and text[self.pos + 1].isdigit():
            self.pos += 1
            while self.pos < len(text) and (text[self.pos].isdigit() or text[self.pos] == "_"):
                self.pos += 1
        if self.pos < len(text) and text[self.pos] in "eE":
            look = self.pos + 1
            if look < len(text) and text[look] in "+-":
                look += 1
            if look < len(text) and text[look].isdigit():
                self.pos = look
                while self.pos < len(text) and text[self.pos].isdigit():
                    self.pos += 1
        while self.pos < len(text) and text[self.pos] in "uUlLfFdDmM":
            self.pos += 1

    def _fail(self, reason: str, offset: int) -> None:
        line, col = self.source.line_col(offset)
        raise ParseError(reason, line, col, path=None, offset=offset)


def _ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _ident_part(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


def tokenize(source: SourceText) -> list[Token]:
    """Tokenize ``source``; the last token is always EOF."""
    return Lexer(source).tokenize()


def check_delimiters(tokens: list[Token], source: SourceText) -> list[Token]:
    """Verify bracket nesting.

    Stray or mismatched closers raise ParseError. Openers still unclosed at
    end of file are returned so the parser can close them implicitly.
    """
    stack: list[Token] = []
    for tok in tokens:
        if tok.kind is not TokenKind.PUNCT:
            continue
        if tok.text in OPENERS:
            stack.append(tok)
        elif tok.text in CLOSERS:
            if not stack:
                line, col = source.line_col(tok.start)
                raise ParseError(f"unexpected {tok.text!r} with no matching opener", line, col, offset=tok.start)
            opener = stack.pop()
            if OPENERS[opener.text] != tok.text:
                line, col = source.line_col(tok.start)
                o_line, o_col = source.line_col(opener.start)
                raise ParseError(
                    f"mismatched delimiter: {opener.text!r} opened at {o_line}:{o_col} "
                    f"closed by {tok.text!r}",
                    line,
                    col,
                    offset=tok.start,
                )
    return stack


def find_matching(tokens: list[Token], index: int) -> Optional[int]:
    """Index of the closer matching the opener at ``index``, or None at EOF."""
    opener = tokens[index].text
    closer = OPENERS[opener]
    depth = 0
    for i in range(index, len(tokens)):
        tok = tokens[i]
        if tok.kind is not TokenKind.PUNCT:
            continue
        if tok.text in OPENERS:
            depth += 1
        elif tok.text in CLOSERS:
            depth -= 1
            if depth == 0:
                return i if tok.text == closer else None
    return None
