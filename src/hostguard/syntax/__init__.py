"""Tokenizer and tree builder for extension source files."""

from .lexer import Token, TokenKind, tokenize
from .nodes import AstNode, NodeKind, dotted_name, unwrap
from .parser import ParseResult, Recovery, parse
from .source import SourceText

__all__ = [
    "AstNode",
    "NodeKind",
    "ParseResult",
    "Recovery",
    "SourceText",
    "Token",
    "TokenKind",
    "dotted_name",
    "parse",
    "tokenize",
    "unwrap",
]
