"""Tokenizer for the GLSL ES subset used by ISF shaders."""

import re
from dataclasses import dataclass
from enum import Enum, auto

from loguru import logger

from isf2wgsl.compiler.errors import GLSLSyntaxError


class TokenKind(Enum):
    IDENT = auto()
    NUMBER = auto()
    OP = auto()
    EOF = auto()


@dataclass
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, {self.line}:{self.column})"


# Longest operators first so that `<<=` wins over `<<` and `<`
OPERATORS = [
    "<<=", ">>=",
    "++", "--", "<<", ">>", "<=", ">=", "==", "!=", "&&", "||", "^^",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
    "+", "-", "*", "/", "%", "<", ">", "=", "!", "~", "&", "|", "^",
    "?", ":", ";", ",", ".", "(", ")", "[", "]", "{", "}",
]

_FLOAT_RE = r"(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?[fFlL]{0,2}|\d+[eE][+-]?\d+[fFlL]{0,2}"
_INT_RE = r"0[xX][0-9a-fA-F]+[uU]?|\d+[uU]?"

TOKEN_RE = re.compile(
    r"(?P<ws>[ \t\r\f\v]+)"
    r"|(?P<newline>\n)"
    r"|(?P<line_comment>//[^\n]*)"
    r"|(?P<block_comment>/\*.*?\*/)"
    rf"|(?P<number>{_FLOAT_RE}|{_INT_RE})"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>" + "|".join(re.escape(op) for op in OPERATORS) + ")",
    re.DOTALL,
)


def tokenize(text: str) -> list[Token]:
    """Split shader source into tokens.

    Comments and whitespace are skipped. Preprocessor directives must have
    been removed beforehand.

    Args:
        text: Preprocessed GLSL source

    Returns:
        Tokens terminated by an EOF token

    Raises:
        GLSLSyntaxError: If a character cannot start any token
    """
    tokens: list[Token] = []
    line = 1
    line_start = 0
    pos = 0
    length = len(text)

    while pos < length:
        match = TOKEN_RE.match(text, pos)
        if match is None:
            raise GLSLSyntaxError(
                f"Unexpected character {text[pos]!r}", line, pos - line_start + 1
            )

        kind = match.lastgroup
        value = match.group()
        column = pos - line_start + 1

        if kind == "newline":
            line += 1
            line_start = match.end()
        elif kind == "block_comment":
            newlines = value.count("\n")
            if newlines:
                line += newlines
                line_start = pos + value.rfind("\n") + 1
        elif kind == "number":
            tokens.append(Token(TokenKind.NUMBER, value, line, column))
        elif kind == "ident":
            tokens.append(Token(TokenKind.IDENT, value, line, column))
        elif kind == "op":
            tokens.append(Token(TokenKind.OP, value, line, column))

        pos = match.end()

    tokens.append(Token(TokenKind.EOF, "", line, pos - line_start + 1))
    logger.debug(f"Tokenized {len(tokens) - 1} tokens over {line} lines")
    return tokens
