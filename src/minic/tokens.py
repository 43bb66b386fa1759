"""Tokenizer: lexes MiniC source into a flat token list."""

from __future__ import annotations

from .errors import MinicError
from .ast import Pos


# Token type constants
TK_INT = "INT"
TK_CHAR = "CHAR"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

KEYWORDS: set[str] = {
    "break",
    "char",
    "class",
    "continue",
    "else",
    "extends",
    "if",
    "int",
    "new",
    "return",
    "sizeof",
    "struct",
    "void",
    "while",
}

# Multi-character operators, matched before single characters
MULTI_OPS: list[str] = [
    "->",
    "&&",
    "||",
    "<=",
    ">=",
    "==",
    "!=",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "*",
    "/",
    "%",
    "&",
    "!",
    "<",
    ">",
    "=",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ";",
    ".",
}

ESCAPE_MAP: dict[str, str] = {
    "a": "\a",
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
}


class TokenizeError(MinicError):
    """Error during tokenization."""

    def __init__(self, msg: str, line: int, col: int):
        super().__init__(msg, Pos(line, col))
        self.line: int = line
        self.col: int = col


class Token:
    """A token with type, value, and position."""

    def __init__(self, type_: str, value: str, line: int, col: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r}, {self.line}, {self.col})"


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z") or c == "_"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def _process_escape(src: str, pos: int, line: int, col: int) -> tuple[str, int]:
    """Process escape after backslash. Returns (resolved_char, new_pos)."""
    if pos >= len(src):
        raise TokenizeError("unexpected end of input in escape", line, col)
    c = src[pos]
    if c in ESCAPE_MAP:
        return ESCAPE_MAP[c], pos + 1
    raise TokenizeError("invalid escape: \\" + c, line, col)


def tokenize(source: str) -> list[Token]:
    """Tokenize MiniC source into a flat list ending with TK_EOF."""
    tokens: list[Token] = []
    pos = 0
    line = 1
    col = 1
    length = len(source)

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue

        # Whitespace
        if c in " \t\r\f\v":
            pos += 1
            col += 1
            continue

        # Preprocessor lines (#include) are skipped whole
        if c == "#" and col == 1:
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        # Line comment
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        # Block comment
        if c == "/" and pos + 1 < length and source[pos + 1] == "*":
            start_line = line
            start_col = col
            pos += 2
            col += 2
            while pos < length and not (
                source[pos] == "*" and pos + 1 < length and source[pos + 1] == "/"
            ):
                if source[pos] == "\n":
                    line += 1
                    col = 1
                else:
                    col += 1
                pos += 1
            if pos >= length:
                raise TokenizeError("unterminated comment", start_line, start_col)
            pos += 2
            col += 2
            continue

        start_pos = pos
        start_line = line
        start_col = col

        # Integer literal
        if _is_digit(c):
            while pos < length and _is_digit(source[pos]):
                pos += 1
                col += 1
            if pos < length and _is_alpha(source[pos]):
                raise TokenizeError("invalid integer literal", start_line, start_col)
            tokens.append(Token(TK_INT, source[start_pos:pos], start_line, start_col))
            continue

        # String literal: "..."
        if c == '"':
            pos += 1
            col += 1
            chars: list[str] = []
            while pos < length and source[pos] != '"':
                if source[pos] == "\n":
                    raise TokenizeError(
                        "unterminated string literal", start_line, start_col
                    )
                if source[pos] == "\\":
                    pos += 1
                    col += 1
                    ch, pos = _process_escape(source, pos, start_line, col)
                    chars.append(ch)
                else:
                    if ord(source[pos]) > 255:
                        raise TokenizeError(
                            f"character {source[pos]!r} out of range in string literal",
                            line,
                            col,
                        )
                    chars.append(source[pos])
                    pos += 1
                col += 1
            if pos >= length:
                raise TokenizeError("unterminated string literal", start_line, start_col)
            pos += 1  # skip closing "
            col += 1
            tokens.append(Token(TK_STRING, "".join(chars), start_line, start_col))
            continue

        # Character literal: '...'
        if c == "'":
            pos += 1
            col += 1
            if pos >= length or source[pos] == "\n":
                raise TokenizeError("unterminated char literal", start_line, start_col)
            if source[pos] == "\\":
                pos += 1
                col += 1
                char_value, pos = _process_escape(source, pos, start_line, col)
            elif source[pos] == "'":
                raise TokenizeError("empty char literal", start_line, start_col)
            else:
                char_value = source[pos]
                pos += 1
            col += 1
            if pos >= length or source[pos] != "'":
                raise TokenizeError("unterminated char literal", start_line, start_col)
            pos += 1  # skip closing '
            col += 1
            if ord(char_value) > 255:
                raise TokenizeError("char literal out of range", start_line, start_col)
            tokens.append(Token(TK_CHAR, char_value, start_line, start_col))
            continue

        # Identifier or keyword
        if _is_alpha(c):
            while pos < length and _is_alnum(source[pos]):
                pos += 1
                col += 1
            word = source[start_pos:pos]
            if word in KEYWORDS:
                tokens.append(Token(word, word, start_line, start_col))
            else:
                tokens.append(Token(TK_IDENT, word, start_line, start_col))
            continue

        # Multi-character operators
        matched = False
        for op in MULTI_OPS:
            if source.startswith(op, pos):
                tokens.append(Token(TK_OP, op, start_line, start_col))
                pos += len(op)
                col += len(op)
                matched = True
                break
        if matched:
            continue

        # Single-character operators
        if c in SINGLE_OPS:
            tokens.append(Token(TK_OP, c, start_line, start_col))
            pos += 1
            col += 1
            continue

        raise TokenizeError("unexpected character: " + repr(c), line, col)

    tokens.append(Token(TK_EOF, "", line, col))
    return tokens
