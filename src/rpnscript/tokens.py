"""rpnscript tokenizer — lexes source into a lazy token stream."""

from __future__ import annotations

from collections.abc import Iterator


# Token type constants
TK_INTEGER = "INTEGER"
TK_FLOAT = "FLOAT"
TK_STRING = "STRING"
TK_SYMBOL = "SYMBOL"
TK_CALL = "CALL"
TK_OPEN_BRACE = "{"
TK_CLOSE_BRACE = "}"
TK_WHITESPACE = "WHITESPACE"
TK_COMMENT = "COMMENT"

ESCAPE_MAP: dict[str, str] = {
    '"': '"',
    "\\": "\\",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}


# ============================================================
# Errors
# ============================================================


class LexError(Exception):
    """Error during tokenization.

    `recoverable` is fixed per subclass: a recoverable error means more input
    could still complete the token, so an interactive front end may keep
    buffering instead of reporting it.
    """

    recoverable: bool = False
    description: str = "Unknown lexer error"

    def __init__(self, line: int, col: int, msg: str | None = None):
        self.msg: str = msg if msg is not None else self.description
        self.line: int = line
        self.col: int = col
        super().__init__(self.msg + " at line " + str(line) + " col " + str(col))


class UnknownEscapeError(LexError):
    description = "Unknown character escape"


class IncompleteEscapeError(LexError):
    recoverable = True
    description = "Incomplete character escape"


class UnknownTokenError(LexError):
    description = "Unknown token"


class UnclosedCommentError(LexError):
    recoverable = True
    description = "Unclosed comment"


class UnclosedStringError(LexError):
    recoverable = True
    description = "Unclosed string"


class MalformedNumberError(LexError):
    description = "Malformed number"


# ============================================================
# Tokens
# ============================================================


class Token:
    """A token with type, value, and position."""

    def __init__(self, type_: str, value: str, line: int, col: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
        )

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _ends_word(c: str) -> bool:
    return c.isspace() or c == "}"


class _Scanner:
    """Character cursor tracking line and column."""

    def __init__(self, source: str):
        self.src: str = source
        self.pos: int = 0
        self.line: int = 1
        self.col: int = 1

    def at_end(self) -> bool:
        return self.pos >= len(self.src)

    def peek(self) -> str:
        return self.src[self.pos]

    def advance(self) -> str:
        c = self.src[self.pos]
        self.pos += 1
        if c == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return c

    def take_word(self) -> str:
        start = self.pos
        while not self.at_end() and not _ends_word(self.peek()):
            self.advance()
        return self.src[start : self.pos]


def _lex_number(sc: _Scanner, line: int, col: int) -> Token:
    start = sc.pos
    seen_dot = False
    while not sc.at_end() and not _ends_word(sc.peek()):
        c = sc.peek()
        if c == "." and not seen_dot:
            seen_dot = True
        elif not _is_digit(c):
            raise MalformedNumberError(
                sc.line, sc.col, "Malformed number: unexpected " + repr(c)
            )
        sc.advance()
    raw = sc.src[start : sc.pos]
    if seen_dot:
        return Token(TK_FLOAT, raw, line, col)
    return Token(TK_INTEGER, raw, line, col)


def _lex_paren_comment(sc: _Scanner, line: int, col: int) -> Token:
    sc.advance()  # skip (
    depth = 1
    while depth > 0:
        if sc.at_end():
            raise UnclosedCommentError(line, col)
        c = sc.advance()
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
    return Token(TK_COMMENT, "", line, col)


def _lex_line_comment(sc: _Scanner, line: int, col: int) -> Token:
    while not sc.at_end() and sc.peek() != "\n":
        sc.advance()
    return Token(TK_COMMENT, "", line, col)


def _lex_string(sc: _Scanner, line: int, col: int) -> Token:
    sc.advance()  # skip opening "
    chars: list[str] = []
    while True:
        if sc.at_end():
            raise UnclosedStringError(line, col)
        c = sc.advance()
        if c == '"':
            break
        if c != "\\":
            chars.append(c)
            continue
        if sc.at_end():
            raise IncompleteEscapeError(sc.line, sc.col)
        esc_line, esc_col = sc.line, sc.col
        e = sc.advance()
        if e not in ESCAPE_MAP:
            raise UnknownEscapeError(
                esc_line, esc_col, "Unknown character escape: \\" + e
            )
        chars.append(ESCAPE_MAP[e])
    return Token(TK_STRING, "".join(chars), line, col)


def tokenize(source: str) -> Iterator[Token]:
    """Lazily tokenize rpnscript source.

    Tokens are yielded left to right. The first malformed token raises its
    `LexError` and ends the stream; nothing after it is scanned.
    """
    sc = _Scanner(source)
    while not sc.at_end():
        line, col = sc.line, sc.col
        c = sc.peek()

        if c.isspace():
            while not sc.at_end() and sc.peek().isspace():
                sc.advance()
            yield Token(TK_WHITESPACE, "", line, col)
            continue

        if _is_digit(c):
            yield _lex_number(sc, line, col)
            continue

        if c == "(":
            yield _lex_paren_comment(sc, line, col)
            continue

        if c == "#":
            yield _lex_line_comment(sc, line, col)
            continue

        if c == '"':
            yield _lex_string(sc, line, col)
            continue

        if c == ":":
            sc.advance()
            name = sc.take_word()
            if name == "":
                raise UnknownTokenError(line, col, "Unknown token: empty symbol")
            yield Token(TK_SYMBOL, name, line, col)
            continue

        if c == "{":
            sc.advance()
            yield Token(TK_OPEN_BRACE, "{", line, col)
            continue

        if c == "}":
            sc.advance()
            yield Token(TK_CLOSE_BRACE, "}", line, col)
            continue

        yield Token(TK_CALL, sc.take_word(), line, col)
