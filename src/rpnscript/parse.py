"""rpnscript parser — recursive descent over the token stream."""

from __future__ import annotations

from collections.abc import Iterator

from .ast import (
    Block,
    BlockItem,
    Call,
    Literal,
    Pos,
    VBlock,
    VFloat,
    VInt,
    VString,
    VSymbol,
)
from .tokens import (
    TK_CALL,
    TK_CLOSE_BRACE,
    TK_COMMENT,
    TK_FLOAT,
    TK_INTEGER,
    TK_OPEN_BRACE,
    TK_STRING,
    TK_SYMBOL,
    TK_WHITESPACE,
    LexError,
    Token,
    tokenize,
)

# The top-level program is an implicit block with no braces around it. The
# level only changes what end of input means.
LEVEL_TOP = "top"
LEVEL_NESTED = "nested"


class ParseError(Exception):
    """Parse error with location info."""

    recoverable: bool = False

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class UnclosedBlockError(ParseError):
    """End of input inside a `{ ... }` block."""

    recoverable = True


class UnmatchedBraceError(ParseError):
    """A `}` at top level with no block to close."""


class ParseLexError(ParseError):
    """A lexer error surfaced through the parser."""

    def __init__(self, err: LexError):
        self.lex_error: LexError = err
        self.recoverable = err.recoverable
        super().__init__(err.msg, err.line, err.col)


class Parser:
    """Recursive descent parser for rpnscript."""

    def __init__(self, tokens: Iterator[Token]):
        self.tokens: Iterator[Token] = tokens
        # Position of the innermost open brace still waiting for its `}`.
        self.open_braces: list[Pos] = []

    def next_token(self) -> Token | None:
        try:
            return next(self.tokens)
        except StopIteration:
            return None
        except LexError as e:
            raise ParseLexError(e) from e

    def parse_program(self) -> Block:
        return self.parse_block(LEVEL_TOP)

    def parse_block(self, level: str) -> Block:
        items: list[BlockItem] = []
        while True:
            tok = self.next_token()
            if tok is None:
                if level == LEVEL_NESTED:
                    pos = self.open_braces[-1]
                    raise UnclosedBlockError("Unclosed block", pos.line, pos.col)
                break
            if tok.type == TK_WHITESPACE or tok.type == TK_COMMENT:
                continue
            if tok.type == TK_CLOSE_BRACE:
                if level == LEVEL_TOP:
                    raise UnmatchedBraceError("Unmatched '}'", tok.line, tok.col)
                self.open_braces.pop()
                break
            if tok.type == TK_OPEN_BRACE:
                self.open_braces.append(Pos(tok.line, tok.col))
                items.append(Literal(VBlock(self.parse_block(LEVEL_NESTED))))
                continue
            items.append(self.parse_item(tok))
        return tuple(items)

    def parse_item(self, tok: Token) -> BlockItem:
        if tok.type == TK_INTEGER:
            return Literal(VInt(int(_numeric_text(tok))))
        if tok.type == TK_FLOAT:
            return Literal(VFloat(float(_numeric_text(tok))))
        if tok.type == TK_STRING:
            return Literal(VString(tok.value))
        if tok.type == TK_SYMBOL:
            return Literal(VSymbol(tok.value))
        if tok.type == TK_CALL:
            return Call(tok.value, Pos(tok.line, tok.col))
        raise AssertionError("unhandled token type " + tok.type)


def _numeric_text(tok: Token) -> str:
    # The lexer only lets digits and a single dot through.
    if tok.value.replace(".", "", 1).isdigit():
        return tok.value
    raise AssertionError("lexer accepted malformed number " + repr(tok.value))


def parse(source: str) -> Block:
    """Parse rpnscript source into a top-level block."""
    return Parser(tokenize(source)).parse_program()
