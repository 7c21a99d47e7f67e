"""rpnscript items — parse-time block items and run-time stack values."""

from __future__ import annotations

from dataclasses import dataclass, field


# ============================================================
# POSITION
# ============================================================


@dataclass(frozen=True)
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# VALUES (stack items)
# ============================================================


class Value:
    """A value that can live on the stack."""

    kind: str = "value"


@dataclass(frozen=True)
class VInt(Value):
    value: int
    kind = "integer"


@dataclass(frozen=True)
class VFloat(Value):
    value: float
    kind = "float"


@dataclass(frozen=True)
class VString(Value):
    value: str
    kind = "string"


@dataclass(frozen=True)
class VBool(Value):
    value: bool
    kind = "boolean"


@dataclass(frozen=True)
class VSymbol(Value):
    """A quoted name, written `:name`."""

    name: str
    kind = "symbol"


@dataclass(frozen=True)
class VBlock(Value):
    """A quotation: a block pushed as a value instead of being run."""

    body: Block
    kind = "block"


# ============================================================
# BLOCK ITEMS
# ============================================================


class BlockItem:
    """Base for the elements of a block."""


@dataclass(frozen=True)
class Literal(BlockItem):
    """Push a value."""

    value: Value


@dataclass(frozen=True)
class Call(BlockItem):
    """Resolve a name in the method table and invoke it."""

    name: str
    pos: Pos | None = field(default=None, compare=False)


Block = tuple[BlockItem, ...]
