"""rpnscript emitter — renders blocks, values and stacks back into source text.

Output re-parses to an equal block for anything the parser produced, with the
exception of non-finite floats (`inf`, `nan`), which have no literal syntax
and come back as calls.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from decimal import Decimal

from .ast import (
    Block,
    BlockItem,
    Call,
    Literal,
    Value,
    VBlock,
    VBool,
    VFloat,
    VInt,
    VString,
    VSymbol,
)

_STRING_ESCAPES: dict[str, str] = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def format_value(value: Value) -> str:
    """Render one stack value as it would be written in source."""
    if isinstance(value, VBool):
        return "true" if value.value else "false"
    if isinstance(value, VInt):
        return str(value.value)
    if isinstance(value, VFloat):
        return format_float(value.value)
    if isinstance(value, VString):
        return _quote(value.value)
    if isinstance(value, VSymbol):
        return ":" + value.name
    if isinstance(value, VBlock):
        return "{" + format_block(value.body) + "}"
    raise TypeError("cannot format " + type(value).__name__)


def format_item(item: BlockItem) -> str:
    if isinstance(item, Literal):
        return format_value(item.value)
    if isinstance(item, Call):
        return item.name
    raise TypeError("cannot format " + type(item).__name__)


def format_block(block: Block) -> str:
    """Render a block's items space-separated, without surrounding braces."""
    return " ".join(format_item(item) for item in block)


def format_stack(stack: Iterable[Value]) -> str:
    """Render a stack bottom first, e.g. `[1, "a", {dup}]`."""
    return "[" + ", ".join(format_value(v) for v in stack) + "]"


def format_float(f: float) -> str:
    """Render a float as a plain decimal literal: always a dot, no exponent."""
    if math.isnan(f):
        return "nan"
    if math.isinf(f):
        return "inf" if f > 0 else "-inf"
    text = repr(f)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    if "." not in text:
        text += ".0"
    return text


def _quote(s: str) -> str:
    out = ['"']
    for ch in s:
        out.append(_STRING_ESCAPES.get(ch, ch))
    out.append('"')
    return "".join(out)
