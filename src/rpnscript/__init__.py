"""rpnscript — a small stack-based scripting language. Public API."""

from __future__ import annotations

from .ast import Block
from .builtins import insert_all as insert_all, new_vm as new_vm
from .emit import (
    format_block,
    format_stack as format_stack,
    format_value as format_value,
)
from .parse import (
    ParseError as ParseError,
    ParseLexError as ParseLexError,
    UnclosedBlockError as UnclosedBlockError,
    UnmatchedBraceError as UnmatchedBraceError,
    parse as parse,
)
from .tokens import LexError as LexError, tokenize as tokenize
from .vm import Vm as Vm, VmError as VmError


def emit(block: Block) -> str:
    """Emit a block as rpnscript source text."""
    return format_block(block)


def run(source: str, vm: Vm | None = None) -> Vm:
    """Parse and run source on vm (a fresh builtin VM if none is given)."""
    if vm is None:
        vm = new_vm()
    vm.run_block(parse(source))
    return vm
