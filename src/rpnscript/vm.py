"""rpnscript virtual machine — operand stack, method table, dispatch."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from .ast import (
    Block,
    BlockItem,
    Call,
    Literal,
    Pos,
    Value,
    VBlock,
    VBool,
    VInt,
)

logger = logging.getLogger(__name__)

# Nested run_block calls allowed before a call-depth error. Each level costs a
# few Python frames, so this stays well under the default recursion limit.
DEFAULT_MAX_DEPTH = 200


# ============================================================
# Diagnostics
# ============================================================


class VmError(Exception):
    """Base error for rpnscript evaluation."""

    description: str = "Virtual machine error"

    def __init__(self, msg: str | None = None, pos: Pos | None = None):
        self.msg: str = msg if msg is not None else self.description
        self.pos: Pos | None = pos
        super().__init__(self._render())

    def _render(self) -> str:
        if self.pos is None:
            return self.msg
        return f"{self.msg} at line {self.pos.line} col {self.pos.col}"

    def at(self, pos: Pos | None) -> VmError:
        """Attach a call position if the error does not carry one yet."""
        if self.pos is None and pos is not None:
            self.pos = pos
            self.args = (self._render(),)
        return self


class VmTypeError(VmError):
    description = "Type error"


class DivideByZeroError(VmError):
    description = "Divided by zero"


class StackUnderflowError(VmError):
    description = "Stack underflow"


class UnknownMethodError(VmError):
    description = "Unknown method"

    def __init__(self, name: str, pos: Pos | None = None):
        self.name: str = name
        super().__init__("Unknown method '" + name + "'", pos)


class OutOfBoundsError(VmError):
    description = "Out of bounds"


class IntegerOverflowError(VmError):
    description = "Integer overflow"


class NumericConversionError(VmError):
    description = "Numeric conversion failed"


class CallDepthError(VmError):
    description = "Maximum call depth exceeded"


# ============================================================
# Stack
# ============================================================


class Stack:
    """LIFO operand stack. Popping an empty stack is an error, never a default."""

    def __init__(self) -> None:
        self._items: list[Value] = []

    def push(self, value: Value) -> None:
        self._items.append(value)

    def pop(self) -> Value:
        if not self._items:
            raise StackUnderflowError()
        return self._items.pop()

    def peek(self, depth: int = 1) -> Value:
        """Return the depth-th item from the top (1 = top) without removing it."""
        if depth < 1 or depth > len(self._items):
            raise OutOfBoundsError()
        return self._items[len(self._items) - depth]

    def clear(self) -> None:
        self._items.clear()

    def items(self) -> list[Value]:
        """A copy of the stack contents, bottom first."""
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Value]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return "Stack(" + repr(self._items) + ")"


# ============================================================
# Methods
# ============================================================


class Method:
    """An entry in the method table."""

    name: str


@dataclass(eq=False)
class Builtin(Method):
    """A native operation implemented in Python."""

    name: str
    fn: Callable[[Vm], None]


@dataclass(eq=False)
class BlockMethod(Method):
    """A user method installed by `fn`."""

    name: str
    body: Block


# ============================================================
# Virtual machine
# ============================================================


class Vm:
    """Executes parsed blocks against a stack and a method table.

    State persists between `run_block` calls, so a front end can feed it one
    program after another. A failed run leaves the stack and methods exactly
    as they were at the point of failure.
    """

    def __init__(
        self, *, int_width: int | None = None, max_depth: int = DEFAULT_MAX_DEPTH
    ):
        self.stack: Stack = Stack()
        self.methods: dict[str, Method] = {}
        self.int_width: int | None = int_width
        self.max_depth: int = max_depth
        self._depth: int = 0

    # ---- Method table ------------------------------------------------------

    def insert_builtin(self, name: str, fn: Callable[[Vm], None]) -> None:
        self.methods[name] = Builtin(name, fn)

    def define(self, name: str, body: Block) -> None:
        """Install a user method, replacing whatever held the name before."""
        prior = self.methods.get(name)
        if prior is not None:
            logger.debug(
                "Overwriting %s method %s",
                "builtin" if isinstance(prior, Builtin) else "user",
                name,
            )
        self.methods[name] = BlockMethod(name, body)

    # ---- Execution ---------------------------------------------------------

    def run_item(self, item: BlockItem) -> None:
        if isinstance(item, Literal):
            self.stack.push(item.value)
            return
        if not isinstance(item, Call):
            raise TypeError("not a block item: " + type(item).__name__)
        method = self.methods.get(item.name)
        if method is None:
            raise UnknownMethodError(item.name, item.pos)
        try:
            if isinstance(method, Builtin):
                method.fn(self)
            elif isinstance(method, BlockMethod):
                self.run_block(method.body)
            else:
                raise TypeError("not a method: " + type(method).__name__)
        except VmError as e:
            raise e.at(item.pos)

    def run_block(self, block: Block) -> None:
        """Run each item in order; the first error stops the block."""
        if self._depth >= self.max_depth:
            logger.debug("Call depth limit %d reached", self.max_depth)
            raise CallDepthError()
        self._depth += 1
        try:
            for item in block:
                self.run_item(item)
        except RecursionError:
            raise CallDepthError() from None
        finally:
            self._depth -= 1

    # ---- Helpers for builtins ----------------------------------------------

    def push(self, value: Value) -> None:
        self.stack.push(value)

    def pop(self) -> Value:
        return self.stack.pop()

    def pop_int(self) -> int:
        v = self.stack.pop()
        if not isinstance(v, VInt):
            raise VmTypeError("expected integer, got " + v.kind)
        return v.value

    def pop_bool(self) -> bool:
        v = self.stack.pop()
        if not isinstance(v, VBool):
            raise VmTypeError("expected boolean, got " + v.kind)
        return v.value

    def pop_block(self) -> Block:
        v = self.stack.pop()
        if not isinstance(v, VBlock):
            raise VmTypeError("expected block, got " + v.kind)
        return v.body

    def check_int(self, n: int) -> int:
        """Return n if it fits the configured integer width."""
        if self.int_width is not None:
            bound = 1 << (self.int_width - 1)
            if n < -bound or n >= bound:
                raise IntegerOverflowError(
                    f"{n} does not fit in {self.int_width} bits"
                )
        return n
