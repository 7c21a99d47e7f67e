"""rpnscript builtin library.

Every builtin takes the VM, pops its operands (right operand first for binary
operations) and pushes its result. All operands are popped before any of them
is type-checked, so a failed builtin has consumed its operands.
"""

from __future__ import annotations

import math
import sys
from collections.abc import Callable

from .ast import Value, VBlock, VBool, VFloat, VInt, VString, VSymbol
from .emit import format_float
from .vm import (
    DivideByZeroError,
    IntegerOverflowError,
    NumericConversionError,
    OutOfBoundsError,
    Vm,
    VmTypeError,
)

BuiltinFn = Callable[[Vm], None]


def _expect(value: Value, cls: type, what: str) -> Value:
    if not isinstance(value, cls):
        raise VmTypeError("expected " + what + ", got " + value.kind)
    return value


# ============================================================
# Arithmetic
# ============================================================


def _float_div(a: float, b: float) -> float:
    if b != 0.0:
        return a / b
    if a == 0.0 or math.isnan(a):
        return math.nan
    return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _int_div(a: int, b: int) -> int:
    if b == 0:
        raise DivideByZeroError()
    # Truncates toward zero.
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def _arith(
    op: str, int_op: Callable[[int, int], int], float_op: Callable[[float, float], float]
) -> BuiltinFn:
    def run(vm: Vm) -> None:
        b = vm.pop()
        a = vm.pop()
        if isinstance(a, VInt) and isinstance(b, VInt):
            vm.push(VInt(vm.check_int(int_op(a.value, b.value))))
        elif isinstance(a, VFloat) and isinstance(b, VFloat):
            vm.push(VFloat(float_op(a.value, b.value)))
        else:
            raise VmTypeError(
                "cannot apply '" + op + "' to " + a.kind + " and " + b.kind
            )

    return run


ARITHMETIC: dict[str, BuiltinFn] = {
    "+": _arith("+", lambda a, b: a + b, lambda a, b: a + b),
    "-": _arith("-", lambda a, b: a - b, lambda a, b: a - b),
    "*": _arith("*", lambda a, b: a * b, lambda a, b: a * b),
    "/": _arith("/", _int_div, _float_div),
}


# ============================================================
# Conversions
# ============================================================


def _bi_as_integer(vm: Vm) -> None:
    v = vm.pop()
    if isinstance(v, VInt):
        vm.push(v)
        return
    if not isinstance(v, VFloat):
        raise VmTypeError("cannot convert " + v.kind + " to integer")
    try:
        n = int(v.value)
    except (OverflowError, ValueError) as e:
        raise NumericConversionError(
            "cannot convert " + format_float(v.value) + " to integer"
        ) from e
    try:
        vm.push(VInt(vm.check_int(n)))
    except IntegerOverflowError as e:
        raise NumericConversionError(e.msg) from e


def _bi_as_float(vm: Vm) -> None:
    v = vm.pop()
    if isinstance(v, VFloat):
        vm.push(v)
        return
    if not isinstance(v, VInt):
        raise VmTypeError("cannot convert " + v.kind + " to float")
    try:
        vm.push(VFloat(float(v.value)))
    except OverflowError as e:
        raise NumericConversionError("integer too large for a float") from e


def _bi_to_string(vm: Vm) -> None:
    v = vm.pop()
    if isinstance(v, VString):
        vm.push(v)
    elif isinstance(v, VInt):
        vm.push(VString(str(v.value)))
    elif isinstance(v, VFloat):
        vm.push(VString(format_float(v.value)))
    else:
        raise VmTypeError("cannot convert " + v.kind + " to string")


CONVERSIONS: dict[str, BuiltinFn] = {
    "as-integer": _bi_as_integer,
    "as-float": _bi_as_float,
    "to-string": _bi_to_string,
}


# ============================================================
# Definition
# ============================================================


def _bi_fn(vm: Vm) -> None:
    top = vm.pop()
    below = vm.pop()
    if isinstance(top, VBlock) and isinstance(below, VSymbol):
        vm.define(below.name, top.body)
    elif isinstance(top, VSymbol) and isinstance(below, VBlock):
        vm.define(top.name, below.body)
    else:
        raise VmTypeError(
            "fn expects a symbol and a block, got " + below.kind + " and " + top.kind
        )


DEFINITION: dict[str, BuiltinFn] = {
    "fn": _bi_fn,
}


# ============================================================
# Stack shuffling
# ============================================================


def _bi_swap(vm: Vm) -> None:
    b = vm.pop()
    a = vm.pop()
    vm.push(b)
    vm.push(a)


def _bi_dup(vm: Vm) -> None:
    a = vm.pop()
    vm.push(a)
    vm.push(a)


def _bi_over(vm: Vm) -> None:
    b = vm.pop()
    a = vm.pop()
    vm.push(a)
    vm.push(b)
    vm.push(a)


def _bi_rot(vm: Vm) -> None:
    c = vm.pop()
    b = vm.pop()
    a = vm.pop()
    vm.push(b)
    vm.push(c)
    vm.push(a)


def _bi_pop(vm: Vm) -> None:
    vm.pop()


def _bi_clear(vm: Vm) -> None:
    vm.stack.clear()


def _bi_len(vm: Vm) -> None:
    vm.push(VInt(vm.check_int(len(vm.stack))))


def _bi_clone_nth(vm: Vm) -> None:
    n = vm.pop_int()
    if n < 0 or n > sys.maxsize:
        raise IntegerOverflowError(f"{n} is not a valid stack index")
    if n == 0 or n > len(vm.stack):
        raise OutOfBoundsError(f"no item {n} deep in a stack of {len(vm.stack)}")
    vm.push(vm.stack.peek(n))


STACK_OPS: dict[str, BuiltinFn] = {
    "swap": _bi_swap,
    "dup": _bi_dup,
    "clone": _bi_dup,
    "over": _bi_over,
    "rot": _bi_rot,
    "pop": _bi_pop,
    "clear": _bi_clear,
    "len": _bi_len,
    "clone-nth": _bi_clone_nth,
}


# ============================================================
# Booleans
# ============================================================


def _bi_true(vm: Vm) -> None:
    vm.push(VBool(True))


def _bi_false(vm: Vm) -> None:
    vm.push(VBool(False))


def _bi_eq(vm: Vm) -> None:
    b = vm.pop()
    a = vm.pop()
    vm.push(VBool(a == b))


def _bi_not(vm: Vm) -> None:
    a = _expect(vm.pop(), VBool, "boolean")
    vm.push(VBool(not a.value))


def _bi_or(vm: Vm) -> None:
    b = vm.pop()
    a = vm.pop()
    _expect(a, VBool, "boolean")
    _expect(b, VBool, "boolean")
    vm.push(VBool(a.value or b.value))


BOOLEAN_OPS: dict[str, BuiltinFn] = {
    "true": _bi_true,
    "false": _bi_false,
    "eq": _bi_eq,
    "not": _bi_not,
    "or": _bi_or,
}


# ============================================================
# Strings
# ============================================================


def _bi_cat(vm: Vm) -> None:
    b = vm.pop()
    a = vm.pop()
    _expect(a, VString, "string")
    _expect(b, VString, "string")
    vm.push(VString(a.value + b.value))


STRING_OPS: dict[str, BuiltinFn] = {
    "cat": _bi_cat,
}


# ============================================================
# Control flow
# ============================================================


def _bi_if(vm: Vm) -> None:
    block = vm.pop()
    cond = vm.pop()
    _expect(block, VBlock, "block")
    _expect(cond, VBool, "boolean")
    if cond.value:
        vm.run_block(block.body)


def _bi_ifelse(vm: Vm) -> None:
    else_block = vm.pop()
    then_block = vm.pop()
    cond = vm.pop()
    _expect(else_block, VBlock, "block")
    _expect(then_block, VBlock, "block")
    _expect(cond, VBool, "boolean")
    if cond.value:
        vm.run_block(then_block.body)
    else:
        vm.run_block(else_block.body)


def _bi_while(vm: Vm) -> None:
    body = vm.pop()
    cond = vm.pop()
    _expect(body, VBlock, "block")
    _expect(cond, VBlock, "block")
    while True:
        vm.run_block(cond.body)
        if not vm.pop_bool():
            break
        vm.run_block(body.body)


def _bi_times(vm: Vm) -> None:
    body = vm.pop()
    count = vm.pop()
    _expect(body, VBlock, "block")
    _expect(count, VInt, "integer")
    remaining = count.value
    while remaining > 0:
        vm.run_block(body.body)
        remaining -= 1


CONTROL_FLOW: dict[str, BuiltinFn] = {
    "if": _bi_if,
    "ifelse": _bi_ifelse,
    "while": _bi_while,
    "times": _bi_times,
}


# ============================================================
# Registration
# ============================================================


def _insert(vm: Vm, table: dict[str, BuiltinFn]) -> None:
    for name, fn in table.items():
        vm.insert_builtin(name, fn)


def insert_arithmetic(vm: Vm) -> None:
    _insert(vm, ARITHMETIC)


def insert_conversions(vm: Vm) -> None:
    _insert(vm, CONVERSIONS)


def insert_fn(vm: Vm) -> None:
    _insert(vm, DEFINITION)


def insert_stack_ops(vm: Vm) -> None:
    _insert(vm, STACK_OPS)


def insert_boolean_ops(vm: Vm) -> None:
    _insert(vm, BOOLEAN_OPS)


def insert_string_ops(vm: Vm) -> None:
    _insert(vm, STRING_OPS)


def insert_control_flow(vm: Vm) -> None:
    _insert(vm, CONTROL_FLOW)


def insert_all(vm: Vm) -> None:
    insert_arithmetic(vm)
    insert_conversions(vm)
    insert_fn(vm)
    insert_stack_ops(vm)
    insert_boolean_ops(vm)
    insert_string_ops(vm)
    insert_control_flow(vm)


def new_vm(**kwargs) -> Vm:
    """Create a VM with the full builtin library installed."""
    vm = Vm(**kwargs)
    insert_all(vm)
    return vm
