"""
Textual assembly printer.
"""

from __future__ import annotations

import itertools
import math

from irmutate.core import opcodes
from irmutate.core.ir import (
    BasicBlock,
    ConstantFP,
    ConstantInt,
    ConstantPointerNull,
    Function,
    Instruction,
    Module,
    UndefValue,
    Value,
)


def _fresh_name(taken: set[str], name: str, prefix: str) -> str:
    if name:
        candidates = (f"{name}.{n}" for n in itertools.count(1))
    else:
        candidates = (f"{prefix}{n}" for n in itertools.count())
    for candidate in candidates:
        if candidate not in taken:
            taken.add(candidate)
            return candidate


class SlotTracker:
    """
    Assigns printable names within one function.

    Named values keep their name (made unique with a numeric suffix on
    collision); unnamed values get the smallest free number.
    """

    def __init__(self, function: Function):
        self._values: dict[int, str] = {}
        self._blocks: dict[int, str] = {}
        self._assign(function)

    def _assign(self, function: Function):
        taken_values = set()
        taken_blocks = set()

        # Explicit names first so numbering never steals them
        pending_values = []
        for arg in function.arguments:
            pending_values.append(arg)
        for inst in function.instructions():
            if not inst.type.is_void():
                pending_values.append(inst)
        for value in pending_values:
            if value.name and value.name not in taken_values:
                self._values[id(value)] = value.name
                taken_values.add(value.name)
        for value in pending_values:
            if id(value) not in self._values:
                self._values[id(value)] = _fresh_name(taken_values, value.name, "")

        for block in function.blocks:
            if block.name and block.name not in taken_blocks:
                self._blocks[id(block)] = block.name
                taken_blocks.add(block.name)
        for block in function.blocks:
            if id(block) not in self._blocks:
                self._blocks[id(block)] = _fresh_name(taken_blocks, block.name, "bb")

    def value_name(self, value: Value) -> str:
        return self._values[id(value)]

    def block_name(self, block: BasicBlock) -> str:
        return self._blocks[id(block)]


def format_constant(value: Value) -> str:
    if isinstance(value, ConstantInt):
        if value.type.width == 1:
            return "true" if value.value else "false"
        return str(value.signed_value)
    if isinstance(value, ConstantFP):
        if math.isfinite(value.value):
            return repr(value.value)
        digits = value.type.width // 4
        return f"0x{value.bits:0{digits}X}"
    if isinstance(value, UndefValue):
        return "undef"
    if isinstance(value, ConstantPointerNull):
        return "null"
    raise TypeError(f"Not a constant: {value!r}")


class AssemblyWriter:
    def __init__(self, module: Module):
        self.module = module
        self._slots: SlotTracker | None = None

    def write(self) -> str:
        lines = [f"; ModuleID = '{self.module.name}'"]
        for function in self.module.functions:
            lines.append("")
            lines.extend(self.function_lines(function))
        return "\n".join(lines) + "\n"

    def ref(self, value: Value) -> str:
        if isinstance(value, (ConstantInt, ConstantFP, UndefValue, ConstantPointerNull)):
            return format_constant(value)
        return f"%{self._slots.value_name(value)}"

    def typed(self, value: Value) -> str:
        return f"{value.type} {self.ref(value)}"

    def label(self, block: BasicBlock) -> str:
        return f"label %{self._slots.block_name(block)}"

    def function_lines(self, function: Function) -> list[str]:
        self._slots = SlotTracker(function)
        if function.is_declaration:
            params = ", ".join(str(arg.type) for arg in function.arguments)
            return [f"declare {function.return_type} @{function.name}({params})"]

        params = ", ".join(self.typed(arg) for arg in function.arguments)
        lines = [f"define {function.return_type} @{function.name}({params}) {{"]
        for i, block in enumerate(function.blocks):
            if i:
                lines.append("")
            lines.append(f"{self._slots.block_name(block)}:")
            for inst in block.instructions:
                lines.append(f"  {self.instruction(inst)}")
        lines.append("}")
        return lines

    def instruction(self, inst: Instruction) -> str:
        op = inst.opcode
        ops = inst.operands
        flags = "".join(f" {f}" for f in opcodes.ordered_flags(op, inst.flags, inst.type))

        if op in opcodes.INT_BINARY_OPS or op in opcodes.FLOAT_BINARY_OPS:
            body = f"{op}{flags} {inst.type} {self.ref(ops[0])}, {self.ref(ops[1])}"
        elif op in opcodes.FLOAT_UNARY_OPS:
            body = f"{op}{flags} {self.typed(ops[0])}"
        elif op in opcodes.COMPARE_OPS:
            body = f"{op}{flags} {inst.predicate} {self.typed(ops[0])}, {self.ref(ops[1])}"
        elif op in opcodes.CAST_OPS:
            body = f"{op} {self.typed(ops[0])} to {inst.type}"
        elif op == "select":
            body = f"select{flags} {self.typed(ops[0])}, {self.typed(ops[1])}, {self.typed(ops[2])}"
        elif op == "freeze":
            body = f"freeze {self.typed(ops[0])}"
        elif op == "alloca":
            body = f"alloca {inst.element_type}"
        elif op == "load":
            body = f"load {inst.type}, {self.typed(ops[0])}"
        elif op == "store":
            body = f"store {self.typed(ops[0])}, {self.typed(ops[1])}"
        elif op == "getelementptr":
            body = f"getelementptr{flags} {inst.element_type}, {self.typed(ops[0])}, {self.typed(ops[1])}"
        elif op == "ret":
            body = f"ret {self.typed(ops[0])}" if ops else "ret void"
        elif op == "br":
            if ops:
                body = f"br {self.typed(ops[0])}, {self.label(inst.successors[0])}, {self.label(inst.successors[1])}"
            else:
                body = f"br {self.label(inst.successors[0])}"
        elif op == "unreachable":
            body = "unreachable"
        else:
            raise ValueError(f"Cannot print opcode {op}")

        if inst.type.is_void():
            return body
        return f"%{self._slots.value_name(inst)} = {body}"


def print_module(module: Module) -> str:
    """Render a module as textual assembly."""
    return AssemblyWriter(module).write()
