"""
In-memory program representation.

Containment is Module > Function > BasicBlock > Instruction. Instructions
reference their operands directly; there are no use lists, so users are
found by scanning the enclosing function.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterator

from irmutate.core import opcodes
from irmutate.core.types import Type

if TYPE_CHECKING:
    from irmutate.core.context import Context


class Value:
    """Anything usable as an operand."""

    def __init__(self, type_: Type, name: str = ""):
        self.type = type_
        self.name = name

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type} {self.name or hex(id(self))}>"


# ---------------------------------------------------------------------------
# Constants (owned and uniqued by a Context)
# ---------------------------------------------------------------------------


class Constant(Value):
    pass


class ConstantInt(Constant):
    def __init__(self, type_: Type, value: int):
        super().__init__(type_)
        self.value = value & type_.mask

    @property
    def signed_value(self) -> int:
        width = self.type.width
        if self.value >> (width - 1):
            return self.value - (1 << width)
        return self.value

    def __repr__(self) -> str:
        return f"<ConstantInt {self.type} {self.signed_value}>"


class ConstantFP(Constant):
    def __init__(self, type_: Type, value: float, bits: int):
        super().__init__(type_)
        self.value = value
        self.bits = bits

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.value)

    def __repr__(self) -> str:
        return f"<ConstantFP {self.type} {self.value!r}>"


class UndefValue(Constant):
    pass


class ConstantPointerNull(Constant):
    pass


# ---------------------------------------------------------------------------
# Function-local values
# ---------------------------------------------------------------------------


class Argument(Value):
    def __init__(self, type_: Type, name: str = "", parent: Function | None = None, index: int = 0):
        super().__init__(type_, name)
        self.parent = parent
        self.index = index


class Instruction(Value):
    """
    A typed operation node.

    Only `operands` hold Values; branch targets live in `successors` so
    that operand rewiring never has to reason about labels.
    """

    def __init__(
        self,
        opcode: str,
        type_: Type,
        operands=(),
        *,
        flags=(),
        predicate: str | None = None,
        successors=(),
        element_type: Type | None = None,
        name: str = "",
    ):
        if opcode not in opcodes.ALL_OPCODES:
            raise ValueError(f"Unknown opcode: {opcode}")
        super().__init__(type_, name)
        self.opcode = opcode
        self.operands: list[Value] = list(operands)
        self.flags: set[str] = set(flags)
        self.predicate = predicate
        self.successors: list[BasicBlock] = list(successors)
        self.element_type = element_type
        self.parent: BasicBlock | None = None

    @property
    def is_terminator(self) -> bool:
        return opcodes.is_terminator(self.opcode)

    @property
    def legal_flags(self) -> tuple[str, ...]:
        return opcodes.legal_flags(self.opcode, self.type)

    def set_operand(self, index: int, value: Value):
        self.operands[index] = value

    def replace_uses_of_with(self, old: Value, new: Value) -> int:
        """Replace every operand slot holding `old`; returns slots changed."""
        count = 0
        for i, op in enumerate(self.operands):
            if op is old:
                self.operands[i] = new
                count += 1
        return count

    def toggle_flag(self, flag: str):
        if flag not in self.legal_flags:
            raise ValueError(f"Flag '{flag}' is not legal on {self.opcode}")
        self.flags ^= {flag}

    def erase_from_parent(self):
        if self.parent is None:
            raise ValueError("Instruction is not attached to a block")
        self.parent.instructions.remove(self)
        self.parent = None

    def __repr__(self) -> str:
        return f"<Instruction {self.opcode} {self.type} {self.name or hex(id(self))}>"


class BasicBlock:
    """Ordered instructions ending in exactly one terminator."""

    def __init__(self, name: str = "", parent: Function | None = None):
        self.name = name
        self.parent = parent
        self.instructions: list[Instruction] = []

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    @property
    def terminator(self) -> Instruction | None:
        if self.instructions and self.instructions[-1].is_terminator:
            return self.instructions[-1]
        return None

    def index(self, inst: Instruction) -> int:
        for i, candidate in enumerate(self.instructions):
            if candidate is inst:
                return i
        raise ValueError(f"{inst!r} is not in block {self.name}")

    def insert(self, index: int, inst: Instruction) -> Instruction:
        if inst.parent is not None:
            raise ValueError(f"{inst!r} already belongs to a block")
        self.instructions.insert(index, inst)
        inst.parent = self
        return inst

    def append(self, inst: Instruction) -> Instruction:
        return self.insert(len(self.instructions), inst)

    def successors(self) -> list[BasicBlock]:
        term = self.terminator
        return list(term.successors) if term else []

    def predecessors(self) -> list[BasicBlock]:
        if self.parent is None:
            return []
        return [bb for bb in self.parent.blocks if any(s is self for s in bb.successors())]

    def __repr__(self) -> str:
        return f"<BasicBlock {self.name} ({len(self.instructions)} insts)>"


class Function:
    def __init__(self, name: str, return_type: Type, params=(), parent: Module | None = None):
        """
        Args:
            name: Symbol name, without the leading '@'
            return_type: Result type (may be void)
            params: Iterable of (type, name) pairs
            parent: Owning module
        """
        self.name = name
        self.return_type = return_type
        self.parent = parent
        self.arguments = [
            Argument(type_, arg_name, parent=self, index=i)
            for i, (type_, arg_name) in enumerate(params)
        ]
        self.blocks: list[BasicBlock] = []

    @property
    def is_declaration(self) -> bool:
        return not self.blocks

    @property
    def entry_block(self) -> BasicBlock | None:
        return self.blocks[0] if self.blocks else None

    def append_block(self, block: BasicBlock) -> BasicBlock:
        block.parent = self
        self.blocks.append(block)
        return block

    def instructions(self) -> Iterator[Instruction]:
        for block in self.blocks:
            yield from block.instructions

    def users_of(self, value: Value) -> list[Instruction]:
        return [inst for inst in self.instructions() if any(op is value for op in inst.operands)]

    def replace_all_uses_with(self, old: Value, new: Value) -> int:
        count = 0
        for inst in self.instructions():
            count += inst.replace_uses_of_with(old, new)
        return count

    def __repr__(self) -> str:
        return f"<Function @{self.name} ({len(self.blocks)} blocks)>"


class Module:
    def __init__(self, name: str, context: Context):
        self.name = name
        self.context = context
        self.functions: list[Function] = []

    def add_function(self, function: Function) -> Function:
        if self.get_function(function.name) is not None:
            raise ValueError(f"Function @{function.name} already defined")
        function.parent = self
        self.functions.append(function)
        return function

    def get_function(self, name: str) -> Function | None:
        for function in self.functions:
            if function.name == name:
                return function
        return None

    def definitions(self) -> list[Function]:
        return [f for f in self.functions if not f.is_declaration]

    def __repr__(self) -> str:
        return f"<Module {self.name} ({len(self.functions)} functions)>"
