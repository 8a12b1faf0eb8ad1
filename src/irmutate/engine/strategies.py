"""
Mutation strategies.

Each strategy defines a different way to edit a module:
- Injector: insert a new operation built from the operation catalog
- InstDeleter: remove an instruction, rewiring its users
- InstModification: flip flags, predicates or operands of an instruction

A strategy declares the granularities it implements. `mutate` walks from
the unit it is given (Module > Function > BasicBlock > Instruction) and
runs the strategy's hook at the first declared granularity, picking a
random child and descending otherwise.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import ClassVar

from irmutate.core import opcodes
from irmutate.core.ir import BasicBlock, Function, Instruction, Module
from irmutate.engine.builder import RandomIRBuilder
from irmutate.ops.catalog import default_ops
from irmutate.ops.descriptor import OpDescriptor

logger = logging.getLogger(__name__)


class StrategyError(Exception):
    """A strategy is misconfigured or was driven outside its contract."""


class Granularity(IntEnum):
    """Mutation scopes, from widest to narrowest."""
    MODULE = 0
    FUNCTION = 1
    BASIC_BLOCK = 2
    INSTRUCTION = 3

    @classmethod
    def of(cls, unit) -> "Granularity":
        if isinstance(unit, Module):
            return cls.MODULE
        if isinstance(unit, Function):
            return cls.FUNCTION
        if isinstance(unit, BasicBlock):
            return cls.BASIC_BLOCK
        if isinstance(unit, Instruction):
            return cls.INSTRUCTION
        raise TypeError(f"Not a mutable IR unit: {unit!r}")


# Hook method implementing each granularity
HOOKS = {
    Granularity.MODULE: "mutate_module",
    Granularity.FUNCTION: "mutate_function",
    Granularity.BASIC_BLOCK: "mutate_block",
    Granularity.INSTRUCTION: "mutate_instruction",
}


def pick_child(unit, builder: RandomIRBuilder):
    """Uniformly pick the next narrower unit, or None if there is none."""
    if isinstance(unit, Module):
        return builder.choice(unit.definitions())
    if isinstance(unit, Function):
        return builder.choice(unit.blocks)
    if isinstance(unit, BasicBlock):
        return builder.choice(unit.instructions)
    raise TypeError(f"{unit!r} has no children to forward to")


class IRMutationStrategy(ABC):
    """
    Base class for mutation strategies.

    Subclasses set `granularities` and override the matching hooks. Hooks
    of undeclared granularities are never called by `mutate`.
    """

    granularities: ClassVar[frozenset[Granularity]] = frozenset()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for granularity in cls.granularities:
            hook = HOOKS[granularity]
            if getattr(cls, hook) is getattr(IRMutationStrategy, hook):
                raise StrategyError(
                    f"{cls.__name__} declares {granularity.name} but does not override {hook}()"
                )

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def weight(self, current_size: int, max_size: int, current_weight: int) -> int:
        """
        Bias towards choosing this strategy.

        Args:
            current_size: Encoded size of the module being mutated
            max_size: Size budget for the mutated module
            current_weight: Sum of the weights of the strategies evaluated
                before this one
        """
        ...

    def mutate(self, unit, builder: RandomIRBuilder):
        """Apply this strategy to `unit`, descending until a declared granularity."""
        level = Granularity.of(unit)
        while level not in self.granularities:
            if level is Granularity.INSTRUCTION:
                raise StrategyError(f"{self.name} does not implement any mutators")
            unit = pick_child(unit, builder)
            if unit is None:
                logger.debug(f"{self.name}: nothing to forward to below {level.name}")
                return
            level = Granularity(level + 1)
        getattr(self, HOOKS[level])(unit, builder)

    def forward(self, unit, builder: RandomIRBuilder):
        """Pick a random child of `unit` and mutate it."""
        child = pick_child(unit, builder)
        if child is not None:
            self.mutate(child, builder)

    def mutate_module(self, module: Module, builder: RandomIRBuilder):
        raise StrategyError(f"{self.name} does not mutate modules")

    def mutate_function(self, function: Function, builder: RandomIRBuilder):
        raise StrategyError(f"{self.name} does not mutate functions")

    def mutate_block(self, block: BasicBlock, builder: RandomIRBuilder):
        raise StrategyError(f"{self.name} does not mutate basic blocks")

    def mutate_instruction(self, inst: Instruction, builder: RandomIRBuilder):
        raise StrategyError(f"{self.name} does not mutate instructions")

    def __repr__(self) -> str:
        return f"<{self.name}>"


def validate_strategy(strategy) -> IRMutationStrategy:
    """
    Reject strategies that could never perform an edit.

    Raises:
        StrategyError: If `strategy` is not a strategy or implements no
            granularity (it would fall through to instruction level and fail)
    """
    if not isinstance(strategy, IRMutationStrategy):
        raise StrategyError(f"Not a mutation strategy: {strategy!r}")
    if not strategy.granularities:
        raise StrategyError(f"{strategy.name} does not implement any granularity")
    return strategy


class InjectorIRStrategy(IRMutationStrategy):
    """
    Insert a new operation into a basic block.

    A source operand picked at the insertion point constrains which
    operations are eligible; remaining operands come from visible values
    or fresh constants.
    """

    granularities = frozenset({Granularity.FUNCTION, Granularity.BASIC_BLOCK})

    def __init__(self, operations: list[OpDescriptor] | None = None):
        """
        Args:
            operations: Operation catalog (None = default_ops())
        """
        operations = default_ops() if operations is None else operations
        self.operations = tuple(operations)
        for op in self.operations:
            if not isinstance(op, OpDescriptor):
                raise StrategyError(f"Not an operation descriptor: {op!r}")

    def weight(self, current_size: int, max_size: int, current_weight: int) -> int:
        return len(self.operations)

    def choose_operation(self, source, builder: RandomIRBuilder) -> OpDescriptor | None:
        matching = [op for op in self.operations if op.matches_source(source)]
        return builder.pick_weighted(matching, [op.weight for op in matching])

    def mutate_function(self, function: Function, builder: RandomIRBuilder):
        self.forward(function, builder)

    def mutate_block(self, block: BasicBlock, builder: RandomIRBuilder):
        index = builder.pick_insertion_point(block)
        if index is None:
            return

        source = builder.find_or_create_source(block, index)
        if source is None:
            logger.debug(f"Injector: no source available in block {block.name}")
            return

        op = self.choose_operation(source, builder)
        if op is None:
            logger.debug(f"Injector: no operation accepts a {source.type} source")
            return

        sources = [source]
        for pred in op.source_preds[1:]:
            value = builder.find_or_create_source(block, index, sources, pred)
            if value is None:
                logger.debug(f"Injector: cannot satisfy {pred.name} for {op.name}")
                return
            sources.append(value)

        inst = op.build(sources)
        block.insert(index, inst)
        builder.connect_to_sink(block, index, inst)
        logger.debug(f"Injector: inserted {op.name} at {block.name}[{index}]")


class InstDeleterIRStrategy(IRMutationStrategy):
    """
    Delete a non-terminator instruction.

    Users of the deleted result are rewired to another visible value of
    the same type, or to undef when there is none.
    """

    granularities = frozenset({Granularity.FUNCTION, Granularity.INSTRUCTION})

    def __init__(self, shrink_start: float = 0.5, panic_ratio: float = 0.9):
        """
        Args:
            shrink_start: Size ratio below which deletion has no weight
            panic_ratio: Size ratio from which deletion dominates
        """
        if not 0 <= shrink_start < panic_ratio <= 1:
            raise StrategyError(
                f"Need 0 <= shrink_start < panic_ratio <= 1, got {shrink_start}, {panic_ratio}"
            )
        self.shrink_start = shrink_start
        self.panic_ratio = panic_ratio

    def weight(self, current_size: int, max_size: int, current_weight: int) -> int:
        ratio = current_size / max_size if max_size > 0 else math.inf

        if ratio >= self.panic_ratio:
            return current_weight * 100 if current_weight else 1
        if ratio <= self.shrink_start:
            return 0
        # Linear ramp up to double the weight of everything before us
        span = self.panic_ratio - self.shrink_start
        return int(2 * current_weight * (ratio - self.shrink_start) / span)

    def mutate_function(self, function: Function, builder: RandomIRBuilder):
        candidates = [inst for inst in function.instructions() if not inst.is_terminator]
        inst = builder.choice(candidates)
        if inst is None:
            logger.debug(f"Deleter: nothing deletable in @{function.name}")
            return
        self.mutate(inst, builder)

    def mutate_instruction(self, inst: Instruction, builder: RandomIRBuilder):
        if inst.is_terminator or inst.parent is None:
            logger.debug(f"Deleter: refusing to delete {inst.opcode}")
            return

        block = inst.parent
        if not inst.type.is_void():
            candidates = [
                v for v in builder.visible_values(block, block.index(inst))
                if v.type is inst.type
            ]
            replacement = builder.choice(candidates)
            if replacement is None:
                replacement = inst.type.context.get_undef(inst.type)
            block.parent.replace_all_uses_with(inst, replacement)

        inst.erase_from_parent()
        logger.debug(f"Deleter: removed {inst.opcode} from {block.name}")


# Operand pairs that can be exchanged without changing types
_NON_COMMUTATIVE_BINARY = frozenset(
    op for op in opcodes.INT_BINARY_OPS + opcodes.FLOAT_BINARY_OPS
    if op not in opcodes.COMMUTATIVE_OPS
)


class InstModificationIRStrategy(IRMutationStrategy):
    """Modify an instruction's flags, predicate or operands in place."""

    granularities = frozenset({Granularity.INSTRUCTION})

    def weight(self, current_size: int, max_size: int, current_weight: int) -> int:
        return 4

    def mutate_instruction(self, inst: Instruction, builder: RandomIRBuilder):
        change = builder.choice(self.modifications(inst, builder))
        if change is None:
            logger.debug(f"Modifier: no modification applies to {inst.opcode}")
            return
        change()

    def modifications(self, inst: Instruction, builder: RandomIRBuilder) -> list:
        """Every single edit that keeps `inst` well formed, as thunks."""
        changes = []

        for flag in inst.legal_flags:
            changes.append(lambda flag=flag: inst.toggle_flag(flag))

        for predicate in opcodes.legal_predicates(inst.opcode):
            if predicate != inst.predicate:
                changes.append(lambda predicate=predicate: setattr(inst, "predicate", predicate))

        if inst.parent is not None:
            visible = builder.visible_values(inst.parent, inst.parent.index(inst))
            for op_index, operand in enumerate(inst.operands):
                alternatives = [v for v in visible if v.type is operand.type and v is not operand]
                if alternatives:
                    changes.append(
                        lambda op_index=op_index, alternatives=alternatives:
                            inst.set_operand(op_index, builder.choice(alternatives))
                    )

        if inst.opcode in _NON_COMMUTATIVE_BINARY or inst.opcode in opcodes.COMPARE_OPS:
            changes.append(lambda: self._swap(inst, 0, 1))
        elif inst.opcode == "select":
            changes.append(lambda: self._swap(inst, 1, 2))

        return changes

    @staticmethod
    def _swap(inst: Instruction, a: int, b: int):
        inst.operands[a], inst.operands[b] = inst.operands[b], inst.operands[a]
