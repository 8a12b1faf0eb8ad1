"""
Random IR builder.

Holds the single random source for one mutation call and provides the
value-synthesis services every strategy relies on: picking insertion
points, finding visible operands, materializing constants and wiring new
results into existing users.
"""

from __future__ import annotations

import logging
import random
from typing import Sequence, TypeVar

from irmutate.core.ir import BasicBlock, Function, Instruction, Value
from irmutate.core.tree import compute_dominators, visible_values
from irmutate.core.types import Type
from irmutate.ops.descriptor import SourcePred, any_type, make_constants_with_type

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RandomIRBuilder:
    """
    Randomness and value synthesis for one mutation.

    Every random decision made while mutating flows through `self.rng`,
    which is seeded once; the same seed and input module always produce
    the same edit.
    """

    def __init__(self, seed: int, known_types: Sequence[Type] = ()):
        """
        Args:
            seed: Seed for the random source of this mutation
            known_types: Types new constants may be created with
        """
        self.rng = random.Random(seed)
        self.known_types = tuple(known_types)
        self._dominators: dict[Function, dict] = {}

    # -- primitives --------------------------------------------------------

    def uniform(self, lo: int, hi: int) -> int:
        """Draw an integer in the inclusive range [lo, hi]."""
        return self.rng.randint(lo, hi)

    def choice(self, items: Sequence[T]) -> T | None:
        """Uniformly pick an item, or None from an empty sequence."""
        if not items:
            return None
        return items[self.rng.randrange(len(items))]

    def pick_weighted(self, items: Sequence[T], weights: Sequence[float]) -> T | None:
        """
        Pick an item with probability proportional to its weight.

        Draws r uniformly from [0, total) and returns the first item whose
        cumulative range contains r, so ties fall to declaration order and
        zero-weight items are never chosen. Returns None if the total is 0.
        """
        total = sum(weights)
        if total <= 0:
            return None
        if all(isinstance(w, int) for w in weights):
            r = self.rng.randrange(total)
        else:
            r = self.rng.random() * total

        cumulative = 0
        for item, weight in zip(items, weights):
            cumulative += weight
            if r < cumulative:
                return item
        # Only reachable through float rounding
        return next(item for item, weight in reversed(list(zip(items, weights))) if weight > 0)

    def pick_allowed_type(self) -> Type | None:
        return self.choice(self.known_types)

    # -- scope queries -----------------------------------------------------

    def dominators(self, function: Function) -> dict:
        # Strategies never change the CFG, so one computation per function suffices
        if function not in self._dominators:
            self._dominators[function] = compute_dominators(function)
        return self._dominators[function]

    def visible_values(self, block: BasicBlock, index: int) -> list[Value]:
        return visible_values(block, index, self.dominators(block.parent))

    def pick_insertion_point(self, block: BasicBlock) -> int | None:
        """
        Pick the index of the instruction a new one will be placed before.

        Since the terminator is the last instruction, inserting before any
        index keeps it last.
        """
        if not block.instructions:
            return None
        return self.uniform(0, len(block.instructions) - 1)

    def pick_visible_value(
        self,
        block: BasicBlock,
        index: int,
        pred: SourcePred | None = None,
        sources: Sequence[Value] = (),
    ) -> Value | None:
        """Pick a value visible at `block[index]` that satisfies `pred`."""
        pred = pred or any_type()
        candidates = [v for v in self.visible_values(block, index) if pred.matches(sources, v)]
        return self.choice(candidates)

    # -- synthesis ---------------------------------------------------------

    def materialize_value(self, type_: Type) -> Value:
        """Create a fresh constant of the given type."""
        return self.choice(make_constants_with_type(type_))

    def new_source(self, pred: SourcePred | None = None, sources: Sequence[Value] = ()) -> Value | None:
        """Create a constant satisfying `pred`, drawn over the known types."""
        pred = pred or any_type()
        candidates = pred.generate(sources, self.known_types)
        return self.choice(candidates)

    def find_or_create_source(
        self,
        block: BasicBlock,
        index: int,
        sources: Sequence[Value] = (),
        pred: SourcePred | None = None,
    ) -> Value | None:
        """
        Find an operand for an instruction placed at `block[index]`.

        Existing visible values are preferred; a new constant is created
        only when none satisfies the predicate. Returns None when the
        predicate can be satisfied neither way.
        """
        value = self.pick_visible_value(block, index, pred, sources)
        if value is not None:
            return value
        return self.new_source(pred, sources)

    def connect_to_sink(self, block: BasicBlock, index: int, value: Instruction) -> Instruction | None:
        """
        Make a later instruction in `block` use `value`.

        One same-typed operand slot after `index` is rewired. When there is
        no such slot, `value` stays unused; no new instruction is created.

        Returns:
            The instruction that now uses `value`, or None
        """
        slots = []
        for user in block.instructions[index + 1:]:
            for op_index, operand in enumerate(user.operands):
                if operand is not value and operand.type is value.type:
                    slots.append((user, op_index))

        slot = self.choice(slots)
        if slot is None:
            logger.debug(f"No sink for new {value.opcode} in block {block.name}")
            return None
        user, op_index = slot
        user.set_operand(op_index, value)
        return user
