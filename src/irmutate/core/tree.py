"""
Traversal and dominance helpers over the containment tree.
"""

from __future__ import annotations

from typing import Iterator

from irmutate.core.ir import BasicBlock, Function, Instruction, Module, Value


def get_module(unit) -> Module | None:
    """Walk up from any unit (instruction, block, function) to its module."""
    while unit is not None and not isinstance(unit, Module):
        unit = unit.parent
    return unit


def walk_module(module: Module) -> Iterator[Instruction]:
    """Yield every instruction of every defined function, in order."""
    for function in module.functions:
        yield from function.instructions()


def reachable_blocks(function: Function) -> list[BasicBlock]:
    """Blocks reachable from the entry block, in depth-first preorder."""
    if function.is_declaration:
        return []
    seen = []
    stack = [function.entry_block]
    while stack:
        block = stack.pop()
        if any(block is b for b in seen):
            continue
        seen.append(block)
        # Reverse so the first successor is visited first
        stack.extend(reversed(block.successors()))
    return seen


def compute_dominators(function: Function) -> dict[BasicBlock, set[BasicBlock]]:
    """
    Compute the dominator set of every block.

    Uses the classic iterative dataflow formulation. Unreachable blocks are
    only dominated by themselves, which keeps value visibility inside them
    conservative.
    """
    reachable = reachable_blocks(function)
    if not reachable:
        return {}

    entry = reachable[0]
    everything = set(reachable)
    dom: dict[BasicBlock, set[BasicBlock]] = {entry: {entry}}
    others = reachable[1:]
    for block in others:
        dom[block] = set(everything)

    changed = True
    while changed:
        changed = False
        for block in others:
            preds = [p for p in block.predecessors() if p in everything]
            new = set.intersection(*(dom[p] for p in preds)) if preds else set()
            new.add(block)
            if new != dom[block]:
                dom[block] = new
                changed = True

    for block in function.blocks:
        dom.setdefault(block, {block})
    return dom


def dominates(
    dominators: dict[BasicBlock, set[BasicBlock]],
    a: BasicBlock,
    b: BasicBlock,
) -> bool:
    """Check whether block `a` dominates block `b`."""
    return a in dominators.get(b, ())


def visible_values(
    block: BasicBlock,
    index: int,
    dominators: dict[BasicBlock, set[BasicBlock]] | None = None,
) -> list[Value]:
    """
    Values usable as operands by an instruction placed at `block[index]`.

    Order is deterministic: function arguments, then results defined in
    strictly dominating blocks (function order), then results defined
    earlier in `block`.
    """
    function = block.parent
    values: list[Value] = list(function.arguments)
    if dominators is None:
        dominators = compute_dominators(function)

    for other in function.blocks:
        if other is not block and dominates(dominators, other, block):
            values.extend(inst for inst in other.instructions if not inst.type.is_void())

    values.extend(inst for inst in block.instructions[:index] if not inst.type.is_void())
    return values
