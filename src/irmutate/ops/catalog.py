"""
Default operation catalog.

Descriptors are grouped the way they are enabled from configuration:
"int", "float", "cast", "misc" and "pointer". Every builder returns a
single detached instruction, so injecting an operation never adds more
than one instruction to a block.
"""

from __future__ import annotations

from typing import Callable

from irmutate.core import opcodes
from irmutate.core.ir import Instruction
from irmutate.ops.descriptor import (
    OpDescriptor,
    any_float_type,
    any_int_type,
    any_ptr_type,
    any_type,
    bool_type,
    float_narrower_than,
    float_wider_than,
    int_narrower_than,
    int_wider_than,
    match_first_type,
    match_type_of,
)


def binary_op(opcode: str) -> OpDescriptor:
    source = any_float_type() if opcode in opcodes.FLOAT_BINARY_OPS else any_int_type()

    def build(lhs, rhs):
        return Instruction(opcode, lhs.type, [lhs, rhs])

    return OpDescriptor(name=opcode, source_preds=(source, match_first_type()), builder=build)


def fneg_op() -> OpDescriptor:
    def build(value):
        return Instruction("fneg", value.type, [value])

    return OpDescriptor(name="fneg", source_preds=(any_float_type(),), builder=build)


def cmp_op(opcode: str, predicate: str) -> OpDescriptor:
    source = any_float_type() if opcode == "fcmp" else any_int_type()

    def build(lhs, rhs):
        return Instruction(
            opcode,
            lhs.type.context.bool_type(),
            [lhs, rhs],
            predicate=predicate,
        )

    return OpDescriptor(
        name=f"{opcode} {predicate}",
        source_preds=(source, match_first_type()),
        builder=build,
    )


# cast -> (source predicate factory, target type spelling)
_CASTS = {
    "trunc": (lambda: int_wider_than(8), "i8"),
    "zext": (lambda: int_narrower_than(64), "i64"),
    "sext": (lambda: int_narrower_than(64), "i64"),
    "fptrunc": (lambda: float_wider_than(32), "float"),
    "fpext": (lambda: float_narrower_than(64), "double"),
    "fptoui": (any_float_type, "i32"),
    "fptosi": (any_float_type, "i32"),
    "uitofp": (any_int_type, "double"),
    "sitofp": (any_int_type, "double"),
}


def cast_op(opcode: str) -> OpDescriptor:
    make_pred, target = _CASTS[opcode]

    def build(value):
        return Instruction(opcode, value.type.context.lookup_type(target), [value])

    return OpDescriptor(name=f"{opcode} to {target}", source_preds=(make_pred(),), builder=build)


def select_op() -> OpDescriptor:
    def build(cond, if_true, if_false):
        return Instruction("select", if_true.type, [cond, if_true, if_false])

    return OpDescriptor(
        name="select",
        source_preds=(bool_type(), any_type(), match_type_of(1)),
        builder=build,
    )


def freeze_op() -> OpDescriptor:
    def build(value):
        return Instruction("freeze", value.type, [value])

    return OpDescriptor(name="freeze", source_preds=(any_type(),), builder=build)


def gep_op() -> OpDescriptor:
    def build(pointer, index):
        ctx = pointer.type.context
        return Instruction(
            "getelementptr",
            ctx.pointer_type(),
            [pointer, index],
            flags={"inbounds"},
            element_type=ctx.int_type(8),
        )

    return OpDescriptor(name="getelementptr", source_preds=(any_ptr_type(), any_int_type()), builder=build)


def int_ops() -> list[OpDescriptor]:
    ops = [binary_op(op) for op in opcodes.INT_BINARY_OPS]
    ops.extend(cmp_op("icmp", pred) for pred in opcodes.ICMP_PREDICATES)
    return ops


def float_ops() -> list[OpDescriptor]:
    ops = [binary_op(op) for op in opcodes.FLOAT_BINARY_OPS]
    ops.append(fneg_op())
    # "false" and "true" fold to constants, they make poor fuzzing material
    ops.extend(
        cmp_op("fcmp", pred)
        for pred in opcodes.FCMP_PREDICATES
        if pred not in ("false", "true")
    )
    return ops


def cast_ops() -> list[OpDescriptor]:
    return [cast_op(op) for op in _CASTS]


def misc_ops() -> list[OpDescriptor]:
    return [select_op(), freeze_op()]


def pointer_ops() -> list[OpDescriptor]:
    return [gep_op()]


OP_GROUPS: dict[str, Callable[[], list[OpDescriptor]]] = {
    "int": int_ops,
    "float": float_ops,
    "cast": cast_ops,
    "misc": misc_ops,
    "pointer": pointer_ops,
}


def ops_for_groups(groups) -> list[OpDescriptor]:
    """
    Build a catalog from group names.

    Raises:
        KeyError: If a group name is unknown
    """
    ops = []
    for group in groups:
        if group not in OP_GROUPS:
            available = ", ".join(OP_GROUPS)
            raise KeyError(f"Unknown operation group: {group}. Available: {available}")
        ops.extend(OP_GROUPS[group]())
    return ops


def default_ops() -> list[OpDescriptor]:
    return ops_for_groups(OP_GROUPS)
