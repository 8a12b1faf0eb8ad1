"""
Core program representation: types, values, containers, traversal and
verification.
"""

from irmutate.core.types import (
    Type,
    VoidType,
    LabelType,
    IntegerType,
    FloatType,
    PointerType,
)
from irmutate.core.context import Context
from irmutate.core.ir import (
    Value,
    Constant,
    ConstantInt,
    ConstantFP,
    UndefValue,
    ConstantPointerNull,
    Argument,
    Instruction,
    BasicBlock,
    Function,
    Module,
)
from irmutate.core.tree import (
    get_module,
    walk_module,
    reachable_blocks,
    compute_dominators,
    dominates,
    visible_values,
)
from irmutate.core.verifier import (
    VerificationError,
    verify_module,
    verify_function,
    assert_valid,
)

__all__ = [
    # types
    "Type",
    "VoidType",
    "LabelType",
    "IntegerType",
    "FloatType",
    "PointerType",
    # context
    "Context",
    # ir
    "Value",
    "Constant",
    "ConstantInt",
    "ConstantFP",
    "UndefValue",
    "ConstantPointerNull",
    "Argument",
    "Instruction",
    "BasicBlock",
    "Function",
    "Module",
    # tree
    "get_module",
    "walk_module",
    "reachable_blocks",
    "compute_dominators",
    "dominates",
    "visible_values",
    # verifier
    "VerificationError",
    "verify_module",
    "verify_function",
    "assert_valid",
]
