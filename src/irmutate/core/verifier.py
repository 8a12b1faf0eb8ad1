"""
Structural verifier.

Checks the invariants every mutation must preserve: block termination,
operand typing, and def-before-use (dominance) of every operand.
"""

from __future__ import annotations

from irmutate.core import opcodes
from irmutate.core.ir import (
    Argument,
    BasicBlock,
    Constant,
    Function,
    Instruction,
    Module,
    Value,
)
from irmutate.core.tree import compute_dominators, dominates, reachable_blocks


class VerificationError(Exception):
    """Raised by assert_valid when a module is malformed."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("\n".join(errors))


def verify_module(module: Module) -> list[str]:
    """Return a list of problems found in `module` (empty if well formed)."""
    errors = []
    for function in module.functions:
        errors.extend(verify_function(function, module))
    return errors


def assert_valid(module: Module):
    errors = verify_module(module)
    if errors:
        raise VerificationError(errors)


def verify_function(function: Function, module: Module | None = None) -> list[str]:
    module = module or function.parent
    errors: list[str] = []
    where = f"@{function.name}"

    for arg in function.arguments:
        if not arg.type.is_first_class():
            errors.append(f"{where}: argument %{arg.name} has non first-class type {arg.type}")

    if function.is_declaration:
        return errors

    if function.entry_block.predecessors():
        errors.append(f"{where}: entry block '{function.entry_block.name}' has predecessors")

    dominators = compute_dominators(function)
    reachable = set(reachable_blocks(function))

    for block in function.blocks:
        block_where = f"{where}:{block.name}"
        if block.parent is not function:
            errors.append(f"{block_where}: block parent link is broken")
        if not block.instructions:
            errors.append(f"{block_where}: empty basic block")
            continue
        if not block.instructions[-1].is_terminator:
            errors.append(f"{block_where}: block does not end with a terminator")

        for index, inst in enumerate(block.instructions):
            if inst.is_terminator and index != len(block.instructions) - 1:
                errors.append(f"{block_where}: terminator '{inst.opcode}' in the middle of the block")
            if inst.parent is not block:
                errors.append(f"{block_where}: instruction parent link is broken ({inst.opcode})")
            for problem in _check_instruction(inst, function, module):
                errors.append(f"{block_where}: {inst.opcode}: {problem}")
            for problem in _check_operand_visibility(inst, block, index, function, dominators, reachable):
                errors.append(f"{block_where}: {inst.opcode}: {problem}")

    return errors


def _check_operand_visibility(
    inst: Instruction,
    block: BasicBlock,
    index: int,
    function: Function,
    dominators,
    reachable,
) -> list[str]:
    problems = []
    for i, op in enumerate(inst.operands):
        if isinstance(op, Constant):
            continue
        if isinstance(op, Argument):
            if op.parent is not function:
                problems.append(f"operand {i} is an argument of another function")
            continue
        if not isinstance(op, Instruction):
            problems.append(f"operand {i} is not a value ({op!r})")
            continue
        if op.parent is None or op.parent.parent is not function:
            problems.append(f"operand {i} references a deleted or foreign instruction")
            continue
        if op.parent is block:
            if block.index(op) >= index:
                problems.append(f"operand {i} is used before its definition")
            continue
        if block in reachable and not dominates(dominators, op.parent, block):
            problems.append(f"operand {i} does not dominate its use")
    return problems


def _check_instruction(inst: Instruction, function: Function, module: Module | None) -> list[str]:
    problems = []
    op = inst.opcode
    ops = inst.operands
    t = inst.type

    for i, value in enumerate(ops):
        if not isinstance(value, Value):
            problems.append(f"operand {i} is not a value")
            return problems
        if not value.type.is_first_class():
            problems.append(f"operand {i} has non first-class type {value.type}")
            return problems
        if module is not None and getattr(value.type, "context", None) is not module.context:
            problems.append(f"operand {i} belongs to a different context")

    illegal = inst.flags - set(opcodes.legal_flags(op, t))
    if illegal:
        problems.append(f"illegal flags {sorted(illegal)}")

    if op in opcodes.COMPARE_OPS:
        if inst.predicate not in opcodes.legal_predicates(op):
            problems.append(f"illegal predicate {inst.predicate!r}")
    elif inst.predicate is not None:
        problems.append("predicate on a non-compare instruction")

    if inst.successors and op != "br":
        problems.append("successors on a non-branch instruction")

    if inst.element_type is not None and op not in ("alloca", "load", "getelementptr"):
        problems.append("element type on an instruction that takes none")

    def arity(n):
        if len(ops) != n:
            problems.append(f"expected {n} operands, got {len(ops)}")
            return False
        return True

    if op in opcodes.INT_BINARY_OPS:
        if arity(2) and not (t.is_integer() and ops[0].type is t and ops[1].type is t):
            problems.append("integer binary operator type mismatch")
    elif op in opcodes.FLOAT_BINARY_OPS:
        if arity(2) and not (t.is_float() and ops[0].type is t and ops[1].type is t):
            problems.append("floating point binary operator type mismatch")
    elif op in opcodes.FLOAT_UNARY_OPS:
        if arity(1) and not (t.is_float() and ops[0].type is t):
            problems.append("floating point unary operator type mismatch")
    elif op == "icmp":
        if arity(2):
            lhs = ops[0].type
            if not (lhs.is_integer() or lhs.is_pointer()) or ops[1].type is not lhs:
                problems.append("icmp operand type mismatch")
            if not t.is_integer(1):
                problems.append("icmp must produce i1")
    elif op == "fcmp":
        if arity(2):
            if not ops[0].type.is_float() or ops[1].type is not ops[0].type:
                problems.append("fcmp operand type mismatch")
            if not t.is_integer(1):
                problems.append("fcmp must produce i1")
    elif op in opcodes.CAST_OPS:
        if arity(1):
            problems.extend(_check_cast(op, ops[0].type, t))
    elif op == "select":
        if arity(3):
            if not ops[0].type.is_integer(1):
                problems.append("select condition must be i1")
            if ops[1].type is not t or ops[2].type is not t:
                problems.append("select value type mismatch")
    elif op == "freeze":
        if arity(1) and ops[0].type is not t:
            problems.append("freeze type mismatch")
    elif op == "alloca":
        if arity(0):
            if inst.element_type is None or not inst.element_type.is_first_class():
                problems.append("alloca needs a first-class allocated type")
            if not t.is_pointer():
                problems.append("alloca must produce a pointer")
    elif op == "load":
        if arity(1):
            if not ops[0].type.is_pointer():
                problems.append("load address must be a pointer")
            if inst.element_type is None or inst.element_type is not t or not t.is_first_class():
                problems.append("load type mismatch")
    elif op == "store":
        if arity(2):
            if not ops[1].type.is_pointer():
                problems.append("store address must be a pointer")
            if not t.is_void():
                problems.append("store must be void")
    elif op == "getelementptr":
        if arity(2):
            if not ops[0].type.is_pointer() or not ops[1].type.is_integer():
                problems.append("getelementptr operand type mismatch")
            if inst.element_type is None or not inst.element_type.is_first_class():
                problems.append("getelementptr needs a first-class source element type")
            if not t.is_pointer():
                problems.append("getelementptr must produce a pointer")
    elif op == "ret":
        if function.return_type.is_void():
            arity(0)
        elif arity(1) and ops[0].type is not function.return_type:
            problems.append(f"return type mismatch, expected {function.return_type}")
    elif op == "br":
        if len(ops) == 0:
            if len(inst.successors) != 1:
                problems.append("unconditional branch needs exactly one target")
        elif len(ops) == 1:
            if not ops[0].type.is_integer(1):
                problems.append("branch condition must be i1")
            if len(inst.successors) != 2:
                problems.append("conditional branch needs exactly two targets")
        else:
            problems.append(f"branch takes at most one operand, got {len(ops)}")
        for target in inst.successors:
            if target.parent is not function:
                problems.append(f"branch target '{target.name}' is not in this function")
    elif op == "unreachable":
        arity(0)

    if op in opcodes.TERMINATORS or op == "store":
        if not t.is_void():
            problems.append("instruction must be void")

    return problems


def _check_cast(op: str, src, dst) -> list[str]:
    src_kind, dst_kind, relation = opcodes.CAST_OPS[op]

    def kind_ok(type_, kind):
        return type_.is_integer() if kind == "int" else type_.is_float()

    if not kind_ok(src, src_kind) or not kind_ok(dst, dst_kind):
        return [f"invalid {op} from {src} to {dst}"]
    if relation == "narrower" and not dst.width < src.width:
        return [f"{op} must narrow ({src} to {dst})"]
    if relation == "wider" and not dst.width > src.width:
        return [f"{op} must widen ({src} to {dst})"]
    return []
