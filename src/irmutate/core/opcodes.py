"""
Opcode table: categories, legal flags and comparison predicates.
"""

from __future__ import annotations

INT_BINARY_OPS = (
    "add", "sub", "mul", "udiv", "sdiv", "urem", "srem",
    "shl", "lshr", "ashr", "and", "or", "xor",
)
FLOAT_BINARY_OPS = ("fadd", "fsub", "fmul", "fdiv", "frem")
FLOAT_UNARY_OPS = ("fneg",)

# cast -> (source kind, result kind, relation between source and result width)
CAST_OPS = {
    "trunc": ("int", "int", "narrower"),
    "zext": ("int", "int", "wider"),
    "sext": ("int", "int", "wider"),
    "fptrunc": ("float", "float", "narrower"),
    "fpext": ("float", "float", "wider"),
    "fptoui": ("float", "int", None),
    "fptosi": ("float", "int", None),
    "uitofp": ("int", "float", None),
    "sitofp": ("int", "float", None),
}

COMPARE_OPS = ("icmp", "fcmp")
MEMORY_OPS = ("alloca", "load", "store", "getelementptr")
OTHER_OPS = ("select", "freeze")
TERMINATORS = ("ret", "br", "unreachable")

ALL_OPCODES = (
    INT_BINARY_OPS
    + FLOAT_BINARY_OPS
    + FLOAT_UNARY_OPS
    + tuple(CAST_OPS)
    + COMPARE_OPS
    + MEMORY_OPS
    + OTHER_OPS
    + TERMINATORS
)

COMMUTATIVE_OPS = frozenset({"add", "mul", "and", "or", "xor", "fadd", "fmul"})

# Flag spellings, in the order they are printed
WRAP_FLAGS = ("nuw", "nsw")
EXACT_FLAGS = ("exact",)
FAST_MATH_FLAGS = ("nnan", "ninf", "nsz", "arcp", "contract", "afn", "reassoc")
GEP_FLAGS = ("inbounds",)

WRAP_OPS = frozenset({"add", "sub", "mul", "shl"})
EXACT_OPS = frozenset({"udiv", "sdiv", "lshr", "ashr"})

ICMP_PREDICATES = ("eq", "ne", "ugt", "uge", "ult", "ule", "sgt", "sge", "slt", "sle")
FCMP_PREDICATES = (
    "false", "oeq", "ogt", "oge", "olt", "ole", "one", "ord",
    "ueq", "ugt", "uge", "ult", "ule", "une", "uno", "true",
)


def is_terminator(opcode: str) -> bool:
    return opcode in TERMINATORS


def legal_flags(opcode: str, type_=None) -> tuple[str, ...]:
    """
    Flags an instruction may carry.

    Args:
        opcode: Instruction opcode
        type_: Result type; only consulted for select, which carries
            fast-math flags when it yields a floating point value
    """
    if opcode in WRAP_OPS:
        return WRAP_FLAGS
    if opcode in EXACT_OPS:
        return EXACT_FLAGS
    if opcode in FLOAT_BINARY_OPS or opcode in FLOAT_UNARY_OPS or opcode == "fcmp":
        return FAST_MATH_FLAGS
    if opcode == "select" and type_ is not None and type_.is_float():
        return FAST_MATH_FLAGS
    if opcode == "getelementptr":
        return GEP_FLAGS
    return ()


def legal_predicates(opcode: str) -> tuple[str, ...]:
    if opcode == "icmp":
        return ICMP_PREDICATES
    if opcode == "fcmp":
        return FCMP_PREDICATES
    return ()


def ordered_flags(opcode: str, flags, type_=None) -> list[str]:
    """Return flags in canonical (printing) order."""
    return [f for f in legal_flags(opcode, type_) if f in flags]
