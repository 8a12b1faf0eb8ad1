"""
Operation descriptors and source predicates.

An OpDescriptor is a template for one kind of instruction: a predicate per
operand, and a builder that assembles a new instruction from operands that
satisfy them. Predicates can also synthesize constants that satisfy them,
which is how missing operands get materialized.
"""

from __future__ import annotations

import inspect
import math
from dataclasses import dataclass
from typing import Callable, Sequence

from irmutate.core.ir import Instruction, Value
from irmutate.core.types import Type


class OpDescriptorError(ValueError):
    """An operation template is malformed (configuration error)."""


def make_constants_with_type(type_: Type) -> list[Value]:
    """
    Interesting constants of a given type.

    Integers get the unsigned and signed extremes plus a single middle bit;
    floating point types get zero, the largest and the smallest values.
    Anything else only gets undef.
    """
    ctx = type_.context
    if type_.is_integer():
        width = type_.width
        values = [
            type_.mask,                  # unsigned max
            0,                           # unsigned min
            (1 << (width - 1)) - 1,      # signed max
            1 << (width - 1),            # signed min
            1 << (width // 2),           # one bit set in the middle
        ]
        consts = []
        for value in values:
            const = ctx.get_int(type_, value)
            if not any(const is c for c in consts):
                consts.append(const)
        return consts
    if type_.is_float():
        largest_bits, smallest_bits = _FLOAT_EXTREMES[type_.kind]
        return [
            ctx.get_float(type_, 0.0),
            ctx.get_float_bits(type_, largest_bits),
            ctx.get_float_bits(type_, smallest_bits),
        ]
    if type_.is_pointer():
        return [ctx.get_null(type_), ctx.get_undef(type_)]
    return [ctx.get_undef(type_)]


# kind -> (bits of the largest finite value, bits of the smallest denormal)
_FLOAT_EXTREMES = {
    "half": (0x7BFF, 0x0001),
    "float": (0x7F7FFFFF, 0x00000001),
    "double": (0x7FEFFFFFFFFFFFFF, 0x0000000000000001),
}


@dataclass(frozen=True)
class SourcePred:
    """
    Constraint on one operand of an operation.

    Attributes:
        name: Human readable label (used in logs and reprs)
        predicate: (current_sources, candidate) -> bool
        make: (current_sources, known_types) -> list of satisfying constants
    """
    name: str
    predicate: Callable[[Sequence[Value], Value], bool]
    make: Callable[[Sequence[Value], Sequence[Type]], list[Value]]

    def matches(self, current: Sequence[Value], value: Value) -> bool:
        return self.predicate(current, value)

    def generate(self, current: Sequence[Value], known_types: Sequence[Type]) -> list[Value]:
        return self.make(current, known_types)


def _constants_for(types) -> list[Value]:
    values = []
    for type_ in types:
        values.extend(make_constants_with_type(type_))
    return values


def only_type(only: Type) -> SourcePred:
    return SourcePred(
        name=f"only<{only}>",
        predicate=lambda cur, v: v.type is only,
        make=lambda cur, known: make_constants_with_type(only),
    )


def any_type() -> SourcePred:
    return SourcePred(
        name="any",
        predicate=lambda cur, v: v.type.is_first_class(),
        make=lambda cur, known: _constants_for(t for t in known if t.is_first_class()),
    )


def any_int_type() -> SourcePred:
    return SourcePred(
        name="any_int",
        predicate=lambda cur, v: v.type.is_integer(),
        make=lambda cur, known: _constants_for(t for t in known if t.is_integer()),
    )


def bool_type() -> SourcePred:
    def make(cur, known):
        for type_ in known:
            return make_constants_with_type(type_.context.bool_type())
        return []

    return SourcePred(
        name="bool",
        predicate=lambda cur, v: v.type.is_integer(1),
        make=make,
    )


def any_float_type() -> SourcePred:
    return SourcePred(
        name="any_float",
        predicate=lambda cur, v: v.type.is_float(),
        make=lambda cur, known: _constants_for(t for t in known if t.is_float()),
    )


def any_ptr_type() -> SourcePred:
    def make(cur, known):
        for type_ in [v.type for v in cur] + list(known):
            return make_constants_with_type(type_.context.pointer_type())
        return []

    return SourcePred(
        name="any_ptr",
        predicate=lambda cur, v: v.type.is_pointer(),
        make=make,
    )


def match_type_of(index: int) -> SourcePred:
    """Operand must have the same type as the already chosen source `index`."""
    return SourcePred(
        name=f"match<{index}>",
        predicate=lambda cur, v: len(cur) > index and v.type is cur[index].type,
        make=lambda cur, known: make_constants_with_type(cur[index].type) if len(cur) > index else [],
    )


def match_first_type() -> SourcePred:
    return match_type_of(0)


def int_narrower_than(width: int) -> SourcePred:
    return SourcePred(
        name=f"int<{width}",
        predicate=lambda cur, v: v.type.is_integer() and v.type.width < width,
        make=lambda cur, known: _constants_for(
            t for t in known if t.is_integer() and t.width < width
        ),
    )


def int_wider_than(width: int) -> SourcePred:
    return SourcePred(
        name=f"int>{width}",
        predicate=lambda cur, v: v.type.is_integer() and v.type.width > width,
        make=lambda cur, known: _constants_for(
            t for t in known if t.is_integer() and t.width > width
        ),
    )


def float_narrower_than(width: int) -> SourcePred:
    return SourcePred(
        name=f"fp<{width}",
        predicate=lambda cur, v: v.type.is_float() and v.type.width < width,
        make=lambda cur, known: _constants_for(
            t for t in known if t.is_float() and t.width < width
        ),
    )


def float_wider_than(width: int) -> SourcePred:
    return SourcePred(
        name=f"fp>{width}",
        predicate=lambda cur, v: v.type.is_float() and v.type.width > width,
        make=lambda cur, known: _constants_for(
            t for t in known if t.is_float() and t.width > width
        ),
    )


@dataclass(frozen=True)
class OpDescriptor:
    """
    Template for a legal operation.

    The builder receives exactly one positional argument per source
    predicate and returns a new instruction that is not yet attached to
    any block.
    """
    name: str
    source_preds: tuple[SourcePred, ...]
    builder: Callable[..., Instruction]
    weight: int = 1

    def __post_init__(self):
        object.__setattr__(self, "source_preds", tuple(self.source_preds))
        if not self.source_preds:
            raise OpDescriptorError(f"{self.name}: an operation needs at least one source predicate")
        if self.weight < 0 or not math.isfinite(self.weight):
            raise OpDescriptorError(f"{self.name}: weight must be non-negative")
        try:
            signature = inspect.signature(self.builder)
        except (TypeError, ValueError):
            # Some callables (e.g. builtins) have no introspectable signature
            return
        try:
            signature.bind(*([None] * self.arity))
        except TypeError as e:
            raise OpDescriptorError(
                f"{self.name}: builder does not accept {self.arity} operands ({e})"
            ) from e

    @property
    def arity(self) -> int:
        return len(self.source_preds)

    def matches_source(self, value: Value) -> bool:
        """Whether `value` is an acceptable first operand."""
        return self.source_preds[0].matches((), value)

    def build(self, operands: Sequence[Value]) -> Instruction:
        if len(operands) != self.arity:
            raise OpDescriptorError(
                f"{self.name}: expected {self.arity} operands, got {len(operands)}"
            )
        return self.builder(*operands)

    def __repr__(self) -> str:
        preds = ", ".join(p.name for p in self.source_preds)
        return f"OpDescriptor({self.name}: {preds})"
