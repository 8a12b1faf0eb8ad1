"""
Uniquing authority for types and constants.

Every Module belongs to exactly one Context. Asking the context twice for
the same type or constant returns the identical object, so identity
comparison (`is`) is the equality test everywhere in the engine.
"""

from __future__ import annotations

import math
import re
import struct

from irmutate.core.ir import (
    ConstantFP,
    ConstantInt,
    ConstantPointerNull,
    UndefValue,
)
from irmutate.core.types import (
    FloatType,
    IntegerType,
    LabelType,
    PointerType,
    Type,
    VoidType,
)

_INT_TYPE_RE = re.compile(r"i(\d+)$")


class Context:
    """Owns the type and constant tables shared by a set of modules."""

    def __init__(self):
        self._types: dict[str, Type] = {}
        self._ints: dict[tuple[Type, int], ConstantInt] = {}
        self._floats: dict[tuple[Type, int], ConstantFP] = {}
        self._undefs: dict[Type, UndefValue] = {}
        self._nulls: dict[Type, ConstantPointerNull] = {}

    # -- types -------------------------------------------------------------

    def _intern(self, key: str, factory) -> Type:
        type_ = self._types.get(key)
        if type_ is None:
            type_ = factory()
            type_.context = self
            self._types[key] = type_
        return type_

    def void_type(self) -> VoidType:
        return self._intern("void", VoidType)

    def label_type(self) -> LabelType:
        return self._intern("label", LabelType)

    def int_type(self, width: int) -> IntegerType:
        return self._intern(f"i{width}", lambda: IntegerType(width))

    def bool_type(self) -> IntegerType:
        return self.int_type(1)

    def float_type(self, kind: str = "float") -> FloatType:
        return self._intern(kind, lambda: FloatType(kind))

    def double_type(self) -> FloatType:
        return self.float_type("double")

    def pointer_type(self) -> PointerType:
        return self._intern("ptr", PointerType)

    def lookup_type(self, name: str) -> Type:
        """
        Resolve a type from its textual spelling (e.g. "i32", "double").

        Raises:
            ValueError: If the spelling does not name a known type
        """
        if name == "void":
            return self.void_type()
        if name == "label":
            return self.label_type()
        if name == "ptr":
            return self.pointer_type()
        if name in FloatType.KINDS:
            return self.float_type(name)
        match = _INT_TYPE_RE.match(name)
        if match:
            return self.int_type(int(match.group(1)))
        raise ValueError(f"Unknown type: {name}")

    # -- constants ---------------------------------------------------------

    def get_int(self, type_: IntegerType, value: int) -> ConstantInt:
        key = (type_, value & type_.mask)
        const = self._ints.get(key)
        if const is None:
            const = ConstantInt(type_, value)
            self._ints[key] = const
        return const

    def get_bool(self, value: bool) -> ConstantInt:
        return self.get_int(self.bool_type(), 1 if value else 0)

    def get_float(self, type_: FloatType, value: float) -> ConstantFP:
        """Get a floating point constant, rounding `value` to the type's precision."""
        fmt = "<" + type_.struct_format
        try:
            packed = struct.pack(fmt, value)
        except OverflowError:
            packed = struct.pack(fmt, math.copysign(math.inf, value))
        return self.get_float_bits(type_, int.from_bytes(packed, "little"))

    def get_float_bits(self, type_: FloatType, bits: int) -> ConstantFP:
        """Get a floating point constant from its raw bit pattern."""
        bits &= (1 << type_.width) - 1
        key = (type_, bits)
        const = self._floats.get(key)
        if const is None:
            raw = bits.to_bytes(type_.width // 8, "little")
            (value,) = struct.unpack("<" + type_.struct_format, raw)
            const = ConstantFP(type_, value, bits)
            self._floats[key] = const
        return const

    def get_undef(self, type_: Type) -> UndefValue:
        if not type_.is_first_class():
            raise ValueError(f"No undef value of type {type_}")
        const = self._undefs.get(type_)
        if const is None:
            const = UndefValue(type_)
            self._undefs[type_] = const
        return const

    def get_null(self, type_: PointerType) -> ConstantPointerNull:
        if not type_.is_pointer():
            raise ValueError(f"null requires a pointer type, got {type_}")
        const = self._nulls.get(type_)
        if const is None:
            const = ConstantPointerNull(type_)
            self._nulls[type_] = const
        return const

    def __repr__(self) -> str:
        return f"<Context {len(self._types)} types>"
