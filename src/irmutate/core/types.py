"""
Type descriptors for the IR.

Types are created and uniqued by a Context; never instantiate them
directly outside of it, identity comparison is how types are compared.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from irmutate.core.context import Context


class Type:
    """Base class for all IR types."""

    # Set by the owning Context when the type is interned
    context: Context

    def is_void(self) -> bool:
        return False

    def is_label(self) -> bool:
        return False

    def is_integer(self, width: int | None = None) -> bool:
        return False

    def is_float(self) -> bool:
        return False

    def is_pointer(self) -> bool:
        return False

    def is_first_class(self) -> bool:
        """Whether values of this type can be instruction operands."""
        return not (self.is_void() or self.is_label())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"


class VoidType(Type):
    def is_void(self) -> bool:
        return True

    def __str__(self) -> str:
        return "void"


class LabelType(Type):
    def is_label(self) -> bool:
        return True

    def __str__(self) -> str:
        return "label"


class IntegerType(Type):
    MAX_WIDTH: ClassVar[int] = 64

    def __init__(self, width: int):
        if not 1 <= width <= self.MAX_WIDTH:
            raise ValueError(f"Unsupported integer width: {width}")
        self.width = width

    def is_integer(self, width: int | None = None) -> bool:
        return width is None or width == self.width

    @property
    def mask(self) -> int:
        return (1 << self.width) - 1

    def __str__(self) -> str:
        return f"i{self.width}"


class FloatType(Type):
    # name -> (bit width, struct format)
    KINDS: ClassVar[dict[str, tuple[int, str]]] = {
        "half": (16, "e"),
        "float": (32, "f"),
        "double": (64, "d"),
    }

    def __init__(self, kind: str):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown floating point kind: {kind}")
        self.kind = kind

    def is_float(self) -> bool:
        return True

    @property
    def width(self) -> int:
        return self.KINDS[self.kind][0]

    @property
    def struct_format(self) -> str:
        return self.KINDS[self.kind][1]

    def __str__(self) -> str:
        return self.kind


class PointerType(Type):
    """Opaque pointer, in the style of modern LLVM IR."""

    def is_pointer(self) -> bool:
        return True

    def __str__(self) -> str:
        return "ptr"
