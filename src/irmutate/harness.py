"""
Fuzzer entry points.

`custom_mutate` has the shape of a libFuzzer custom mutator: it mutates the
buffer in place and returns the new size (0 when nothing could be written).
"""

from __future__ import annotations

import logging

from irmutate.codec import encode_module, parse_assembly, parse_module, write_module
from irmutate.core.context import Context
from irmutate.core.ir import Module
from irmutate.engine.mutator import Mutator

logger = logging.getLogger(__name__)

SEED_MODULE = """\
define void @f() {
entry:
  ret void
}
"""


def seed_module(context: Context) -> Module:
    """A single empty function to grow from when there is no usable input."""
    return parse_assembly(SEED_MODULE, context, name="seed")


def custom_mutate(
    data: bytearray,
    size: int,
    max_size: int,
    seed: int,
    mutator: Mutator,
    context: Context | None = None,
) -> int:
    """
    Mutate the module encoded in `data[:size]` in place.

    Args:
        data: Buffer holding the input; receives the output
        size: Number of meaningful bytes in `data`
        max_size: Largest output the caller accepts
        seed: Seed for this mutation
        mutator: Configured mutator
        context: Context to parse into (a fresh one if None)

    Returns:
        Size of the mutated module in `data`, or 0 if it exceeds `max_size`
    """
    context = context or Context()

    module = None
    if size > 1:
        module = parse_module(data, size, context)
        if module is None:
            logger.warning("Cannot mutate an unparsable input, starting from an empty module")
    if module is None:
        module = seed_module(context)
        size = len(encode_module(module))

    mutator.mutate_module(module, seed, size, max_size)
    return write_module(module, data, max_size)


def mutate_bytes(
    data: bytes,
    max_size: int,
    seed: int,
    mutator: Mutator,
    context: Context | None = None,
) -> bytes | None:
    """Like `custom_mutate`, but return the mutant as new bytes (None if over budget)."""
    buffer = bytearray(data)
    written = custom_mutate(buffer, len(data), max_size, seed, mutator, context)
    if not written:
        return None
    return bytes(buffer[:written])
