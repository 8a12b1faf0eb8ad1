"""
Byte-buffer boundary between fuzzer inputs and modules.

These functions never raise on bad input: a malformed encoding yields None
and an oversized module yields 0, so a fuzzer can simply discard the input
and move on.
"""

from __future__ import annotations

import logging

from irmutate.codec.reader import ParseError, parse_assembly
from irmutate.codec.writer import print_module
from irmutate.core.context import Context
from irmutate.core.ir import Module
from irmutate.core.verifier import verify_module

logger = logging.getLogger(__name__)

ENCODING = "utf-8"


def encode_module(module: Module) -> bytes:
    return print_module(module).encode(ENCODING)


def parse_module(data: bytes, size: int, context: Context) -> Module | None:
    """
    Decode the first `size` bytes of `data` into a module.

    Args:
        data: Encoded module
        size: Number of meaningful bytes in `data`
        context: Context that will own the module's types and constants

    Returns:
        The module, or None if the bytes are not a valid encoding
    """
    try:
        text = bytes(data[:size]).decode(ENCODING)
        return parse_assembly(text, context)
    except (ParseError, ValueError) as e:
        # UnicodeDecodeError is a ValueError
        logger.debug(f"Failed to parse module: {e}")
        return None


def write_module(module: Module, dest: bytearray | memoryview, max_size: int) -> int:
    """
    Encode `module` into the front of `dest`.

    A `bytearray` grows when it is shorter than the encoding. Any other
    writable buffer (e.g. a `memoryview`) has a fixed length, which bounds
    the write like `max_size` does.

    Returns:
        Number of bytes written, or 0 if the encoding exceeds `max_size`
        or a fixed-length `dest` (in which case `dest` is left untouched)
    """
    encoded = encode_module(module)
    if len(encoded) > max_size:
        logger.debug(f"Encoded module is {len(encoded)} bytes, over the {max_size} byte budget")
        return 0
    if not isinstance(dest, bytearray) and len(encoded) > len(dest):
        logger.debug(f"Encoded module is {len(encoded)} bytes, larger than the {len(dest)} byte buffer")
        return 0
    dest[:len(encoded)] = encoded
    return len(encoded)


def parse_and_verify(data: bytes, size: int, context: Context) -> Module | None:
    """Like `parse_module`, but also reject modules that fail verification."""
    module = parse_module(data, size, context)
    if module is None:
        return None

    errors = verify_module(module)
    if errors:
        for error in errors:
            logger.warning(f"Invalid module: {error}")
        return None
    return module
