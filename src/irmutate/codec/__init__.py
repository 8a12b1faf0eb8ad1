"""
Textual assembly codec and the byte-buffer boundary used by fuzzers.
"""

from irmutate.codec.writer import AssemblyWriter, print_module
from irmutate.codec.reader import ParseError, parse_assembly
from irmutate.codec.buffers import (
    encode_module,
    parse_module,
    write_module,
    parse_and_verify,
)

__all__ = [
    # writer
    "AssemblyWriter",
    "print_module",
    # reader
    "ParseError",
    "parse_assembly",
    # buffers
    "encode_module",
    "parse_module",
    "write_module",
    "parse_and_verify",
]
