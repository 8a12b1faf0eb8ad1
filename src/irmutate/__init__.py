"""
irmutate: seeded, size-bounded structural mutation of SSA IR for fuzzing.
"""

from irmutate.core import Context, Module, verify_module
from irmutate.codec import parse_module, write_module, parse_and_verify, print_module
from irmutate.engine import Mutator, default_mutator
from irmutate.config import ConfigError, MutatorConfig
from irmutate.harness import custom_mutate, mutate_bytes

__all__ = [
    "Context",
    "Module",
    "verify_module",
    "parse_module",
    "write_module",
    "parse_and_verify",
    "print_module",
    "Mutator",
    "default_mutator",
    "ConfigError",
    "MutatorConfig",
    "custom_mutate",
    "mutate_bytes",
]
