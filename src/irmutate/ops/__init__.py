"""
Operation templates used by the injector strategy.
"""

from irmutate.ops.descriptor import (
    OpDescriptor,
    OpDescriptorError,
    SourcePred,
    make_constants_with_type,
    only_type,
    any_type,
    any_int_type,
    any_float_type,
    any_ptr_type,
    bool_type,
    match_type_of,
    match_first_type,
    int_narrower_than,
    int_wider_than,
    float_narrower_than,
    float_wider_than,
)
from irmutate.ops.catalog import (
    OP_GROUPS,
    default_ops,
    ops_for_groups,
)

__all__ = [
    # descriptor
    "OpDescriptor",
    "OpDescriptorError",
    "SourcePred",
    "make_constants_with_type",
    "only_type",
    "any_type",
    "any_int_type",
    "any_float_type",
    "any_ptr_type",
    "bool_type",
    "match_type_of",
    "match_first_type",
    "int_narrower_than",
    "int_wider_than",
    "float_narrower_than",
    "float_wider_than",
    # catalog
    "OP_GROUPS",
    "default_ops",
    "ops_for_groups",
]
