"""
Mutation engine: random IR builder, strategies and the mutator driver.
"""

from irmutate.engine.builder import RandomIRBuilder
from irmutate.engine.strategies import (
    StrategyError,
    Granularity,
    IRMutationStrategy,
    InjectorIRStrategy,
    InstDeleterIRStrategy,
    InstModificationIRStrategy,
    validate_strategy,
)
from irmutate.engine.mutator import (
    Mutator,
    TypeGetter,
    DEFAULT_TYPE_NAMES,
    type_getter,
    default_mutator,
)

__all__ = [
    "RandomIRBuilder",
    "StrategyError",
    "Granularity",
    "IRMutationStrategy",
    "InjectorIRStrategy",
    "InstDeleterIRStrategy",
    "InstModificationIRStrategy",
    "validate_strategy",
    "Mutator",
    "TypeGetter",
    "DEFAULT_TYPE_NAMES",
    "type_getter",
    "default_mutator",
]
