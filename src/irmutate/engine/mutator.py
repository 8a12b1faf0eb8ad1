"""
Mutation driver.

Selects one strategy per call by weighted draw and applies it to the
module, with all randomness derived from the seed of that call.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from irmutate.core.context import Context
from irmutate.core.ir import Module
from irmutate.core.types import Type
from irmutate.engine.builder import RandomIRBuilder
from irmutate.engine.strategies import (
    IRMutationStrategy,
    InjectorIRStrategy,
    InstDeleterIRStrategy,
    InstModificationIRStrategy,
    StrategyError,
    validate_strategy,
)

logger = logging.getLogger(__name__)

TypeGetter = Callable[[Context], Type]

DEFAULT_TYPE_NAMES = ("i1", "i8", "i16", "i32", "i64", "float", "double")


def type_getter(name: str) -> TypeGetter:
    """Build a getter resolving a type spelling (e.g. "i32") in any context."""
    def get(context: Context) -> Type:
        return context.lookup_type(name)

    get.__name__ = f"get_{name}"
    return get


class Mutator:
    """
    Entry point for configuring and running IR mutations.

    Holds the allowed type getters and the ordered strategy list. Both are
    frozen at construction, so one Mutator can serve any number of
    mutation calls, including from parallel workers.
    """

    def __init__(
        self,
        allowed_types: Iterable[TypeGetter],
        strategies: Iterable[IRMutationStrategy],
    ):
        """
        Args:
            allowed_types: Getters for the types new constants may have
            strategies: Strategies in selection order

        Raises:
            StrategyError: If no strategy is given or one is invalid
        """
        self.allowed_types = tuple(allowed_types)
        self.strategies = tuple(validate_strategy(s) for s in strategies)
        if not self.strategies:
            raise StrategyError("A mutator needs at least one strategy")

    def strategy_weights(self, current_size: int, max_size: int) -> list[int]:
        """
        Evaluate every strategy's weight in registration order.

        Each strategy sees the running total of the weights before it.
        """
        weights = []
        total = 0
        for strategy in self.strategies:
            weight = strategy.weight(current_size, max_size, total)
            if weight < 0:
                raise StrategyError(f"{strategy.name} returned negative weight {weight}")
            weights.append(weight)
            total += weight
        return weights

    def select_strategy(
        self,
        builder: RandomIRBuilder,
        current_size: int,
        max_size: int,
    ) -> IRMutationStrategy | None:
        weights = self.strategy_weights(current_size, max_size)
        return builder.pick_weighted(self.strategies, weights)

    def mutate_module(self, module: Module, seed: int, current_size: int, max_size: int) -> None:
        """
        Perform exactly one structural edit on `module`, in place.

        Args:
            module: Module to mutate
            seed: Sole source of randomness for this call
            current_size: Encoded size of `module`
            max_size: Size budget for the result
        """
        types = [getter(module.context) for getter in self.allowed_types]
        builder = RandomIRBuilder(seed, types)

        strategy = self.select_strategy(builder, current_size, max_size)
        if strategy is None:
            logger.debug("All strategies have zero weight, skipping mutation")
            return

        logger.debug(f"Seed {seed}: applying {strategy.name} (size {current_size}/{max_size})")
        strategy.mutate(module, builder)

    def __repr__(self) -> str:
        names = ", ".join(s.name for s in self.strategies)
        return f"<Mutator [{names}]>"


def default_mutator() -> Mutator:
    """
    The standard setup: inject, modify, delete.

    The deleter goes last so that its weight scales against every
    strategy before it.
    """
    return Mutator(
        allowed_types=[type_getter(name) for name in DEFAULT_TYPE_NAMES],
        strategies=[
            InjectorIRStrategy(),
            InstModificationIRStrategy(),
            InstDeleterIRStrategy(),
        ],
    )
