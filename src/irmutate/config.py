"""
Mutator configuration.

A `MutatorConfig` names everything a `Mutator` is built from, so a setup
can be kept in a TOML file and rebuilt identically in any process.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from irmutate.core.context import Context
from irmutate.engine.mutator import DEFAULT_TYPE_NAMES, Mutator, type_getter
from irmutate.engine.strategies import (
    IRMutationStrategy,
    InjectorIRStrategy,
    InstDeleterIRStrategy,
    InstModificationIRStrategy,
    StrategyError,
)
from irmutate.ops.catalog import OP_GROUPS, ops_for_groups

STRATEGY_NAMES = ("injector", "modifier", "deleter")


class ConfigError(ValueError):
    """Invalid mutator configuration."""


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table, got {section!r}")
    return section


def _string_list(section: dict, name: str, key: str) -> list[str]:
    value = section[key]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{name}.{key} must be a list of strings, got {value!r}")
    return list(value)


def _number(section: dict, name: str, key: str) -> float:
    value = section[key]
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name}.{key} must be a number, got {value!r}")
    return value


@dataclass
class MutatorConfig:
    """Configuration for building a Mutator."""

    # Types new constants may have
    allowed_types: list[str] = field(default_factory=lambda: list(DEFAULT_TYPE_NAMES))

    # Selection order; later strategies see the weight of earlier ones
    strategies: list[str] = field(default_factory=lambda: list(STRATEGY_NAMES))

    # Injector catalog
    op_groups: list[str] = field(default_factory=lambda: list(OP_GROUPS))

    # Deleter weight curve
    shrink_start: float = 0.5
    panic_ratio: float = 0.9

    @classmethod
    def from_config_file(cls, config_path: Path) -> "MutatorConfig":
        """
        Load a configuration from a TOML file.

        Expected format:
```toml
        [types]
        allowed = ["i1", "i32", "double"]

        [strategies]
        order = ["injector", "modifier", "deleter"]

        [injector]
        op_groups = ["int", "cast"]

        [deleter]
        shrink_start = 0.5
        panic_ratio = 0.9
```
        Missing sections keep their defaults.

        Raises:
            ConfigError: If the file is not valid TOML or a value has the
                wrong type
        """
        import tomllib

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"{config_path}: {e}") from e

        config = cls()

        types = _section(data, "types")
        if "allowed" in types:
            config.allowed_types = _string_list(types, "types", "allowed")

        strategies = _section(data, "strategies")
        if "order" in strategies:
            config.strategies = _string_list(strategies, "strategies", "order")

        injector = _section(data, "injector")
        if "op_groups" in injector:
            config.op_groups = _string_list(injector, "injector", "op_groups")

        deleter = _section(data, "deleter")
        for key in ("shrink_start", "panic_ratio"):
            if key in deleter:
                setattr(config, key, _number(deleter, "deleter", key))

        return config

    def _check_types(self):
        context = Context()
        for name in self.allowed_types:
            try:
                type_ = context.lookup_type(name)
            except ValueError as e:
                raise ConfigError(str(e)) from e
            if not type_.is_first_class():
                raise ConfigError(f"Type {name} cannot be used for values")

    def _make_strategy(self, name: str) -> IRMutationStrategy:
        if name == "injector":
            try:
                return InjectorIRStrategy(ops_for_groups(self.op_groups))
            except KeyError as e:
                raise ConfigError(e.args[0]) from e
        if name == "modifier":
            return InstModificationIRStrategy()
        if name == "deleter":
            return InstDeleterIRStrategy(self.shrink_start, self.panic_ratio)
        available = ", ".join(STRATEGY_NAMES)
        raise ConfigError(f"Unknown strategy: {name}. Available: {available}")

    def build(self) -> Mutator:
        """
        Construct the configured Mutator.

        Raises:
            ConfigError: If a type, strategy or op group name is unknown, or
                the resulting mutator is invalid
        """
        self._check_types()
        try:
            strategies = [self._make_strategy(name) for name in self.strategies]
            return Mutator(
                allowed_types=[type_getter(name) for name in self.allowed_types],
                strategies=strategies,
            )
        except (StrategyError, TypeError) as e:
            # TypeError: deleter thresholds that are not numbers
            raise ConfigError(str(e)) from e
