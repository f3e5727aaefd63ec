from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from importlib.metadata import entry_points
from pathlib import Path
from types import MappingProxyType
from typing import Any, Union

from typing_extensions import Self

from identifier_resolution_engine.internal.builtin_registry import (
    BUILTIN_CUSTOM_ENTRIES,
    BUILTIN_TABLE_PATH,
)
from identifier_resolution_engine.internal.builtin_strategies import NameAsIdentifier
from identifier_resolution_engine.internal.builtin_strategy_configs import (
    build_strategy,
)
from identifier_resolution_engine.internal.util.toml import (
    dump_toml_to_str,
    load_toml_file,
    load_toml_text,
)
from identifier_resolution_engine.model.errors import (
    DuplicateRegistration,
    ExternalNameConfigError,
)
from identifier_resolution_engine.strategies import (
    IdentifierStrategy,
    StrategyDescriptor,
)

EXTERNAL_NAME_ENTRYPOINT_GROUP = "identifier_resolution_engine.external_names"

SEED_TABLE_KEY = "resources"

StrategyTable = Mapping[str, Union[IdentifierStrategy, StrategyDescriptor, Mapping[str, Any]]]


class RegistryEntrypointError(ExternalNameConfigError):
    pass


@dataclass(frozen=True, slots=True)
class StrategyRegistry:
    """
    Read-only mapping from resource type to identifier strategy.

    Resource types without an entry resolve to `default`, which treats the external
    name as the remote identifier. A missing entry is therefore not an error.
    """

    strategies: Mapping[str, IdentifierStrategy]
    default: IdentifierStrategy = field(default_factory=NameAsIdentifier)

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategies", MappingProxyType(dict(self.strategies)))

    def lookup(self, resource_type: str) -> IdentifierStrategy:
        return self.strategies.get(resource_type, self.default)

    def __contains__(self, resource_type: object) -> bool:
        return resource_type in self.strategies

    def __len__(self) -> int:
        return len(self.strategies)

    def resource_types(self) -> list[str]:
        return sorted(self.strategies)

    def describe(self) -> dict[str, StrategyDescriptor]:
        return {rt: self.strategies[rt].to_descriptor() for rt in self.resource_types()}

    def to_toml(self) -> str:
        return dump_toml_to_str({SEED_TABLE_KEY: self.describe()})


def _coerce_strategy(resource_type: Any, value: Any, *, origin: str) -> IdentifierStrategy:
    ctx = f"{origin}: {resource_type}" if origin else str(resource_type)
    if not isinstance(resource_type, str) or not resource_type:
        raise ExternalNameConfigError(
            f"{origin}: resource types must be non-empty strings, got {resource_type!r}"
        )
    if isinstance(value, IdentifierStrategy):
        return value
    if isinstance(value, Mapping):
        return build_strategy(value, ctx=ctx)
    raise ExternalNameConfigError(
        f"{ctx}: expected a strategy or a descriptor mapping, got {type(value).__name__}"
    )


class StrategyRegistryBuilder:
    """
    Collects registrations during startup and freezes them into a StrategyRegistry.

    Registering the same resource type twice, from any combination of sources, is a
    fatal configuration error.
    """

    def __init__(self) -> None:
        self._entries: dict[str, IdentifierStrategy] = {}
        self._origins: dict[str, str] = {}

    def register(
        self,
        resource_type: str,
        strategy: IdentifierStrategy | StrategyDescriptor,
        *,
        origin: str = "",
    ) -> Self:
        if resource_type in self._entries:
            first = self._origins[resource_type]
            raise DuplicateRegistration(
                [resource_type],
                origin=" and ".join(o for o in (first, origin) if o),
            )
        self._entries[resource_type] = _coerce_strategy(
            resource_type, strategy, origin=origin
        )
        self._origins[resource_type] = origin
        return self

    def register_table(self, table: StrategyTable, *, origin: str = "") -> Self:
        if not isinstance(table, Mapping):
            raise ExternalNameConfigError(
                f"{origin}: registry table must be a mapping, got {type(table).__name__}"
            )
        dupes = sorted(set(table).intersection(self._entries))
        if dupes:
            raise DuplicateRegistration(dupes, origin=origin)

        for resource_type, value in table.items():
            self.register(resource_type, value, origin=origin)

        logging.debug(f"registered {len(table)} external name mappings from {origin or 'table'}")
        return self

    def build(self, *, default: IdentifierStrategy | None = None) -> StrategyRegistry:
        if default is None:
            return StrategyRegistry(strategies=self._entries)
        return StrategyRegistry(strategies=self._entries, default=default)


# --------------------------------------------------------------------------- #
# Seed tables
# --------------------------------------------------------------------------- #


def _seed_table_from_document(doc: Mapping[str, Any], *, origin: str) -> dict[str, Any]:
    extra = set(doc) - {SEED_TABLE_KEY}
    if extra:
        raise ExternalNameConfigError(
            f"{origin}: unknown top-level keys in seed table: {sorted(extra)}"
        )
    table = doc.get(SEED_TABLE_KEY, {})
    if not isinstance(table, Mapping):
        raise ExternalNameConfigError(f"{origin}: '{SEED_TABLE_KEY}' must be a table")
    return dict(table)


def load_seed_file(path: str | Path) -> dict[str, Any]:
    """
    Load a TOML seed table of resource type descriptors:

        [resources.aws_s3_bucket]
        kind = "parameter_as_identifier"
        field = "bucket"
    """
    return _seed_table_from_document(load_toml_file(path), origin=str(path))


def load_seed_text(text: str, *, origin: str = "<text>") -> dict[str, Any]:
    return _seed_table_from_document(load_toml_text(text), origin=origin)


# --------------------------------------------------------------------------- #
# Entry points
# --------------------------------------------------------------------------- #


def _validate_entrypoint_table(name: str, obj: object) -> StrategyTable:
    """
    Entry points must load a mapping of resource type to strategy or descriptor, or a
    zero-argument function returning one. Classes are not accepted.
    """
    if inspect.isclass(obj):
        raise RegistryEntrypointError(
            f"external name entry point '{name}' must load a mapping or a function; got class {obj.__name__}"
        )
    if callable(obj):
        sig = inspect.signature(obj)
        required = [
            p
            for p in sig.parameters.values()
            if p.default is p.empty and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        ]
        if required:
            raise RegistryEntrypointError(
                f"external name entry point '{name}' function must take no arguments. Signature={sig}"
            )
        obj = obj()
    if not isinstance(obj, Mapping):
        raise RegistryEntrypointError(
            f"external name entry point '{name}' must provide a mapping; got {type(obj).__name__}"
        )
    return obj


def _load_entrypoint_tables(*, group: str) -> dict[str, StrategyTable]:
    tables: dict[str, StrategyTable] = {}
    dupes: set[str] = set()

    for ep in entry_points().select(group=group):
        if ep.name in tables:
            dupes.add(ep.name)
            continue
        tables[ep.name] = _validate_entrypoint_table(ep.name, ep.load())

    if dupes:
        raise RegistryEntrypointError(
            f"duplicate entry point names found in group '{group}': {sorted(dupes)}"
        )
    return tables


# --------------------------------------------------------------------------- #
# Public loader
# --------------------------------------------------------------------------- #


def build_strategy_registry(
    *,
    include_builtins: bool = True,
    tables: Iterable[tuple[str, StrategyTable]] = (),
    seed_files: Iterable[str | Path] = (),
    entrypoint_group: str = EXTERNAL_NAME_ENTRYPOINT_GROUP,
) -> StrategyRegistry:
    """
    Builtins -> entry points -> explicit tables -> seed files -> frozen registry.

    tables are (origin, table) pairs; origin only shows up in error messages. Pass an
    empty entrypoint_group to skip entry point discovery.
    """
    builder = StrategyRegistryBuilder()

    if include_builtins:
        builder.register_table(
            load_seed_file(BUILTIN_TABLE_PATH), origin=f"builtin:{BUILTIN_TABLE_PATH.name}"
        )
        builder.register_table(BUILTIN_CUSTOM_ENTRIES, origin="builtin:custom")

    if entrypoint_group:
        for name, table in _load_entrypoint_tables(group=entrypoint_group).items():
            builder.register_table(table, origin=f"entrypoint:{name}")

    for origin, table in tables:
        builder.register_table(table, origin=origin)

    for path in seed_files:
        builder.register_table(load_seed_file(path), origin=str(path))

    registry = builder.build()
    logging.debug(f"strategy registry built with {len(registry)} resource types")
    return registry


@functools.lru_cache(maxsize=1)
def default_registry() -> StrategyRegistry:
    """
    The process-wide registry: builtins plus entry point tables, built on first use.
    """
    return build_strategy_registry()
