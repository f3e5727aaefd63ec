from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, ClassVar

from identifier_resolution_engine.internal.builtin_strategies import (
    FormattedIdentifierFromProvider,
    FormattedIdentifierUserDefinedNameFirst,
    FormattedIdentifierUserDefinedNameLast,
    NameAsIdentifier,
    ParameterAsIdentifier,
    ProviderGenerated,
    TemplatedStringAsIdentifier,
)
from identifier_resolution_engine.internal.custom_strategies import CUSTOM_STRATEGIES
from identifier_resolution_engine.model.errors import ExternalNameConfigError
from identifier_resolution_engine.strategies import (
    IdentifierStrategy,
    StrategyDescriptor,
    StrategyKind,
)

# --------------------------------------------------------------------------- #
# small helpers (deterministic validation)
# --------------------------------------------------------------------------- #


_RESERVED_KEYS: set[str] = {"kind", "name_is_user_defined"}


def _unknown_keys(cfg: Mapping[str, Any], allowed: set[str], *, ctx: str) -> None:
    extra = set(cfg.keys()) - allowed
    if extra:
        raise ExternalNameConfigError(f"{ctx}: unknown descriptor keys: {sorted(extra)}")


def _opt_str(cfg: Mapping[str, Any], key: str, *, ctx: str) -> str | None:
    if key not in cfg:
        return None
    v = cfg[key]
    if not isinstance(v, str):
        raise ExternalNameConfigError(
            f"{ctx}: {key}: expected str, got {type(v).__name__}"
        )
    return v


def _req_str(cfg: Mapping[str, Any], key: str, *, ctx: str) -> str:
    v = _opt_str(cfg, key, ctx=ctx)
    if not v:
        raise ExternalNameConfigError(f"{ctx}: {key} is required")
    return v


def _opt_bool(cfg: Mapping[str, Any], key: str, *, ctx: str) -> bool | None:
    if key not in cfg:
        return None
    v = cfg[key]
    if not isinstance(v, bool):
        raise ExternalNameConfigError(
            f"{ctx}: {key}: expected bool, got {type(v).__name__}"
        )
    return v


def _name_flag(cfg: Mapping[str, Any], *, ctx: str) -> dict[str, Any]:
    v = _opt_bool(cfg, "name_is_user_defined", ctx=ctx)
    return {} if v is None else {"name_is_user_defined": v}


def _req_str_list(cfg: Mapping[str, Any], key: str, *, ctx: str) -> tuple[str, ...]:
    if key not in cfg:
        raise ExternalNameConfigError(f"{ctx}: {key} is required")
    v = cfg[key]
    if isinstance(v, str) or not isinstance(v, Sequence):
        raise ExternalNameConfigError(
            f"{ctx}: {key}: expected list[str], got {type(v).__name__}"
        )
    if not v or any(not isinstance(x, str) or not x for x in v):
        raise ExternalNameConfigError(
            f"{ctx}: {key}: expected a non-empty list of field names"
        )
    return tuple(v)


# --------------------------------------------------------------------------- #
# builtin config classes, one per strategy kind
# --------------------------------------------------------------------------- #


class BaseStrategyConfig:
    """
    Binds a raw descriptor of one kind to a constructed strategy.
    """

    kind: ClassVar[StrategyKind]

    @classmethod
    def defaults(cls) -> Mapping[str, Any]:
        return {}

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        raise NotImplementedError


class ProviderGeneratedConfig(BaseStrategyConfig):
    kind = StrategyKind.PROVIDER_GENERATED

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        _unknown_keys(descriptor, _RESERVED_KEYS, ctx=ctx)
        return ProviderGenerated(**_name_flag(descriptor, ctx=ctx))


class NameAsIdentifierConfig(BaseStrategyConfig):
    kind = StrategyKind.NAME_AS_IDENTIFIER

    @classmethod
    def defaults(cls) -> Mapping[str, Any]:
        return {"name_field": "name"}

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        _unknown_keys(descriptor, _RESERVED_KEYS | {"name_field"}, ctx=ctx)
        return NameAsIdentifier(
            name_field=_req_str(descriptor, "name_field", ctx=ctx),
            **_name_flag(descriptor, ctx=ctx),
        )


class ParameterAsIdentifierConfig(BaseStrategyConfig):
    kind = StrategyKind.PARAMETER_AS_IDENTIFIER

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        _unknown_keys(descriptor, _RESERVED_KEYS | {"field"}, ctx=ctx)
        return ParameterAsIdentifier(
            _req_str(descriptor, "field", ctx=ctx), **_name_flag(descriptor, ctx=ctx)
        )


class TemplatedStringConfig(BaseStrategyConfig):
    kind = StrategyKind.TEMPLATED_STRING

    @classmethod
    def defaults(cls) -> Mapping[str, Any]:
        return {"name_field": "", "name_is_user_defined": True}

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        allowed = _RESERVED_KEYS | {"name_field", "template"}
        _unknown_keys(descriptor, allowed, ctx=ctx)

        # An empty template is valid: the identifier is the external name itself.
        template = _opt_str(descriptor, "template", ctx=ctx)
        if template is None:
            raise ExternalNameConfigError(f"{ctx}: template is required")

        name_field = _opt_str(descriptor, "name_field", ctx=ctx) or ""
        flag = _name_flag(descriptor, ctx=ctx)
        try:
            return TemplatedStringAsIdentifier(name_field, template, **flag)
        except ExternalNameConfigError as e:
            raise ExternalNameConfigError(f"{ctx}: {e.message}") from e


class _FormattedConfig(BaseStrategyConfig):
    @classmethod
    def defaults(cls) -> Mapping[str, Any]:
        return {"separator": ":"}


class FormattedFromProviderConfig(_FormattedConfig):
    kind = StrategyKind.FORMATTED_FROM_PROVIDER

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        _unknown_keys(descriptor, _RESERVED_KEYS | {"separator", "fields"}, ctx=ctx)
        return FormattedIdentifierFromProvider(
            _opt_str(descriptor, "separator", ctx=ctx) or "",
            _req_str_list(descriptor, "fields", ctx=ctx),
            **_name_flag(descriptor, ctx=ctx),
        )


class FormattedNameLastConfig(_FormattedConfig):
    kind = StrategyKind.FORMATTED_NAME_LAST
    strategy_cls: ClassVar[type] = FormattedIdentifierUserDefinedNameLast

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        allowed = _RESERVED_KEYS | {"name_field", "separator", "fields"}
        _unknown_keys(descriptor, allowed, ctx=ctx)
        name_field = _req_str(descriptor, "name_field", ctx=ctx)
        separator = _opt_str(descriptor, "separator", ctx=ctx) or ""
        fields = _req_str_list(descriptor, "fields", ctx=ctx)
        flag = _name_flag(descriptor, ctx=ctx)
        try:
            return cls.strategy_cls(name_field, separator, fields, **flag)
        except ExternalNameConfigError as e:
            raise ExternalNameConfigError(f"{ctx}: {e.message}") from e


class FormattedNameFirstConfig(FormattedNameLastConfig):
    kind = StrategyKind.FORMATTED_NAME_FIRST
    strategy_cls: ClassVar[type] = FormattedIdentifierUserDefinedNameFirst


class CustomConfig(BaseStrategyConfig):
    kind = StrategyKind.CUSTOM

    @classmethod
    def build(cls, descriptor: Mapping[str, Any], *, ctx: str) -> IdentifierStrategy:
        _unknown_keys(descriptor, {"kind", "name"}, ctx=ctx)
        name = _req_str(descriptor, "name", ctx=ctx)
        if name not in CUSTOM_STRATEGIES:
            raise ExternalNameConfigError(
                f"{ctx}: unknown custom strategy '{name}' (known: {sorted(CUSTOM_STRATEGIES)})"
            )
        return CUSTOM_STRATEGIES[name]


CONFIG_CLASSES: Mapping[StrategyKind, type[BaseStrategyConfig]] = {
    config_cls.kind: config_cls
    for config_cls in (
        ProviderGeneratedConfig,
        NameAsIdentifierConfig,
        ParameterAsIdentifierConfig,
        TemplatedStringConfig,
        FormattedFromProviderConfig,
        FormattedNameLastConfig,
        FormattedNameFirstConfig,
        CustomConfig,
    )
}


def _normalize_kind(descriptor: Mapping[str, Any], *, ctx: str) -> StrategyKind:
    kind = descriptor.get("kind")
    if isinstance(kind, StrategyKind):
        return kind
    if not isinstance(kind, str) or not kind:
        raise ExternalNameConfigError(f"{ctx}: kind must be a non-empty string")
    try:
        return StrategyKind(kind)
    except ValueError as e:
        raise ExternalNameConfigError(f"{ctx}: unknown strategy kind '{kind}'") from e


def build_strategy(
    descriptor: StrategyDescriptor | Mapping[str, Any], *, ctx: str = "descriptor"
) -> IdentifierStrategy:
    """
    Construct a strategy from its declarative descriptor.

    Kind defaults are merged under the descriptor before validation, so a table only
    needs to spell out what differs.
    """
    if not isinstance(descriptor, Mapping):
        raise ExternalNameConfigError(f"{ctx}: descriptor must be a mapping")
    kind = _normalize_kind(descriptor, ctx=ctx)
    config_cls = CONFIG_CLASSES[kind]

    merged = dict(config_cls.defaults())
    merged.update(descriptor)
    merged["kind"] = kind.value
    return config_cls.build(merged, ctx=ctx)
