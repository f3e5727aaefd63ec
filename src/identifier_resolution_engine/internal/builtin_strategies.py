from __future__ import annotations

from collections.abc import MutableMapping, Sequence
from dataclasses import dataclass, field
from dataclasses import fields as dataclass_fields
from typing import Any, Final

from identifier_resolution_engine.internal.util.parameters import get_string
from identifier_resolution_engine.internal.util.template import (
    NameSlot,
    Template,
    parse_template,
    render_template,
)
from identifier_resolution_engine.model.context import RemoteState, ResolutionContext
from identifier_resolution_engine.model.errors import (
    ExternalNameConfigError,
    NotYetKnown,
)
from identifier_resolution_engine.strategies import (
    IdentifierStrategy,
    StrategyDescriptor,
    StrategyKind,
)

ID_FIELD: Final[str] = "id"


# -------------------------
# helpers
# -------------------------


def state_id(remote_state: RemoteState) -> str:
    """
    The provider's identifier as reported in remote state.
    """
    return get_string(remote_state, ID_FIELD)


def _field_values(parameters: RemoteState, keys: Sequence[str]) -> list[str]:
    return [get_string(parameters, k) for k in keys]


def _freeze_fields(obj: Any) -> None:
    # Descriptors and callers may hand in lists; keep the stored value immutable.
    fields_value = getattr(obj, "fields")
    if isinstance(fields_value, str):
        raise ExternalNameConfigError(
            f"{type(obj).__name__}: fields must be a sequence of field names, got str"
        )
    object.__setattr__(obj, "fields", tuple(fields_value))


def _require_separator(obj: Any) -> None:
    # The reverse direction splits on the separator.
    if not getattr(obj, "separator"):
        raise ExternalNameConfigError(
            f"{type(obj).__name__}: separator cannot be empty when the name is part of the identifier"
        )


def _with_name_flag(
    obj: IdentifierStrategy, descriptor: StrategyDescriptor
) -> StrategyDescriptor:
    # Written only when it differs from the kind default.
    default = next(
        f.default for f in dataclass_fields(obj) if f.name == "name_is_user_defined"
    )
    if obj.name_is_user_defined != default:
        descriptor["name_is_user_defined"] = obj.name_is_user_defined
    return descriptor


# -------------------------
# strategies
# -------------------------


@dataclass(frozen=True, slots=True)
class ProviderGenerated(IdentifierStrategy):
    """
    The provider assigns the identifier when the resource is created.
    """

    kind = StrategyKind.PROVIDER_GENERATED
    name_is_user_defined: bool = field(default=False, kw_only=True)

    def derive_remote_id(self, context: ResolutionContext) -> str:
        raise NotYetKnown()

    def derive_external_name(self, remote_state: RemoteState) -> str:
        return state_id(remote_state)

    def to_descriptor(self) -> StrategyDescriptor:
        return _with_name_flag(self, {"kind": self.kind.value})


@dataclass(frozen=True, slots=True)
class NameAsIdentifier(IdentifierStrategy):
    """
    The external name is the remote identifier; also the default for resource types
    without a registered mapping.
    """

    kind = StrategyKind.NAME_AS_IDENTIFIER
    name_field: str = "name"

    def derive_remote_id(self, context: ResolutionContext) -> str:
        return context.external_name

    def derive_external_name(self, remote_state: RemoteState) -> str:
        return state_id(remote_state)

    def initialize_parameters(
        self, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        bag[self.name_field] = external_name

    def to_descriptor(self) -> StrategyDescriptor:
        return _with_name_flag(
            self, {"kind": self.kind.value, "name_field": self.name_field}
        )


@dataclass(frozen=True, slots=True)
class ParameterAsIdentifier(IdentifierStrategy):
    kind = StrategyKind.PARAMETER_AS_IDENTIFIER
    field: str

    def derive_remote_id(self, context: ResolutionContext) -> str:
        return get_string(context.parameters, self.field)

    def derive_external_name(self, remote_state: RemoteState) -> str:
        return get_string(remote_state, self.field)

    def initialize_parameters(
        self, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        bag[self.field] = external_name

    def to_descriptor(self) -> StrategyDescriptor:
        return _with_name_flag(self, {"kind": self.kind.value, "field": self.field})


@dataclass(frozen=True, slots=True)
class TemplatedStringAsIdentifier(IdentifierStrategy):
    """
    The identifier is rendered from a template such as
    "arn:aws:sns:{{ setup.configuration.region }}:{{ setup.client_metadata.account_id }}:{{ external_name }}".

    The reverse direction does not parse the template generically. It isolates the
    external name using the literal separators immediately around its placeholder,
    which is why the template is validated at construction.

    name_is_user_defined=False is used when the identifier is built only from
    parameters and provider values, so no user name goes into it.
    """

    kind = StrategyKind.TEMPLATED_STRING
    name_field: str
    template: str
    _parsed: Template = field(init=False, repr=False, compare=False)
    _slot: NameSlot | None = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        parsed = parse_template(self.template)
        object.__setattr__(self, "_parsed", parsed)
        object.__setattr__(self, "_slot", parsed.external_name_slot())

    def derive_remote_id(self, context: ResolutionContext) -> str:
        if not self.template:
            return context.external_name
        return render_template(self._parsed, context)

    def derive_external_name(self, remote_state: RemoteState) -> str:
        remote_id = state_id(remote_state)
        if self._slot is None:
            return remote_id
        return self._slot.extract(remote_id)

    def initialize_parameters(
        self, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        if not self.name_field:
            return
        bag[self.name_field] = external_name

    def to_descriptor(self) -> StrategyDescriptor:
        return {
            "kind": self.kind.value,
            "name_field": self.name_field,
            "template": self.template,
            "name_is_user_defined": self.name_is_user_defined,
        }


@dataclass(frozen=True, slots=True)
class FormattedIdentifierFromProvider(IdentifierStrategy):
    """
    Spec fields joined with a separator, e.g. zone_id:vpc_id. Nothing in the
    identifier is chosen by the user.
    """

    kind = StrategyKind.FORMATTED_FROM_PROVIDER
    separator: str
    fields: tuple[str, ...]
    name_is_user_defined: bool = field(default=False, kw_only=True)

    def __post_init__(self) -> None:
        _freeze_fields(self)

    def derive_remote_id(self, context: ResolutionContext) -> str:
        return self.separator.join(
            _field_values(context.parameters, self.fields)
        )

    def derive_external_name(self, remote_state: RemoteState) -> str:
        return state_id(remote_state)

    def to_descriptor(self) -> StrategyDescriptor:
        return _with_name_flag(
            self,
            {
                "kind": self.kind.value,
                "separator": self.separator,
                "fields": list(self.fields),
            },
        )


@dataclass(frozen=True, slots=True)
class FormattedIdentifierUserDefinedNameLast(IdentifierStrategy):
    """
    Spec fields followed by the user's name, e.g. cluster_name:addon_name.

    Assumes the name is the LAST component of the identifier, which does not hold
    for every resource type.
    """

    kind = StrategyKind.FORMATTED_NAME_LAST
    name_field: str
    separator: str
    fields: tuple[str, ...]

    def __post_init__(self) -> None:
        _freeze_fields(self)
        _require_separator(self)

    def derive_remote_id(self, context: ResolutionContext) -> str:
        vals = _field_values(context.parameters, self.fields)
        vals.append(context.external_name)
        return self.separator.join(vals)

    def derive_external_name(self, remote_state: RemoteState) -> str:
        return state_id(remote_state).split(self.separator)[-1]

    def initialize_parameters(
        self, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        bag[self.name_field] = external_name

    def to_descriptor(self) -> StrategyDescriptor:
        return _with_name_flag(
            self,
            {
                "kind": self.kind.value,
                "name_field": self.name_field,
                "separator": self.separator,
                "fields": list(self.fields),
            },
        )


@dataclass(frozen=True, slots=True)
class FormattedIdentifierUserDefinedNameFirst(IdentifierStrategy):
    """
    The user's name followed by parameter fields, e.g. budget_name:product_id.

    Assumes the name is the FIRST component of the identifier.
    """

    kind = StrategyKind.FORMATTED_NAME_FIRST
    name_field: str
    separator: str
    fields: tuple[str, ...]

    def __post_init__(self) -> None:
        _freeze_fields(self)
        _require_separator(self)

    def derive_remote_id(self, context: ResolutionContext) -> str:
        vals = [context.external_name]
        vals.extend(_field_values(context.parameters, self.fields))
        return self.separator.join(vals)

    def derive_external_name(self, remote_state: RemoteState) -> str:
        return state_id(remote_state).split(self.separator)[0]

    def initialize_parameters(
        self, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        bag[self.name_field] = external_name

    def to_descriptor(self) -> StrategyDescriptor:
        return _with_name_flag(
            self,
            {
                "kind": self.kind.value,
                "name_field": self.name_field,
                "separator": self.separator,
                "fields": list(self.fields),
            },
        )
