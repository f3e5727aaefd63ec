from __future__ import annotations

from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar

from identifier_resolution_engine.internal.builtin_strategies import state_id
from identifier_resolution_engine.internal.util.parameters import (
    get_optional_string,
    get_string,
    get_string_list,
)
from identifier_resolution_engine.model.context import RemoteState, ResolutionContext
from identifier_resolution_engine.model.errors import (
    AmbiguousInput,
    MissingField,
    TypeMismatch,
)
from identifier_resolution_engine.strategies import (
    IdentifierStrategy,
    StrategyDescriptor,
    StrategyKind,
)


def exactly_one_of(
    parameters: Mapping[str, Any], candidates: Sequence[str]
) -> tuple[str, str]:
    """
    Pick the single supplied field out of a mutually exclusive set.

    Returns (field_name, value). Raises MissingField when none is supplied and
    AmbiguousInput when more than one is.
    """
    supplied = [
        (name, value)
        for name in candidates
        if (value := get_optional_string(parameters, name)) is not None
    ]
    if not supplied:
        raise MissingField(" or ".join(candidates), alternatives=candidates)
    if len(supplied) > 1:
        raise AmbiguousInput([name for name, _ in supplied])
    return supplied[0]


@dataclass(frozen=True, slots=True)
class CustomStrategy(IdentifierStrategy):
    """
    Base for one-off strategies. Unless overridden, the identifier is reported back
    verbatim as the external name, and the name is not chosen by the user.
    """

    kind = StrategyKind.CUSTOM
    custom_name: ClassVar[str] = ""
    name_is_user_defined: bool = field(default=False, kw_only=True)

    def derive_external_name(self, remote_state: RemoteState) -> str:
        return state_id(remote_state)

    def to_descriptor(self) -> StrategyDescriptor:
        return {"kind": self.kind.value, "name": self.custom_name}


@dataclass(frozen=True, slots=True)
class LambdaFunctionUrlIdentifier(CustomStrategy):
    """function_name, or function_name/qualifier when a qualifier is set."""

    custom_name: ClassVar[str] = "lambda_function_url"

    def derive_remote_id(self, context: ResolutionContext) -> str:
        function_name = get_string(context.parameters, "function_name")
        qualifier = get_optional_string(context.parameters, "qualifier")
        if qualifier is None:
            return function_name
        return f"{function_name}/{qualifier}"


@dataclass(frozen=True, slots=True)
class UserGroupMembershipIdentifier(CustomStrategy):
    """user/group1/group2/..."""

    custom_name: ClassVar[str] = "iam_user_group_membership"

    def derive_remote_id(self, context: ResolutionContext) -> str:
        user = get_string(context.parameters, "user")
        groups = get_string_list(context.parameters, "groups")
        return "/".join([user, *groups])


@dataclass(frozen=True, slots=True)
class RouteIdentifier(CustomStrategy):
    """route_table_id_destination, where destination is exactly one of three fields."""

    custom_name: ClassVar[str] = "route"
    destination_fields: ClassVar[tuple[str, ...]] = (
        "destination_cidr_block",
        "destination_ipv6_cidr_block",
        "destination_prefix_list_id",
    )

    def derive_remote_id(self, context: ResolutionContext) -> str:
        route_table_id = get_string(context.parameters, "route_table_id")
        _, destination = exactly_one_of(context.parameters, self.destination_fields)
        return f"{route_table_id}_{destination}"


@dataclass(frozen=True, slots=True)
class RouteTableAssociationIdentifier(CustomStrategy):
    """subnet_id/route_table_id or gateway_id/route_table_id."""

    custom_name: ClassVar[str] = "route_table_association"
    target_fields: ClassVar[tuple[str, ...]] = ("subnet_id", "gateway_id")

    def derive_remote_id(self, context: ResolutionContext) -> str:
        route_table_id = get_string(context.parameters, "route_table_id")
        _, target = exactly_one_of(context.parameters, self.target_fields)
        return f"{target}/{route_table_id}"


@dataclass(frozen=True, slots=True)
class IdentityProviderConfigIdentifier(CustomStrategy):
    """
    cluster_name:config_name, where config_name is the user's name and lives inside
    the single oidc block of the desired parameters.
    """

    custom_name: ClassVar[str] = "eks_identity_provider_config"
    name_is_user_defined: bool = field(default=True, kw_only=True)

    def derive_remote_id(self, context: ResolutionContext) -> str:
        cluster_name = get_string(context.parameters, "cluster_name")
        return f"{cluster_name}:{context.external_name}"

    def derive_external_name(self, remote_state: RemoteState) -> str:
        parts = state_id(remote_state).split(":")
        if len(parts) < 2:
            raise TypeMismatch(
                "id", expected="cluster_name:config_name", actual=repr(parts[0])
            )
        return parts[1]

    def initialize_parameters(
        self, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        if "oidc" not in bag:
            bag["oidc"] = [{}]
        blocks = bag["oidc"]
        # At most one oidc block is accepted by the provider.
        if isinstance(blocks, list) and len(blocks) == 1:
            block = blocks[0]
            if isinstance(block, MutableMapping):
                block["identity_provider_config_name"] = external_name


CUSTOM_STRATEGIES: Mapping[str, CustomStrategy] = MappingProxyType(
    {
        s.custom_name: s
        for s in (
            LambdaFunctionUrlIdentifier(),
            UserGroupMembershipIdentifier(),
            RouteIdentifier(),
            RouteTableAssociationIdentifier(),
            IdentityProviderConfigIdentifier(),
        )
    }
)
