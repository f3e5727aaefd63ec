from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType

from identifier_resolution_engine.internal.custom_strategies import (
    IdentityProviderConfigIdentifier,
    LambdaFunctionUrlIdentifier,
    RouteIdentifier,
    RouteTableAssociationIdentifier,
    UserGroupMembershipIdentifier,
)
from identifier_resolution_engine.strategies import IdentifierStrategy

# Declarative entries: one descriptor per resource type.
BUILTIN_TABLE_PATH: Path = (
    Path(__file__).resolve().parent.parent / "data" / "aws_external_names.toml"
)

# Entries whose identifier shape needs per-field logic.
BUILTIN_CUSTOM_ENTRIES: Mapping[str, IdentifierStrategy] = MappingProxyType(
    {
        # route_table_id + one of three destination fields: rtb-4e616f6d69_10.42.0.0/16
        "aws_route": RouteIdentifier(),
        # subnet-6777656e646f6c796e/rtb-656c65616e6f72 or igw-01b3a60780f8d034a/rtb-656c65616e6f72
        "aws_route_table_association": RouteTableAssociationIdentifier(),
        # my-cluster:my-config
        "aws_eks_identity_provider_config": IdentityProviderConfigIdentifier(),
        # user1/group1/group2
        "aws_iam_user_group_membership": UserGroupMembershipIdentifier(),
        # my_test_lambda_function or my_test_lambda_function/live
        "aws_lambda_function_url": LambdaFunctionUrlIdentifier(),
    }
)
