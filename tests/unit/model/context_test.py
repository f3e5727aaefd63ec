from __future__ import annotations

# ==============================================================================
# BRANCH LEDGER: context (C000)
# ==============================================================================
#
# ## _layer(mapping, key, *, desc)  (F001)
# C000F001B0001: key absent or None -> empty mapping
# C000F001B0002: value not a Mapping -> TypeMismatch(desc)
# C000F001B0003: value is a Mapping -> returned as-is
#
# ## ResolutionContext.from_mapping  (C001M001)
# C001M001B0001: external_name absent or None -> ""
# C001M001B0002: external_name not a str -> TypeMismatch("external_name")
# C001M001B0003: full nested shape -> all layers populated
#
# ## ResolutionContext.to_mapping  (C001M002)
# C001M002B0001: returns the nested reconciler shape
# ==============================================================================

import pytest

from identifier_resolution_engine.model.context import ResolutionContext
from identifier_resolution_engine.model.errors import TypeMismatch

FROM_MAPPING_CASES = [
    dict(
        name="empty",
        mapping={},
        expect=ResolutionContext(),
        covers=["C000F001B0001", "C001M001B0001"],
    ),
    dict(
        name="explicit_none_layers",
        mapping={"parameters": None, "setup": None, "external_name": None},
        expect=ResolutionContext(),
        covers=["C000F001B0001", "C001M001B0001"],
    ),
    dict(
        name="full",
        mapping={
            "parameters": {"bucket": "b"},
            "setup": {
                "configuration": {"region": "us-east-1"},
                "client_metadata": {"account_id": "123456789012"},
            },
            "external_name": "my-bucket",
        },
        expect=ResolutionContext(
            parameters={"bucket": "b"},
            configuration={"region": "us-east-1"},
            client_metadata={"account_id": "123456789012"},
            external_name="my-bucket",
        ),
        covers=["C000F001B0003", "C001M001B0003"],
    ),
]


@pytest.mark.parametrize("case", FROM_MAPPING_CASES, ids=lambda c: c["name"])
def test_from_mapping(case: dict) -> None:
    ctx = ResolutionContext.from_mapping(case["mapping"])
    expect = case["expect"]
    assert dict(ctx.parameters) == dict(expect.parameters)
    assert dict(ctx.configuration) == dict(expect.configuration)
    assert dict(ctx.client_metadata) == dict(expect.client_metadata)
    assert ctx.external_name == expect.external_name


BAD_MAPPING_CASES = [
    dict(
        name="parameters_not_mapping",
        mapping={"parameters": ["a"]},
        field="parameters",
        covers=["C000F001B0002"],
    ),
    dict(
        name="setup_not_mapping",
        mapping={"setup": "nope"},
        field="setup",
        covers=["C000F001B0002"],
    ),
    dict(
        name="configuration_not_mapping",
        mapping={"setup": {"configuration": 1}},
        field="setup.configuration",
        covers=["C000F001B0002"],
    ),
    dict(
        name="external_name_not_str",
        mapping={"external_name": 42},
        field="external_name",
        covers=["C001M001B0002"],
    ),
]


@pytest.mark.parametrize("case", BAD_MAPPING_CASES, ids=lambda c: c["name"])
def test_from_mapping_rejects_bad_shapes(case: dict) -> None:
    with pytest.raises(TypeMismatch) as ei:
        ResolutionContext.from_mapping(case["mapping"])
    assert ei.value.field == case["field"]


def test_to_mapping_shape() -> None:
    # covers: C001M002B0001
    ctx = ResolutionContext(
        parameters={"a": "1"},
        configuration={"region": "eu-west-1"},
        client_metadata={"account_id": "42"},
        external_name="x",
    )
    assert ctx.to_mapping() == {
        "parameters": {"a": "1"},
        "setup": {"configuration": {"region": "eu-west-1"}, "client_metadata": {"account_id": "42"}},
        "external_name": "x",
    }


def test_context_is_frozen() -> None:
    ctx = ResolutionContext(external_name="x")
    with pytest.raises(AttributeError):
        ctx.external_name = "y"  # type: ignore[misc]
