from __future__ import annotations

# ==============================================================================
# BRANCH LEDGER: errors (C000)
# ==============================================================================
#
# ## ExternalNameError.__str__ / with_resource_type  (C001)
# C001M001B0001: resource_type unset -> str(e) == message
# C001M001B0002: resource_type set -> str(e) == f"{resource_type}: {message}"
# C001M002B0001: with_resource_type returns the same object
#
# ## MissingField.__init__  (C002)
# C002M001B0001: no alternatives -> "<field> cannot be empty"
# C002M001B0002: alternatives -> "one of a, b has to be given"
#
# ## DuplicateRegistration.__init__  (C003)
# C003M001B0001: origin given -> origin in message, resource types sorted
# C003M001B0002: no origin -> no parenthesized origin
# ==============================================================================

import pytest

import identifier_resolution_engine.model.errors as uut


STR_CASES = [
    dict(
        name="untagged",
        err=uut.MissingField("bucket"),
        tag=None,
        expect="bucket cannot be empty",
        covers=["C001M001B0001", "C002M001B0001"],
    ),
    dict(
        name="tagged",
        err=uut.MissingField("bucket"),
        tag="aws_s3_bucket",
        expect="aws_s3_bucket: bucket cannot be empty",
        covers=["C001M001B0002"],
    ),
    dict(
        name="alternatives",
        err=uut.MissingField("subnet_id or gateway_id", alternatives=["subnet_id", "gateway_id"]),
        tag=None,
        expect="one of subnet_id, gateway_id has to be given",
        covers=["C002M001B0002"],
    ),
    dict(
        name="type_mismatch",
        err=uut.TypeMismatch("groups", expected="list[str]", actual="str"),
        tag=None,
        expect="groups: expected list[str], got str",
        covers=["C001M001B0001"],
    ),
    dict(
        name="ambiguous",
        err=uut.AmbiguousInput(["subnet_id", "gateway_id"]),
        tag="aws_route_table_association",
        expect="aws_route_table_association: only one of subnet_id, gateway_id can be given",
        covers=["C001M001B0002"],
    ),
]


@pytest.mark.parametrize("case", STR_CASES, ids=lambda c: c["name"])
def test_error_str(case: dict) -> None:
    err = case["err"]
    if case["tag"] is not None:
        err.with_resource_type(case["tag"])
    assert str(err) == case["expect"]


def test_with_resource_type_returns_same_object() -> None:
    # covers: C001M002B0001
    err = uut.NotYetKnown()
    assert err.with_resource_type("aws_instance") is err
    assert err.resource_type == "aws_instance"


def test_error_hierarchy() -> None:
    assert issubclass(uut.UnresolvedPlaceholder, uut.TemplateRenderError)
    assert issubclass(uut.DuplicateRegistration, uut.ExternalNameConfigError)
    for cls in (
        uut.MissingField,
        uut.TypeMismatch,
        uut.TemplateRenderError,
        uut.AmbiguousInput,
        uut.NotYetKnown,
        uut.ExternalNameConfigError,
    ):
        assert issubclass(cls, uut.ExternalNameError)


def test_unresolved_placeholder_names_the_placeholder() -> None:
    err = uut.UnresolvedPlaceholder("parameters.api_id")
    assert err.placeholder == "parameters.api_id"
    assert "{{ parameters.api_id }}" in str(err)
    assert str(err).endswith("cannot be resolved")


@pytest.mark.parametrize(
    "origin, expect",
    [
        ("seed.toml", "duplicate resource types registered (seed.toml): ['a', 'b']"),  # C003M001B0001
        ("", "duplicate resource types registered: ['a', 'b']"),  # C003M001B0002
    ],
)
def test_duplicate_registration_message(origin: str, expect: str) -> None:
    err = uut.DuplicateRegistration(["b", "a"], origin=origin)
    assert err.resource_types == ("a", "b")
    assert str(err) == expect
