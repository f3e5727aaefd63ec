from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from typing_extensions import Self

from identifier_resolution_engine.model.errors import TypeMismatch

ParameterBag = Mapping[str, Any]
RemoteState = Mapping[str, Any]

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def _layer(mapping: Mapping[str, Any], key: str, *, desc: str) -> Mapping[str, Any]:
    value = mapping.get(key)
    if value is None:
        return _EMPTY
    if not isinstance(value, Mapping):
        raise TypeMismatch(desc, expected="mapping", actual=type(value).__name__)
    return value


@dataclass(kw_only=True, frozen=True, slots=True)
class ResolutionContext:
    """
    Layered, read-only input available to a strategy for a single resolution call.

    Attributes:
        parameters (Mapping[str, Any]): Desired parameters of the resource instance.
        configuration (Mapping[str, Any]): Resource-class-wide setup configuration,
            e.g. region.
        client_metadata (Mapping[str, Any]): Environment facts supplied by the
            client, e.g. account id.
        external_name (str): The name currently known to the caller; empty before
            the first create.
    """

    parameters: Mapping[str, Any] = field(default_factory=dict)
    configuration: Mapping[str, Any] = field(default_factory=dict)
    client_metadata: Mapping[str, Any] = field(default_factory=dict)
    external_name: str = ""

    def to_mapping(self) -> Mapping[str, Any]:
        return {
            "parameters": self.parameters,
            "setup": {
                "configuration": self.configuration,
                "client_metadata": self.client_metadata,
            },
            "external_name": self.external_name,
        }

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Self:
        setup = _layer(mapping, "setup", desc="setup")
        external_name = mapping.get("external_name")
        if external_name is None:
            external_name = ""
        if not isinstance(external_name, str):
            raise TypeMismatch(
                "external_name", expected="str", actual=type(external_name).__name__
            )
        return cls(
            parameters=_layer(mapping, "parameters", desc="parameters"),
            configuration=_layer(setup, "configuration", desc="setup.configuration"),
            client_metadata=_layer(
                setup, "client_metadata", desc="setup.client_metadata"
            ),
            external_name=external_name,
        )
