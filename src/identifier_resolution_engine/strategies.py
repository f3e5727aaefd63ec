from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, TypedDict

from identifier_resolution_engine.model.context import (
    ParameterBag,
    RemoteState,
    ResolutionContext,
)


class StrategyKind(str, Enum):
    """
    The closed set of identifier strategy kinds.

    PROVIDER_GENERATED: the provider assigns the identifier at creation time.
    NAME_AS_IDENTIFIER: the external name is the identifier.
    PARAMETER_AS_IDENTIFIER: a single parameter is the identifier.
    TEMPLATED_STRING: the identifier is rendered from a template.
    FORMATTED_FROM_PROVIDER: parameter fields joined with a separator, no user name.
    FORMATTED_NAME_LAST: parameter fields joined with the external name trailing.
    FORMATTED_NAME_FIRST: the external name leading, then parameter fields.
    CUSTOM: one-off logic for a specific resource type.
    """

    PROVIDER_GENERATED = "provider_generated"
    NAME_AS_IDENTIFIER = "name_as_identifier"
    PARAMETER_AS_IDENTIFIER = "parameter_as_identifier"
    TEMPLATED_STRING = "templated_string"
    FORMATTED_FROM_PROVIDER = "formatted_from_provider"
    FORMATTED_NAME_LAST = "formatted_name_last"
    FORMATTED_NAME_FIRST = "formatted_name_first"
    CUSTOM = "custom"


class StrategyDescriptor(TypedDict, total=False):
    """
    Declarative description of a strategy, as found in registry seed tables.

    Only `kind` is always required. Every kind except custom accepts
    `name_is_user_defined`; the remaining keys depend on the kind:
      - field: parameter_as_identifier
      - name_field: name_as_identifier, templated_string, formatted_name_*
      - template: templated_string
      - separator, fields: formatted_*
      - name: custom
    """

    kind: str
    field: str
    name_field: str
    template: str
    name_is_user_defined: bool
    separator: str
    fields: list[str]
    name: str


@dataclass(frozen=True, slots=True)
class IdentifierStrategy(ABC):
    """
    Forward and reverse mapping between an external name and a remote identifier.

    Important: strategies are immutable values. They capture only their fixed
    configuration (field names, separators, templates) and never keep state between
    calls, so one instance is safely shared by concurrent callers.
    """

    kind: ClassVar[StrategyKind]

    # Metadata for the caller: whether a default name generator should run upstream.
    name_is_user_defined: bool = field(default=True, kw_only=True)

    @abstractmethod
    def derive_remote_id(self, context: ResolutionContext) -> str:
        """
        Compute the identifier the provider uses to address the resource.

        Raise:
          - NotYetKnown when the provider assigns the identifier on creation
          - MissingField / TypeMismatch / TemplateRenderError for bad inputs
        """
        raise NotImplementedError

    @abstractmethod
    def derive_external_name(self, remote_state: RemoteState) -> str:
        """
        Recover the external name from provider-reported state.
        """
        raise NotImplementedError

    def initialize_parameters(
        self, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        """
        Inject the external name into the desired parameters before creation.

        This MUTATES bag. The default does nothing.
        """
        return None

    @abstractmethod
    def to_descriptor(self) -> StrategyDescriptor:
        raise NotImplementedError


__all__ = [
    "IdentifierStrategy",
    "ParameterBag",
    "RemoteState",
    "StrategyDescriptor",
    "StrategyKind",
]
