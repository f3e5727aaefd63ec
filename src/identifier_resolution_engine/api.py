from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

from identifier_resolution_engine.internal.registry import (
    StrategyRegistry,
    default_registry,
)
from identifier_resolution_engine.model.context import RemoteState, ResolutionContext
from identifier_resolution_engine.model.errors import ExternalNameError
from identifier_resolution_engine.strategies import IdentifierStrategy


def _as_context(context: ResolutionContext | Mapping[str, Any]) -> ResolutionContext:
    """
    Accepts either a ready ResolutionContext or the raw nested input shape used by
    reconcilers and returns a ResolutionContext.

    Args:
        context (ResolutionContext | Mapping[str, Any]): A context object, or a mapping
            with optional `parameters`, `setup.configuration`,
            `setup.client_metadata` and `external_name` keys.

    Returns:
        ResolutionContext: The context to hand to a strategy.

    Raises:
        TypeMismatch: If a layer of the raw mapping is not a mapping, or the external
            name is not a string.
    """
    if isinstance(context, ResolutionContext):
        return context
    return ResolutionContext.from_mapping(context)


@dataclass(kw_only=True, frozen=True, slots=True)
class ExternalNameResolver:
    """
    Resolves between the external name of a managed resource and the identifier the
    remote provider uses for it.

    The resolver looks up the strategy registered for a resource type and delegates
    to it. Resource types without a registration use the identity strategy, where the
    remote identifier is the external name. Every call is stateless and computes
    strings from the inputs it is given; no results are cached between calls.

    Errors raised by a strategy propagate as the same exception object, tagged with
    the resource type that was being resolved.

    Attributes:
        registry (StrategyRegistry): The read-only resource type to strategy mapping.
            Defaults to the process-wide builtin registry.

    Methods:
        resolve_remote_id(resource_type, context) -> str
            Computes the remote identifier used for fetch, update and import.
        resolve_external_name(resource_type, remote_state) -> str
            Recovers the external name to persist from provider-reported state.
        initialize(resource_type, bag, external_name) -> None
            Writes the external name into the desired parameters before creation.
        name_is_user_defined(resource_type) -> bool
            Whether the external name is chosen by the user for this resource type.
        strategy_for(resource_type) -> IdentifierStrategy
            The strategy that applies to a resource type.
    """

    registry: StrategyRegistry = field(default_factory=default_registry)

    def strategy_for(self, resource_type: str) -> IdentifierStrategy:
        """
        Returns the strategy registered for a resource type, or the registry default.

        Args:
            resource_type (str): The resource type, e.g. "aws_s3_bucket".

        Returns:
            IdentifierStrategy: The strategy that applies. Absence of a registration
            is not an error.
        """
        return self.registry.lookup(resource_type)

    def resolve_remote_id(
        self, resource_type: str, context: ResolutionContext | Mapping[str, Any]
    ) -> str:
        """
        Computes the identifier the provider uses to address a resource instance.

        Args:
            resource_type (str): The resource type being resolved.
            context (ResolutionContext | Mapping[str, Any]): Desired parameters, setup
                configuration, client metadata and the current external name, either
                as a ResolutionContext or in the raw nested input shape.

        Returns:
            str: The remote identifier.

        Raises:
            NotYetKnown: If the provider assigns the identifier on creation.
            MissingField: If a required parameter is absent.
            TypeMismatch: If a parameter does not have the expected shape.
            AmbiguousInput: If more than one of a mutually exclusive set is given.
            TemplateRenderError: If a template placeholder cannot be resolved.
        """
        strategy = self.strategy_for(resource_type)
        try:
            remote_id = strategy.derive_remote_id(_as_context(context))
        except ExternalNameError as e:
            logging.debug(f"{resource_type}: remote id resolution failed: {e.message}")
            e.with_resource_type(resource_type)
            raise

        logging.debug(f"{resource_type}: resolved remote id {remote_id!r}")
        return remote_id

    def resolve_external_name(self, resource_type: str, remote_state: RemoteState) -> str:
        """
        Recovers the external name from the state the provider reported for a resource.

        Args:
            resource_type (str): The resource type being resolved.
            remote_state (Mapping[str, Any]): Provider-reported state, holding at least
                the `id` field.

        Returns:
            str: The external name that should be persisted.

        Raises:
            MissingField: If `id`, or the field a strategy reads, is absent.
            TypeMismatch: If the identifier does not have the expected shape.
        """
        strategy = self.strategy_for(resource_type)
        try:
            external_name = strategy.derive_external_name(remote_state)
        except ExternalNameError as e:
            logging.debug(
                f"{resource_type}: external name resolution failed: {e.message}"
            )
            e.with_resource_type(resource_type)
            raise

        logging.debug(f"{resource_type}: resolved external name {external_name!r}")
        return external_name

    def initialize(
        self, resource_type: str, bag: MutableMapping[str, Any], external_name: str
    ) -> None:
        """
        Writes the external name into the desired parameters so the create request
        carries it.

        Important: this MUTATES `bag` in place. Strategies without a naming field
        leave it untouched.

        Args:
            resource_type (str): The resource type being created.
            bag (MutableMapping[str, Any]): The desired parameters to update.
            external_name (str): The external name to inject.

        Returns:
            None
        """
        strategy = self.strategy_for(resource_type)
        try:
            strategy.initialize_parameters(bag, external_name)
        except ExternalNameError as e:
            e.with_resource_type(resource_type)
            raise

    def name_is_user_defined(self, resource_type: str) -> bool:
        """
        Tells whether the external name of a resource type is chosen by the user.

        Callers use this to decide whether a default name generator should run
        before creation.

        Args:
            resource_type (str): The resource type to query.

        Returns:
            bool: True if the user picks the name, False if it comes from the
            provider or from other parameters.
        """
        return self.strategy_for(resource_type).name_is_user_defined
