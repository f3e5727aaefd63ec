from __future__ import annotations

from collections.abc import Sequence


class ExternalNameError(Exception):
    """
    Base error type for external name and remote identifier resolution failures.

    resource_type is attached by the resolution facade so callers can tell which
    mapping failed; strategies raise without it.
    """

    def __init__(self, message: str, *, resource_type: str | None = None):
        super().__init__(message)
        self.message = message
        self.resource_type = resource_type

    def with_resource_type(self, resource_type: str) -> ExternalNameError:
        self.resource_type = resource_type
        return self

    def __str__(self) -> str:
        if self.resource_type:
            return f"{self.resource_type}: {self.message}"
        return self.message


class MissingField(ExternalNameError):
    """
    A required parameter or state field is absent.

    When one of several alternatives is required, field names all of them joined
    with " or " and alternatives holds them individually.
    """

    def __init__(self, field: str, *, alternatives: Sequence[str] = ()):
        self.field = field
        self.alternatives = tuple(alternatives)
        if self.alternatives:
            message = f"one of {', '.join(self.alternatives)} has to be given"
        else:
            message = f"{field} cannot be empty"
        super().__init__(message)


class TypeMismatch(ExternalNameError):
    """
    A field is present but does not have the expected shape.
    """

    def __init__(self, field: str, *, expected: str, actual: str):
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(f"{field}: expected {expected}, got {actual}")


class TemplateRenderError(ExternalNameError):
    pass


class UnresolvedPlaceholder(TemplateRenderError):
    def __init__(self, placeholder: str, *, reason: str = "cannot be resolved"):
        self.placeholder = placeholder
        super().__init__(f"placeholder '{{{{ {placeholder} }}}}' {reason}")


class AmbiguousInput(ExternalNameError):
    """
    More than one field of a mutually exclusive set was supplied.
    """

    def __init__(self, fields: Sequence[str]):
        self.fields = tuple(fields)
        super().__init__(f"only one of {', '.join(self.fields)} can be given")


class NotYetKnown(ExternalNameError):
    """
    The remote identifier is assigned by the provider and cannot be computed
    before the resource exists. Callers should defer rather than retry with the
    same inputs.
    """

    def __init__(self, message: str = "remote identifier is assigned by the provider"):
        super().__init__(message)


class ExternalNameConfigError(ExternalNameError):
    """
    Malformed strategy configuration: bad descriptors, templates or registry tables.
    """


class DuplicateRegistration(ExternalNameConfigError):
    def __init__(self, resource_types: Sequence[str], *, origin: str = ""):
        self.resource_types = tuple(sorted(resource_types))
        where = f" ({origin})" if origin else ""
        super().__init__(
            f"duplicate resource types registered{where}: {list(self.resource_types)}"
        )
