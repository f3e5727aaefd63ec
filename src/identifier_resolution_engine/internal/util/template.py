from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

from identifier_resolution_engine.internal.util.parameters import get_path
from identifier_resolution_engine.model.context import ResolutionContext
from identifier_resolution_engine.model.errors import (
    ExternalNameConfigError,
    MissingField,
    TypeMismatch,
    UnresolvedPlaceholder,
)

_PLACEHOLDER_RE: Final[re.Pattern[str]] = re.compile(r"\{\{\s*\.?([A-Za-z_][\w.]*)\s*\}\}")

EXTERNAL_NAME: Final[str] = "external_name"

# Longest roots first so "setup.configuration" wins over a bare "setup".
_ROOTS: Final[tuple[str, ...]] = (
    "setup.configuration",
    "setup.client_metadata",
    "parameters",
)


@dataclass(frozen=True, slots=True)
class Placeholder:
    path: str


@dataclass(frozen=True, slots=True)
class NameSlot:
    """
    Literal text immediately around the external_name placeholder.

    left_index is how many times `left` occurs in the literal text before the slot,
    i.e. the token index of the name after splitting a rendered value on `left`.
    pattern is the template source, used in error messages only.
    """

    left: str
    right: str
    left_index: int
    pattern: str = field(default="", compare=False)

    def extract(self, value: str) -> str:
        """
        Isolate the external name from a rendered value.

        Raises TypeMismatch when the value lacks the separators around the name, or
        when the name between them is empty.
        """
        name: str | None = value
        if self.left:
            tokens = value.split(self.left)
            if not self.right:
                name = tokens[-1] if len(tokens) > 1 else None
            elif self.left_index < len(tokens):
                name = self.left.join(tokens[self.left_index :])
            else:
                name = None
        if name is not None and self.right:
            name, sep, _ = name.partition(self.right)
            if not sep:
                name = None
        if not name:
            raise TypeMismatch(
                "id", expected=self.pattern or "a bounded name", actual=repr(value)
            )
        return name


Segment = str | Placeholder


@dataclass(frozen=True, slots=True)
class Template:
    source: str
    segments: tuple[Segment, ...]

    @property
    def placeholders(self) -> tuple[str, ...]:
        return tuple(s.path for s in self.segments if isinstance(s, Placeholder))

    def has_external_name(self) -> bool:
        return EXTERNAL_NAME in self.placeholders

    def external_name_slot(self) -> NameSlot | None:
        positions = [
            i
            for i, s in enumerate(self.segments)
            if isinstance(s, Placeholder) and s.path == EXTERNAL_NAME
        ]
        if not positions:
            return None
        if len(positions) > 1:
            raise ExternalNameConfigError(
                f"template {self.source!r}: external_name may appear only once"
            )
        pos = positions[0]
        left = _literal_at(self.segments, pos - 1)
        right = _literal_at(self.segments, pos + 1)
        if left == "" and pos > 0:
            raise ExternalNameConfigError(
                f"template {self.source!r}: external_name needs a separator before it"
            )
        if right == "" and pos < len(self.segments) - 1:
            raise ExternalNameConfigError(
                f"template {self.source!r}: external_name needs a separator after it"
            )
        prefix = "".join(s for s in self.segments[:pos] if isinstance(s, str))
        left_index = prefix.count(left) if left else 0
        return NameSlot(
            left=left, right=right, left_index=left_index, pattern=self.source
        )


def _literal_at(segments: tuple[Segment, ...], i: int) -> str:
    if i < 0 or i >= len(segments):
        return ""
    s = segments[i]
    return s if isinstance(s, str) else ""


def parse_template(source: str) -> Template:
    segments: list[Segment] = []
    pos = 0
    for m in _PLACEHOLDER_RE.finditer(source):
        if m.start() > pos:
            segments.append(source[pos : m.start()])
        segments.append(Placeholder(path=m.group(1)))
        pos = m.end()
    if pos < len(source):
        segments.append(source[pos:])
    for s in segments:
        # Anything brace-delimited that is not a placeholder would leak into the id.
        if isinstance(s, str) and ("{{" in s or "}}" in s):
            raise ExternalNameConfigError(
                f"template {source!r}: malformed placeholder in {s!r}"
            )
    return Template(source=source, segments=tuple(segments))


def _resolve(path: str, context: ResolutionContext) -> Any:
    if path == EXTERNAL_NAME:
        return context.external_name
    layers: Mapping[str, Mapping[str, Any]] = {
        "parameters": context.parameters,
        "setup.configuration": context.configuration,
        "setup.client_metadata": context.client_metadata,
    }
    for root in _ROOTS:
        if path.startswith(root + "."):
            try:
                return get_path(layers[root], path[len(root) + 1 :])
            except MissingField as e:
                raise UnresolvedPlaceholder(path) from e
    raise UnresolvedPlaceholder(path, reason="has an unknown root")


def render_template(template: Template, context: ResolutionContext) -> str:
    out: list[str] = []
    for segment in template.segments:
        if isinstance(segment, str):
            out.append(segment)
            continue
        value = _resolve(segment.path, context)
        if not isinstance(value, str):
            raise TypeMismatch(
                segment.path, expected="str", actual=type(value).__name__
            )
        out.append(value)
    return "".join(out)


def render(template: str, context: ResolutionContext) -> str:
    return render_template(parse_template(template), context)
