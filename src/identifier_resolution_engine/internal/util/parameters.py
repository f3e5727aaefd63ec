from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from identifier_resolution_engine.model.errors import MissingField, TypeMismatch


def _type_name(value: Any) -> str:
    return type(value).__name__


def get(bag: Mapping[str, Any], key: str) -> Any:
    if key not in bag:
        raise MissingField(key)
    return bag[key]


def get_string(bag: Mapping[str, Any], key: str) -> str:
    value = get(bag, key)
    if not isinstance(value, str):
        raise TypeMismatch(key, expected="str", actual=_type_name(value))
    return value


def get_optional_string(bag: Mapping[str, Any], key: str) -> str | None:
    """
    Absent, None and "" all mean the optional field was not supplied.
    """
    value = bag.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise TypeMismatch(key, expected="str", actual=_type_name(value))
    return value


def get_string_list(bag: Mapping[str, Any], key: str) -> list[str]:
    value = get(bag, key)
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise TypeMismatch(key, expected="list[str]", actual=_type_name(value))
    out: list[str] = []
    for i, item in enumerate(value):
        if not isinstance(item, str):
            raise TypeMismatch(f"{key}[{i}]", expected="str", actual=_type_name(item))
        out.append(item)
    return out


def _step(node: Any, segment: str, *, path: str, walked: str) -> Any:
    if isinstance(node, Mapping):
        if segment not in node:
            raise MissingField(path)
        return node[segment]
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
        if not segment.isdigit():
            raise TypeMismatch(walked, expected="mapping", actual=_type_name(node))
        index = int(segment)
        if index >= len(node):
            raise MissingField(path)
        return node[index]
    raise TypeMismatch(walked, expected="mapping or list", actual=_type_name(node))


def get_path(bag: Mapping[str, Any], path: str) -> Any:
    """
    Look up a dotted path in a nested parameter bag.

    Integer segments index into sequences, so "lex_bot.0.name" reads the name of the
    first lex_bot block. A missing segment raises MissingField naming the full path.
    """
    if not path:
        raise MissingField(path)
    node: Any = bag
    walked: list[str] = []
    for segment in path.split("."):
        node = _step(node, segment, path=path, walked=".".join(walked) or "<root>")
        walked.append(segment)
    return node
