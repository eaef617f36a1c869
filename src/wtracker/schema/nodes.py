"""Schema tree built from JSON-Schema-like mappings."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from wtracker.errors import SchemaError

NUMBER_TYPES = frozenset({"number", "integer"})


@dataclass(frozen=True)
class SchemaNode:
    """Base node. Concrete shapes are the subclasses below."""

    description: str | None = None
    example: Any = None
    has_example: bool = False
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def type_name(self) -> str:
        return "unknown"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchemaNode:
        """Build a schema tree from a JSON-Schema-like mapping."""
        return _build_node(data, path="$")

    def to_dict(self) -> dict[str, Any]:
        """Return the mapping this node was built from."""
        return copy.deepcopy(dict(self.raw))


@dataclass(frozen=True)
class ObjectNode(SchemaNode):
    properties: dict[str, SchemaNode] = field(default_factory=dict)
    required: frozenset[str] = frozenset()

    @property
    def type_name(self) -> str:
        return "object"


@dataclass(frozen=True)
class ArrayNode(SchemaNode):
    items: SchemaNode = field(default_factory=lambda: UnknownNode())

    @property
    def type_name(self) -> str:
        return "array"


@dataclass(frozen=True)
class StringNode(SchemaNode):
    @property
    def type_name(self) -> str:
        return "string"


@dataclass(frozen=True)
class NumberNode(SchemaNode):
    @property
    def type_name(self) -> str:
        return "number"


@dataclass(frozen=True)
class BooleanNode(SchemaNode):
    @property
    def type_name(self) -> str:
        return "boolean"


@dataclass(frozen=True)
class UnknownNode(SchemaNode):
    pass


def _build_node(data: object, *, path: str) -> SchemaNode:
    if not isinstance(data, Mapping):
        raise SchemaError(f"schema node at {path} must be an object, got {type(data).__name__}")

    description = data.get("description")
    common: dict[str, Any] = {
        "description": description if isinstance(description, str) else None,
        "example": data.get("example"),
        "has_example": "example" in data,
        "raw": data,
    }

    type_name = _resolve_type(data.get("type"))
    if type_name == "object":
        return ObjectNode(
            properties=_build_properties(data.get("properties"), path=path),
            required=_build_required(data.get("required"), path=path),
            **common,
        )
    if type_name == "array":
        items = data.get("items")
        item_node = UnknownNode() if items is None else _build_node(items, path=f"{path}[]")
        return ArrayNode(items=item_node, **common)
    if type_name == "string":
        return StringNode(**common)
    if type_name in NUMBER_TYPES:
        return NumberNode(**common)
    if type_name == "boolean":
        return BooleanNode(**common)
    return UnknownNode(**common)


def _resolve_type(value: object) -> str | None:
    if isinstance(value, str):
        return value
    # ["string", "null"] style unions: the first non-null member decides the shape
    if isinstance(value, list):
        for member in value:
            if isinstance(member, str) and member != "null":
                return member
    return None


def _build_properties(value: object, *, path: str) -> dict[str, SchemaNode]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise SchemaError(f"properties at {path} must be an object")
    return {str(name): _build_node(child, path=f"{path}.{name}") for name, child in value.items()}


def _build_required(value: object, *, path: str) -> frozenset[str]:
    if value is None:
        return frozenset()
    if not isinstance(value, list) or not all(isinstance(name, str) for name in value):
        raise SchemaError(f"required at {path} must be a list of property names")
    return frozenset(value)
