"""Schema-guided repair of parsed pseudo-XML values."""

from __future__ import annotations

from typing import Any

from wtracker.schema.nodes import ArrayNode, ObjectNode, SchemaNode


def ensure_arrays(data: Any, schema: SchemaNode) -> Any:
    """Wrap lone values of array-typed properties in a list.

    A tag written once is indistinguishable from a non-array tag after XML
    parsing, so the schema decides. Returns a normalized copy; applying it to
    its own output returns an equal value.
    """
    if not isinstance(schema, ObjectNode) or not isinstance(data, dict):
        return data

    normalized = dict(data)
    for key, prop in schema.properties.items():
        if key not in normalized:
            continue
        value = normalized[key]
        match prop:
            case ArrayNode(items=items):
                if _is_missing(value):
                    continue
                elements = value if isinstance(value, list) else [value]
                normalized[key] = [ensure_arrays(element, items) for element in elements]
            case ObjectNode():
                normalized[key] = ensure_arrays(value, prop)
    return normalized


def _is_missing(value: Any) -> bool:
    # an empty tag (<items></items>) parses to "" and carries no element
    return value is None or value == ""
