"""Schema tree and example synthesis."""

from .example import WireFormat, render_example, schema_to_example, synthesize
from .nodes import ArrayNode, BooleanNode, NumberNode, ObjectNode, SchemaNode, StringNode, UnknownNode

__all__ = [
    "ArrayNode",
    "BooleanNode",
    "NumberNode",
    "ObjectNode",
    "SchemaNode",
    "StringNode",
    "UnknownNode",
    "WireFormat",
    "render_example",
    "schema_to_example",
    "synthesize",
]
