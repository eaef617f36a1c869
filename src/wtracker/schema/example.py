"""Example synthesis and rendering for prompt building."""

from __future__ import annotations

import json
from typing import Any, Literal
from xml.sax.saxutils import escape

from wtracker.errors import UnsupportedFormatError
from wtracker.schema.nodes import ArrayNode, BooleanNode, NumberNode, ObjectNode, SchemaNode, StringNode

WireFormat = Literal["json", "xml"]
XML_INDENT = "  "


def synthesize(schema: SchemaNode) -> Any:
    """Build a representative instance of ``schema``.

    An author-supplied ``example`` always wins, even when it does not match the
    declared type. Arrays always carry exactly one element so the model sees how
    repetition is written.
    """
    if schema.has_example:
        return schema.example

    match schema:
        case ObjectNode(properties=properties):
            return {name: synthesize(child) for name, child in properties.items()}
        case ArrayNode(items=items):
            return [synthesize(items)]
        case StringNode(description=description):
            return description or "string"
        case NumberNode():
            return 0
        case BooleanNode():
            return False
        case _:
            return None


def render_example(example: Any, fmt: WireFormat) -> str:
    if fmt == "json":
        return json.dumps(example, indent=2, ensure_ascii=False)
    if fmt == "xml":
        return "".join(_xml_lines(example, 0)).strip()
    raise UnsupportedFormatError(f"unsupported format: {fmt}")


def schema_to_example(schema: SchemaNode, fmt: WireFormat) -> str:
    """Synthesize an example for ``schema`` and render it in ``fmt``."""
    return render_example(synthesize(schema), fmt)


def _xml_lines(value: Any, depth: int) -> list[str]:
    if not isinstance(value, dict):
        return []
    indentation = XML_INDENT * depth
    lines: list[str] = []
    for key, child in value.items():
        if isinstance(child, list):
            for item in child:
                lines.extend(_xml_element(key, item, depth, indentation))
        else:
            lines.extend(_xml_element(key, child, depth, indentation))
    return lines


def _xml_element(key: str, value: Any, depth: int, indentation: str) -> list[str]:
    if isinstance(value, dict):
        return [
            f"{indentation}<{key}>\n",
            *_xml_lines(value, depth + 1),
            f"{indentation}</{key}>\n",
        ]
    return [f"{indentation}<{key}>{_xml_text(value)}</{key}>\n"]


def _xml_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(_xml_text(item) for item in value)
    return escape(str(value))
