"""Turn raw model output into structured values."""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from loguru import logger

from wtracker.codec.extract import extract_payload
from wtracker.codec.normalize import ensure_arrays
from wtracker.errors import MalformedJsonError, MalformedXmlError, UnsupportedFormatError
from wtracker.schema.nodes import SchemaNode

TEXT_KEY = "#text"
ROOT_TAG = "root"
XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
DOCUMENT_TAG = "wtracker-document"
BARE_AMPERSAND_RE = re.compile(r"&(?!#?\w+;)")
INT_RE = re.compile(r"[+-]?\d+")
FLOAT_RE = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?")


def parse_response(
    raw_text: str,
    fmt: str,
    schema: SchemaNode | Mapping[str, Any] | None = None,
) -> Any:
    """Parse ``raw_text`` as ``fmt`` ("json" or "xml").

    The xml path unwraps the ``<root>`` convention and, when a schema is given,
    repairs arrays that were written with a single element.
    """
    payload = extract_payload(raw_text)
    if fmt == "json":
        return _parse_json(payload, raw_text)
    if fmt == "xml":
        parsed = _parse_xml(payload, raw_text)
        if schema is None:
            return parsed
        node = schema if isinstance(schema, SchemaNode) else SchemaNode.from_dict(schema)
        return ensure_arrays(parsed, node)
    raise UnsupportedFormatError(f"unsupported format: {fmt}")


def _parse_json(payload: str, raw_text: str) -> Any:
    try:
        return json.loads(payload, parse_constant=_reject_constant)
    except ValueError as exc:
        logger.error("parser.json.error error={} raw={!r}", exc, raw_text)
        raise MalformedJsonError(f"Model response is not valid JSON: {exc}", raw_text) from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _parse_xml(payload: str, raw_text: str) -> Any:
    body = XML_DECLARATION_RE.sub("", payload, count=1)
    body = BARE_AMPERSAND_RE.sub("&amp;", body)
    # several top-level elements are legal model output, so parse inside a container
    try:
        document = ET.fromstring(f"<{DOCUMENT_TAG}>{body}</{DOCUMENT_TAG}>")
    except ET.ParseError as exc:
        logger.error("parser.xml.error error={} raw={!r}", exc, raw_text)
        raise MalformedXmlError(f"Model response is not valid XML: {exc}", raw_text) from exc

    parsed = _element_value(document)
    if isinstance(parsed, dict) and len(parsed) == 1 and ROOT_TAG in parsed:
        return parsed[ROOT_TAG]
    return parsed


def _element_value(element: ET.Element) -> Any:
    children = list(element)
    text = _collect_text(element)
    if not children:
        return _scalar(text)

    value: dict[str, Any] = {}
    for child in children:
        child_value = _element_value(child)
        existing = value.get(child.tag)
        if child.tag not in value:
            value[child.tag] = child_value
        elif isinstance(existing, list):
            existing.append(child_value)
        else:
            value[child.tag] = [existing, child_value]
    if text:
        value[TEXT_KEY] = text
    return value


def _collect_text(element: ET.Element) -> str:
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return " ".join(stripped for part in parts if (stripped := part.strip()))


def _scalar(text: str) -> Any:
    """Leaf text as bool, int or float when it is written as one."""
    if text == "true":
        return True
    if text == "false":
        return False
    if INT_RE.fullmatch(text):
        return int(text)
    if FLOAT_RE.fullmatch(text):
        return float(text)
    return text
