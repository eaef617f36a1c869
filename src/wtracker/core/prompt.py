"""Instruction prompt assembly for tracker requests."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from loguru import logger

from wtracker.config import PromptEngineeringMode, TrackerSettings
from wtracker.defaults import NATIVE_SCHEMA_NAME
from wtracker.schema import SchemaNode, WireFormat, schema_to_example

PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


@dataclass(frozen=True)
class TrackerInstruction:
    """The final user prompt plus how its answer must be decoded."""

    prompt: str
    fmt: WireFormat
    json_schema: dict[str, Any] | None = None


def render_template(template: str, **values: str) -> str:
    """Substitute ``{{name}}`` placeholders; unknown placeholders are left as-is."""
    missing: list[str] = []

    def replacer(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in values:
            return values[key]
        missing.append(key)
        return match.group(0)

    rendered = PLACEHOLDER_RE.sub(replacer, template)
    if missing:
        logger.debug("prompt.template.unresolved keys={}", ",".join(missing))
    return rendered


def build_instruction(settings: TrackerSettings, schema_value: dict[str, Any], schema: SchemaNode) -> TrackerInstruction:
    mode = PromptEngineeringMode(settings.prompt_engineering_mode)
    if mode is PromptEngineeringMode.NATIVE:
        return TrackerInstruction(
            prompt=settings.prompt,
            fmt="json",
            json_schema={"name": NATIVE_SCHEMA_NAME, "strict": True, "value": schema_value},
        )

    fmt: WireFormat = "json" if mode is PromptEngineeringMode.JSON else "xml"
    template = settings.prompt_json if fmt == "json" else settings.prompt_xml
    prompt = render_template(
        template,
        schema=json.dumps(schema_value, indent=2, ensure_ascii=False),
        example_response=schema_to_example(schema, fmt),
    )
    return TrackerInstruction(prompt=prompt, fmt=fmt)
