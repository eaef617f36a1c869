"""Payload extraction from raw model text."""

from __future__ import annotations

import re

FENCE_RE = re.compile(r"```([\w.+-]*)[^\S\n]*\n?(.*?)```", re.DOTALL)


def extract_payload(raw_text: str) -> str:
    """Return the inside of the first fenced block, or the whole text trimmed.

    Only the first fenced block is considered; text around it is ignored.
    """
    match = FENCE_RE.search(raw_text)
    if match is None:
        return raw_text.strip()
    return match.group(2).strip()


def fence_language(raw_text: str) -> str | None:
    """Return the language tag of the first fenced block, if any."""
    match = FENCE_RE.search(raw_text)
    if match is None:
        return None
    return match.group(1) or None
