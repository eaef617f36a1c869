"""Transport contract for the model call."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

DEFAULT_TEMPERATURE = 0.8


@dataclass(frozen=True)
class TransportRequest:
    """One outbound generation request."""

    messages: list[dict[str, Any]]
    max_tokens: int
    temperature: float = DEFAULT_TEMPERATURE
    json_schema: dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class Transport(Protocol):
    """Sends a request to a model and returns the raw response text.

    Implementations raise ``TransportError`` on failure and should abort the
    underlying call when ``cancel_event`` is set.
    """

    async def send(self, request: TransportRequest, cancel_event: asyncio.Event) -> str: ...
