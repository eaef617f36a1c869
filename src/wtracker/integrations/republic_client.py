"""Republic integration helpers."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger
from republic import LLM

from wtracker.config import TrackerSettings
from wtracker.core.transport import TransportRequest
from wtracker.errors import ModelNotConfiguredError, TransportError

MODEL_NOT_CONFIGURED_ERROR = "Model not configured. Set WTRACKER_MODEL (e.g., 'openai:gpt-4o-mini')."


def build_llm(settings: TrackerSettings) -> LLM:
    """Build Republic LLM client for tracker requests."""
    if not settings.model:
        raise ModelNotConfiguredError(MODEL_NOT_CONFIGURED_ERROR)
    return LLM(
        model=settings.model,
        api_key=settings.api_key,
        api_base=settings.api_base,
    )


class RepublicTransport:
    """Transport backed by a Republic ``LLM``.

    The blocking client runs in a worker thread. When the cancel event fires
    the coordinator stops awaiting it; the thread finishes on its own and its
    result is discarded.
    """

    def __init__(self, llm: LLM) -> None:
        self._llm = llm

    @classmethod
    def from_settings(cls, settings: TrackerSettings) -> RepublicTransport:
        return cls(build_llm(settings))

    async def send(self, request: TransportRequest, cancel_event: asyncio.Event) -> str:
        if cancel_event.is_set():
            raise asyncio.CancelledError
        kwargs: dict[str, Any] = {
            "messages": request.messages,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
        }
        if request.json_schema is not None:
            kwargs["response_format"] = _response_format(request.json_schema)
        try:
            response = await asyncio.to_thread(self._llm.chat.raw, **kwargs)
        except Exception as exc:
            logger.exception("transport.republic.error")
            raise TransportError(str(exc)) from exc
        return _extract_text(response)


def _response_format(json_schema: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": json_schema.get("name", "SceneTracker"),
            "strict": json_schema.get("strict", True),
            "schema": json_schema.get("value", {}),
        },
    }


def _extract_text(response: Any) -> str:
    if isinstance(response, str):
        return response
    choices = getattr(response, "choices", None)
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    if message is None:
        return ""
    return getattr(message, "content", "") or ""
