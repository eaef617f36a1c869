"""Single-flight generation per conversation turn."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from loguru import logger

from wtracker.codec import parse_response
from wtracker.context.messages import HostMessage, Message, to_transport_message
from wtracker.core.concurrency import run_until_cancelled
from wtracker.core.transport import DEFAULT_TEMPERATURE, Transport, TransportRequest
from wtracker.errors import EmptyResponseError, ExtractionError, TrackerError
from wtracker.logging_utils import turn_context
from wtracker.schema.nodes import SchemaNode

TurnId = int | str
GenerationStatus = Literal["completed", "failed", "cancelled"]
Notifier = Callable[[str, str], None]
BusyIndicator = Callable[[TurnId, bool], None]

DEFAULT_MAX_TOKENS = 16000
FAILURE_PREFIX = "Tracker generation failed"


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation call."""

    turn_id: TurnId
    status: GenerationStatus
    value: Any = None
    error: str | None = None
    raw_text: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "completed"


@dataclass
class RequestHandle:
    turn_id: TurnId
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()


def log_notifier(level: str, message: str) -> None:
    logger.log(level.upper(), "notify {}", message)


class GenerationCoordinator:
    """Issues at most one transport call per turn id.

    A second call for a turn that is still pending cancels the first one; the
    first call then resolves as ``cancelled`` and its result is dropped.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        notifier: Notifier | None = None,
        busy: BusyIndicator | None = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self._transport = transport
        self._notify = notifier or log_notifier
        self._busy = busy
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._handles: dict[TurnId, RequestHandle] = {}

    def is_pending(self, turn_id: TurnId) -> bool:
        return turn_id in self._handles

    def pending_turns(self) -> list[TurnId]:
        return list(self._handles)

    def cancel(self, turn_id: TurnId) -> bool:
        """Cancel the in-flight request for ``turn_id`` and free its handle."""
        handle = self._handles.pop(turn_id, None)
        if handle is None:
            return False
        handle.cancel()
        self._set_busy(turn_id, False)
        logger.info("generation.cancel turn={}", turn_id)
        return True

    async def start_generation(
        self,
        turn_id: TurnId,
        messages: Sequence[Message | HostMessage],
        schema: SchemaNode | Mapping[str, Any] | None,
        fmt: str,
        *,
        json_schema: dict[str, Any] | None = None,
    ) -> GenerationResult:
        try:
            node = schema if isinstance(schema, SchemaNode) or schema is None else SchemaNode.from_dict(schema)
        except TrackerError as exc:
            with turn_context(turn_id):
                return self._fail(turn_id, str(exc))
        request = TransportRequest(
            messages=[to_transport_message(message) for message in messages],
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            json_schema=json_schema,
            metadata={"turn_id": turn_id},
        )
        # registration happens before the first await so a concurrent call sees it
        handle = self._register(turn_id)
        with turn_context(turn_id):
            try:
                return await self._run(handle, request, node, fmt)
            finally:
                self._release(handle)

    def _register(self, turn_id: TurnId) -> RequestHandle:
        existing = self._handles.get(turn_id)
        if existing is not None:
            logger.info("generation.restart turn={}", turn_id)
            existing.cancel()
        handle = RequestHandle(turn_id)
        self._handles[turn_id] = handle
        self._set_busy(turn_id, True)
        return handle

    def _release(self, handle: RequestHandle) -> None:
        # a restarted call owns the slot now; leave its handle alone
        if self._handles.get(handle.turn_id) is not handle:
            return
        del self._handles[handle.turn_id]
        self._set_busy(handle.turn_id, False)

    async def _run(
        self,
        handle: RequestHandle,
        request: TransportRequest,
        schema: SchemaNode | None,
        fmt: str,
    ) -> GenerationResult:
        turn_id = handle.turn_id
        logger.info("generation.start format={} messages={}", fmt, len(request.messages))
        try:
            raw_text = await run_until_cancelled(
                self._transport.send(request, handle.cancel_event),
                handle.cancel_event,
            )
        except asyncio.CancelledError:
            if not handle.cancelled:
                raise
            return self._cancelled(turn_id)
        except TrackerError as exc:
            if handle.cancelled:
                return self._cancelled(turn_id)
            return self._fail(turn_id, str(exc))
        except Exception as exc:
            if handle.cancelled:
                return self._cancelled(turn_id)
            logger.exception("generation.transport.error")
            return self._fail(turn_id, f"transport_error: {exc!s}")

        if handle.cancelled:
            return self._cancelled(turn_id)

        try:
            value = self._decode(raw_text, schema, fmt)
        except ExtractionError as exc:
            return self._fail(turn_id, str(exc), raw_text=exc.raw_text)
        except TrackerError as exc:
            return self._fail(turn_id, str(exc), raw_text=raw_text)

        logger.info("generation.completed")
        return GenerationResult(turn_id, "completed", value=value, raw_text=raw_text)

    def _decode(self, raw_text: str, schema: SchemaNode | None, fmt: str) -> Any:
        if not raw_text or not raw_text.strip():
            raise EmptyResponseError("No response content received.", raw_text or "")
        value = parse_response(raw_text, fmt, schema)
        if _is_empty(value):
            logger.error("generation.empty raw={!r}", raw_text)
            raise EmptyResponseError("Empty response from tracker.", raw_text)
        return value

    def _cancelled(self, turn_id: TurnId) -> GenerationResult:
        logger.info("generation.cancelled")
        return GenerationResult(turn_id, "cancelled")

    def _fail(self, turn_id: TurnId, message: str, *, raw_text: str | None = None) -> GenerationResult:
        logger.error("generation.failed error={}", message)
        self._notify("error", f"{FAILURE_PREFIX}: {message}")
        return GenerationResult(turn_id, "failed", error=message, raw_text=raw_text)

    def _set_busy(self, turn_id: TurnId, busy: bool) -> None:
        if self._busy is not None:
            self._busy(turn_id, busy)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (dict, list, str)):
        return len(value) == 0
    return False
