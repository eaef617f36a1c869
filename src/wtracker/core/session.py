"""Per-chat tracker generation."""

from __future__ import annotations

from collections.abc import Mapping, MutableSequence
from typing import Any

from loguru import logger

from wtracker.config import AutoMode, TrackerSettings
from wtracker.context import ContinuityInjector, Message, attach_snapshot
from wtracker.context.messages import HostMessage
from wtracker.core.coordinator import BusyIndicator, GenerationCoordinator, GenerationResult, Notifier, log_notifier
from wtracker.core.prompt import build_instruction
from wtracker.core.transport import Transport
from wtracker.errors import SchemaError, TrackerError
from wtracker.schema import SchemaNode

INCOMING_MODES = frozenset({AutoMode.RESPONSES, AutoMode.BOTH})
OUTGOING_MODES = frozenset({AutoMode.INPUT, AutoMode.BOTH})

ChatMessage = Message | HostMessage


def should_auto_generate(auto_mode: AutoMode | str, role: str) -> bool:
    """Whether a freshly rendered message of ``role`` triggers generation."""
    mode = AutoMode(auto_mode)
    if role == "assistant":
        return mode in INCOMING_MODES
    if role == "user":
        return mode in OUTGOING_MODES
    return False


class TrackerSession:
    """Generates and stores snapshots for the messages of one chat."""

    def __init__(
        self,
        settings: TrackerSettings,
        transport: Transport,
        *,
        notifier: Notifier | None = None,
        busy: BusyIndicator | None = None,
    ) -> None:
        self.settings = settings
        self._notify = notifier or log_notifier
        self.coordinator = GenerationCoordinator(
            transport,
            notifier=self._notify,
            busy=busy,
            max_tokens=settings.max_response_tokens,
            temperature=settings.temperature,
        )
        self.injector = ContinuityInjector(user_name=settings.user_name)

    def outgoing_messages(self, chat: list[ChatMessage], turn_id: int) -> list[Any]:
        """History window for ``turn_id`` with earlier snapshots replayed."""
        window = list(chat[self._window_start(turn_id) : turn_id + 1])
        return self.injector.inject(window, self.settings.include_last_x_tracker_messages)

    def intercept(self, chat: list[Any]) -> None:
        """Generation interceptor: replay snapshots into a host chat list in place."""
        self.injector.apply_in_place(chat, self.settings.include_last_x_tracker_messages)

    async def generate(
        self,
        turn_id: int,
        chat: MutableSequence[Any],
        *,
        schema: Mapping[str, Any] | None = None,
        template: str | None = None,
    ) -> GenerationResult:
        """Generate a snapshot for ``chat[turn_id]`` and attach it on success."""
        if not 0 <= turn_id < len(chat):
            return self._reject(turn_id, f"Message with ID {turn_id} not found.")

        try:
            schema_value, template = self._resolve_schema(schema, template)
            node = SchemaNode.from_dict(schema_value)
        except TrackerError as exc:
            return self._reject(turn_id, str(exc))

        instruction = build_instruction(self.settings, schema_value, node)
        messages = self.outgoing_messages(list(chat), turn_id)
        messages.append(Message(role="user", content=instruction.prompt))

        result = await self.coordinator.start_generation(
            turn_id,
            messages,
            node,
            instruction.fmt,
            json_schema=instruction.json_schema,
        )
        if result.ok:
            attach_snapshot(chat[turn_id], result.value, template)
            logger.info("session.snapshot.attached turn={}", turn_id)
        return result

    def _resolve_schema(
        self,
        schema: Mapping[str, Any] | None,
        template: str | None,
    ) -> tuple[dict[str, Any], str | None]:
        if schema is not None and template is not None:
            return dict(schema), template
        preset = self.settings.active_preset()
        resolved_schema = dict(schema) if schema is not None else dict(preset.value)
        if not resolved_schema:
            raise SchemaError(f"schema preset '{self.settings.schema_preset}' is empty")
        return resolved_schema, template if template is not None else preset.html

    def _window_start(self, turn_id: int) -> int:
        window = self.settings.include_last_x_messages
        if window <= 0:
            return 0
        return max(0, turn_id - window)

    def _reject(self, turn_id: int, message: str) -> GenerationResult:
        logger.error("session.reject turn={} error={}", turn_id, message)
        self._notify("error", message)
        return GenerationResult(turn_id, "failed", error=message)
