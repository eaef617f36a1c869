"""Replay of earlier snapshots into an outgoing message list."""

from __future__ import annotations

import copy
import json
from collections.abc import Sequence
from typing import Any, TypeVar

from loguru import logger

from wtracker.context.messages import HostMessage, Message, WorkingMessage

REPLAY_LABEL = "Tracker:"
DEFAULT_USER_NAME = "User"

M = TypeVar("M", Message, dict[str, Any])


class ContinuityInjector:
    """Splices the newest snapshots back into a cloned message list.

    The newest message is the turn being generated and is never replayed. Each
    source message is replayed at most once per ``inject`` call.
    """

    def __init__(self, *, user_name: str = DEFAULT_USER_NAME, label: str = REPLAY_LABEL) -> None:
        self._user_name = user_name
        self._label = label

    def inject(self, messages: Sequence[M], replay_count: int) -> list[M]:
        if replay_count <= 0:
            return copy.deepcopy(list(messages))

        working = [WorkingMessage(copy.deepcopy(message)) for message in messages]
        replayed = 0
        for _ in range(replay_count):
            index = _find_replay_source(working)
            if index is None:
                break
            source = working[index]
            source.replayed = True
            working.insert(index + 1, WorkingMessage(self._replay_message(source), replayed=True))
            replayed += 1

        logger.debug("context.inject requested={} replayed={} messages={}", replay_count, replayed, len(working))
        return [item.message for item in working]

    def apply_in_place(self, chat: list[M], replay_count: int) -> None:
        """Replace the contents of ``chat`` with its injected copy."""
        chat[:] = self.inject(chat, replay_count)

    def render_replay(self, snapshot: Any) -> str:
        rendered = json.dumps(snapshot, indent=2, ensure_ascii=False)
        return f"{self._label}\n```json\n{rendered}\n```"

    def _replay_message(self, source: WorkingMessage) -> Message | dict[str, Any]:
        content = self.render_replay(source.snapshot)
        if isinstance(source.message, Message):
            return Message(role="user", content=content, name=self._user_name)
        return {
            "role": "user",
            "content": content,
            "name": self._user_name,
            "is_user": True,
            "is_system": False,
            "mes": content,
        }


def _find_replay_source(working: list[WorkingMessage]) -> int | None:
    for index in range(len(working) - 2, -1, -1):
        item = working[index]
        if item.replayed:
            continue
        if item.snapshot is not None:
            return index
    return None


def inject_continuity(
    messages: Sequence[Message | HostMessage],
    replay_count: int,
    *,
    user_name: str = DEFAULT_USER_NAME,
) -> list[Any]:
    """Return a copy of ``messages`` with up to ``replay_count`` snapshots replayed."""
    return ContinuityInjector(user_name=user_name).inject(messages, replay_count)  # type: ignore[arg-type]
