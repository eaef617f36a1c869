"""Chat message model shared by the injector and the coordinator."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from wtracker.defaults import EXTENSION_KEY, SNAPSHOT_TEMPLATE_KEY, SNAPSHOT_VALUE_KEY

ChatRole = Literal["user", "assistant", "system"]
HostMessage = Mapping[str, Any]


@dataclass
class Message:
    """One chat message with an optional tracker snapshot in ``extra``."""

    role: ChatRole
    content: str
    name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def snapshot(self) -> Any:
        return _tracker_entry(self.extra).get(SNAPSHOT_VALUE_KEY)

    @property
    def template(self) -> str | None:
        return _tracker_entry(self.extra).get(SNAPSHOT_TEMPLATE_KEY)

    def attach_snapshot(self, value: Any, template: str | None = None) -> None:
        _store_snapshot(self.extra, value, template)

    def to_dict(self) -> dict[str, Any]:
        """Return the role/content shape transports expect."""
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: HostMessage) -> Message:
        """Accept prompt-style (role/content) and chat-style (mes/is_user) dicts."""
        role = data.get("role")
        if role not in ("user", "assistant", "system"):
            if data.get("is_system"):
                role = "system"
            else:
                role = "user" if data.get("is_user") else "assistant"
        content = data.get("content")
        if content is None:
            content = data.get("mes", "")
        name = data.get("name")
        return cls(
            role=role,
            content=str(content),
            name=name if isinstance(name, str) else None,
            extra=copy.deepcopy(dict(_host_extra(data))),
        )


@dataclass
class WorkingMessage:
    """A cloned message plus the per-pass replay marker."""

    message: Message | dict[str, Any]
    replayed: bool = False

    @property
    def snapshot(self) -> Any:
        return snapshot_of(self.message)


def snapshot_of(message: Message | HostMessage) -> Any:
    """Return the snapshot attached to ``message``, or ``None``."""
    if isinstance(message, Message):
        return message.snapshot
    return _tracker_entry(_host_extra(message)).get(SNAPSHOT_VALUE_KEY)


def attach_snapshot(message: Message | dict[str, Any], value: Any, template: str | None = None) -> None:
    """Store ``value`` as the snapshot of ``message`` in place."""
    if isinstance(message, Message):
        message.attach_snapshot(value, template)
        return
    # prompt-builder messages keep the chat message under "source"
    source = message.get("source")
    holder = source if isinstance(source, dict) else message
    extra = holder.get("extra")
    if not isinstance(extra, dict):
        extra = holder["extra"] = {}
    _store_snapshot(extra, value, template)


def to_transport_message(message: Message | HostMessage) -> dict[str, Any]:
    if isinstance(message, Message):
        return message.to_dict()
    return Message.from_dict(message).to_dict()


def _host_extra(data: HostMessage) -> Mapping[str, Any]:
    extra = data.get("extra")
    if isinstance(extra, Mapping):
        return extra
    source = data.get("source")
    if isinstance(source, Mapping) and isinstance(source.get("extra"), Mapping):
        return source["extra"]
    return {}


def _tracker_entry(extra: Mapping[str, Any]) -> Mapping[str, Any]:
    tracker = extra.get(EXTENSION_KEY)
    return tracker if isinstance(tracker, Mapping) else {}


def _store_snapshot(extra: dict[str, Any], value: Any, template: str | None) -> None:
    tracker = extra.get(EXTENSION_KEY)
    # host JSON may carry a null or scalar entry here
    if not isinstance(tracker, dict):
        tracker = extra[EXTENSION_KEY] = {}
    tracker[SNAPSHOT_VALUE_KEY] = copy.deepcopy(value)
    if template is not None:
        tracker[SNAPSHOT_TEMPLATE_KEY] = template
