"""Message model and continuity injection."""

from .injector import REPLAY_LABEL, ContinuityInjector, inject_continuity
from .messages import ChatRole, Message, WorkingMessage, attach_snapshot, snapshot_of, to_transport_message

__all__ = [
    "REPLAY_LABEL",
    "ChatRole",
    "ContinuityInjector",
    "Message",
    "WorkingMessage",
    "attach_snapshot",
    "inject_continuity",
    "snapshot_of",
    "to_transport_message",
]
