"""Core module for wtracker."""

from .coordinator import GenerationCoordinator, GenerationResult, RequestHandle
from .session import TrackerSession, should_auto_generate
from .transport import Transport, TransportRequest

__all__ = [
    "GenerationCoordinator",
    "GenerationResult",
    "RequestHandle",
    "TrackerSession",
    "Transport",
    "TransportRequest",
    "should_auto_generate",
]
