"""wtracker - schema-shaped world state for chat sessions."""

from .codec import parse_response
from .context import ContinuityInjector, Message, inject_continuity
from .core import GenerationCoordinator, GenerationResult, TrackerSession
from .schema import SchemaNode, schema_to_example, synthesize

__version__ = "0.1.0"

__all__ = [
    "ContinuityInjector",
    "GenerationCoordinator",
    "GenerationResult",
    "Message",
    "SchemaNode",
    "TrackerSession",
    "inject_continuity",
    "parse_response",
    "schema_to_example",
    "synthesize",
]
