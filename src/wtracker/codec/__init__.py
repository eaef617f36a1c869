"""Response codec: extraction, parsing and normalization."""

from .extract import extract_payload, fence_language
from .normalize import ensure_arrays
from .parser import parse_response

__all__ = ["ensure_arrays", "extract_payload", "fence_language", "parse_response"]
