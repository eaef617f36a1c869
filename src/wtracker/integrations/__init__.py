"""Integrations with external model clients."""

from .republic_client import RepublicTransport, build_llm

__all__ = ["RepublicTransport", "build_llm"]
