"""Application-level exception types for wtracker."""

from __future__ import annotations


class TrackerError(Exception):
    """Base exception for wtracker."""


class ConfigurationError(TrackerError):
    """Base exception for configuration and startup validation errors."""


class SchemaPresetNotFoundError(ConfigurationError):
    """Raised when the selected schema preset does not exist."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class SchemaError(TrackerError):
    """Raised when a schema mapping cannot be turned into a schema tree."""


class UnsupportedFormatError(TrackerError):
    """Raised when a wire format other than json or xml is requested."""


class ExtractionError(TrackerError):
    """Base exception for model output that cannot become a snapshot.

    The raw model text is kept on the exception for diagnostics.
    """

    kind = "Extraction"

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class MalformedJsonError(ExtractionError):
    """Raised when the payload is not valid JSON."""

    kind = "MalformedJson"


class MalformedXmlError(ExtractionError):
    """Raised when the payload is not valid pseudo-XML."""

    kind = "MalformedXml"


class EmptyResponseError(ExtractionError):
    """Raised when the payload parses but carries no data."""

    kind = "EmptyResponse"


class TransportError(TrackerError):
    """Raised by transports; the message is shown to the user verbatim."""
