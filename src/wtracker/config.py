"""Configuration management for wtracker."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .defaults import (
    DEFAULT_PROMPT,
    DEFAULT_PROMPT_JSON,
    DEFAULT_PROMPT_XML,
    DEFAULT_SCHEMA_HTML,
    DEFAULT_SCHEMA_VALUE,
)
from .errors import SchemaPresetNotFoundError
from .logging_utils import LogProfile, configure_logging


class AutoMode(str, Enum):
    """Which rendered messages trigger an automatic tracker generation."""

    NONE = "none"
    RESPONSES = "responses"
    INPUT = "input"
    BOTH = "both"


class PromptEngineeringMode(str, Enum):
    """How the expected output shape is communicated to the model."""

    NATIVE = "native"
    JSON = "json"
    XML = "xml"


class SchemaPreset(BaseModel):
    """A named schema plus the display template for its snapshots."""

    name: str
    value: dict[str, Any] = Field(default_factory=dict)
    html: str = ""


def _default_presets() -> dict[str, SchemaPreset]:
    return {
        "default": SchemaPreset(name="Default", value=DEFAULT_SCHEMA_VALUE, html=DEFAULT_SCHEMA_HTML),
    }


class TrackerSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="WTRACKER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model Configuration
    model: str | None = Field(None, description="Model in provider:model form, e.g. 'openai:gpt-4o-mini'")
    api_key: str | None = Field(None, description="API key for the LLM provider")
    api_base: str | None = Field(None, description="Optional API base URL")
    max_response_tokens: int = Field(default=16000, description="Maximum tokens for tracker responses")
    temperature: float = Field(default=0.8, description="Sampling temperature for tracker requests")

    # Tracker Configuration
    auto_mode: AutoMode = Field(default=AutoMode.NONE, description="Automatic generation trigger")
    schema_preset: str = Field(default="default", description="Key of the active schema preset")
    schema_presets: dict[str, SchemaPreset] = Field(default_factory=_default_presets)
    prompt: str = Field(default=DEFAULT_PROMPT, description="Instruction used in native mode")
    prompt_json: str = Field(default=DEFAULT_PROMPT_JSON, description="Instruction template used in json mode")
    prompt_xml: str = Field(default=DEFAULT_PROMPT_XML, description="Instruction template used in xml mode")
    include_last_x_messages: int = Field(default=0, ge=0, description="History window size, 0 means all")
    include_last_x_tracker_messages: int = Field(default=1, ge=0, description="Snapshots replayed per request")
    prompt_engineering_mode: PromptEngineeringMode = Field(default=PromptEngineeringMode.NATIVE)
    user_name: str = Field(default="User", description="Author name for replayed snapshot messages")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("max_response_tokens")
    @classmethod
    def _positive_tokens(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("max_response_tokens must be a positive integer")
        return value

    def active_preset(self) -> SchemaPreset:
        """Return the selected schema preset."""
        preset = self.schema_presets.get(self.schema_preset)
        if preset is None:
            raise SchemaPresetNotFoundError(f"schema preset '{self.schema_preset}' is not defined")
        return preset


def load_settings(*, profile: LogProfile = "default", **overrides: Any) -> TrackerSettings:
    """Get application settings.

    Args:
        profile: Logging profile to configure
        **overrides: Explicit field values that win over the environment

    Returns:
        TrackerSettings instance
    """
    settings = TrackerSettings(**overrides)
    configure_logging(profile=profile, level=settings.log_level)
    return settings
