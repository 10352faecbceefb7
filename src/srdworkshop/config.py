"""Configuration management for SRD Workshop.

This module defines the configuration schema using Pydantic settings,
supporting TOML files, environment variables, and programmatic overrides.

Configuration loading priority (highest to lowest):
1. Programmatic overrides (passed to WorkshopConfig constructor)
2. Environment variables (SRDWORKSHOP_* prefix)
3. TOML configuration file
4. Default values defined in this module

Example TOML configuration:
    [generation]
    timeout_seconds = 90

    [conversation]
    fallback_message = "The assistant is unavailable right now."

Example environment variable override:
    SRDWORKSHOP_GENERATION__TIMEOUT_SECONDS=30
    SRDWORKSHOP_LOGGING__FORMAT=console
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GREETING = (
    "Hello! I'm your product-requirements assistant. I'll help you turn an idea "
    "into a structured software requirements document.\n\n"
    "You can start with a one-line description, for example "
    '"I want a photo-sharing social app for travel photographers".'
)
DEFAULT_FALLBACK_MESSAGE = "Sorry, I ran into a problem. Please try again later."
DEFAULT_CANCELLED_MESSAGE = "Reply cancelled."


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        file: Optional log file path (None for stdout only)
        rotation_size_mb: Log file rotation size in megabytes
        retention_count: Number of rotated log files to keep
    """

    model_config = SettingsConfigDict(
        env_prefix="SRDWORKSHOP_LOGGING__",
        extra="forbid",
    )

    level: str = Field(default="INFO")
    format: str = Field(default="json")
    file: Path | None = Field(default=None)
    rotation_size_mb: int = Field(default=50, ge=1, le=1000)
    retention_count: int = Field(default=10, ge=1, le=100)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level is recognized."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format is recognized."""
        valid_formats = {"json", "console"}
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v_lower


class GenerationConfig(BaseSettings):
    """Section generation configuration.

    Attributes:
        timeout_seconds: Upper bound on a single generation call. A section
            whose generator does not answer in time returns to idle with a
            failed task. None disables the bound.
    """

    model_config = SettingsConfigDict(
        env_prefix="SRDWORKSHOP_GENERATION__",
        extra="forbid",
    )

    timeout_seconds: float | None = Field(default=120.0, gt=0, le=3600)


class ConversationConfig(BaseSettings):
    """Conversation channel configuration.

    Attributes:
        greeting: System message seeded into every new session (empty disables)
        fallback_message: Text an aborted assistant turn is finalized with
        cancelled_message: Text a turn cancelled by the caller is finalized with
        timeout_seconds: Upper bound on a whole assistant reply, None disables
    """

    model_config = SettingsConfigDict(
        env_prefix="SRDWORKSHOP_CONVERSATION__",
        extra="forbid",
    )

    greeting: str = Field(default=DEFAULT_GREETING)
    fallback_message: str = Field(default=DEFAULT_FALLBACK_MESSAGE, min_length=1)
    cancelled_message: str = Field(default=DEFAULT_CANCELLED_MESSAGE, min_length=1)
    timeout_seconds: float | None = Field(default=60.0, gt=0, le=3600)


class HistoryConfig(BaseSettings):
    """Version history configuration.

    Attributes:
        default_page_size: Number of snapshots returned by a history listing
            when the caller does not pass a limit
    """

    model_config = SettingsConfigDict(
        env_prefix="SRDWORKSHOP_HISTORY__",
        extra="forbid",
    )

    default_page_size: int = Field(default=20, ge=1, le=500)


class WorkshopConfig(BaseSettings):
    """Root configuration for SRD Workshop.

    Environment variable format for nested config:
        SRDWORKSHOP_<SECTION>__<KEY>=value

    Example:
        SRDWORKSHOP_GENERATION__TIMEOUT_SECONDS=45
        SRDWORKSHOP_HISTORY__DEFAULT_PAGE_SIZE=50
    """

    model_config = SettingsConfigDict(
        env_prefix="SRDWORKSHOP_",
        env_nested_delimiter="__",
        extra="forbid",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)


def load_config(config_path: Path | None = None) -> WorkshopConfig:
    """Load configuration from TOML file with environment variable overrides.

    Configuration search order (first found is used):
    1. config_path if explicitly provided
    2. ./srdworkshop.toml (current directory)
    3. ~/.config/srdworkshop/config.toml (user config directory)

    Args:
        config_path: Explicit path to TOML config file. If None, searches
                    default locations.

    Returns:
        WorkshopConfig: Fully resolved configuration instance.

    Raises:
        FileNotFoundError: If config_path is explicitly provided but doesn't exist.
        ValueError: If TOML file contains invalid configuration.
    """
    toml_data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        selected_path = config_path
    else:
        search_paths = [
            Path.cwd() / "srdworkshop.toml",
            Path.home() / ".config" / "srdworkshop" / "config.toml",
        ]
        selected_path = None
        for path in search_paths:
            if path.exists():
                selected_path = path
                break

    if selected_path is not None:
        with open(selected_path, "rb") as f:
            toml_data = tomli.load(f)

    try:
        return WorkshopConfig(**toml_data)
    except Exception as e:
        if selected_path:
            raise ValueError(
                f"Invalid configuration in {selected_path}: {e}"
            ) from e
        else:
            raise ValueError(f"Invalid configuration: {e}") from e
