# src/stepsnap/core/config.py
"""
Configuration for computation contexts.

Two layers:
- ContextOptions: the construction-time options a ComputationContext
  receives, including the injected capabilities (logger, transport,
  codec). Frozen after construction; every instance gets its own
  default capabilities, there is no shared default registry.
- StepsnapSettings: the serializable subset, loaded from YAML plus
  environment variables via Dynaconf, for the CLI and for applications
  that keep their recovery settings in a config file.

Uses Pydantic for validation and Dynaconf for multi-source loading.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal, Self

from pydantic import BaseModel, Field, field_validator

from stepsnap.contracts import DebugLevel
from stepsnap.core.codec import Codec, PickleCodec, codec_for
from stepsnap.core.logging import Logger, StructlogLogger
from stepsnap.core.transport import FilesystemTransport, Transport

DEFAULT_RECOVERY_LOCATION = ".recovery"


def _require_capability(value: Any, protocol: type, field_name: str) -> Any:
    if not isinstance(value, protocol):
        raise ValueError(
            f"{field_name} must implement {protocol.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


class ContextOptions(BaseModel):
    """Options for a ComputationContext.

    ``recovery_location`` is resolved against the current working
    directory at construction, so later ``chdir`` calls do not move the
    snapshot.

    Example:
        options = ContextOptions(
            recovery_location="state/run.bin",
            debug_level="debug",
            transport=InMemoryTransport(),
        )
    """

    model_config = {"frozen": True, "extra": "forbid"}

    from_scratch: bool = Field(
        default=False,
        description="Ignore any persisted snapshot and recompute everything",
    )
    recovery_location: Path = Field(
        default=Path(DEFAULT_RECOVERY_LOCATION),
        validate_default=True,
        description="Where the snapshot is read and written",
    )
    debug_level: DebugLevel = Field(
        default=DebugLevel.NONE,
        description="Verbosity gate for the logger",
    )
    logger: Any = Field(default_factory=StructlogLogger)
    transport: Any = Field(default_factory=FilesystemTransport)
    codec: Any = Field(default_factory=PickleCodec)

    @field_validator("recovery_location", mode="before")
    @classmethod
    def resolve_location(cls, v: Any) -> Path:
        """Resolve to an absolute path relative to the current directory."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("recovery_location must not be empty")
        return Path(os.path.abspath(os.fspath(v)))

    @field_validator("debug_level", mode="before")
    @classmethod
    def parse_debug_level(cls, v: Any) -> DebugLevel:
        return DebugLevel.parse(v)

    @field_validator("logger")
    @classmethod
    def validate_logger(cls, v: Any) -> Logger:
        result: Logger = _require_capability(v, Logger, "logger")
        return result

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: Any) -> Transport:
        result: Transport = _require_capability(v, Transport, "transport")
        return result

    @field_validator("codec")
    @classmethod
    def validate_codec(cls, v: Any) -> Codec:
        result: Codec = _require_capability(v, Codec, "codec")
        return result

    @classmethod
    def create(cls, options: Mapping[str, Any] | None = None, /, **overrides: Any) -> Self:
        """Build options from a mapping and keyword overrides.

        Values that are None are skipped so the default applies; unknown
        keys are rejected.

        Raises:
            ValidationError: If a value is invalid or a key is unknown
        """
        merged = {**(options or {}), **overrides}
        return cls(**{k: v for k, v in merged.items() if v is not None})


class StepsnapSettings(BaseModel):
    """Recovery settings loadable from a file and the environment.

    Example YAML:
        recovery_location: state/.recovery
        debug_level: debug
        codec: json
        dependencies:
          model_version: 3
    """

    model_config = {"frozen": True, "extra": "forbid"}

    from_scratch: bool = False
    recovery_location: Path = Path(DEFAULT_RECOVERY_LOCATION)
    debug_level: DebugLevel = DebugLevel.NONE
    codec: Literal["pickle", "json"] = "pickle"
    log_format: Literal["console", "json"] = "console"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    dependencies: dict[str, Any] = Field(default_factory=dict)

    @field_validator("debug_level", mode="before")
    @classmethod
    def parse_debug_level(cls, v: Any) -> DebugLevel:
        return DebugLevel.parse(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def to_options(self, **overrides: Any) -> ContextOptions:
        """Build ContextOptions from these settings.

        Keyword overrides (e.g., ``transport=...``) take precedence;
        None values are ignored.
        """
        return ContextOptions.create(
            {
                "from_scratch": self.from_scratch,
                "recovery_location": self.recovery_location,
                "debug_level": self.debug_level,
                "codec": codec_for(self.codec),
            },
            **overrides,
        )


def load_settings(config_path: Path) -> StepsnapSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (STEPSNAP_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: STEPSNAP_DEPENDENCIES__MODEL_VERSION for
    nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated StepsnapSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="STEPSNAP",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    # and drop its internal settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {
        k.lower(): v
        for k, v in dynaconf_settings.as_dict().items()
        if k not in internal_keys
    }
    return StepsnapSettings(**raw_config)
