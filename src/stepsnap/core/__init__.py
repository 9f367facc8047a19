"""Core infrastructure: dependency comparison, codecs, transports, store, config, logging."""

from stepsnap.core.canonical import CANONICAL_VERSION, canonical_json, stable_hash
from stepsnap.core.codec import Codec, JsonCodec, PickleCodec, codec_for
from stepsnap.core.config import (
    ContextOptions,
    StepsnapSettings,
    load_settings,
)
from stepsnap.core.dependencies import dependencies_equal
from stepsnap.core.logging import (
    Logger,
    StructlogLogger,
    configure_logging,
    get_logger,
)
from stepsnap.core.store import RecoveryStore
from stepsnap.core.transport import (
    DeletableTransport,
    FilesystemTransport,
    InMemoryTransport,
    Transport,
)

__all__ = [
    "CANONICAL_VERSION",
    "Codec",
    "ContextOptions",
    "DeletableTransport",
    "FilesystemTransport",
    "InMemoryTransport",
    "JsonCodec",
    "Logger",
    "PickleCodec",
    "RecoveryStore",
    "StepsnapSettings",
    "StructlogLogger",
    "Transport",
    "canonical_json",
    "codec_for",
    "configure_logging",
    "dependencies_equal",
    "get_logger",
    "load_settings",
    "stable_hash",
]
