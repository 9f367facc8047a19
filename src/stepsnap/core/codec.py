# src/stepsnap/core/codec.py
"""Value codecs for snapshots.

A codec turns a snapshot (always a plain dict, see
``Snapshot.to_dict``) into bytes and back. Two implementations:

- PickleCodec: the default. Binary, round-trips arbitrary picklable
  Python values (custom classes, numpy arrays, exceptions...).
- JsonCodec: human-readable UTF-8 JSON for snapshots that must be
  inspected or consumed by other tools. Preserves datetime, date,
  bytes, tuple and set through collision-safe type envelopes
  (``{"__stepsnap_type__": ..., "__stepsnap_value__": ...}``). User
  dicts that happen to contain the reserved key are escaped.

Decoding untrusted pickle data executes arbitrary code: only point a
PickleCodec at recovery locations the process itself writes.
"""

from __future__ import annotations

import base64
import json
import math
import pickle
from datetime import date, datetime
from typing import Any, Protocol, runtime_checkable

# Reserved keys used for type envelopes
_ENVELOPE_TYPE_KEY = "__stepsnap_type__"
_ENVELOPE_VALUE_KEY = "__stepsnap_value__"


@runtime_checkable
class Codec(Protocol):
    """Protocol for snapshot codecs.

    Must round-trip every value used as a step result or inside a
    dependency description.
    """

    def encode(self, value: Any) -> bytes:
        """Encode a value to bytes."""
        ...

    def decode(self, data: bytes) -> Any:
        """Decode bytes produced by ``encode``."""
        ...


class PickleCodec:
    """Binary codec built on pickle."""

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self.protocol = protocol

    def encode(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self.protocol)

    def decode(self, data: bytes) -> Any:
        return pickle.loads(data)  # noqa: S301 - recovery data is self-written


def _envelope(type_name: str, value: Any) -> dict[str, Any]:
    return {_ENVELOPE_TYPE_KEY: type_name, _ENVELOPE_VALUE_KEY: value}


def _to_json_safe(obj: Any) -> Any:
    """Recursively replace non-JSON types with envelopes.

    Raises:
        ValueError: If a float is NaN or Infinity
        TypeError: If a dict has non-string keys or a value is unsupported
    """
    if isinstance(obj, bool) or obj is None or isinstance(obj, str | int):
        return obj
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(
                f"Cannot serialize non-finite float: {obj}. "
                "Use None for missing values, not NaN/Infinity."
            )
        return obj
    if isinstance(obj, datetime):
        # isoformat keeps naive values naive and aware values with their offset
        return _envelope("datetime", obj.isoformat())
    if isinstance(obj, date):
        return _envelope("date", obj.isoformat())
    if isinstance(obj, bytes):
        return _envelope("bytes", base64.b64encode(obj).decode("ascii"))
    if isinstance(obj, tuple):
        return _envelope("tuple", [_to_json_safe(v) for v in obj])
    if isinstance(obj, set | frozenset):
        return _envelope(
            "frozenset" if isinstance(obj, frozenset) else "set",
            [_to_json_safe(v) for v in obj],
        )
    if isinstance(obj, list):
        return [_to_json_safe(v) for v in obj]
    if isinstance(obj, dict):
        converted: dict[str, Any] = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise TypeError(
                    f"JsonCodec requires string dict keys, got {type(key).__name__}: {key!r}"
                )
            converted[key] = _to_json_safe(value)
        if _ENVELOPE_TYPE_KEY in converted:
            return _envelope("escaped_dict", converted)
        return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _restore_types(obj: Any) -> Any:
    """Recursively restore enveloped values."""
    if isinstance(obj, list):
        return [_restore_types(v) for v in obj]
    if not isinstance(obj, dict):
        return obj

    if _ENVELOPE_TYPE_KEY in obj and _ENVELOPE_VALUE_KEY in obj and len(obj) == 2:
        envelope_type = obj[_ENVELOPE_TYPE_KEY]
        value = obj[_ENVELOPE_VALUE_KEY]

        if envelope_type == "datetime":
            return datetime.fromisoformat(value)
        if envelope_type == "date":
            return date.fromisoformat(value)
        if envelope_type == "bytes":
            return base64.b64decode(value)
        if envelope_type == "tuple":
            return tuple(_restore_types(v) for v in value)
        if envelope_type == "set":
            return {_restore_types(v) for v in value}
        if envelope_type == "frozenset":
            return frozenset(_restore_types(v) for v in value)
        if envelope_type == "escaped_dict":
            return {k: _restore_types(v) for k, v in value.items()}
        raise ValueError(f"Unknown type envelope: {envelope_type!r}")

    return {k: _restore_types(v) for k, v in obj.items()}


class JsonCodec:
    """Type-preserving JSON codec.

    Args:
        indent: Indentation for pretty output; None for compact JSON
    """

    def __init__(self, indent: int | None = None) -> None:
        self.indent = indent

    def encode(self, value: Any) -> bytes:
        text = json.dumps(_to_json_safe(value), indent=self.indent, allow_nan=False)
        return text.encode("utf-8")

    def decode(self, data: bytes) -> Any:
        return _restore_types(json.loads(data.decode("utf-8")))


CODECS: dict[str, type[PickleCodec] | type[JsonCodec]] = {
    "pickle": PickleCodec,
    "json": JsonCodec,
}


def codec_for(name: str) -> Codec:
    """Build a codec by its settings name ("pickle" or "json").

    Raises:
        ValueError: If the name is unknown
    """
    try:
        codec_cls = CODECS[name]
    except KeyError:
        raise ValueError(
            f"Unknown codec {name!r}. Available: {', '.join(sorted(CODECS))}"
        ) from None
    return codec_cls()
