# src/stepsnap/core/transport.py
"""
Byte transports for the recovery store.

A transport moves opaque bytes to and from a location. It knows nothing
about snapshots or encodings; the recovery store layers those on top.
Methods may be plain functions or coroutines: the store awaits whatever
awaitable they return.
"""

import os
import tempfile
from collections.abc import Awaitable
from pathlib import Path
from typing import Protocol, runtime_checkable

Location = str | os.PathLike[str]


@runtime_checkable
class Transport(Protocol):
    """Protocol for snapshot transports.

    Implementations must not raise for a missing location in
    ``exists``; only real I/O faults may propagate.
    """

    def exists(self, location: Location) -> bool | Awaitable[bool]:
        """Check whether anything is stored at the location."""
        ...

    def read(self, location: Location) -> bytes | Awaitable[bytes]:
        """Read all bytes stored at the location."""
        ...

    def write(self, location: Location, data: bytes) -> None | Awaitable[None]:
        """Replace whatever is stored at the location with ``data``."""
        ...


@runtime_checkable
class DeletableTransport(Transport, Protocol):
    """Transport that can also remove a stored location."""

    def delete(self, location: Location) -> bool | Awaitable[bool]:
        """Delete the location.

        Returns:
            True if something was deleted, False if nothing was stored
        """
        ...


class FilesystemTransport:
    """Local filesystem transport.

    Writes go to a temporary file in the target directory which then
    replaces the target, so a crash mid-write leaves the previous
    snapshot intact. Parent directories are created on first write.
    """

    def exists(self, location: Location) -> bool:
        return Path(location).is_file()

    def read(self, location: Location) -> bytes:
        return Path(location).read_bytes()

    def write(self, location: Location, data: bytes) -> None:
        path = Path(location)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, location: Location) -> bool:
        path = Path(location)
        if not path.is_file():
            return False
        path.unlink()
        return True


class InMemoryTransport:
    """Process-local transport backed by a dict.

    Useful for tests and for callers that only need recovery within a
    single process (e.g., around a flaky external call).
    """

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._blobs: dict[str, bytes] = dict(initial or {})

    def exists(self, location: Location) -> bool:
        return os.fspath(location) in self._blobs

    def read(self, location: Location) -> bytes:
        key = os.fspath(location)
        if key not in self._blobs:
            raise FileNotFoundError(f"Nothing stored at {key}")
        return self._blobs[key]

    def write(self, location: Location, data: bytes) -> None:
        self._blobs[os.fspath(location)] = bytes(data)

    def delete(self, location: Location) -> bool:
        return self._blobs.pop(os.fspath(location), None) is not None
