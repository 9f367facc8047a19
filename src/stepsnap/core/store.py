# src/stepsnap/core/store.py
"""Recovery store: snapshot persistence over a transport and a codec.

The store issues whole-snapshot reads and writes only. There is no
append, no partial update and no locking: exactly one writer per
location is assumed, and concurrent runs against the same location
must be serialized by the caller.
"""

from typing import Any

from stepsnap.contracts import Snapshot
from stepsnap.core.awaitables import resolve
from stepsnap.core.codec import Codec
from stepsnap.core.transport import DeletableTransport, Location, Transport


class RecoveryStore:
    """Loads and saves snapshots at one location.

    Usage:
        store = RecoveryStore(Path(".recovery"), FilesystemTransport(), PickleCodec())

        if await store.exists():
            raw = await store.load()
        await store.save(snapshot)
    """

    def __init__(self, location: Location, transport: Transport, codec: Codec) -> None:
        """Initialize store.

        Args:
            location: Where the snapshot lives (interpreted by the transport)
            transport: Byte transport capability
            codec: Value codec capability
        """
        self.location = location
        self._transport = transport
        self._codec = codec

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def codec(self) -> Codec:
        return self._codec

    async def exists(self) -> bool:
        """Check whether a snapshot is stored.

        Never raises for a missing location; I/O faults propagate.
        """
        return bool(await resolve(self._transport.exists(self.location)))

    async def read(self) -> Any:
        """Read and decode the stored snapshot without an existence check.

        Returns the decoded value as-is, which may be any value the codec
        produced (including falsy ones). Interpreting it is the caller's
        job.
        """
        data = await resolve(self._transport.read(self.location))
        return self._codec.decode(data)

    async def load(self) -> Any:
        """Read and decode the stored snapshot if one exists.

        Returns:
            Decoded value, or None if nothing is stored (no read is issued)
        """
        if not await self.exists():
            return None
        return await self.read()

    async def save(self, snapshot: Snapshot) -> None:
        """Encode the full snapshot and replace the stored content."""
        data = self._codec.encode(snapshot.to_dict())
        await resolve(self._transport.write(self.location, data))

    async def delete(self) -> bool:
        """Remove the stored snapshot.

        Returns:
            True if a snapshot was deleted, False if nothing was stored

        Raises:
            NotImplementedError: If the transport cannot delete
        """
        if not isinstance(self._transport, DeletableTransport):
            raise NotImplementedError(
                f"{type(self._transport).__name__} does not support delete()"
            )
        return bool(await resolve(self._transport.delete(self.location)))

    def __repr__(self) -> str:
        return (
            f"RecoveryStore(location={self.location!s}, "
            f"transport={type(self._transport).__name__}, "
            f"codec={type(self._codec).__name__})"
        )
