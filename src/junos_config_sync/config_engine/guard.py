"""Read serialization guard for read-then-allocate sequences."""
import asyncio


class ReadGuard:
    """Mutex held while a handler reads device state and derives identifiers
    from it, so two operations on one device never allocate from the same
    snapshot.

    ConfigEngine keeps one per device id and hands it to every session it
    opens for that device.
    """

    def __init__(self):
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> "ReadGuard":
        await self._lock.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._lock.release()
        return False
