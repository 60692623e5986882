"""
Verrous par agrégat / Per-aggregate locks.
Sérialise les écritures sur un même contrat ou utilisateur dans le processus.
Serializes writes on the same contract or user within the process.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager


class LockTimeout(Exception):
    """Verrou non obtenu dans le délai / Lock not acquired in time."""


class KeyedLocks:
    """Un asyncio.Lock par clé, libéré quand plus personne ne le tient / One asyncio.Lock per key."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, *keys: str):
        """Acquérir les clés dans l'ordre donné / Acquire keys in the given order.

        L'ordre est imposé par l'appelant (utilisateur puis contrat).
        Raises LockTimeout if any key is not acquired within the timeout.
        """
        held: list[asyncio.Lock] = []
        try:
            for key in keys:
                lock = self._lock_for(key)
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=self.timeout)
                except asyncio.TimeoutError:
                    raise LockTimeout(key) from None
                held.append(lock)
            yield
        finally:
            for lock in reversed(held):
                lock.release()
