"""Per-key asyncio locks used to serialize events for the same call."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, AsyncIterator

logger = logging.getLogger(__name__)


class _KeyedEntry:
    """A lock plus the number of tasks holding or waiting on it."""

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class KeyedLock:
    """
    Registry of asyncio locks keyed by string.

    Entries are created on first use and dropped once no task holds or waits
    for them, so the registry only grows with the number of calls in flight.
    """

    def __init__(self):
        self._entries: Dict[str, _KeyedEntry] = {}

    @asynccontextmanager
    async def acquire(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        entry = self._entries.get(key)
        if entry is None:
            entry = _KeyedEntry()
            self._entries[key] = entry
        entry.users += 1

        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    def is_locked(self, key: str) -> bool:
        """Whether a task currently holds the lock for ``key``."""
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def __len__(self) -> int:
        return len(self._entries)
