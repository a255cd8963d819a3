"""KeyedStore — lock-guarded in-process map for live runtime state.

Used for state that cannot live in the durable store: live backend handles
(for cancellation) and backend conversation sessions.  Instances are
injected into their owners rather than held as module globals.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")


class KeyedStore(Generic[T]):
    """Async get/set/delete map serialised by an :class:`asyncio.Lock`."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> T | None:
        async with self._lock:
            return self._items.get(key)

    async def set(self, key: str, value: T) -> T | None:
        """Store *value* under *key*, returning the value it replaced."""
        async with self._lock:
            previous = self._items.get(key)
            self._items[key] = value
            return previous

    async def pop(self, key: str) -> T | None:
        async with self._lock:
            return self._items.pop(key, None)

    async def delete_if(self, key: str, value: T) -> bool:
        """Remove *key* only while it still maps to *value*.

        Lets a finishing owner clean up without evicting a newer value
        stored by a later writer.
        """
        async with self._lock:
            if self._items.get(key) is value:
                del self._items[key]
                return True
            return False

    async def keys(self) -> list[str]:
        async with self._lock:
            return list(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)
