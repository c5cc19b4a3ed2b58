"""Lookup cache for provider catalog entries (voices, avatars)."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field


@dataclass(slots=True)
class CatalogCache:
    """Process-wide cache of stable provider catalog lookups.

    Each key is loaded at most once; the first stored value wins and entries
    are never invalidated. Callers inject their own instance so tests can
    start from an empty cache.
    """

    _entries: dict[str, str] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def put(self, key: str, value: str) -> str:
        """Store ``value`` unless ``key`` is already present; return the kept value."""
        return self._entries.setdefault(key, value)

    async def get_or_load(self, key: str, loader: Callable[[], Awaitable[str]]) -> str:
        cached = self._entries.get(key)
        if cached is not None:
            return cached
        async with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                return cached
            return self.put(key, await loader())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
