"""Storage-agnostic interface for cached analysis results.

Implementations may sit on any store (files, SQLite, Redis...). Only
``get`` and ``set`` are required; ``invalidate`` and ``clear`` default to
no-ops for stores that cannot support them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from reportcard.domain.models import CacheEntry


class ResultCache(ABC):
    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None: ...

    @abstractmethod
    async def set(self, key: str, entry: CacheEntry) -> None:
        """Store ``entry`` under ``key``, replacing anything already there."""

    async def invalidate(self, key: str) -> None:
        return None

    async def clear(self) -> None:
        return None
