"""Memoization of completed family networks.

Entries are keyed by normalized family id and kept in memory, backed by a
pluggable ``NetworkStore``. Every mutation persists the full map.
"""

import asyncio
from logging import Logger

from kalvian_roots.errors import PersistenceError
from kalvian_roots.ingestion.interfaces import NetworkStore
from kalvian_roots.log import get_logger
from kalvian_roots.schemas import (
    CachedNetworkEntry,
    Family,
    FamilyNetwork,
    normalize_family_id,
)


class InMemoryNetworkStore:
    """Network cache backend that only lives as long as the process."""

    def __init__(self, entries: dict[str, CachedNetworkEntry] | None = None):
        self._entries: dict[str, CachedNetworkEntry] = dict(entries or {})
        self.save_count = 0

    def load(self, family_id: str) -> CachedNetworkEntry | None:
        return self._entries.get(normalize_family_id(family_id))

    def load_all(self) -> dict[str, CachedNetworkEntry]:
        return dict(self._entries)

    def save_all(self, entries: dict[str, CachedNetworkEntry]) -> None:
        self._entries = dict(entries)
        self.save_count += 1

    def clear(self) -> None:
        self._entries = {}


class NetworkCache:
    """Cache of completed family networks."""

    def __init__(self, store: NetworkStore | None = None, logger: Logger | None = None):
        """Initialize the cache.

        Args:
            store: Persistence backend (default: in-memory)
            logger: Logger for cache diagnostics
        """
        self.backend = store if store is not None else InMemoryNetworkStore()
        self.logger = logger or get_logger(__name__)
        self._entries: dict[str, CachedNetworkEntry] = {}
        self._write_lock = asyncio.Lock()
        self._loaded = False
        self.next_family_id: str | None = None

    async def _call_store(self, operation: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except PersistenceError:
            raise
        except OSError as e:
            raise PersistenceError(f"Network cache {operation} failed: {e}") from e

    async def load(self) -> None:
        """Load every persisted entry into memory.

        Restores ``next_family_id`` from the newest entry. Safe to call more
        than once.
        """
        if self._loaded:
            return
        async with self._write_lock:
            await self._load_locked()

    async def _load_locked(self) -> None:
        if self._loaded:
            return
        persisted = await self._call_store("load", self.backend.load_all)
        for family_id, entry in persisted.items():
            self._entries.setdefault(normalize_family_id(family_id), entry)
        if self._entries and self.next_family_id is None:
            newest = max(self._entries.items(), key=lambda item: item[1].cached_at)
            self.next_family_id = newest[0]
        self._loaded = True
        self.logger.debug("Loaded %d cached networks", len(self._entries))

    async def fetch(self, family_id: str) -> FamilyNetwork | None:
        """Get a cached network, checking memory first and then the backend."""
        key = normalize_family_id(family_id)
        entry = self._entries.get(key)
        if entry is not None:
            return entry.network

        if self._loaded:
            return None

        entry = await self._call_store("load", self.backend.load, key)
        if entry is None:
            return None
        # Promote into memory
        self._entries.setdefault(key, entry)
        self.logger.debug("Promoted cached network %s from backend", key)
        return self._entries[key].network

    async def fetch_main_family(self, family_id: str) -> Family | None:
        """Get a copy of the main family of a cached network."""
        network = await self.fetch(family_id)
        if network is None:
            return None
        return network.main_family.model_copy(deep=True)

    async def store(self, network: FamilyNetwork, extraction_time: float = 0.0) -> None:
        """Cache a completed network, replacing any entry for the same family."""
        key = network.family_id
        async with self._write_lock:
            await self._load_locked()
            entries = dict(self._entries)
            entries[key] = CachedNetworkEntry(
                network=network, extraction_time=max(extraction_time, 0.0)
            )
            await self._call_store("save", self.backend.save_all, entries)
            self._entries = entries
            self.next_family_id = key
        self.logger.info("Cached network %s (%.2fs)", key, extraction_time)

    async def delete(self, family_id: str) -> bool:
        """Remove one cached network.

        Returns:
            True if an entry was removed
        """
        key = normalize_family_id(family_id)
        async with self._write_lock:
            await self._load_locked()
            if key not in self._entries:
                return False
            entries = {k: v for k, v in self._entries.items() if k != key}
            await self._call_store("save", self.backend.save_all, entries)
            self._entries = entries
            if self.next_family_id == key:
                self.next_family_id = None
        self.logger.info("Deleted cached network %s", key)
        return True

    async def clear(self) -> None:
        """Remove every cached network, in memory and persisted."""
        async with self._write_lock:
            await self._call_store("clear", self.backend.clear)
            self._entries = {}
            self._loaded = True
            self.next_family_id = None
        self.logger.info("Cleared network cache")

    def is_cached(self, family_id: str) -> bool:
        """Check the in-memory view (complete after ``load()``)."""
        return normalize_family_id(family_id) in self._entries

    def cached_ids(self) -> list[str]:
        return sorted(self._entries)

    def entry(self, family_id: str) -> CachedNetworkEntry | None:
        return self._entries.get(normalize_family_id(family_id))

    @property
    def status_message(self) -> str:
        if not self._entries:
            return "No cached family networks"
        message = f"{len(self._entries)} cached family networks"
        if self.next_family_id:
            message += f", last stored: {self.next_family_id}"
        return message
