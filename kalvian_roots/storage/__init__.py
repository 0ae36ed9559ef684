"""Storage layer: network cache, its backends and name equivalences."""

from kalvian_roots.storage.cache import InMemoryNetworkStore, NetworkCache
from kalvian_roots.storage.names import NameEquivalenceStore
from kalvian_roots.storage.sqlite import SQLiteNetworkStore

__all__ = ["NetworkCache", "InMemoryNetworkStore", "SQLiteNetworkStore", "NameEquivalenceStore"]
