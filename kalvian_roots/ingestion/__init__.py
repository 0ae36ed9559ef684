"""Interfaces of the register text source, record parser and cache backend."""

from kalvian_roots.ingestion.interfaces import NetworkStore, RecordParser, TextSource

__all__ = ["TextSource", "RecordParser", "NetworkStore"]
