"""Collaborators consumed by the family web core.

Reading the register file and turning a raw family block into a structured
``Family`` (an AI model call) live outside this package; they are plugged in
through these protocols.
"""

from typing import Protocol, runtime_checkable

from kalvian_roots.schemas import CachedNetworkEntry, Family


@runtime_checkable
class TextSource(Protocol):
    """Source of raw printed family blocks."""

    async def extract_raw_text(self, family_id: str) -> str | None:
        """Return the raw block of a family, or None if it is not in the source."""
        ...

    async def list_all_family_ids(self) -> list[str]:
        """Return every family id of the source in printed order."""
        ...


@runtime_checkable
class RecordParser(Protocol):
    """Turns a raw family block into a structured Family.

    Implementations raise ``ParseFailure`` when the text cannot be parsed.
    """

    async def parse(self, family_id: str, raw_text: str) -> Family:
        ...


@runtime_checkable
class NetworkStore(Protocol):
    """Persistence backend of the network cache.

    The cache always persists its full map after a mutation.
    """

    def load(self, family_id: str) -> CachedNetworkEntry | None:
        ...

    def load_all(self) -> dict[str, CachedNetworkEntry]:
        ...

    def save_all(self, entries: dict[str, CachedNetworkEntry]) -> None:
        ...

    def clear(self) -> None:
        ...
