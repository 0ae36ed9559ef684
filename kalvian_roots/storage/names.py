"""Given-name equivalence classes for Finnish register names.

Names like Liisa and Elisabet, or Juho and Johan, refer to the same person in
different parts of the register. The store keeps equivalence classes as a
union-find structure, seeded with common variants and growing as the
resolver learns new pairs.
"""

import threading
import unicodedata
from collections.abc import Iterable
from logging import Logger

from rapidfuzz import fuzz

from kalvian_roots.log import get_logger

BUILT_IN_EQUIVALENCES: list[set[str]] = [
    {"liisa", "elisabet", "lisa", "elisa"},
    {"johan", "juho", "johannes", "juhana"},
    {"maria", "maija", "mari"},
    {"erik", "eero", "erkki"},
    {"kristina", "kirstin", "kirsti"},
    {"henrik", "heikki", "henrikki"},
    {"margareta", "margeta", "marketta"},
    {"katharina", "katariina", "kaarina"},
    {"gertrud", "kerttuli", "kerttu"},
]


def normalize_name(name: str) -> str:
    """Lowercase, trim and fold diacritics (ä -> a, ö -> o, å -> a)."""
    decomposed = unicodedata.normalize("NFKD", name.strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def given_name(full_name: str) -> str:
    """Extract the given name from a printed name.

    "Matti Korpi" -> "Matti", "Brita Matint." -> "Brita"
    """
    parts = full_name.split()
    return parts[0] if parts else ""


def patronymic(full_name: str) -> str | None:
    """Extract a patronymic ("Erikinp.", "Matint.") from a printed name."""
    parts = full_name.split()
    if len(parts) >= 2 and (parts[1].endswith("p.") or parts[1].endswith("t.")):
        return parts[1]
    return None


class NameEquivalenceStore:
    """Union-find over normalized given names."""

    def __init__(
        self,
        seed_built_ins: bool = True,
        logger: Logger | None = None,
    ):
        """Initialize the store.

        Args:
            seed_built_ins: Start with the common Finnish name variants
            logger: Logger for learning diagnostics
        """
        self.logger = logger or get_logger(__name__)
        self._parent: dict[str, str] = {}
        self._size: dict[str, int] = {}
        self._lock = threading.Lock()
        self.learned_count = 0

        if seed_built_ins:
            self.import_classes(BUILT_IN_EQUIVALENCES, learned=False)

    # Union-find primitives; callers hold the lock for writes.

    def _find(self, name: str, compress: bool = True) -> str:
        root = name
        while self._parent.get(root, root) != root:
            root = self._parent[root]
        if not compress:
            return root
        # Path compression
        while name != root:
            next_name = self._parent[name]
            self._parent[name] = root
            name = next_name
        return root

    def _union(self, name1: str, name2: str) -> bool:
        for name in (name1, name2):
            if name not in self._parent:
                self._parent[name] = name
                self._size[name] = 1

        root1, root2 = self._find(name1), self._find(name2)
        if root1 == root2:
            return False
        if self._size[root1] < self._size[root2]:
            root1, root2 = root2, root1
        self._parent[root2] = root1
        self._size[root1] += self._size.pop(root2)
        return True

    # Public API

    def are_equivalent(self, name1: str, name2: str) -> bool:
        """Check whether two given names refer to the same name.

        Identical names (ignoring case and diacritics) are always equivalent;
        otherwise both must belong to the same known class.
        """
        normalized1 = normalize_name(name1)
        normalized2 = normalize_name(name2)
        if not normalized1 or not normalized2:
            return False
        if normalized1 == normalized2:
            return True
        if normalized1 not in self._parent or normalized2 not in self._parent:
            return False
        return self._find(normalized1, compress=False) == self._find(normalized2, compress=False)

    def learn(self, name1: str, name2: str) -> bool:
        """Merge the classes of two names.

        Returns:
            True if the classes were separate before
        """
        normalized1 = normalize_name(name1)
        normalized2 = normalize_name(name2)
        if not normalized1 or not normalized2 or normalized1 == normalized2:
            return False

        with self._lock:
            merged = self._union(normalized1, normalized2)
            if merged:
                self.learned_count += 1

        if merged:
            self.logger.info("Learned name equivalence: %s <-> %s", normalized1, normalized2)
        return merged

    def equivalents(self, name: str) -> set[str]:
        """Get every known equivalent of a name, the name itself included."""
        normalized = normalize_name(name)
        if normalized not in self._parent:
            return {normalized}
        root = self._find(normalized, compress=False)
        return {
            member for member in list(self._parent) if self._find(member, compress=False) == root
        }

    def classes(self) -> list[set[str]]:
        """Get all equivalence classes with more than one member."""
        groups: dict[str, set[str]] = {}
        for member in list(self._parent):
            groups.setdefault(self._find(member, compress=False), set()).add(member)
        return [group for group in groups.values() if len(group) > 1]

    def import_classes(self, groups: Iterable[Iterable[str]], learned: bool = True) -> None:
        """Merge whole groups of names, e.g. classes loaded from storage."""
        with self._lock:
            for group in groups:
                members = [normalize_name(name) for name in group if normalize_name(name)]
                for other in members[1:]:
                    if self._union(members[0], other) and learned:
                        self.learned_count += 1

    def similarity(self, name1: str, name2: str) -> float:
        """Spelling similarity of two names in 0..1."""
        return fuzz.ratio(normalize_name(name1), normalize_name(name2)) / 100.0
