"""Exception types raised while resolving a family web."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from kalvian_roots.schemas import Person, ReferenceRole


class KalvianRootsError(Exception):
    """Base exception for family web failures."""


class UnresolvedReference(KalvianRootsError):
    """A cross-reference existed but could not be matched with confidence.

    Non-fatal: the assembler records it and keeps going.
    """

    def __init__(self, person: Person, role: ReferenceRole, reason: str = ""):
        self.person = person
        self.role = role
        self.reason = reason
        message = f"Unresolved {role.value} reference for {person.display_name}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ParseFailure(KalvianRootsError):
    """The record parser could not turn a family's raw text into a Family."""

    def __init__(self, family_id: str, cause: BaseException | str | None = None):
        self.family_id = family_id
        self.cause = cause
        message = f"Failed to parse family {family_id}"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class CorpusExhausted(KalvianRootsError):
    """A corpus-wide birth date search found no candidate family."""

    def __init__(self, birth_date: str):
        self.birth_date = birth_date
        super().__init__(f"No families found containing birth date {birth_date}")


class FamilyNotFound(KalvianRootsError):
    """The text source holds no block for the requested family id."""

    def __init__(self, family_id: str):
        self.family_id = family_id
        super().__init__(f"Family '{family_id}' not found in source text")


class PersistenceError(KalvianRootsError):
    """The network cache backend failed to read or write."""
