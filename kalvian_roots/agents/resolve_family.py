"""Resolution of cross-references to the families they point to.

A reference is either an explicit family id ("{Korpi 6}") or a bare marker
("Pieni-Porkola") that only says a family exists. Explicit ids are looked up
directly; bare markers, and explicit ids that do not check out, are resolved
by searching the whole register for the person's birth date.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from logging import Logger
from typing import Any

from pydantic import ValidationError

from kalvian_roots.agents.match_reference import (
    SIGNAL_MARRIAGE_YEAR,
    MatchResult,
    ReferenceMatcher,
)
from kalvian_roots.config import settings
from kalvian_roots.errors import CorpusExhausted, ParseFailure, UnresolvedReference
from kalvian_roots.ingestion.interfaces import RecordParser, TextSource
from kalvian_roots.log import get_logger
from kalvian_roots.schemas import (
    Family,
    Person,
    ReferenceRole,
    is_valid_family_id,
    normalize_family_id,
)
from kalvian_roots.storage.cache import NetworkCache
from kalvian_roots.storage.names import NameEquivalenceStore, given_name


@dataclass
class ResolutionStatistics:
    """Counters of one resolver's work."""

    by_family_id: int = 0
    by_birth_date: int = 0
    absent: int = 0
    unresolved: int = 0
    parse_failures: int = 0
    learned_names: int = 0

    @property
    def total_resolved(self) -> int:
        return self.by_family_id + self.by_birth_date

    @property
    def total_attempts(self) -> int:
        return self.total_resolved + self.unresolved + self.parse_failures

    @property
    def success_rate(self) -> float:
        if not self.total_attempts:
            return 0.0
        return self.total_resolved / self.total_attempts


class FamilyResolver:
    """Locate the family a person's reference points to."""

    def __init__(
        self,
        text_source: TextSource,
        parser: RecordParser,
        names: NameEquivalenceStore | None = None,
        matcher: ReferenceMatcher | None = None,
        cache: NetworkCache | None = None,
        learn_threshold: float | None = None,
        logger: Logger | None = None,
    ):
        """Initialize the resolver.

        Args:
            text_source: Source of raw family blocks
            parser: Parser turning raw blocks into families
            names: Given-name equivalence store shared with the matcher
            matcher: Reference matcher (default: built on ``names``)
            cache: Network cache consulted for already parsed main families
            learn_threshold: Minimum similarity for learning a name pair (0-1)
            logger: Logger for resolution diagnostics
        """
        self.text_source = text_source
        self.parser = parser
        self.logger = logger or get_logger(__name__)
        self.names = names or (matcher.names if matcher else NameEquivalenceStore())
        self.matcher = matcher or ReferenceMatcher(self.names)
        self.cache = cache
        self.learn_threshold = (
            learn_threshold
            if learn_threshold is not None
            else settings.learn_similarity_threshold
        )
        self.statistics = ResolutionStatistics()

        # Memoized collaborator calls, keyed by normalized family id
        self._raw_texts: dict[str, asyncio.Future] = {}
        self._families: dict[str, asyncio.Future] = {}
        self._family_ids: dict[str, asyncio.Future] = {}

    # Public API

    async def resolve_origin(
        self, person: Person, home_family_id: str | None = None
    ) -> Family | None:
        """Resolve the family where a parent was born.

        Args:
            person: Parent of the family being assembled
            home_family_id: Family the person is printed in, never a candidate

        Returns:
            The origin family, or None if the person has no reference

        Raises:
            UnresolvedReference: The reference could not be matched
            ParseFailure: The referenced family could not be parsed
        """
        return await self._resolve(
            person, ReferenceRole.ORIGIN_OF_PARENT, person.as_child, home_family_id
        )

    async def resolve_result(self, married_child: Person) -> Family | None:
        """Resolve the family where a married child became a parent."""
        return await self._resolve(
            married_child, ReferenceRole.RESULT_OF_MARRIED_CHILD, married_child.as_parent, None
        )

    async def resolve_spouse_origin(
        self, married_child: Person, result_family: Family
    ) -> Family | None:
        """Resolve the family where a married child's spouse was born.

        The spouse's reference is the ``as_child`` marker printed on the
        spouse's parent line in the child's resulting family.
        """
        spouse = self.find_spouse_record(married_child, result_family)
        if spouse is None or not spouse.has_reference(origin=True):
            return None

        couple = result_family.find_couple_for_parent(spouse)
        marriage_date = spouse.marriage_date or married_child.best_marriage_date
        if couple is not None:
            marriage_date = couple.best_marriage_date or marriage_date
        searchable = spouse.model_copy(
            update={"spouse": spouse.spouse or married_child.name, "marriage_date": marriage_date}
        )
        return await self._resolve(
            searchable,
            ReferenceRole.ORIGIN_OF_SPOUSE,
            spouse.as_child,
            result_family.normalized_id,
        )

    def find_spouse_record(self, married_child: Person, result_family: Family) -> Person | None:
        """Find the spouse's parent line in a married child's resulting family."""
        located = self.matcher.matches(
            result_family,
            married_child,
            ReferenceRole.RESULT_OF_MARRIED_CHILD,
            explicit_reference=True,
        )
        if located.record is not None:
            return located.record.couple.partner_of(located.record.person)
        return result_family.find_spouse(given_name(married_child.name))

    async def load_family(self, family_id: str) -> Family | None:
        """Get a parsed family, memoized.

        Returns:
            The family, or None if the text source has no block for it

        Raises:
            ParseFailure: The block could not be parsed
        """
        key = normalize_family_id(family_id)
        return await self._shared(self._families, key, lambda: self._parse_family(key))

    async def raw_text(self, family_id: str) -> str | None:
        """Get a family's raw block, memoized."""
        key = normalize_family_id(family_id)
        return await self._shared(
            self._raw_texts, key, lambda: self.text_source.extract_raw_text(key)
        )

    def reset_statistics(self) -> None:
        self.statistics = ResolutionStatistics()

    # Resolution

    async def _resolve(
        self,
        person: Person,
        role: ReferenceRole,
        marker: str | None,
        home_family_id: str | None,
    ) -> Family | None:
        if not marker or not marker.strip():
            return None

        try:
            family = await self._resolve_marker(person, role, marker, home_family_id)
        except UnresolvedReference:
            self.statistics.unresolved += 1
            raise
        except ParseFailure:
            self.statistics.parse_failures += 1
            raise

        if family is None:
            self.statistics.absent += 1
        return family

    async def _resolve_marker(
        self,
        person: Person,
        role: ReferenceRole,
        marker: str,
        home_family_id: str | None,
    ) -> Family | None:
        reference = normalize_family_id(marker)

        if not is_valid_family_id(reference):
            self.logger.debug(
                "%s reference '%s' of %s has no family id, searching by birth date",
                role.value,
                marker,
                person.display_name,
            )
            try:
                return await self._search_by_birth_date(person, role, home_family_id)
            except CorpusExhausted as e:
                self.logger.info("No %s family for %s: %s", role.value, person.display_name, e)
                return None

        family = await self.load_family(reference)
        if family is not None:
            result = self.matcher.matches(family, person, role, explicit_reference=True)
            if result.confirmed:
                self._learn(person, result, explicit=True)
                self.statistics.by_family_id += 1
                self.logger.debug(
                    "Resolved %s of %s by id: %s", role.value, person.display_name, result
                )
                return family
            reason = f"{reference} does not match ({', '.join(result.reasons)})"
        else:
            reason = f"{reference} not found in source"

        self.logger.info(
            "Explicit %s reference of %s failed, searching by birth date: %s",
            role.value,
            person.display_name,
            reason,
        )
        try:
            return await self._search_by_birth_date(person, role, home_family_id)
        except CorpusExhausted as e:
            raise UnresolvedReference(person, role, f"{reason}; {e}") from e
        except UnresolvedReference as e:
            raise UnresolvedReference(person, role, f"{reason}; {e.reason}") from e

    async def _search_by_birth_date(
        self, person: Person, role: ReferenceRole, home_family_id: str | None
    ) -> Family:
        """Search every family of the register for the person's birth date.

        Raises:
            CorpusExhausted: No family text contains the birth date
            UnresolvedReference: Candidates exist but none is confirmed uniquely
        """
        birth_date = (person.birth_date or "").strip()
        if not birth_date:
            raise UnresolvedReference(person, role, "no birth date to search by")

        home = normalize_family_id(home_family_id) if home_family_id else None
        family_ids = [
            family_id
            for family_id in await self.family_ids()
            if normalize_family_id(family_id) != home
        ]
        texts = await asyncio.gather(*(self.raw_text(family_id) for family_id in family_ids))
        candidate_ids = [
            family_id for family_id, text in zip(family_ids, texts) if text and birth_date in text
        ]
        if not candidate_ids:
            raise CorpusExhausted(birth_date)

        candidates = await asyncio.gather(
            *(self._load_candidate(family_id) for family_id in candidate_ids)
        )
        results: list[tuple[Family, MatchResult]] = []
        for family in candidates:
            if family is None:
                continue
            results.append((family, self.matcher.matches(family, person, role)))

        confirmed = [(family, result) for family, result in results if result.confirmed]
        if not confirmed:
            summary = "; ".join(str(result) for _, result in results) or "no parsable candidate"
            raise UnresolvedReference(
                person, role, f"{len(candidate_ids)} candidates for {birth_date}: {summary}"
            )

        if len(confirmed) > 1:
            confirmed.sort(key=lambda pair: len(pair[1].signals), reverse=True)
            if len(confirmed[0][1].signals) == len(confirmed[1][1].signals):
                ids = ", ".join(result.family_id for _, result in confirmed)
                raise UnresolvedReference(
                    person, role, f"ambiguous between {ids} for {birth_date}"
                )

        family, result = confirmed[0]
        self._learn(person, result, explicit=False)
        self.statistics.by_birth_date += 1
        self.logger.debug(
            "Resolved %s of %s by birth date: %s", role.value, person.display_name, result
        )
        return family

    async def _load_candidate(self, family_id: str) -> Family | None:
        try:
            return await self.load_family(family_id)
        except ParseFailure as e:
            self.logger.warning("Skipping candidate %s: %s", family_id, e)
            return None

    # Learning

    def _learn(self, person: Person, result: MatchResult, explicit: bool) -> None:
        """Learn name variants confirmed by a corroborated match."""
        record = result.record
        if record is None or not (explicit or record.signals):
            return

        if not record.name_equivalent:
            self._learn_pair(given_name(person.name), given_name(record.person.name))

        # An explicit id vouches for the person, not for the spouse's name
        if record.spouse_names and SIGNAL_MARRIAGE_YEAR in record.signals:
            self._learn_pair(*record.spouse_names)

    def _learn_pair(self, name1: str, name2: str) -> None:
        similarity = self.names.similarity(name1, name2)
        if similarity < self.learn_threshold:
            self.logger.debug(
                "Not learning %s <-> %s, similarity %.2f too low", name1, name2, similarity
            )
            return
        if self.names.learn(name1, name2):
            self.statistics.learned_names += 1

    # Memoized collaborators

    async def _shared(
        self,
        futures: dict[str, asyncio.Future],
        key: str,
        factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Run ``factory`` once per key; concurrent callers share the call."""
        future = futures.get(key)
        if future is None or future.cancelled():
            future = asyncio.ensure_future(factory())
            futures[key] = future
        return await asyncio.shield(future)

    async def family_ids(self) -> list[str]:
        """Get every family id of the register, memoized."""
        return await self._shared(self._family_ids, "", self.text_source.list_all_family_ids)

    async def _parse_family(self, family_id: str) -> Family | None:
        if self.cache is not None:
            cached = await self.cache.fetch_main_family(family_id)
            if cached is not None:
                self.logger.debug("Using cached main family %s", family_id)
                return cached

        raw_text = await self.raw_text(family_id)
        if raw_text is None:
            return None

        try:
            family = await self.parser.parse(family_id, raw_text)
        except ValidationError as e:
            raise ParseFailure(family_id, e) from e

        warnings = family.validate_structure()
        if warnings:
            self.logger.debug("Family %s: %s", family_id, "; ".join(warnings))
        return family
