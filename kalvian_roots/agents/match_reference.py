"""Matching of a person's cross-reference against a candidate family.

A reference is trusted on the person's birth date printed in the candidate
family, in the position the reference role implies. Without an explicit
family id the birth date alone is not enough and a secondary signal (spouse
name or marriage year) must agree.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from logging import Logger

from kalvian_roots.config import settings
from kalvian_roots.log import get_logger
from kalvian_roots.schemas import Couple, Family, Person, ReferenceRole
from kalvian_roots.storage.names import NameEquivalenceStore, given_name

SIGNAL_SPOUSE_NAME = "spouse name"
SIGNAL_MARRIAGE_YEAR = "marriage year"

_FULL_YEAR = re.compile(r"(\d{4})\s*$")
_SHORT_YEAR = re.compile(r"(?:^|\D)(\d{2})\s*$")


def marriage_year(date: str | None) -> str | None:
    """Extract the year of a printed marriage date.

    "14.10.1773" -> "1773", "1773" -> "1773", "∞ 73" -> "73"
    """
    if not date:
        return None
    full = _FULL_YEAR.search(date)
    if full:
        return full.group(1)
    short = _SHORT_YEAR.search(date)
    if short:
        return short.group(1)
    return None


def marriage_years_match(date1: str | None, date2: str | None) -> bool:
    """Compare two marriage dates by year.

    A 2-digit year matches the last two digits of a full year; full years
    must be equal.
    """
    year1 = marriage_year(date1)
    year2 = marriage_year(date2)
    if not year1 or not year2:
        return False
    if len(year1) == len(year2):
        return year1 == year2
    return year1[-2:] == year2[-2:]


class MatchStatus(str, Enum):
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    AMBIGUOUS = "ambiguous"


@dataclass
class CandidateRecord:
    """A person line of a candidate family carrying the birth date."""

    person: Person
    couple: Couple
    as_child: bool
    name_score: float
    name_equivalent: bool
    signals: list[str] = field(default_factory=list)
    spouse_names: tuple[str, str] | None = None


@dataclass
class MatchResult:
    """Outcome of matching one reference against one family."""

    status: MatchStatus
    family_id: str
    role: ReferenceRole
    record: CandidateRecord | None = None
    birth_date_records: int = 0
    reasons: list[str] = field(default_factory=list)

    @property
    def confirmed(self) -> bool:
        return self.status is MatchStatus.CONFIRMED

    @property
    def signals(self) -> list[str]:
        return self.record.signals if self.record else []

    def __str__(self) -> str:
        reasons_str = ", ".join(self.reasons)
        return f"{self.family_id} [{self.status.value}] ({reasons_str})"


class ReferenceMatcher:
    """Decide whether a candidate family is the one a reference points to."""

    def __init__(
        self,
        names: NameEquivalenceStore | None = None,
        name_threshold: float | None = None,
        logger: Logger | None = None,
    ):
        """Initialize the matcher.

        Args:
            names: Given-name equivalence store
            name_threshold: Minimum spelling similarity for a variant name (0-1)
            logger: Logger for match diagnostics
        """
        self.names = names or NameEquivalenceStore()
        self.name_threshold = (
            name_threshold if name_threshold is not None else settings.name_similarity_threshold
        )
        self.logger = logger or get_logger(__name__)

    def matches(
        self,
        candidate: Family,
        person: Person,
        role: ReferenceRole,
        *,
        explicit_reference: bool = False,
    ) -> MatchResult:
        """Match a person's reference against a candidate family.

        Args:
            candidate: Family the reference may point to
            person: Person carrying the reference
            role: Which reference of the person is matched
            explicit_reference: The reference named the candidate's family id

        Returns:
            MatchResult with the matched record and the signals that held
        """
        result = MatchResult(
            status=MatchStatus.REJECTED, family_id=candidate.normalized_id, role=role
        )

        if not person.birth_date or not person.birth_date.strip():
            result.reasons.append("person has no birth date")
            return result

        records = self._birth_date_records(candidate, person, role)
        result.birth_date_records = len(records)
        if not records:
            result.reasons.append(f"no record born {person.birth_date} in {role.value} position")
            return result

        for record in records:
            self._collect_signals(record, person)

        if len(records) == 1:
            record = records[0]
            result.record = record
            result.reasons.append(f"birth date {person.birth_date}")
            result.reasons.extend(record.signals)
            if explicit_reference or record.signals:
                result.status = MatchStatus.CONFIRMED
            else:
                result.status = MatchStatus.AMBIGUOUS
                result.reasons.append("birth date only, no secondary signal")
            return result

        # Several records share the birth date: secondary signals must single one out
        signalled = [record for record in records if record.signals]
        if len(signalled) == 1:
            result.record = signalled[0]
            result.status = MatchStatus.CONFIRMED
            result.reasons.append(
                f"birth date {person.birth_date} on {len(records)} records, narrowed by "
                + ", ".join(signalled[0].signals)
            )
        else:
            result.status = MatchStatus.AMBIGUOUS
            result.reasons.append(
                f"{len(records)} records born {person.birth_date}, "
                f"{len(signalled)} with secondary signals"
            )
        return result

    def _birth_date_records(
        self, candidate: Family, person: Person, role: ReferenceRole
    ) -> list[CandidateRecord]:
        if role.is_origin:
            records = self._child_records(candidate, person)
            if not records:
                records = self._parent_records(candidate, person)
            return records
        return self._parent_records(candidate, person)

    def _child_records(self, candidate: Family, person: Person) -> list[CandidateRecord]:
        records = []
        for couple in candidate.couples:
            for child in couple.children:
                record = self._plausible_record(child, couple, person, as_child=True)
                if record:
                    records.append(record)
        return records

    def _parent_records(self, candidate: Family, person: Person) -> list[CandidateRecord]:
        records = []
        for couple in candidate.couples:
            for parent in (couple.husband, couple.wife):
                record = self._plausible_record(parent, couple, person, as_child=False)
                if record:
                    records.append(record)
        return records

    def _plausible_record(
        self, line: Person, couple: Couple, person: Person, as_child: bool
    ) -> CandidateRecord | None:
        if not line.birth_date or line.birth_date.strip() != person.birth_date.strip():
            return None
        record_name = given_name(line.name)
        person_name = given_name(person.name)
        equivalent = self.names.are_equivalent(record_name, person_name)
        score = 1.0 if equivalent else self.names.similarity(record_name, person_name)
        if not equivalent and score < self.name_threshold:
            self.logger.debug(
                "Birth date %s matches %s but name differs from %s (%.2f)",
                person.birth_date,
                line.name,
                person.name,
                score,
            )
            return None
        return CandidateRecord(
            person=line,
            couple=couple,
            as_child=as_child,
            name_score=score,
            name_equivalent=equivalent,
        )

    def _collect_signals(self, record: CandidateRecord, person: Person) -> None:
        if record.as_child:
            record_spouse = record.person.spouse
            record_marriage = record.person.best_marriage_date
        else:
            partner = record.couple.partner_of(record.person)
            record_spouse = partner.name if partner else None
            record_marriage = record.couple.best_marriage_date or record.person.best_marriage_date

        if person.spouse and record_spouse:
            spouse1 = given_name(person.spouse)
            spouse2 = given_name(record_spouse)
            if self.names.are_equivalent(spouse1, spouse2):
                record.signals.append(SIGNAL_SPOUSE_NAME)
            else:
                record.spouse_names = (spouse1, spouse2)

        if marriage_years_match(person.best_marriage_date, record_marriage):
            record.signals.append(SIGNAL_MARRIAGE_YEAR)
