"""Assembly of a family network around one nuclear family.

The assembler walks every reference of the nuclear family in three stages
(parents, married children, spouses of married children) and collects the
resolved families into a ``FamilyNetwork``. ``NetworkService`` is the entry
point callers use: it checks the cache, coalesces concurrent requests and
stores finished networks.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from logging import Logger

from kalvian_roots.agents.match_reference import marriage_year
from kalvian_roots.agents.resolve_family import FamilyResolver
from kalvian_roots.config import settings
from kalvian_roots.errors import FamilyNotFound, ParseFailure, UnresolvedReference
from kalvian_roots.ingestion.interfaces import RecordParser, TextSource
from kalvian_roots.log import get_logger
from kalvian_roots.schemas import (
    Couple,
    Family,
    FamilyNetwork,
    NetworkStatus,
    Person,
    ReferenceRole,
    UnresolvedEntry,
    normalize_family_id,
)
from kalvian_roots.storage.cache import NetworkCache
from kalvian_roots.storage.names import NameEquivalenceStore


class AssemblyState(str, Enum):
    PENDING = "pending"
    RESOLVING_PARENTS = "resolving_parents"
    RESOLVING_CHILDREN = "resolving_children"
    RESOLVING_SPOUSES = "resolving_spouses"
    COMPLETE = "complete"
    PARTIALLY_COMPLETE = "partially_complete"


_TERMINAL_STATES = (AssemblyState.COMPLETE, AssemblyState.PARTIALLY_COMPLETE)


def _full_marriage_date(couple: Couple) -> str | None:
    """The couple's marriage date if it carries a four-digit year."""
    for date in (couple.full_marriage_date, couple.marriage_date):
        year = marriage_year(date)
        if year and len(year) == 4:
            return date
    return None


class NetworkAssembler:
    """Staged resolution of every reference of one nuclear family."""

    def __init__(
        self,
        resolver: FamilyResolver,
        max_parallel: int | None = None,
        logger: Logger | None = None,
    ):
        """Initialize the assembler.

        Args:
            resolver: Family resolver shared between runs
            max_parallel: Maximum concurrent resolutions within a stage
            logger: Logger for assembly diagnostics
        """
        self.resolver = resolver
        self.max_parallel = max_parallel or settings.max_parallel_resolutions
        self.logger = logger or get_logger(__name__)
        self.state = AssemblyState.PENDING
        self.transitions: list[tuple[AssemblyState, AssemblyState]] = []

    def _transition(self, state: AssemblyState) -> None:
        self.transitions.append((self.state, state))
        self.logger.debug("Assembly %s -> %s", self.state.value, state.value)
        self.state = state

    async def assemble(self, nuclear_family: Family) -> FamilyNetwork:
        """Resolve the references of a nuclear family into a network.

        The nuclear family itself is not modified; the network holds an
        enhanced copy.

        Args:
            nuclear_family: Parsed family to build the network around

        Returns:
            Network with status COMPLETE, or PARTIALLY_COMPLETE when some
            references need manual review
        """
        if self.state is not AssemblyState.PENDING and self.state not in _TERMINAL_STATES:
            raise RuntimeError(f"Assembly already running ({self.state.value})")
        if self.state in _TERMINAL_STATES:
            self._transition(AssemblyState.PENDING)

        family = nuclear_family.model_copy(deep=True)
        network = FamilyNetwork(main_family=family)
        semaphore = asyncio.Semaphore(self.max_parallel)
        home_id = family.normalized_id

        self._transition(AssemblyState.RESOLVING_PARENTS)
        parent_jobs = []
        for couple in family.couples:
            for parent in (couple.husband, couple.wife):
                self._fill_from_couple(parent, couple)
                parent_jobs.append(
                    (
                        parent,
                        ReferenceRole.ORIGIN_OF_PARENT,
                        parent.as_child,
                        lambda parent=parent: self.resolver.resolve_origin(parent, home_id),
                    )
                )
        await self._run_stage(network, semaphore, parent_jobs)

        self._transition(AssemblyState.RESOLVING_CHILDREN)
        married_children = family.married_children
        child_jobs = [
            (
                child,
                ReferenceRole.RESULT_OF_MARRIED_CHILD,
                child.as_parent,
                lambda child=child: self.resolver.resolve_result(child),
            )
            for child in married_children
        ]
        result_families = await self._run_stage(network, semaphore, child_jobs)
        for child, result_family in zip(married_children, result_families):
            if result_family is not None:
                self._enhance_from_result(child, result_family)

        self._transition(AssemblyState.RESOLVING_SPOUSES)
        spouse_jobs = []
        spouse_children = []
        for child, result_family in zip(married_children, result_families):
            if result_family is None:
                continue
            spouse = self.resolver.find_spouse_record(child, result_family)
            if spouse is None:
                continue
            spouse_children.append(child)
            spouse_jobs.append(
                (
                    spouse,
                    ReferenceRole.ORIGIN_OF_SPOUSE,
                    spouse.as_child,
                    lambda child=child, result=result_family: self.resolver.resolve_spouse_origin(
                        child, result
                    ),
                )
            )
        spouse_families = await self._run_stage(network, semaphore, spouse_jobs)
        for child, job, origin in zip(spouse_children, spouse_jobs, spouse_families):
            if origin is not None:
                child.enhance_with_spouse_data(
                    birth_date=job[0].birth_date, parents_family_id=origin.normalized_id
                )

        if network.unresolved:
            network.status = NetworkStatus.PARTIALLY_COMPLETE
            self._transition(AssemblyState.PARTIALLY_COMPLETE)
        else:
            network.status = NetworkStatus.COMPLETE
            self._transition(AssemblyState.COMPLETE)

        self.logger.info(network.summary())
        return network

    async def _run_stage(
        self,
        network: FamilyNetwork,
        semaphore: asyncio.Semaphore,
        jobs: Iterable[
            tuple[Person, ReferenceRole, str | None, Callable[[], Awaitable[Family | None]]]
        ],
    ) -> list[Family | None]:
        """Run one stage's resolutions concurrently and record their outcome."""

        async def attempt(person, role, marker, resolve):
            async with semaphore:
                try:
                    family = await resolve()
                except UnresolvedReference as e:
                    self.logger.warning("Needs review: %s", e)
                    network.unresolved.append(
                        UnresolvedEntry(
                            person_key=e.person.person_key,
                            person_name=e.person.display_name,
                            role=role,
                            reference=marker,
                            reason=e.reason,
                        )
                    )
                    return None
                except ParseFailure as e:
                    self.logger.error(
                        "Parse failure resolving %s of %s: %s", role.value, person.display_name, e
                    )
                    network.unresolved.append(
                        UnresolvedEntry(
                            person_key=person.person_key,
                            person_name=person.display_name,
                            role=role,
                            reference=marker,
                            reason=str(e),
                            parse_failure=True,
                        )
                    )
                    return None

            if family is not None:
                network.add_resolution(person, role, family)
            return family

        return list(await asyncio.gather(*(attempt(*job) for job in jobs)))

    @staticmethod
    def _fill_from_couple(parent: Person, couple: Couple) -> None:
        partner = couple.partner_of(parent)
        if partner is not None and not parent.spouse:
            parent.spouse = partner.display_name
        if not parent.marriage_date and couple.marriage_date:
            parent.marriage_date = couple.marriage_date

    def _enhance_from_result(self, child: Person, result_family: Family) -> None:
        located = self.resolver.matcher.matches(
            result_family,
            child,
            ReferenceRole.RESULT_OF_MARRIED_CHILD,
            explicit_reference=True,
        )
        if located.record is None:
            self.logger.debug(
                "%s not located in %s, no enhancement", child.display_name, result_family.family_id
            )
            return

        record = located.record
        child.enhance_with_result_data(
            death_date=record.person.death_date,
            full_marriage_date=_full_marriage_date(record.couple),
        )
        spouse = record.couple.partner_of(record.person)
        if spouse is not None:
            child.enhance_with_spouse_data(birth_date=spouse.birth_date)


@dataclass
class _Flight:
    task: asyncio.Task
    waiters: int = 0


class NetworkService:
    """Entry point for requesting family networks."""

    def __init__(
        self,
        text_source: TextSource,
        parser: RecordParser,
        cache: NetworkCache | None = None,
        names: NameEquivalenceStore | None = None,
        resolver: FamilyResolver | None = None,
        max_parallel: int | None = None,
        logger: Logger | None = None,
    ):
        """Initialize the service.

        Args:
            text_source: Source of raw family blocks
            parser: Parser turning raw blocks into families
            cache: Network cache (default: in-memory)
            names: Given-name equivalence store
            resolver: Family resolver (default: built from the collaborators)
            max_parallel: Maximum concurrent resolutions within a stage
            logger: Logger for service diagnostics
        """
        self.logger = logger or get_logger(__name__)
        self.cache = cache if cache is not None else NetworkCache()
        self.resolver = resolver or FamilyResolver(
            text_source, parser, names=names, cache=self.cache
        )
        self.max_parallel = max_parallel
        self._in_flight: dict[str, _Flight] = {}

    async def get_network(self, family_id: str) -> FamilyNetwork:
        """Get the network of a family, from cache or by assembling it.

        Concurrent calls for the same family share one assembly.

        Raises:
            FamilyNotFound: The text source has no block for the family
            ParseFailure: The family's block could not be parsed
            PersistenceError: The cache backend failed
        """
        key = normalize_family_id(family_id)
        flight = self._in_flight.get(key)
        if flight is None:
            cached = await self.cache.fetch(key)
            if cached is None:
                # An assembly may have landed while the backend was read
                entry = self.cache.entry(key)
                cached = entry.network if entry is not None else None
            if cached is not None:
                self.logger.debug("Cache hit for %s", key)
                return cached
            flight = self._in_flight.get(key)

        if flight is None:
            flight = _Flight(task=asyncio.ensure_future(self._build(key)))
            self._in_flight[key] = flight
            flight.task.add_done_callback(lambda _, key=key, flight=flight: self._land(key, flight))
        else:
            self.logger.debug("Joining in-flight assembly of %s", key)

        flight.waiters += 1
        try:
            return await asyncio.shield(flight.task)
        finally:
            flight.waiters -= 1
            if flight.waiters == 0 and not flight.task.done():
                self.logger.info("All requests for %s cancelled, stopping assembly", key)
                flight.task.cancel()

    def _land(self, key: str, flight: _Flight) -> None:
        if self._in_flight.get(key) is flight:
            del self._in_flight[key]

    async def _build(self, key: str) -> FamilyNetwork:
        start = time.perf_counter()
        family = await self.resolver.load_family(key)
        if family is None:
            raise FamilyNotFound(key)

        assembler = NetworkAssembler(
            self.resolver, max_parallel=self.max_parallel, logger=self.logger
        )
        network = await assembler.assemble(family)
        elapsed = time.perf_counter() - start
        await self.cache.store(network, elapsed)
        return network

    async def prefetch(self, family_ids: Iterable[str]) -> list[str]:
        """Assemble and cache several networks.

        Returns:
            Ids of the networks now cached
        """
        ids = [normalize_family_id(family_id) for family_id in family_ids]
        outcomes = await asyncio.gather(
            *(self.get_network(family_id) for family_id in ids), return_exceptions=True
        )
        ready = []
        for family_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, BaseException):
                self.logger.warning("Prefetch of %s failed: %s", family_id, outcome)
            else:
                ready.append(family_id)
        return ready

    async def next_uncached_family_id(self, after: str | None = None) -> str | None:
        """Find the next family in register order without a cached network.

        Args:
            after: Start looking after this family id (default: the cache's
                last stored id)
        """
        await self.cache.load()
        family_ids = [normalize_family_id(f) for f in await self.resolver.family_ids()]
        anchor = normalize_family_id(after) if after else self.cache.next_family_id
        start = family_ids.index(anchor) + 1 if anchor in family_ids else 0
        for family_id in family_ids[start:]:
            if not self.cache.is_cached(family_id):
                return family_id
        return None
