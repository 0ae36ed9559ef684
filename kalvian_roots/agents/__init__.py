"""Agents resolving cross-references and assembling family networks."""

from kalvian_roots.agents.assemble_network import AssemblyState, NetworkAssembler, NetworkService
from kalvian_roots.agents.match_reference import MatchResult, MatchStatus, ReferenceMatcher
from kalvian_roots.agents.resolve_family import FamilyResolver, ResolutionStatistics

__all__ = [
    "ReferenceMatcher",
    "MatchResult",
    "MatchStatus",
    "FamilyResolver",
    "ResolutionStatistics",
    "NetworkAssembler",
    "AssemblyState",
    "NetworkService",
]
