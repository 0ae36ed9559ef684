"""Pydantic schemas for family records and family networks."""

from kalvian_roots.schemas.family import (
    Couple,
    Family,
    Person,
    is_valid_family_id,
    normalize_family_id,
)
from kalvian_roots.schemas.network import (
    CachedNetworkEntry,
    FamilyNetwork,
    NetworkStatus,
    ReferenceRole,
    ResolvedLink,
    UnresolvedEntry,
)

__all__ = [
    "Person",
    "Couple",
    "Family",
    "FamilyNetwork",
    "CachedNetworkEntry",
    "NetworkStatus",
    "ReferenceRole",
    "ResolvedLink",
    "UnresolvedEntry",
    "is_valid_family_id",
    "normalize_family_id",
]
