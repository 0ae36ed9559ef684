"""Pydantic schemas for a resolved family web and its cache entries."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from kalvian_roots.schemas.family import Family, Person, normalize_family_id


class ReferenceRole(str, Enum):
    """Which cross-reference of a person is being resolved."""

    ORIGIN_OF_PARENT = "origin_of_parent"
    ORIGIN_OF_SPOUSE = "origin_of_spouse"
    RESULT_OF_MARRIED_CHILD = "result_of_married_child"

    @property
    def is_origin(self) -> bool:
        return self is not ReferenceRole.RESULT_OF_MARRIED_CHILD


class NetworkStatus(str, Enum):
    COMPLETE = "complete"
    PARTIALLY_COMPLETE = "partially_complete"


class ResolvedLink(BaseModel):
    """A person whose reference resolved to a family of the network."""

    person_key: str
    person_name: str
    role: ReferenceRole
    family_id: str


class UnresolvedEntry(BaseModel):
    """A reference that needs manual review."""

    person_key: str
    person_name: str
    role: ReferenceRole
    reference: str | None = None
    reason: str = ""
    parse_failure: bool = False


class FamilyNetwork(BaseModel):
    """A nuclear family plus the families its references resolve to.

    The related families are non-recursive: references printed inside them
    are not followed.
    """

    main_family: Family
    parent_origin_families: dict[str, Family] = Field(
        default_factory=dict, description="Families where main family parents were children"
    )
    child_result_families: dict[str, Family] = Field(
        default_factory=dict, description="Families where married children are parents"
    )
    spouse_origin_families: dict[str, Family] = Field(
        default_factory=dict, description="Families where children's spouses were children"
    )
    links: list[ResolvedLink] = Field(default_factory=list)
    unresolved: list[UnresolvedEntry] = Field(default_factory=list)
    status: NetworkStatus = NetworkStatus.COMPLETE

    @property
    def family_id(self) -> str:
        return normalize_family_id(self.main_family.family_id)

    @property
    def needs_review(self) -> bool:
        return self.status is NetworkStatus.PARTIALLY_COMPLETE

    @property
    def total_resolved_families(self) -> int:
        return (
            1
            + len(self.parent_origin_families)
            + len(self.child_result_families)
            + len(self.spouse_origin_families)
        )

    @property
    def all_families(self) -> list[Family]:
        families = [self.main_family]
        families.extend(self.parent_origin_families.values())
        families.extend(self.child_result_families.values())
        families.extend(self.spouse_origin_families.values())
        return families

    def mapping_for(self, role: ReferenceRole) -> dict[str, Family]:
        if role is ReferenceRole.ORIGIN_OF_PARENT:
            return self.parent_origin_families
        if role is ReferenceRole.RESULT_OF_MARRIED_CHILD:
            return self.child_result_families
        return self.spouse_origin_families

    def add_resolution(self, person: Person, role: ReferenceRole, family: Family) -> None:
        family_id = normalize_family_id(family.family_id)
        self.mapping_for(role)[family_id] = family
        self.links.append(
            ResolvedLink(
                person_key=person.person_key,
                person_name=person.display_name,
                role=role,
                family_id=family_id,
            )
        )

    def family_for(self, person: Person, role: ReferenceRole) -> Family | None:
        """Get the family a person's reference resolved to, if any."""
        for link in self.links:
            if link.role is role and link.person_key == person.person_key:
                return self.mapping_for(role).get(link.family_id)
        return None

    def summary(self) -> str:
        return (
            f"FamilyNetwork {self.family_id} [{self.status.value}]: "
            f"{len(self.parent_origin_families)} parent origin, "
            f"{len(self.child_result_families)} child result, "
            f"{len(self.spouse_origin_families)} spouse origin, "
            f"{len(self.unresolved)} unresolved"
        )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CachedNetworkEntry(BaseModel):
    """A completed network as kept by the network cache."""

    network: FamilyNetwork
    cached_at: datetime = Field(default_factory=_utcnow)
    extraction_time: float = Field(default=0.0, ge=0.0, description="Seconds spent resolving")
