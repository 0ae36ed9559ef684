"""Pydantic schemas for families of the printed register.

A printed family entry ("KORPI 6") holds one or more couples, their children
and cross-references to the families where the parents were born and where
the married children became parents themselves.
"""

import re

from pydantic import BaseModel, Field, model_validator

# "KORPI 6", "PIENI-PORKOLA 5", "HYYPPÄ II 3B"
FAMILY_ID_PATTERN = re.compile(r"^[A-ZÄÖÅÉ]+(?:-[A-ZÄÖÅÉ]+)*(?:\s+[IVX]+)?\s+\d+[A-Z]?$")


def normalize_family_id(family_id: str) -> str:
    """Normalize a family identifier or reference marker.

    Strips the curly braces of the printed ``{Korpi 6}`` notation, collapses
    whitespace and uppercases.
    """
    cleaned = family_id.replace("{", " ").replace("}", " ")
    return " ".join(cleaned.split()).upper()


def is_valid_family_id(family_id: str) -> bool:
    """Check whether a reference marker names one explicit family."""
    return bool(FAMILY_ID_PATTERN.match(normalize_family_id(family_id)))


class Person(BaseModel):
    """A person line of the register."""

    name: str = Field(description="Given name like 'Matti' or 'Brita'")
    patronymic: str | None = Field(
        default=None, description="Patronymic like 'Erikinp.' or 'Matint.'"
    )
    birth_date: str | None = Field(default=None, description="Birth date like '22.12.1701'")
    death_date: str | None = Field(default=None, description="Death date like '22.08.1812'")
    marriage_date: str | None = Field(
        default=None, description="Marriage date, often abbreviated like '73'"
    )
    full_marriage_date: str | None = Field(
        default=None, description="Full marriage date from the resulting family"
    )
    spouse: str | None = Field(
        default=None, description="Spouse name as printed, like 'Brita Matint.'"
    )
    as_child: str | None = Field(
        default=None, description="Reference to the family where this person is a child"
    )
    as_parent: str | None = Field(
        default=None, description="Reference to the family where this person is a parent"
    )
    family_search_id: str | None = Field(default=None, description="External record id")
    note_markers: list[str] = Field(default_factory=list)

    # Filled in after resolution
    spouse_birth_date: str | None = None
    spouse_parents_family_id: str | None = None

    @property
    def display_name(self) -> str:
        """Given name with patronymic."""
        if self.patronymic:
            return f"{self.name} {self.patronymic}"
        return self.name

    @property
    def person_key(self) -> str:
        """Identity of a person line within the register."""
        return f"{self.name}-{self.patronymic or ''}-{self.birth_date or ''}"

    @property
    def best_marriage_date(self) -> str | None:
        """Full marriage date when known, else the printed one."""
        return self.full_marriage_date or self.marriage_date

    @property
    def is_married(self) -> bool:
        return bool(self.spouse or self.marriage_date or self.full_marriage_date)

    def has_reference(self, origin: bool = True) -> bool:
        """Check for an origin (``as_child``) or result (``as_parent``) marker."""
        marker = self.as_child if origin else self.as_parent
        return bool(marker and marker.strip())

    def enhance_with_spouse_data(
        self, birth_date: str | None = None, parents_family_id: str | None = None
    ) -> None:
        """Record what was learned about the spouse during resolution."""
        if birth_date:
            self.spouse_birth_date = birth_date
        if parents_family_id:
            self.spouse_parents_family_id = parents_family_id

    def enhance_with_result_data(
        self, death_date: str | None = None, full_marriage_date: str | None = None
    ) -> None:
        """Fill in dates printed only in the family where this person is a parent."""
        if death_date and not self.death_date:
            self.death_date = death_date
        if full_marriage_date:
            self.full_marriage_date = full_marriage_date


class Couple(BaseModel):
    """A couple with their children."""

    husband: Person
    wife: Person
    marriage_date: str | None = None
    full_marriage_date: str | None = None
    children: list[Person] = Field(default_factory=list)
    children_died_infancy: int | None = Field(default=None, ge=0)
    couple_notes: list[str] = Field(default_factory=list)

    @property
    def best_marriage_date(self) -> str | None:
        return self.full_marriage_date or self.marriage_date

    def partner_of(self, person: Person) -> Person | None:
        """Return the other spouse of ``person`` (matched by identity)."""
        if person is self.husband:
            return self.wife
        if person is self.wife:
            return self.husband
        return None

    def duplicate_child_names(self) -> list[str]:
        seen: set[str] = set()
        duplicates = []
        for child in self.children:
            key = child.name.strip().lower()
            if key in seen:
                duplicates.append(child.name)
            seen.add(key)
        return duplicates


class Family(BaseModel):
    """Complete family unit of the register.

    A family consists of one or more couples (sequential spouses) and their
    respective children.
    """

    family_id: str = Field(description="Family id like 'KORPI 6'")
    page_references: list[str] = Field(default_factory=list)
    couples: list[Couple] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    note_definitions: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_invariants(self) -> "Family":
        if not self.family_id.strip():
            raise ValueError("Family ID is required")
        if not self.couples:
            raise ValueError(f"Family {self.family_id}: at least one couple is required")
        for index, couple in enumerate(self.couples, 1):
            duplicates = couple.duplicate_child_names()
            if duplicates:
                raise ValueError(
                    f"Family {self.family_id}, couple {index}: duplicate child names "
                    f"{', '.join(duplicates)}"
                )
        return self

    @property
    def normalized_id(self) -> str:
        return normalize_family_id(self.family_id)

    @property
    def primary_couple(self) -> Couple:
        return self.couples[0]

    @property
    def all_parents(self) -> list[Person]:
        """All parents across all couples, in printed order.

        A remarried parent appears once per couple.
        """
        parents = []
        for couple in self.couples:
            parents.append(couple.husband)
            parents.append(couple.wife)
        return parents

    @property
    def children(self) -> list[Person]:
        return [child for couple in self.couples for child in couple.children]

    @property
    def married_children(self) -> list[Person]:
        return [child for child in self.children if child.is_married]

    @property
    def total_children_died_infancy(self) -> int:
        return sum(couple.children_died_infancy or 0 for couple in self.couples)

    @property
    def page_reference_string(self) -> str:
        if len(self.page_references) == 1:
            return f"page {self.page_references[0]}"
        return f"pages {', '.join(self.page_references)}"

    @property
    def is_valid(self) -> bool:
        return bool(self.family_id.strip()) and bool(self.couples)

    def validate_structure(self) -> list[str]:
        """List structural warnings for a parsed family."""
        warnings = []
        if not self.page_references:
            warnings.append("Page references are missing")
        for index, couple in enumerate(self.couples, 1):
            if not couple.husband.name.strip():
                warnings.append(f"Couple {index}: Husband name is required")
            if not couple.wife.name.strip():
                warnings.append(f"Couple {index}: Wife name is required")
        return warnings

    def find_couple_for_child(self, child: Person) -> Couple | None:
        for couple in self.couples:
            if any(member is child for member in couple.children):
                return couple
        return None

    def find_couple_for_parent(self, parent: Person) -> Couple | None:
        for couple in self.couples:
            if couple.husband is parent or couple.wife is parent:
                return couple
        return None

    def find_spouse(self, name: str) -> Person | None:
        """Find the spouse of the parent printed with ``name``."""
        wanted = name.strip().lower()
        for couple in self.couples:
            if wanted in (couple.husband.name.lower(), couple.husband.display_name.lower()):
                return couple.wife
            if wanted in (couple.wife.name.lower(), couple.wife.display_name.lower()):
                return couple.husband
        return None
