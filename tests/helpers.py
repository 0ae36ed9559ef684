"""Builders and in-memory collaborators for the test suite."""

import asyncio
from collections import Counter

from kalvian_roots.errors import ParseFailure
from kalvian_roots.schemas import Couple, Family, Person, normalize_family_id


def make_person(name, birth_date=None, **kwargs):
    return Person(name=name, birth_date=birth_date, **kwargs)


def make_family(family_id, husband, wife, children=None, marriage_date=None, **kwargs):
    couple = Couple(
        husband=husband,
        wife=wife,
        marriage_date=marriage_date,
        children=children or [],
        full_marriage_date=kwargs.pop("full_marriage_date", None),
    )
    pages = kwargs.pop("pages", ["1"])
    return Family(family_id=family_id, page_references=pages, couples=[couple], **kwargs)


def render(family):
    """Print a family roughly the way the register does."""
    lines = [f"{family.family_id}, page {', '.join(family.page_references)}"]
    for couple in family.couples:
        for parent in (couple.husband, couple.wife):
            marker = f" {{{parent.as_child}}}" if parent.as_child else ""
            lines.append(f"★ {parent.birth_date or ''} {parent.display_name}{marker}")
        if couple.marriage_date:
            lines.append(f"∞ {couple.marriage_date}")
        if couple.children:
            lines.append("Lapset")
        for child in couple.children:
            line = f"★ {child.birth_date or ''} {child.name}"
            if child.marriage_date:
                line += f" ∞ {child.marriage_date} {child.spouse or ''}"
            if child.as_parent:
                line += f" {child.as_parent}"
            lines.append(line)
    return "\n".join(lines)


class FakeTextSource:
    """Text source over a fixed set of families, counting calls."""

    def __init__(self, families, missing=()):
        self.order = [normalize_family_id(f.family_id) for f in families]
        self.texts = {
            normalize_family_id(f.family_id): render(f)
            for f in families
            if normalize_family_id(f.family_id) not in missing
        }
        self.extract_calls = Counter()
        self.list_calls = 0

    async def extract_raw_text(self, family_id):
        self.extract_calls[family_id] += 1
        await asyncio.sleep(0)
        return self.texts.get(family_id)

    async def list_all_family_ids(self):
        self.list_calls += 1
        await asyncio.sleep(0)
        return list(self.order)


class FakeParser:
    """Parser returning fresh copies of prepared families, counting calls."""

    def __init__(self, families, failing=()):
        self.families = {normalize_family_id(f.family_id): f for f in families}
        self.failing = set(failing)
        self.calls = Counter()
        self.gate = None

    async def parse(self, family_id, raw_text):
        self.calls[family_id] += 1
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if family_id in self.failing:
            raise ParseFailure(family_id, "unreadable block")
        return self.families[family_id].model_copy(deep=True)


def make_register(*families, failing=(), missing=()):
    return FakeTextSource(families, missing=missing), FakeParser(families, failing=failing)
