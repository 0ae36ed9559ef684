import pytest

from helpers import make_family, make_person
from kalvian_roots.agents.match_reference import (
    SIGNAL_MARRIAGE_YEAR,
    SIGNAL_SPOUSE_NAME,
    MatchStatus,
    ReferenceMatcher,
    marriage_year,
    marriage_years_match,
)
from kalvian_roots.schemas import ReferenceRole

ORIGIN = ReferenceRole.ORIGIN_OF_PARENT
RESULT = ReferenceRole.RESULT_OF_MARRIED_CHILD


def make_origin_family(**child_kwargs):
    return make_family(
        "KORPI 5",
        make_person("Matti", "04.04.1710"),
        make_person("Liisa", "06.06.1715"),
        children=[make_person("Matti", "05.05.1748", **child_kwargs)],
    )


@pytest.mark.parametrize(
    "date, year",
    [
        ("14.10.1773", "1773"),
        ("1773", "1773"),
        ("73", "73"),
        ("n. 1773", "1773"),
        ("∞ 73", "73"),
        ("177", None),
        ("", None),
    ],
)
def test_marriage_year(date, year):
    assert marriage_year(date) == year


def test_marriage_years_match():
    assert marriage_years_match("73", "14.10.1773")
    assert marriage_years_match("14.10.1773", "1773")
    assert marriage_years_match("73", "73")
    assert marriage_years_match("∞ 73", "14.10.1773")
    assert not marriage_years_match("1773", "1774")
    assert not marriage_years_match("74", "14.10.1773")
    assert not marriage_years_match(None, "1773")


def test_explicit_reference_confirms_on_birth_date_alone():
    matcher = ReferenceMatcher()
    person = make_person("Matti", "05.05.1748")

    result = matcher.matches(make_origin_family(), person, ORIGIN, explicit_reference=True)

    assert result.status is MatchStatus.CONFIRMED
    assert result.signals == []
    assert result.record.person.name == "Matti"
    assert result.record.as_child
    assert result.birth_date_records == 1


def test_birth_date_alone_is_ambiguous_without_explicit_reference():
    matcher = ReferenceMatcher()
    person = make_person("Matti", "05.05.1748")

    result = matcher.matches(make_origin_family(), person, ORIGIN)

    assert result.status is MatchStatus.AMBIGUOUS
    assert not result.confirmed


def test_spouse_name_equivalence_confirms():
    matcher = ReferenceMatcher()
    candidate = make_origin_family(spouse="Elisabet Jaakont.")
    person = make_person("Matti", "05.05.1748", spouse="Liisa Jaakont.")

    result = matcher.matches(candidate, person, ORIGIN)

    assert result.confirmed
    assert result.signals == [SIGNAL_SPOUSE_NAME]


def test_marriage_year_confirms():
    matcher = ReferenceMatcher()
    candidate = make_origin_family(marriage_date="73")
    person = make_person("Matti", "05.05.1748", marriage_date="14.10.1773")

    result = matcher.matches(candidate, person, ORIGIN)

    assert result.confirmed
    assert result.signals == [SIGNAL_MARRIAGE_YEAR]


def test_unrelated_spouse_is_kept_for_learning():
    matcher = ReferenceMatcher()
    candidate = make_origin_family(spouse="Kaisa", marriage_date="73")
    person = make_person("Matti", "05.05.1748", spouse="Kaija", marriage_date="1773")

    result = matcher.matches(candidate, person, ORIGIN)

    assert result.confirmed
    assert result.signals == [SIGNAL_MARRIAGE_YEAR]
    assert result.record.spouse_names == ("Kaija", "Kaisa")


def test_person_without_birth_date_is_rejected():
    matcher = ReferenceMatcher()
    person = make_person("Matti")

    result = matcher.matches(make_origin_family(), person, ORIGIN, explicit_reference=True)

    assert result.status is MatchStatus.REJECTED


def test_birth_date_under_a_different_name_is_rejected():
    matcher = ReferenceMatcher()
    person = make_person("Brita", "05.05.1748")

    result = matcher.matches(make_origin_family(), person, ORIGIN, explicit_reference=True)

    assert result.status is MatchStatus.REJECTED
    assert result.birth_date_records == 0


def test_variant_spelling_is_plausible():
    matcher = ReferenceMatcher()
    candidate = make_family(
        "KORPI 5",
        make_person("Matti", "04.04.1710"),
        make_person("Liisa", "06.06.1715"),
        children=[make_person("Juhana", "05.05.1748")],
    )
    person = make_person("Juhan", "05.05.1748")

    result = matcher.matches(candidate, person, ORIGIN, explicit_reference=True)

    assert result.confirmed
    assert not result.record.name_equivalent


def test_origin_falls_back_to_parent_lines():
    matcher = ReferenceMatcher()
    candidate = make_family(
        "KORPI 9",
        make_person("Matti", "05.05.1748"),
        make_person("Maria", "10.02.1752"),
    )
    person = make_person("Matti", "05.05.1748")

    result = matcher.matches(candidate, person, ORIGIN, explicit_reference=True)

    assert result.confirmed
    assert not result.record.as_child


def test_result_role_only_looks_at_parent_lines():
    matcher = ReferenceMatcher()
    person = make_person("Matti", "05.05.1748", spouse="Maria", marriage_date="73")

    in_children = matcher.matches(make_origin_family(), person, RESULT, explicit_reference=True)
    as_parent = matcher.matches(
        make_family(
            "KORPI 9",
            make_person("Matti", "05.05.1748"),
            make_person("Maija", "10.02.1752"),
            marriage_date="14.10.1773",
        ),
        person,
        RESULT,
    )

    assert in_children.status is MatchStatus.REJECTED
    assert as_parent.confirmed
    assert as_parent.signals == [SIGNAL_SPOUSE_NAME, SIGNAL_MARRIAGE_YEAR]


def test_several_birth_date_records_are_narrowed_by_signals():
    matcher = ReferenceMatcher()
    candidate = make_family(
        "KORPI 5",
        make_person("Matti", "04.04.1710"),
        make_person("Liisa", "06.06.1715"),
        children=[
            make_person("Juho", "05.05.1748", spouse="Kaisa"),
            make_person("Johan", "05.05.1748", spouse="Elisabet"),
        ],
    )
    person = make_person("Juho", "05.05.1748", spouse="Liisa")

    result = matcher.matches(candidate, person, ORIGIN, explicit_reference=True)

    assert result.confirmed
    assert result.birth_date_records == 2
    assert result.record.person.name == "Johan"


def test_several_birth_date_records_without_signals_are_ambiguous():
    matcher = ReferenceMatcher()
    candidate = make_family(
        "KORPI 5",
        make_person("Matti", "04.04.1710"),
        make_person("Liisa", "06.06.1715"),
        children=[make_person("Juho", "05.05.1748"), make_person("Johan", "05.05.1748")],
    )
    person = make_person("Juho", "05.05.1748")

    result = matcher.matches(candidate, person, ORIGIN, explicit_reference=True)

    assert result.status is MatchStatus.AMBIGUOUS
    assert result.record is None
