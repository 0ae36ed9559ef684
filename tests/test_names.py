from concurrent.futures import ThreadPoolExecutor

from kalvian_roots.storage.names import (
    NameEquivalenceStore,
    given_name,
    normalize_name,
    patronymic,
)


def test_normalize_name_folds_case_and_diacritics():
    assert normalize_name("  Mäkelä ") == "makela"
    assert normalize_name("Åke") == "ake"
    assert normalize_name("RENÉ") == "rene"


def test_given_name_and_patronymic():
    assert given_name("Brita Matint.") == "Brita"
    assert given_name("Matti Korpi") == "Matti"
    assert given_name("") == ""
    assert patronymic("Matti Erikinp.") == "Erikinp."
    assert patronymic("Matti Korpi") is None


def test_built_in_equivalences():
    names = NameEquivalenceStore()

    assert names.are_equivalent("Liisa", "Elisabet")
    assert names.are_equivalent("juho", "Johannes")
    assert names.are_equivalent("Maija", "MARIA")
    assert not names.are_equivalent("Liisa", "Maria")


def test_identical_names_are_equivalent_without_a_class():
    names = NameEquivalenceStore(seed_built_ins=False)

    assert names.are_equivalent("Antti", "antti")
    assert names.are_equivalent("Jääkko", "Jaakko")
    assert not names.are_equivalent("Antti", "Anders")
    assert not names.are_equivalent("", "")


def test_learn_is_transitive_and_idempotent():
    names = NameEquivalenceStore(seed_built_ins=False)

    assert names.learn("Antti", "Anders")
    assert names.learn("Anders", "Andreas")
    assert not names.learn("Antti", "Andreas")
    assert not names.learn("Antti", "antti")

    assert names.are_equivalent("Antti", "Andreas")
    assert names.equivalents("ANDERS") == {"antti", "anders", "andreas"}
    assert names.learned_count == 2


def test_learning_joins_built_in_classes():
    names = NameEquivalenceStore()

    names.learn("Juhan", "Juhana")

    assert names.are_equivalent("Juhan", "Johan")
    assert "juhan" in names.equivalents("Juho")


def test_unknown_name_equivalents_is_itself():
    names = NameEquivalenceStore()
    assert names.equivalents("Tuomas") == {"tuomas"}


def test_classes_and_import_round_trip():
    names = NameEquivalenceStore(seed_built_ins=False)
    names.learn("Antti", "Anders")
    names.learn("Kaisa", "Katarina")

    restored = NameEquivalenceStore(seed_built_ins=False)
    restored.import_classes(names.classes())

    assert sorted(map(sorted, restored.classes())) == [["anders", "antti"], ["kaisa", "katarina"]]
    assert restored.are_equivalent("Katarina", "Kaisa")


def test_similarity_range():
    names = NameEquivalenceStore()

    assert names.similarity("Matti", "matti") == 1.0
    assert names.similarity("Juhan", "Juhana") > 0.8
    assert names.similarity("Antti", "Brita") < 0.5


def test_learning_from_many_threads():
    names = NameEquivalenceStore(seed_built_ins=False)
    chain = [(f"nimi{i}", f"nimi{i + 1}") for i in range(200)]
    pairs = chain[::2] + chain[1::2] + [("toinen", "toinen2")]

    with ThreadPoolExecutor(max_workers=8) as executor:
        merged = list(executor.map(lambda pair: names.learn(*pair), pairs))

    assert all(merged)
    assert names.learned_count == len(pairs)
    assert names.are_equivalent("nimi0", "nimi200")
    assert not names.are_equivalent("nimi0", "toinen")
    assert sorted(map(len, names.classes())) == [2, 201]
