import pytest

from helpers import make_family, make_person


@pytest.fixture
def hyyppa_families():
    """HYYPPÄ 6, whose father Jaakko was born in HYYPPÄ 5."""
    hyyppa_6 = make_family(
        "HYYPPÄ 6",
        make_person("Jaakko", "09.10.1726", patronymic="Jaakonp.", as_child="Hyyppä 5"),
        make_person("Maria", "02.03.1733", patronymic="Jaakont."),
        marriage_date="45",
        children=[make_person("Anna", "11.07.1750")],
    )
    hyyppa_5 = make_family(
        "HYYPPÄ 5",
        make_person("Jaakko", "01.02.1690", patronymic="Erikinp."),
        make_person("Brita", "05.06.1695", patronymic="Matint."),
        marriage_date="1718",
        children=[
            make_person(
                "Jaakko",
                "09.10.1726",
                marriage_date="45",
                spouse="Maria Jaakont.",
                as_parent="Hyyppä 6",
            ),
            make_person("Liisa", "12.01.1729"),
        ],
    )
    return [hyyppa_6, hyyppa_5]


@pytest.fixture
def korpi_families():
    """PIETILÄ 3, whose daughter Maria married into KORPI 9.

    Maria's husband Matti was born in KORPI 5.
    """
    pietila_3 = make_family(
        "PIETILÄ 3",
        make_person("Jaakko", "01.01.1720", patronymic="Erikinp."),
        make_person("Kaisa", "02.02.1725", patronymic="Antint."),
        marriage_date="48",
        children=[
            make_person(
                "Maria",
                "10.02.1752",
                marriage_date="73",
                spouse="Matti Korpi",
                as_parent="Korpi 9",
            ),
            make_person("Erik", "03.03.1755"),
        ],
    )
    korpi_9 = make_family(
        "KORPI 9",
        make_person(
            "Matti",
            "05.05.1748",
            patronymic="Matinp.",
            death_date="01.03.1800",
            as_child="Korpi 5",
        ),
        make_person(
            "Maria",
            "10.02.1752",
            patronymic="Jaakont.",
            death_date="22.08.1812",
            as_child="Pietilä 3",
        ),
        marriage_date="14.10.1773",
        children=[make_person("Jaakko", "08.08.1775")],
    )
    korpi_5 = make_family(
        "KORPI 5",
        make_person("Matti", "04.04.1710", patronymic="Heikinp."),
        make_person("Liisa", "06.06.1715", patronymic="Juhont."),
        marriage_date="1740",
        children=[
            make_person(
                "Matti",
                "05.05.1748",
                marriage_date="73",
                spouse="Maria Jaakont.",
                as_parent="Korpi 9",
            ),
        ],
    )
    return [pietila_3, korpi_9, korpi_5]


@pytest.fixture
def riippa_families():
    """MÄKI 2, whose father carries a bare "Riippa" marker.

    Two RIIPPA families print a child Antti with his birth date and nothing
    else to tell them apart.
    """
    maki_2 = make_family(
        "MÄKI 2",
        make_person("Antti", "04.04.1740", patronymic="Antinp.", as_child="Riippa"),
        make_person("Anna", "07.07.1745", patronymic="Juhont."),
        children=[make_person("Juho", "09.09.1770")],
    )
    riippa_1 = make_family(
        "RIIPPA 1",
        make_person("Antti", "01.01.1710"),
        make_person("Kaisa", "02.02.1712"),
        children=[make_person("Antti", "04.04.1740")],
    )
    riippa_2 = make_family(
        "RIIPPA 2",
        make_person("Antti", "03.03.1711"),
        make_person("Liisa", "05.05.1714"),
        children=[make_person("Antti", "04.04.1740")],
    )
    return [maki_2, riippa_1, riippa_2]
