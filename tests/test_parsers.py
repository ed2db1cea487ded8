import pytest
from armazem.adapters.parsers import parse_dimensoes, parse_flags, parse_quantidade_raw

@pytest.mark.parametrize(
    "txt,exp_num,exp_unit,exp_desc",
    [
        ("3 CX - Caixa com 12", 3.0, "CX", "Caixa com 12"),
        ("120", 120.0, None, None),
        ("2 fd - Fardo", 2.0, "FD", "Fardo"),
        ("5,5 kg", 5.5, "KG", None),
        ("", None, None, None),
        (None, None, None, None),
    ],
)
def test_parse_quantidade_raw(txt, exp_num, exp_unit, exp_desc):
    num, unit, desc = parse_quantidade_raw(txt)
    assert (num == exp_num) or (num is None and exp_num is None)
    assert unit == exp_unit
    assert desc == exp_desc


@pytest.mark.parametrize(
    "txt,expected",
    [
        ("120x100x15", (120.0, 100.0, 15.0)),
        ("40 x 25,5 x 10", (40.0, 25.5, 10.0)),
        ("40X25X10 cm", (40.0, 25.0, 10.0)),
        ("40x25", None),
        ("0x25x10", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_dimensoes(txt, expected):
    assert parse_dimensoes(txt) == expected


def test_parse_flags():
    assert parse_flags("Refrigerated, food;fragile") == frozenset({"refrigerated", "food", "fragile"})
    assert parse_flags(None) == frozenset()
    assert parse_flags("  ") == frozenset()
