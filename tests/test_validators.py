# tests/test_validators.py
import pytest

from techshop.validators import (
    cif_control, normalize_identifier, validate_cif, validate_cif_or_nif,
    validate_dni, validate_dni_or_nie, validate_nie,
)


def test_dni_valid():
    assert validate_dni("12345678Z")


def test_dni_wrong_letter():
    assert not validate_dni("12345678A")


def test_dni_seven_digits():
    assert not validate_dni("1234567Z")


def test_dni_is_trimmed_and_upper_cased():
    assert validate_dni("  12345678z ")


@pytest.mark.parametrize("value", ["", "   ", None, 12345678, "12345678", "ABCDEFGHZ", "123456789Z"])
def test_dni_malformed_is_false(value):
    assert validate_dni(value) is False


def test_dni_control_letter_wraps_modulo_23():
    # 00000000 -> T, 00000022 -> E (last entry of the table)
    assert validate_dni("00000000T")
    assert validate_dni("00000022E")
    assert not validate_dni("00000023E")


def test_nie_valid():
    assert validate_nie("X1234567L")


def test_nie_missing_digit():
    assert not validate_nie("X123456L")


def test_nie_prefixes_map_to_digits():
    # Y -> 11234567 % 23 == 10 -> X, Z -> 21234567 % 23 == 1 -> R
    assert validate_nie("Y1234567X")
    assert validate_nie("Z1234567R")
    assert not validate_nie("Y1234567L")


def test_nie_rejects_other_prefix():
    assert not validate_nie("A1234567L")


def test_dni_or_nie_dispatch():
    assert validate_dni_or_nie("12345678Z")
    assert validate_dni_or_nie("x1234567l")
    assert not validate_dni_or_nie("12345678A")
    assert not validate_dni_or_nie("X1234567A")
    assert not validate_dni_or_nie("")


def test_cif_worked_example():
    assert validate_cif("B12345674")


def test_cif_control_values():
    assert cif_control("1234567") == (4, "D")


def test_cif_digit_required_for_abeh():
    assert not validate_cif("B1234567D")


def test_cif_letter_required_for_kpqs():
    assert validate_cif("Q1234567D")
    assert not validate_cif("Q12345674")


def test_cif_other_letters_accept_either_form():
    assert validate_cif("G12345674")
    assert validate_cif("G1234567D")
    assert not validate_cif("G12345675")


def test_cif_control_digit_zero_maps_to_j():
    digit, letter = cif_control("0000000")
    assert (digit, letter) == (0, "J")
    assert validate_cif("A00000000")
    assert validate_cif("P0000000J")


@pytest.mark.parametrize("value", ["", "12345678", "I12345674", "B1234567", "B12345674X", None])
def test_cif_malformed_is_false(value):
    assert validate_cif(value) is False


def test_cif_or_nif_is_cif():
    assert validate_cif_or_nif(" b12345674 ")
    assert not validate_cif_or_nif("12345678Z")


def test_normalize_identifier():
    assert normalize_identifier(" x1234567l ") == "X1234567L"
    assert normalize_identifier(None) == ""
