"""
Spanish identity number validation (DNI, NIE and CIF).

Every validator returns a boolean and never raises for malformed input.
"""

import re

CONTROL_LETTERS = "TRWAGMYFPDXBNJZSQVHLCKE"
CIF_CONTROL_LETTERS = "JABCDEFGHI"
NIE_PREFIXES = {"X": "0", "Y": "1", "Z": "2"}

DNI_RE = re.compile(r"[0-9]{8}[A-Z]")
NIE_RE = re.compile(r"[XYZ][0-9]{7}[A-Z]")
CIF_RE = re.compile(r"[ABCDEFGHJKLMNPQRSUVW][0-9]{7}[0-9A-J]")


def normalize_identifier(value) -> str:
    """Trimmed, upper-cased form of an identity number ("" for None)."""
    if not value or not isinstance(value, str):
        return ""
    return value.strip().upper()


def _control_letter(number: int) -> str:
    return CONTROL_LETTERS[number % 23]


def validate_dni(dni: str) -> bool:
    """8 digits followed by the control letter of the number mod 23."""
    dni = normalize_identifier(dni)
    if not DNI_RE.fullmatch(dni):
        return False
    try:
        return dni[8] == _control_letter(int(dni[:8]))
    except (ValueError, IndexError):
        return False


def validate_nie(nie: str) -> bool:
    """X/Y/Z + 7 digits + control letter; the prefix stands for 0/1/2."""
    nie = normalize_identifier(nie)
    if not NIE_RE.fullmatch(nie):
        return False
    try:
        number = int(NIE_PREFIXES[nie[0]] + nie[1:8])
        return nie[8] == _control_letter(number)
    except (ValueError, KeyError, IndexError):
        return False


def validate_dni_or_nie(value: str) -> bool:
    value = normalize_identifier(value)
    if not value:
        return False
    if value[0] in NIE_PREFIXES:
        return validate_nie(value)
    return validate_dni(value)


def cif_control(digits: str):
    """
    Control digit and control letter for the 7 CIF digits.

    Digits in even positions (1-indexed) are added as they are; digits in odd
    positions are doubled and the digits of the product are added.
    """
    sum_even = 0
    sum_odd = 0
    for position, char in enumerate(digits, start=1):
        n = int(char)
        if position % 2 == 0:
            sum_even += n
        else:
            doubled = n * 2
            sum_odd += doubled // 10 + doubled % 10
    control_digit = (10 - (sum_even + sum_odd) % 10) % 10
    return control_digit, CIF_CONTROL_LETTERS[control_digit]


def validate_cif(cif: str) -> bool:
    cif = normalize_identifier(cif)
    if not CIF_RE.fullmatch(cif):
        return False

    first, digits, control = cif[0], cif[1:8], cif[8]
    try:
        control_digit, control_letter = cif_control(digits)
    except (ValueError, IndexError):
        return False

    if first in "ABEH":
        return control == str(control_digit)
    if first in "KPQS":
        return control == control_letter
    return control in (str(control_digit), control_letter)


def validate_cif_or_nif(value: str) -> bool:
    # Companies only register with a CIF
    return validate_cif(value)
