"""
Check digit math for the checksum-bearing codes that carry an NDC.

GTIN-14 for pharmaceuticals: [indicator][03][NDC-10][check]
UPC-A for pharmaceuticals:   [3][NDC-10][check]   ("0" on some historical OTC)
"""
from __future__ import annotations

from typing import Optional

from ndc.expander import collapse_ndc11_to_ndc10_candidates
from ndc.formats import digits_only, is_digits

PHARMA_GTIN_PREFIX = "03"
PHARMA_UPC_PREFIXES = ("3", "0")


def gtin14_check_digit(body13: str) -> int:
    """GS1 mod-10 over 13 digits; -1 when the body is malformed."""
    if not is_digits(body13, 13):
        return -1
    total = 0
    for i, ch in enumerate(reversed(body13)):
        total += int(ch) * (3 if i % 2 == 0 else 1)
    return (10 - total % 10) % 10


def upc_a_check_digit(body11: str) -> int:
    """UPC-A mod-10 over 11 digits; -1 when the body is malformed."""
    if not is_digits(body11, 11):
        return -1
    odd = sum(int(ch) for ch in body11[0::2])
    even = sum(int(ch) for ch in body11[1::2])
    return (10 - (3 * odd + even) % 10) % 10


def validate_gtin14(gtin14: str) -> bool:
    if not is_digits(gtin14, 14):
        return False
    return gtin14_check_digit(gtin14[:13]) == int(gtin14[13])


def is_pharma_gtin14(gtin14: str) -> bool:
    return is_digits(gtin14, 14) and gtin14[1:3] == PHARMA_GTIN_PREFIX


def validate_upc_a(upc12: str) -> bool:
    if not is_digits(upc12, 12):
        return False
    if upc12[0] not in PHARMA_UPC_PREFIXES:
        return False
    return upc_a_check_digit(upc12[:11]) == int(upc12[11])


def complete_upc_a(body11: str) -> str:
    """Append the computed check digit to an 11-digit UPC-A body."""
    chk = upc_a_check_digit(body11)
    return body11 + str(chk) if chk >= 0 else ""


def detect_barcode_type(text: str) -> Optional[str]:
    digits = digits_only(text)
    if is_digits(digits, 14) and validate_gtin14(digits):
        return "gtin14"
    if is_digits(digits, 12) and validate_upc_a(digits):
        return "upca"
    if is_digits(digits, 11):
        return "ndc11"
    if is_digits(digits, 10):
        return "ndc10"
    return None


def _ndc10_for_encoding(ndc: str) -> str:
    digits = digits_only(ndc)
    if is_digits(digits, 10):
        return digits
    if is_digits(digits, 11):
        cands = collapse_ndc11_to_ndc10_candidates(digits)
        return cands[0] if cands else ""
    return ""


def ndc_to_gtin14(ndc: str, indicator: int = 0) -> Optional[str]:
    """Build the GTIN-14 a package label would carry for `ndc`.

    `indicator` is the packaging level (0-8). 11-digit input is collapsed by
    dropping its padding zero (leading zero first).
    """
    if indicator < 0 or indicator > 8:
        return None
    ndc10 = _ndc10_for_encoding(ndc)
    if not ndc10:
        return None
    body13 = f"{indicator}{PHARMA_GTIN_PREFIX}{ndc10}"
    return body13 + str(gtin14_check_digit(body13))


def ndc_to_upc_a(ndc: str, pharma_prefix: bool = True) -> Optional[str]:
    ndc10 = _ndc10_for_encoding(ndc)
    if not ndc10:
        return None
    body11 = ("3" if pharma_prefix else "0") + ndc10
    return complete_upc_a(body11)
