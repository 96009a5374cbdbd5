"""
NDC candidate expansion.

A 10-digit NDC does not say which segment lost its padding zero, and an
11-digit NDC does not say where its segment boundaries were before padding.
Everything here enumerates the plausible readings in likelihood order; it
never raises and returns [] for malformed input.

Letters in the comments below name digit positions of the NDC-11:

    A B C D E | F G H I | J K
"""
from __future__ import annotations

from typing import Iterable, List

from ndc.formats import is_digits


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: dict[str, None] = {}
    for v in values:
        if v and v not in seen:
            seen[v] = None
    return list(seen)


def expand_ndc10_to_11(ndc10: str, forward_compatible: bool = True) -> List[str]:
    """All 11-digit NDCs a 10-digit NDC can stand for, most likely first."""
    if not is_digits(ndc10, 10):
        return []
    cands = [
        "0" + ndc10,                       # 4-4-2: pad labeler
        ndc10[:5] + "0" + ndc10[5:],       # 5-3-2: pad product
        ndc10[:9] + "0" + ndc10[9:],       # 5-4-1: pad package
    ]
    if forward_compatible and ndc10[0] != "0":
        cands.append(ndc10[:6] + "0" + ndc10[6:])  # 6-3-x
    return [c for c in _dedupe(cands) if is_digits(c, 11)]


def collapse_ndc11_to_ndc10_candidates(ndc11: str) -> List[str]:
    """Inverse of expand_ndc10_to_11: drop one padding zero, each possible way."""
    if not is_digits(ndc11, 11):
        return []
    out = []
    for pos in (0, 5, 9, 6):
        if ndc11[pos] == "0":
            out.append(ndc11[:pos] + ndc11[pos + 1:])
    return _dedupe(out)


def _slices(ndc11: str) -> dict[str, str]:
    p4 = ndc11[5:9]                                  # F..I
    return {
        "L5": ndc11[:5],                             # A..E
        "L4": ndc11[1:5],                            # B..E
        "P4": p4,
        # A 5-3-2 source gets its pad zero at F; drop it to recover the product.
        "P3": p4[1:] if ndc11[5] == "0" else ndc11[5:8],
        "K2": ndc11[9:11],                           # J..K
        "K1": ndc11[10:11],                          # K
        "K2_533": ndc11[8:10],                       # I..J
    }


def expand_ndc11_to_package_candidates(ndc11: str) -> List[str]:
    """Dashed package-level NDCs (as openFDA spells package_ndc) for an NDC-11."""
    if not is_digits(ndc11, 11):
        return []
    s = _slices(ndc11)
    out = [
        f"{s['L5']}-{s['P4']}-{s['K2']}",      # 5-4-2
        f"{s['L4']}-{s['P4']}-{s['K2']}",      # 4-4-2
        f"{s['L5']}-{s['P3']}-{s['K2']}",      # 5-3-2
        f"{s['L5']}-{s['P4']}-{s['K1']}",      # 5-4-1
        f"{s['L5']}-{s['P3']}-{s['K2_533']}",  # 5-3-3 variant, empirical
    ]
    if ndc11[0] == "0":
        # Whole number was left-padded: read B..K as 5-4-1.
        out.append(f"{ndc11[1:6]}-{ndc11[6:10]}-{ndc11[10:]}")
    return _dedupe(out)


def expand_ndc11_to_product_candidates(ndc11: str) -> List[str]:
    """Dashed product-level NDCs (labeler-product) for an NDC-11."""
    if not is_digits(ndc11, 11):
        return []
    s = _slices(ndc11)
    out = [
        f"{s['L5']}-{s['P4']}",   # 5-4
        f"{s['L4']}-{s['P4']}",   # 4-4
        f"{s['L5']}-{s['P3']}",   # 5-3
    ]
    if ndc11[0] == "0":
        out.append(f"{ndc11[1:6]}-{ndc11[6:10]}")
    return _dedupe(out)
