from __future__ import annotations

import re
from typing import Optional, Tuple

# Segment widths (labeler, product, package) seen on published NDCs.
# 6-x-x are forward compatible with the FDA's planned 12-digit labeler codes.
PACKAGE_FORMATS: Tuple[Tuple[int, int, int], ...] = (
    (4, 4, 2),
    (5, 3, 2),
    (5, 4, 1),
    (6, 3, 2),
    (6, 4, 1),
)

PRODUCT_FORMATS: Tuple[Tuple[int, int], ...] = (
    (4, 3),
    (4, 4),
    (5, 3),
    (5, 4),
    (6, 3),
    (6, 4),
)

# Canonical 11-digit layout is 5-4-2.
CANONICAL_WIDTHS = (5, 4, 2)

_NON_DIGIT = re.compile(r"\D")


def is_digits(s: object, n: Optional[int] = None) -> bool:
    """ASCII digits only (str.isdigit accepts superscripts and other scripts)."""
    if not isinstance(s, str) or not s:
        return False
    if n is not None and len(s) != n:
        return False
    return s.isascii() and s.isdigit()


def digits_only(s: str) -> str:
    return _NON_DIGIT.sub("", s or "")


def split_dashed(text: str) -> list[str]:
    return (text or "").strip().split("-")


def validate_ndc_format(text: str, allow_forward_compatible: bool = True) -> bool:
    """True when `text` is a dashed NDC in one of the known conventions.

    Three segments are a package-level NDC, two segments a product-level one.
    """
    if not text or not isinstance(text, str):
        return False
    parts = split_dashed(text)
    if not all(is_digits(p) for p in parts):
        return False
    widths = tuple(len(p) for p in parts)
    if len(parts) == 3:
        allowed = PACKAGE_FORMATS if allow_forward_compatible else PACKAGE_FORMATS[:3]
        return widths in allowed
    if len(parts) == 2:
        allowed = PRODUCT_FORMATS if allow_forward_compatible else PRODUCT_FORMATS[:4]
        return widths in allowed
    return False


def is_product_level(text: str) -> bool:
    return validate_ndc_format(text) and len(split_dashed(text)) == 2


def dashed_to_ndc11(text: str) -> str:
    """Zero-pad a three-segment dashed NDC to 5-4-2 and concatenate.

    6-3-2 and 6-4-1 NDCs already carry 11 digits and are used verbatim.
    Returns "" when the text is not a recognised package-level NDC.
    """
    if not validate_ndc_format(text):
        return ""
    parts = split_dashed(text)
    if len(parts) != 3:
        return ""
    joined = "".join(parts)
    if len(parts[0]) == 6:
        return joined if is_digits(joined, 11) else ""
    padded = "".join(p.zfill(w) for p, w in zip(parts, CANONICAL_WIDTHS))
    return padded if is_digits(padded, 11) else ""


def format_ndc11(ndc11: str) -> str:
    """Render an NDC-11 as 5-4-2 for display."""
    if not is_digits(ndc11, 11):
        return ndc11 or ""
    return f"{ndc11[:5]}-{ndc11[5:9]}-{ndc11[9:]}"
