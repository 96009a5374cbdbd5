from __future__ import annotations

import re
import time
from typing import Optional, Tuple

from barcode.normalizer import ScanStrictness, normalize_scan
from ndc.formats import digits_only

MANUAL_PREFIX = "manual_"

_MANUAL_CODE = re.compile(r"^[A-Za-z0-9\-.]+$")


def is_custom_code(code: Optional[str]) -> bool:
    """True for in-house codes that can never be an NDC (short, or not 10/11 digits)."""
    if not code:
        return False
    digits = digits_only(code)
    if len(digits) not in (10, 11):
        return True
    return "-" not in code and len(digits) < 10


def validate_standard_ndc(ndc: Optional[str], strictness: Optional[ScanStrictness] = None) -> Tuple[bool, str]:
    if not ndc or not ndc.strip():
        return False, "NDC number is required"
    scan = normalize_scan(ndc.strip(), strictness)
    if scan.ok:
        return True, ""
    return False, scan.reason or "Invalid NDC format"


def validate_manual_code(code: Optional[str]) -> Tuple[bool, str]:
    trimmed = (code or "").strip()
    if not trimmed:
        return False, "Code is required"
    if not _MANUAL_CODE.match(trimmed):
        return False, "Code contains invalid characters"
    return True, ""


def prepare_manual_entry_barcode(user_input: Optional[str]) -> str:
    """Key for a user-typed identifier. Blank input gets a time-based key."""
    trimmed = (user_input or "").strip()
    if not trimmed:
        return f"{MANUAL_PREFIX}{int(time.time() * 1000)}"
    if trimmed.startswith(MANUAL_PREFIX):
        return trimmed
    return f"{MANUAL_PREFIX}{trimmed}"
