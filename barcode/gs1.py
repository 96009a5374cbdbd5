"""
GS1 Application Identifier decomposition for pharmaceutical composite codes.

Covers the AIs that show up on US drug packaging (GS1-128 / DataMatrix):

    01   GTIN-14                     fixed 14
    17   expiration date YYMMDD      fixed 6
    11   production date YYMMDD      fixed 6
    10   lot / batch                 variable, up to 20
    21   serial number               variable, up to 20
    30   variable count              variable, up to 8
    310n net weight kg, n decimals   fixed 6
    320n net weight lb, n decimals   fixed 6

Variable-length fields end at FNC1 (ASCII 29) or end of data.
"""
from __future__ import annotations

import calendar
import re
from datetime import date
from typing import Dict, Optional, Tuple

GS = "\x1d"

# ai -> (fixed length or None, max length, extended)
# "extended" AIs are only read at the enhanced strictness level.
AI_TABLE: Dict[str, Tuple[Optional[int], int, bool]] = {
    "01": (14, 14, False),
    "17": (6, 6, False),
    "10": (None, 20, False),
    "21": (None, 20, False),
    "11": (6, 6, True),
    "30": (None, 8, True),
}
# Four-character AIs whose last digit is a decimal-point indicator.
WEIGHT_AI_PREFIXES = ("310", "320")

_GS_PLACEHOLDERS = re.compile(r"\{GS\}|<GS>|␝", re.IGNORECASE)
_FIXED_NUMERIC = re.compile(r"^\d+$")

# Bare pattern scan, used when the payload does not start on an AI boundary.
_BARE_PATTERNS = (
    ("01", re.compile(r"01(\d{14})"), False),
    ("17", re.compile(r"17(\d{6})"), False),
    ("10", re.compile(r"10([0-9A-Za-z]{1,20})"), False),
    ("21", re.compile(r"21([0-9A-Za-z]{1,20})"), False),
    ("11", re.compile(r"11(\d{6})"), True),
    ("30", re.compile(r"30(\d{1,8})"), True),
)


def normalize_separators(raw: str) -> str:
    return _GS_PLACEHOLDERS.sub(GS, raw or "")


def _match_ai(s: str, pos: int, extended: bool) -> Optional[Tuple[str, Optional[int], int]]:
    if extended:
        head = s[pos:pos + 4]
        if len(head) == 4 and head[:3] in WEIGHT_AI_PREFIXES and head[3].isdigit():
            return head, 6, 6
    head = s[pos:pos + 2]
    entry = AI_TABLE.get(head)
    if entry is None:
        return None
    fixed, max_len, is_extended = entry
    if is_extended and not extended:
        return None
    return head, fixed, max_len


def parse_ai_string(text: str, extended: bool = True) -> Dict[str, str]:
    """Sequentially decompose `text` into {ai: value}.

    Returns {} if the data does not begin with a known AI or a fixed-length
    field is short or non-numeric. Stops at the first unknown AI after at
    least one field was read, keeping what was parsed.
    """
    s = normalize_separators(text)
    result: Dict[str, str] = {}
    pos = 0
    while pos < len(s):
        if s[pos] == GS:
            pos += 1
            continue
        m = _match_ai(s, pos, extended)
        if m is None:
            break
        ai, fixed, max_len = m
        start = pos + len(ai)
        if fixed is not None:
            value = s[start:start + fixed]
            if len(value) != fixed or not _FIXED_NUMERIC.match(value):
                return {} if not result else result
            pos = start + fixed
        else:
            gs_pos = s.find(GS, start)
            end = len(s) if gs_pos == -1 else gs_pos
            end = min(end, start + max_len)
            value = s[start:end]
            if not value:
                break
            pos = end
        result[ai] = value
    return result


def parse_bare(text: str, extended: bool = True) -> Dict[str, str]:
    """Pattern scan for AIs anywhere in the payload, separators removed.

    Each matched segment is removed before the next AI is searched so a lot
    number cannot be re-read as another field.
    """
    s = normalize_separators(text).replace(GS, "")
    result: Dict[str, str] = {}
    for ai, pattern, is_extended in _BARE_PATTERNS:
        if is_extended and not extended:
            continue
        m = pattern.search(s)
        if m:
            result[ai] = m.group(1)
            s = s.replace(m.group(0), "", 1)
    return result


def parse_gs1(text: str, extended: bool = True) -> Dict[str, str]:
    """AI map for a composite payload; {} unless it carries a GTIN (AI 01)."""
    if not text:
        return {}
    ai = parse_ai_string(text, extended=extended)
    if "01" not in ai:
        ai = parse_bare(text, extended=extended)
    return ai if "01" in ai else {}


def parse_yymmdd(value: str) -> Optional[date]:
    """GS1 YYMMDD -> date. DD=00 means last day of the month; YY>=80 is 19YY."""
    if not value or len(value) != 6 or not value.isdigit():
        return None
    yy, mm, dd = int(value[:2]), int(value[2:4]), int(value[4:6])
    if mm < 1 or mm > 12:
        return None
    year = 1900 + yy if yy >= 80 else 2000 + yy
    if dd == 0:
        dd = calendar.monthrange(year, mm)[1]
    try:
        return date(year, mm, dd)
    except ValueError:
        return None


def yymmdd_to_iso(value: Optional[str]) -> Optional[str]:
    d = parse_yymmdd(value or "")
    return d.isoformat() if d else None
