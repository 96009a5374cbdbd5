from __future__ import annotations

import re
from typing import Optional, Tuple

_COUNT_UNIT_AT_START = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-zA-Zμ]+)(?:\s|$)")
_COUNT_UNIT_ANYWHERE = re.compile(r"\b(\d+(?:\.\d+)?)\s*([a-zA-Zμ]+)\b")

_UNIT_ALIASES = (
    (re.compile(r"^capsules?$", re.I), "capsules"),
    (re.compile(r"^caps?$", re.I), "capsules"),
    (re.compile(r"^tablets?$", re.I), "tablets"),
    (re.compile(r"^tabs?$", re.I), "tablets"),
    (re.compile(r"^patch(es)?$", re.I), "patches"),
    (re.compile(r"^ml$", re.I), "mL"),
    (re.compile(r"^grams?$", re.I), "grams"),
    (re.compile(r"^mg$", re.I), "mg"),
    (re.compile(r"^mcg$", re.I), "mcg"),
)

PRICING_UNIT_LABELS = {
    "ea": "each",
    "ml": "mL",
    "gm": "gram",
    "gram": "gram",
    "mg": "mg",
    "mcg": "mcg",
}


def normalize_unit(unit: str) -> str:
    u = (unit or "").lower()
    for pattern, label in _UNIT_ALIASES:
        if pattern.match(u):
            return label
    return u


def parse_package_size(package_size: Optional[str]) -> Optional[Tuple[float, str]]:
    """'100 tablets' -> (100.0, 'tablets'); None when there is no leading count."""
    if not package_size or not isinstance(package_size, str):
        return None
    m = _COUNT_UNIT_AT_START.match(package_size.strip())
    if not m:
        return None
    count = float(m.group(1))
    if count <= 0:
        return None
    return count, normalize_unit(m.group(2))


def package_size_from_description(description: str) -> str:
    """openFDA package description -> '<count> <unit>'.

    "100 CAPSULE in 1 BOTTLE (0781-1089-01)" -> "100 capsules"
    "10 mL in 1 VIAL, SINGLE-DOSE"          -> "10 mL"
    """
    m = _COUNT_UNIT_ANYWHERE.search(description or "")
    if not m:
        return "UNKNOWN"
    count, unit = m.group(1), normalize_unit(m.group(2))
    return f"{count} {unit}"


def calculate_package_price(price_per_unit: float, units_per_package: float) -> float:
    if not price_per_unit or not units_per_package:
        return 0.0
    return price_per_unit * units_per_package


def calculate_line_total(price_per_unit: float, units_per_package: float, packages: int) -> float:
    if not price_per_unit or not units_per_package or not packages:
        return 0.0
    return price_per_unit * units_per_package * packages


def format_pricing_unit(pricing_unit: Optional[str]) -> str:
    if not pricing_unit:
        return "unit"
    unit = pricing_unit.lower()
    return PRICING_UNIT_LABELS.get(unit, unit)


def units_per_package(package_size: Optional[str]) -> float:
    parsed = parse_package_size(package_size)
    return parsed[0] if parsed else 1.0

