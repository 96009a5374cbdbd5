"""
Raw scanner/keyboard text -> NormalizedScan.

Strategies run as a strict priority waterfall; the first one that applies
decides the outcome, including failures with a specific diagnostic (a GTIN
with a bad check digit is reported as such, never as "unrecognized").

    dashed NDC -> NDC-10 -> NDC-11 -> GTIN-14 -> GS1 composite -> UPC-A
    -> exhaustion diagnostics
"""
from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, List, Optional

from barcode.gs1 import GS, parse_gs1, yymmdd_to_iso
from config.settings import settings
from models.results import BarcodeType, NormalizedScan, ScanErrorKind
from ndc.checksum import (
    PHARMA_UPC_PREFIXES,
    complete_upc_a,
    gtin14_check_digit,
    is_pharma_gtin14,
    upc_a_check_digit,
    validate_gtin14,
    validate_upc_a,
)
from ndc.expander import expand_ndc10_to_11
from ndc.formats import (
    dashed_to_ndc11,
    digits_only,
    is_digits,
    is_product_level,
    validate_ndc_format,
)

log = logging.getLogger("ndcscan.barcode.normalizer")


class ScanStrictness(str, Enum):
    """Feature level of the normalizer.

    LEGACY reproduces the first-generation scanner: no dashed-NDC path, only
    AIs 01/17/10/21, no 6-digit labeler expansion and one generic failure
    message. ENHANCED turns all of those on.
    """

    LEGACY = "legacy"
    ENHANCED = "enhanced"

    @classmethod
    def from_setting(cls, value: Optional[str]) -> "ScanStrictness":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.ENHANCED


GENERIC_FAILURE = "Unrecognized or incomplete NDC format."

# ISO/IEC 15424 symbology identifiers scanners prepend, e.g. ]C1 (GS1-128),
# ]d2 (GS1 DataMatrix), ]e0 (GS1 DataBar), ]Q3 (GS1 QR).
_SYMBOLOGY = re.compile(r"\](?:C1|d2|e0|E0|Q3)", re.IGNORECASE)
_LEADING_SYMBOLOGY = re.compile(r"^\][A-Za-z]\d")
_GS_PLACEHOLDERS = re.compile(r"\{GS\}|<GS>|␝", re.IGNORECASE)
_LEADING_CONTROL = re.compile(r"^[\x00-\x1f]+")
_LETTERS = re.compile(r"[A-Za-z]")


def strip_symbology(raw: str) -> str:
    """Remove symbology identifiers and leading control characters.

    Embedded FNC1 separators are kept (as ASCII 29) because GS1 decomposition
    needs them; digit extraction ignores them anyway.
    """
    s = str(raw)
    s = _GS_PLACEHOLDERS.sub(GS, s)
    s = _LEADING_SYMBOLOGY.sub("", s.lstrip(" \t\r\n"))
    s = _SYMBOLOGY.sub("", s)
    s = _LEADING_CONTROL.sub("", s)
    return s.strip()


def _success(barcode_type: BarcodeType, source: str, candidates: List[str], **fields) -> NormalizedScan:
    return NormalizedScan(
        ok=True,
        barcode_type=barcode_type,
        source=source,
        ndc11=candidates[0],
        ndc11_candidates=candidates,
        **fields,
    )


def _failure(reason: str, kind: ScanErrorKind, strictness: ScanStrictness, **fields) -> NormalizedScan:
    if strictness is ScanStrictness.LEGACY:
        return NormalizedScan(ok=False, reason=GENERIC_FAILURE, error_kind=kind, raw=fields.get("raw"))
    return NormalizedScan(ok=False, reason=reason, error_kind=kind, **fields)


class BarcodeNormalizer:
    def __init__(self, strictness: Optional[ScanStrictness] = None):
        self.strictness = strictness or ScanStrictness.from_setting(settings.SCAN_STRICTNESS)

    @property
    def enhanced(self) -> bool:
        return self.strictness is ScanStrictness.ENHANCED

    def normalize(self, raw: Optional[str]) -> NormalizedScan:
        if raw is None or str(raw).strip() == "":
            return NormalizedScan(ok=False, reason="Empty scan", error_kind=ScanErrorKind.EMPTY)

        text = strip_symbology(raw)
        digits = digits_only(text)

        result = (
            self._dashed(text, digits)
            or self._ndc10(digits)
            or self._ndc11(digits)
            or self._gtin14(digits)
            or self._gs1(text)
            or self._upc_a(digits)
            or self._exhausted(text, digits)
        )
        log.debug(
            "scan_normalized",
            extra={
                "extra": {
                    "event": "scan_normalized",
                    "ok": result.ok,
                    "barcode_type": result.barcode_type.value if result.barcode_type else None,
                    "candidates": result.ndc11_candidates,
                    "reason": result.reason,
                    "strictness": self.strictness.value,
                }
            },
        )
        return result

    # --- strategies -----------------------------------------------------

    def _dashed(self, text: str, digits: str) -> Optional[NormalizedScan]:
        # Must run before digit extraction: "0781-1089-01" is not a UPC body.
        if not self.enhanced or "-" not in text or not validate_ndc_format(text):
            return None
        if is_product_level(text):
            return self._product_level(text, len(digits))
        if len(digits) not in (10, 11):
            return None
        ndc11 = dashed_to_ndc11(text)
        if not ndc11:
            return None
        return _success(
            BarcodeType.NDC_DASHED,
            "ndc-dashed",
            [ndc11],
            ndc_formatted=text,
            ndc10=digits if len(digits) == 10 else None,
        )

    def _ndc10(self, digits: str) -> Optional[NormalizedScan]:
        if not is_digits(digits, 10):
            return None
        cands = expand_ndc10_to_11(digits, forward_compatible=self.enhanced)
        if not cands:
            return None
        return _success(
            BarcodeType.NDC10,
            "ndc10-expanded",
            cands,
            ndc10=digits,
            note="10-digit NDC expanded to 11-digit candidates",
        )

    def _ndc11(self, digits: str) -> Optional[NormalizedScan]:
        # Leading "3" is left for the UPC-A strategy.
        if not is_digits(digits, 11) or digits.startswith("3"):
            return None
        return _success(BarcodeType.NDC11, "ndc11-direct", [digits])

    def _gtin14(self, digits: str) -> Optional[NormalizedScan]:
        if not is_digits(digits, 14):
            return None
        return self._from_gtin14(digits, BarcodeType.GTIN14, "gtin14", {})

    def _gs1(self, text: str) -> Optional[NormalizedScan]:
        ai = parse_gs1(text, extended=self.enhanced)
        gtin = ai.get("01")
        if not gtin:
            return None
        return self._from_gtin14(gtin, BarcodeType.GS1, "gs1-composite", ai)

    def _from_gtin14(self, gtin14: str, barcode_type: BarcodeType, source: str, ai: Dict[str, str]) -> NormalizedScan:
        if not validate_gtin14(gtin14):
            expected = gtin14_check_digit(gtin14[:13])
            return _failure(
                f"Invalid GTIN-14 check digit (expected {expected}, got {gtin14[13:14]})",
                ScanErrorKind.CHECKSUM,
                self.strictness,
                detected_type="gtin14",
                gtin14=gtin14,
                raw=gtin14,
                suggestions=["Check digit validation failed. Verify the complete barcode was scanned."],
            )
        if not is_pharma_gtin14(gtin14):
            return _failure(
                "GTIN-14 detected but not pharmaceutical (missing 03 prefix after the indicator digit)",
                ScanErrorKind.NOT_PHARMACEUTICAL,
                self.strictness,
                detected_type="gtin14",
                gtin14=gtin14,
                raw=gtin14,
                suggestions=["This appears to be a non-pharmaceutical GTIN-14. Try manual entry or scan a pharmaceutical barcode."],
            )
        ndc10 = gtin14[3:13]
        cands = expand_ndc10_to_11(ndc10, forward_compatible=self.enhanced)
        return _success(
            barcode_type,
            source,
            cands,
            gtin14=gtin14,
            ndc10=ndc10,
            lot=ai.get("10"),
            expiry=yymmdd_to_iso(ai.get("17")),
            serial=ai.get("21"),
            production_date=yymmdd_to_iso(ai.get("11")),
            application_identifiers=dict(ai),
        )

    def _upc_a(self, digits: str) -> Optional[NormalizedScan]:
        if len(digits) not in (11, 12):
            return None
        upc12 = digits
        if len(digits) == 11 and digits[0] in PHARMA_UPC_PREFIXES:
            upc12 = complete_upc_a(digits)
        if validate_upc_a(upc12):
            ndc10 = upc12[1:11]
            cands = expand_ndc10_to_11(ndc10, forward_compatible=self.enhanced)
            if cands:
                return _success(BarcodeType.UPCA, "upc-a", cands, upc12=upc12, ndc10=ndc10)
        if len(digits) != 12:
            return None
        if digits[0] not in PHARMA_UPC_PREFIXES:
            return _failure(
                f"UPC-A detected but not pharmaceutical (starts with {digits[0]}, expected 3 or 0)",
                ScanErrorKind.NOT_PHARMACEUTICAL,
                self.strictness,
                detected_type="upca",
                raw=digits,
                suggestions=["Retail UPC codes outside the drug range cannot be mapped to an NDC. Use manual entry."],
            )
        expected = upc_a_check_digit(digits[:11])
        return _failure(
            f"Invalid UPC-A check digit (expected {expected}, got {digits[11]})",
            ScanErrorKind.CHECKSUM,
            self.strictness,
            detected_type="upca",
            raw=digits,
            suggestions=["Rescan the barcode; one digit was probably misread."],
        )

    def _product_level(self, text: str, n: int) -> NormalizedScan:
        return _failure(
            f"Product-level NDC {text} has no package segment",
            ScanErrorKind.PRODUCT_LEVEL,
            self.strictness,
            suggestions=["Enter the full labeler-product-package NDC from the package label"],
            detected_length=n,
            raw=text,
        )

    def _exhausted(self, text: str, digits: str) -> NormalizedScan:
        n = len(digits)
        suggestions: List[str] = []
        if is_product_level(text):
            return self._product_level(text, n)
        if n == 13:
            reason = "13-digit code detected (possibly EAN-13, not supported for pharmaceuticals)"
            suggestions.append("Use UPC-A (12 digits) or GTIN-14 (14 digits) for pharmaceutical products")
        elif n == 8:
            reason = "8-digit code detected (possibly EAN-8 or truncated)"
            suggestions.append("Ensure complete barcode is scanned")
        elif 0 < n < 10:
            if _LETTERS.search(text):
                reason = "Unrecognized barcode format"
                suggestions.append("Pharmaceutical barcodes should contain only numeric digits")
            else:
                reason = f"Incomplete code ({n} digits)"
                suggestions.append("NDC codes should be 10 or 11 digits")
        elif n > 14:
            reason = "Code too long for standard pharmaceutical barcodes"
            suggestions.append("Check if multiple barcodes were scanned together")
        else:
            reason = "Unrecognized barcode format"
            suggestions.append("Try manual entry")
        return _failure(
            reason,
            ScanErrorKind.MALFORMED,
            self.strictness,
            suggestions=suggestions,
            detected_length=n,
            raw=text,
        )


def normalize_scan(raw: Optional[str], strictness: Optional[ScanStrictness] = None) -> NormalizedScan:
    return BarcodeNormalizer(strictness).normalize(raw)
