from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.fda import FdaPackaging, FdaProduct
from ndc.formats import is_digits


class BarcodeType(str, Enum):
    GS1 = "gs1"
    GTIN14 = "gtin14"
    UPCA = "upca"
    NDC11 = "ndc11"
    NDC10 = "ndc10"
    NDC_DASHED = "ndc-dashed"


class ScanErrorKind(str, Enum):
    EMPTY = "empty"
    MALFORMED = "malformed"
    CHECKSUM = "checksum"
    NOT_PHARMACEUTICAL = "not_pharmaceutical"
    PRODUCT_LEVEL = "product_level"


class FailureKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    NO_MATCH = "no_match"
    TRANSPORT_ERROR = "transport_error"


class Confidence(str, Enum):
    PACKAGE_EXACT = "package-exact"
    PRODUCT_LEVEL = "product-level"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {Confidence.PACKAGE_EXACT: 2, Confidence.PRODUCT_LEVEL: 1, Confidence.NONE: 0}


class NormalizedScan(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: Optional[str] = None
    barcode_type: Optional[BarcodeType] = None
    source: Optional[str] = None
    ndc11: Optional[str] = None
    ndc11_candidates: List[str] = Field(default_factory=list)
    ndc10: Optional[str] = None
    gtin14: Optional[str] = None
    upc12: Optional[str] = None
    ndc_formatted: Optional[str] = None
    lot: Optional[str] = None
    expiry: Optional[str] = None
    serial: Optional[str] = None
    production_date: Optional[str] = None
    application_identifiers: Dict[str, str] = Field(default_factory=dict)
    note: Optional[str] = None

    # failure diagnostics
    error_kind: Optional[ScanErrorKind] = None
    detected_type: Optional[str] = None
    detected_length: Optional[int] = None
    suggestions: List[str] = Field(default_factory=list)
    raw: Optional[str] = None

    @model_validator(mode="after")
    def _candidates_are_ndc11(self) -> "NormalizedScan":
        if self.ok:
            if not self.ndc11 or self.ndc11 not in self.ndc11_candidates:
                raise ValueError("ndc11 must be one of ndc11_candidates")
            if not all(is_digits(c, 11) for c in self.ndc11_candidates):
                raise ValueError("every candidate must be 11 digits")
        return self


class VerificationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    confidence: Confidence = Confidence.NONE
    ndc11: Optional[str] = None
    matched_query: Optional[str] = None
    matched_package: Optional[FdaPackaging] = None
    matched_product: Optional[FdaProduct] = None
    tried_candidates: List[str] = Field(default_factory=list)
    reason: Optional[str] = None
    failure: Optional[FailureKind] = None
    errors: List[str] = Field(default_factory=list)


class PriceResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    ndc11: Optional[str] = None
    price_per_unit: Optional[float] = None
    pricing_unit: Optional[str] = None
    effective_date: Optional[str] = None
    description: Optional[str] = None
    reason: Optional[str] = None
    failure: Optional[FailureKind] = None
    tried: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class LineDraft(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    ndc11: Optional[str] = None
    package_size: str = "UNKNOWN"
    item_name: str = "Unknown drug"
    labeler_name: str = "Unknown Labeler"
    package_ndc: Optional[str] = None
    package_description: Optional[str] = None
    dosage_form: Optional[str] = None
    strength: Optional[str] = None
    dea_schedule: Optional[str] = None


class ManualEntry(BaseModel):
    barcode: str
    item_name: str
    ndc11: str = ""
    package_size: str = ""
    price_per_unit: float = 0.0
    labeler_name: str = ""
    source: str = "manual"
    last_used: Optional[str] = None


class ScanResult(BaseModel):
    """Everything one scan produced, including partial progress."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    request_id: str = ""
    raw: str = ""
    scan: Optional[NormalizedScan] = None
    manual_entry: Optional[ManualEntry] = None
    verification: Optional[VerificationResult] = None
    price: Optional[PriceResult] = None
    line_draft: Optional[LineDraft] = None
    reason: Optional[str] = None
    allow_manual_entry: bool = False

    def summary(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "manual": self.manual_entry is not None,
            "ndc11": self.line_draft.ndc11 if self.line_draft else (self.scan.ndc11 if self.scan else None),
            "confidence": self.verification.confidence.value if self.verification else None,
            "priced": bool(self.price and self.price.ok),
        }
