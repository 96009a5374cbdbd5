from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ndc.normalizer import normalize_ndc_to_11

SCHEDULE_DESCRIPTIONS = {
    "CI": "Schedule I - No accepted medical use",
    "CII": "Schedule II - High potential for abuse",
    "CIII": "Schedule III - Moderate potential for abuse",
    "CIV": "Schedule IV - Low potential for abuse",
    "CV": "Schedule V - Lowest potential for abuse",
}


class FdaActiveIngredient(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    strength: str = ""


class FdaPackaging(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    package_ndc: str = ""
    description: str = ""
    marketing_start_date: str = ""
    sample: Optional[bool] = None

    @property
    def ndc11(self) -> str:
        return normalize_ndc_to_11(self.package_ndc)


class FdaProduct(BaseModel):
    """One openFDA NDC directory record (drug/ndc.json `results[]`)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    product_ndc: str = ""
    product_id: str = ""
    brand_name: str = ""
    brand_name_base: str = ""
    generic_name: str = ""
    labeler_name: str = ""
    dosage_form: str = ""
    route: List[str] = Field(default_factory=list)
    marketing_category: str = ""
    product_type: str = ""
    active_ingredients: List[FdaActiveIngredient] = Field(default_factory=list)
    packaging: List[FdaPackaging] = Field(default_factory=list)
    pharm_class: List[str] = Field(default_factory=list)
    dea_schedule: Optional[str] = None
    openfda: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("route", "pharm_class", mode="before")
    @classmethod
    def _listify(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("dea_schedule", mode="before")
    @classmethod
    def _blank_schedule(cls, v: Any) -> Any:
        return v or None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "FdaProduct":
        return cls.model_validate(record or {})

    # --- packages -------------------------------------------------------

    def find_package(self, package_ndc: str) -> Optional[FdaPackaging]:
        """Exact match on openFDA's dashed package_ndc spelling."""
        for p in self.packaging:
            if p.package_ndc == package_ndc:
                return p
        return None

    def find_matching_package(self, ndc: str) -> Optional[FdaPackaging]:
        """Package whose NDC-11 equals the NDC-11 of `ndc` (any shape)."""
        target = normalize_ndc_to_11(ndc or "")
        if not target:
            return None
        for p in self.packaging:
            if p.package_ndc and p.ndc11 == target:
                return p
        return None

    def package_ndc11s(self) -> List[str]:
        return [p.ndc11 for p in self.packaging if p.ndc11]

    # --- DEA schedule ---------------------------------------------------

    def is_controlled(self) -> bool:
        return bool(self.dea_schedule)

    def is_schedule_ii(self) -> bool:
        return self.dea_schedule == "CII"

    def requires_form_222(self) -> bool:
        return self.dea_schedule in ("CI", "CII")

    def schedule_display(self) -> str:
        return self.dea_schedule or "Non-Controlled"

    def schedule_description(self) -> str:
        return SCHEDULE_DESCRIPTIONS.get(self.dea_schedule or "", "Non-controlled substance")
