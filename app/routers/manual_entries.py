from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from barcode.manual import is_custom_code, validate_manual_code, validate_standard_ndc
from config.settings import settings
from models.results import ManualEntry
from ndc.normalizer import normalize_ndc_to_11
from repos.manual_entry_repo import ManualEntryRepository

router = APIRouter()


class ManualEntryBody(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=256)
    labeler_name: str = Field(..., min_length=1, max_length=256)
    ndc11: str = Field(default="", max_length=64)
    package_size: str = Field(default="", max_length=64)
    price_per_unit: float = Field(default=0.0, ge=0)


@lru_cache(maxsize=1)
def get_manual_repo() -> ManualEntryRepository:
    return ManualEntryRepository()


def _require_enabled() -> None:
    if not settings.MANUAL_ENTRY_ENABLED:
        raise HTTPException(status_code=404, detail="manual_entries_disabled")


@router.get("/manual-entries/{barcode}")
def get_entry(barcode: str, repo: ManualEntryRepository = Depends(get_manual_repo)):
    _require_enabled()
    entry = repo.get(barcode)
    if entry is None:
        raise HTTPException(status_code=404, detail="manual_entry_not_found")
    return {"ok": True, "barcode": barcode, "entry": entry.model_dump()}


@router.put("/manual-entries/{barcode}")
def put_entry(barcode: str, body: ManualEntryBody, repo: ManualEntryRepository = Depends(get_manual_repo)):
    _require_enabled()
    ok, message = validate_manual_code(barcode)
    if not ok:
        raise HTTPException(status_code=400, detail=message)

    ndc11 = body.ndc11.strip()
    if ndc11 and not is_custom_code(ndc11):
        ok, message = validate_standard_ndc(ndc11)
        if not ok:
            raise HTTPException(status_code=400, detail=message)
        ndc11 = normalize_ndc_to_11(ndc11) or ndc11

    saved = repo.upsert(
        ManualEntry(
            barcode=barcode,
            item_name=body.item_name.strip(),
            labeler_name=body.labeler_name.strip(),
            ndc11=ndc11,
            package_size=body.package_size.strip(),
            price_per_unit=body.price_per_unit,
        )
    )
    return {"ok": True, "barcode": barcode, "entry": saved.model_dump()}


@router.delete("/manual-entries/{barcode}")
def delete_entry(barcode: str, repo: ManualEntryRepository = Depends(get_manual_repo)):
    _require_enabled()
    if not repo.delete(barcode):
        raise HTTPException(status_code=404, detail="manual_entry_not_found")
    return {"ok": True, "barcode": barcode, "deleted": True}
