from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.scan_service import ScanService, build_default_service
from barcode.normalizer import BarcodeNormalizer, ScanStrictness

router = APIRouter()


class NormalizeRequest(BaseModel):
    raw: str = Field(..., max_length=512)
    strictness: Optional[ScanStrictness] = None


class ResolveRequest(BaseModel):
    raw: str = Field(..., min_length=1, max_length=512)


@lru_cache(maxsize=1)
def get_scan_service() -> ScanService:
    return build_default_service()


@router.post("/scan/normalize")
def normalize(req: NormalizeRequest):
    scan = BarcodeNormalizer(req.strictness).normalize(req.raw)
    return scan.model_dump(mode="json")


@router.post("/scan/resolve")
async def resolve(req: ResolveRequest, service: ScanService = Depends(get_scan_service)):
    result = await service.scan(req.raw)
    return result.model_dump(mode="json")
