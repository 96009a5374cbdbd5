from __future__ import annotations

import os
import time
from typing import Any, Dict

from fastapi import APIRouter

from config.settings import settings
from models.schema import COL_SYSTEM, DOC_HEALTHZ
from ops.metrics import Timer
from storage.firestore_client import get_firestore_client

router = APIRouter()


def _firestore_probe(timeout_s: float = 0.20) -> Dict[str, Any]:
    """Single bounded-time read of a fixed doc; never writes."""
    t = Timer()
    try:
        get_firestore_client().collection(COL_SYSTEM).document(DOC_HEALTHZ).get(timeout=timeout_s)
    except Exception as e:
        return {"ok": False, "error_type": type(e).__name__, "message": str(e), "latency_ms": t.ms()}
    return {"ok": True, "latency_ms": t.ms()}


@router.get("/health")
def health():
    payload: Dict[str, Any] = {
        "ok": True,
        "service": "ndcscan-api",
        "revision": os.getenv("K_REVISION") or "",
        "environment": settings.ENVIRONMENT,
        "scan_strictness": settings.SCAN_STRICTNESS,
        "upstreams": {"openfda": settings.OPENFDA_NDC_URL, "nadac": settings.NADAC_QUERY_URL},
        "http_timeout_s": settings.HTTP_TIMEOUT_S,
        "manual_entry_enabled": bool(settings.MANUAL_ENTRY_ENABLED),
        "time_unix": time.time(),
    }

    # Firestore only backs manual entries; scanning works without it.
    if settings.MANUAL_ENTRY_ENABLED:
        fs = _firestore_probe()
        payload["firestore_ok"] = bool(fs["ok"])
        payload["firestore"] = fs

    return payload
