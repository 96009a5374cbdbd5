from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.results import ManualEntry
from models.schema import COL_MANUAL_ENTRIES


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ManualEntryRepository:
    """User-curated overrides keyed by the original scanned text."""

    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _doc(self, barcode: str):
        return self.db.collection(COL_MANUAL_ENTRIES).document(barcode)

    def get(self, barcode: str, touch: bool = True) -> Optional[ManualEntry]:
        if not barcode:
            return None
        snap = self._doc(barcode).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["barcode"] = barcode
        if touch:
            d["last_used"] = _now_iso()
            self._doc(barcode).set({"last_used": d["last_used"]}, merge=True)
        return ManualEntry.model_validate(d)

    def upsert(self, entry: ManualEntry) -> ManualEntry:
        saved = entry.model_copy(update={"source": "manual", "last_used": _now_iso()})
        self._doc(saved.barcode).set(saved.model_dump(), merge=True)
        return saved

    def delete(self, barcode: str) -> bool:
        if not barcode:
            return False
        doc = self._doc(barcode)
        if not doc.get().exists:
            return False
        doc.delete()
        return True
