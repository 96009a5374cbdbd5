from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, Optional, Protocol, Tuple

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from barcode.normalizer import BarcodeNormalizer, ScanStrictness
from cache.bounded import BoundedCache
from config.settings import settings
from ingest.nadac_client import NadacClient
from ingest.openfda_client import OpenFdaClient
from models.results import LineDraft, ManualEntry, NormalizedScan, PriceResult, ScanResult, VerificationResult
from ndc.resolver import VerificationResolver
from ops.metrics import Timer
from pricing.line_draft import build_line_draft
from pricing.resolver import PriceResolver
from utils.request_context import request_scope

log = logging.getLogger("ndcscan.app.scan_service")

VERIFY = "verify"
PRICE = "price"


class ManualEntryStore(Protocol):
    def get(self, barcode: str) -> Optional[ManualEntry]: ...


async def _tagged(tag: str, coro: Awaitable[Any]) -> Tuple[str, Any]:
    return tag, await coro


def line_draft_from_manual(entry: ManualEntry) -> LineDraft:
    return LineDraft(
        ok=True,
        ndc11=entry.ndc11 or None,
        package_size=entry.package_size or "UNKNOWN",
        item_name=entry.item_name,
        labeler_name=entry.labeler_name or "Unknown Labeler",
    )


class ScanService:
    """Raw scanner text -> verified, priced line draft.

    A manual entry stored under the raw text wins outright. Otherwise the
    normalizer produces candidates, the registry picks the product and the
    pricing dataset is asked about that product's packages.
    """

    def __init__(
        self,
        normalizer: BarcodeNormalizer,
        verifier: VerificationResolver,
        pricer: PriceResolver,
        manual_repo: Optional[ManualEntryStore] = None,
    ):
        self.normalizer = normalizer
        self.verifier = verifier
        self.pricer = pricer
        self.manual_repo = manual_repo

    async def aclose(self) -> None:
        for client in (self.verifier.client, self.pricer.client):
            close = getattr(client, "aclose", None)
            if close is not None:
                await close()

    async def scan(self, raw: str) -> ScanResult:
        with request_scope() as rid:
            t = Timer()
            result = await self._scan(raw, rid)
            log.info("scan_result", extra={"extra": {"event": "scan_result", **result.summary(), "latency_ms": t.ms()}})
            return result

    async def _scan(self, raw: str, rid: str) -> ScanResult:
        entry = await self._manual_lookup(raw)
        if entry is not None:
            return ScanResult(
                ok=True,
                request_id=rid,
                raw=raw,
                manual_entry=entry,
                line_draft=line_draft_from_manual(entry),
            )

        scan = self.normalizer.normalize(raw)
        if not scan.ok:
            return ScanResult(
                ok=False,
                request_id=rid,
                raw=raw,
                scan=scan,
                reason=scan.reason,
                allow_manual_entry=True,
            )

        verification = await self.verifier.verify_scan(scan)
        product = verification.matched_product
        if verification.ok and product is not None:
            price = await self.pricer.resolve(ndc=verification.ndc11, product=product)
            draft = build_line_draft(product, verification.ndc11 or "", package=verification.matched_package)
        else:
            price = await self.pricer.resolve(ndc=scan.ndc11, extra=scan.ndc11_candidates)
            draft = None

        reason = None
        if not verification.ok:
            reason = verification.reason
        elif not price.ok:
            reason = price.reason

        return ScanResult(
            ok=verification.ok,
            request_id=rid,
            raw=raw,
            scan=scan,
            verification=verification,
            price=price,
            line_draft=draft,
            reason=reason,
            allow_manual_entry=not (verification.ok and price.ok),
        )

    async def lookup_concurrently(self, scan: NormalizedScan) -> Tuple[VerificationResult, PriceResult]:
        """Verify and price one normalized scan side by side.

        Pricing here works from the scan alone since the product is not known
        yet. Results are joined by tag, not by completion order.
        """
        pairs = await asyncio.gather(
            _tagged(VERIFY, self.verifier.verify_scan(scan)),
            _tagged(PRICE, self.pricer.resolve(ndc=scan.ndc11, extra=scan.ndc11_candidates)),
        )
        joined: Dict[str, Any] = dict(pairs)
        return joined[VERIFY], joined[PRICE]

    async def _manual_lookup(self, raw: str) -> Optional[ManualEntry]:
        if self.manual_repo is None or not raw or not raw.strip():
            return None
        try:
            return await asyncio.to_thread(self.manual_repo.get, raw.strip())
        except (GoogleAPIError, GoogleAuthError) as e:
            log.warning(
                "manual_entry_lookup_failed",
                extra={"extra": {"event": "manual_entry_lookup_failed", "error_type": type(e).__name__, "message": str(e)}},
            )
            return None


def build_default_service(manual_repo: Optional[ManualEntryStore] = None) -> ScanService:
    """Production wiring: owned httpx clients, one cache per resolver."""
    if manual_repo is None and settings.MANUAL_ENTRY_ENABLED:
        from repos.manual_entry_repo import ManualEntryRepository

        manual_repo = ManualEntryRepository()
    return ScanService(
        normalizer=BarcodeNormalizer(ScanStrictness.from_setting(settings.SCAN_STRICTNESS)),
        verifier=VerificationResolver(OpenFdaClient(), BoundedCache(settings.VERIFY_CACHE_SIZE)),
        pricer=PriceResolver(NadacClient(), BoundedCache(settings.PRICE_CACHE_SIZE)),
        manual_repo=manual_repo,
    )
