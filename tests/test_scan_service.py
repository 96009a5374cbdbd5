import asyncio

from google.api_core.exceptions import RetryError
from google.auth.exceptions import RefreshError

from app.scan_service import ScanService
from barcode.normalizer import BarcodeNormalizer, ScanStrictness
from cache.bounded import BoundedCache
from models.fda import FdaProduct
from models.results import Confidence, FailureKind, ManualEntry, VerificationResult, PriceResult
from ndc.resolver import VerificationResolver
from pricing.resolver import PriceResolver

FLUOXETINE = FdaProduct.from_record(
    {
        "product_ndc": "0781-1089",
        "generic_name": "Fluoxetine",
        "labeler_name": "Sandoz Inc",
        "dosage_form": "CAPSULE",
        "active_ingredients": [{"name": "FLUOXETINE HYDROCHLORIDE", "strength": "20 mg/1"}],
        "packaging": [
            {"package_ndc": "0781-1089-01", "description": "100 CAPSULE in 1 BOTTLE (0781-1089-01)"},
            {"package_ndc": "0781-1089-10", "description": "1000 CAPSULE in 1 BOTTLE (0781-1089-10)"},
        ],
    }
)

ROW = {"ndc": "00781108901", "nadac_per_unit": "0.04512", "pricing_unit": "EA", "effective_date": "2024-05-15"}

class FakeRegistry:
    def __init__(self, packages=None):
        self.packages = packages or {}
        self.calls = 0
    async def find_by_package_ndc(self, q):
        self.calls += 1
        return self.packages.get(q)
    async def find_by_product_ndc(self, q):
        self.calls += 1
        return None

class FakeNadac:
    def __init__(self, rows=None):
        self.rows = rows or {}
    async def rows_for_ndc(self, ndc11):
        return self.rows.get(ndc11, [])

class FakeManualRepo:
    def __init__(self, entries=None):
        self.entries = entries or {}
    def get(self, barcode):
        return self.entries.get(barcode)

def _service(packages=None, rows=None, manual=None):
    registry = FakeRegistry(packages)
    svc = ScanService(
        normalizer=BarcodeNormalizer(ScanStrictness.ENHANCED),
        verifier=VerificationResolver(registry, BoundedCache(50)),
        pricer=PriceResolver(FakeNadac(rows), BoundedCache(50)),
        manual_repo=FakeManualRepo(manual),
    )
    return svc, registry

def test_scan_resolves_verifies_and_prices():
    svc, _ = _service({"0781-1089-01": FLUOXETINE}, {"00781108901": [ROW]})
    res = asyncio.run(svc.scan("0781-1089-01"))
    assert res.ok
    assert res.request_id.startswith("scan_")
    assert res.verification.confidence == Confidence.PACKAGE_EXACT
    assert res.price.ok
    assert res.price.price_per_unit == 0.04512
    assert res.line_draft.package_size == "100 capsules"
    assert res.line_draft.item_name == "Fluoxetine 20 mg/1 capsule"
    assert not res.allow_manual_entry

def test_scan_keeps_partial_progress_without_price():
    svc, _ = _service({"0781-1089-01": FLUOXETINE})
    res = asyncio.run(svc.scan("00781108901"))
    assert res.ok
    assert res.line_draft.ndc11 == "00781108901"
    assert not res.price.ok
    assert res.reason == "No price found for any candidate NDC-11"
    assert res.allow_manual_entry

def test_scan_unparseable_offers_manual_entry():
    svc, registry = _service()
    res = asyncio.run(svc.scan("12345"))
    assert not res.ok
    assert res.scan.reason == "Incomplete code (5 digits)"
    assert res.verification is None
    assert res.allow_manual_entry
    assert registry.calls == 0

def test_scan_no_registry_match():
    svc, _ = _service()
    res = asyncio.run(svc.scan("00781108901"))
    assert not res.ok
    assert res.verification.failure == FailureKind.NO_MATCH
    assert res.line_draft is None
    assert res.allow_manual_entry

def test_manual_entry_short_circuits():
    entry = ManualEntry(barcode="HOUSE-1", item_name="House saline", labeler_name="Pharmacy", package_size="10 mL")
    svc, registry = _service(manual={"HOUSE-1": entry})
    res = asyncio.run(svc.scan("HOUSE-1"))
    assert res.ok
    assert res.manual_entry.item_name == "House saline"
    assert res.line_draft.package_size == "10 mL"
    assert res.scan is None
    assert registry.calls == 0

def test_lookup_concurrently_joins_by_tag():
    svc, _ = _service({"0781-1089-01": FLUOXETINE}, {"00781108901": [ROW]})
    scan = svc.normalizer.normalize("00781108901")
    verification, price = asyncio.run(svc.lookup_concurrently(scan))
    assert isinstance(verification, VerificationResult)
    assert isinstance(price, PriceResult)
    assert verification.ok
    assert price.ok

class FailingManualRepo:
    def __init__(self, exc):
        self.exc = exc
    def get(self, barcode):
        raise self.exc

def test_manual_store_outage_does_not_block_scans():
    for exc in (RetryError("Deadline of 60.0s exceeded", None), RefreshError("token refresh failed")):
        svc, _ = _service({"0781-1089-01": FLUOXETINE}, {"00781108901": [ROW]})
        svc.manual_repo = FailingManualRepo(exc)
        res = asyncio.run(svc.scan("00781108901"))
        assert res.ok
        assert res.manual_entry is None
        assert res.price.ok

def test_unverified_scan_prices_every_normalizer_reading():
    row = dict(ROW, ndc="07811089001")
    svc, _ = _service(rows={"07811089001": [row]})
    res = asyncio.run(svc.scan("0781108901"))
    assert not res.ok
    assert res.scan.ndc11_candidates == ["00781108901", "07811008901", "07811089001"]
    assert res.price.ok
    assert res.price.ndc11 == "07811089001"
    assert res.price.tried == ["00781108901", "07811008901", "07811089001"]

def test_lookup_concurrently_prices_every_normalizer_reading():
    svc, _ = _service(rows={"07811089001": [dict(ROW, ndc="07811089001")]})
    scan = svc.normalizer.normalize("0781108901")
    verification, price = asyncio.run(svc.lookup_concurrently(scan))
    assert not verification.ok
    assert price.ok
    assert price.ndc11 == "07811089001"
