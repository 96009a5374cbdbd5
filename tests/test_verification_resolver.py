import asyncio

import pytest

from cache.bounded import BoundedCache
from ingest.errors import UpstreamError
from models.fda import FdaProduct
from models.results import Confidence, FailureKind, NormalizedScan
from ndc.resolver import VerificationResolver

FLUOXETINE = FdaProduct.from_record(
    {
        "product_ndc": "0781-1089",
        "generic_name": "Fluoxetine",
        "labeler_name": "Sandoz Inc",
        "dosage_form": "CAPSULE",
        "packaging": [
            {"package_ndc": "0781-1089-01", "description": "100 CAPSULE in 1 BOTTLE (0781-1089-01)"},
            {"package_ndc": "0781-1089-10", "description": "1000 CAPSULE in 1 BOTTLE (0781-1089-10)"},
        ],
    }
)

class FakeRegistry:
    def __init__(self, packages=None, products=None, fail=()):
        self.packages = packages or {}
        self.products = products or {}
        self.fail = set(fail)
        self.calls = []
    async def find_by_package_ndc(self, q):
        self.calls.append(("package", q))
        if "*" in self.fail or q in self.fail:
            raise UpstreamError("openfda", "HTTP 503", status_code=503)
        return self.packages.get(q)
    async def find_by_product_ndc(self, q):
        self.calls.append(("product", q))
        if "*" in self.fail or q in self.fail:
            raise UpstreamError("openfda", "HTTP 503", status_code=503)
        return self.products.get(q)

def _resolver(registry):
    return VerificationResolver(registry, BoundedCache(50))

def test_first_hit_wins_on_later_candidate():
    reg = FakeRegistry(packages={"0781-1089-01": FLUOXETINE})
    res = asyncio.run(_resolver(reg).verify(["11111111111", "00781108901"]))
    assert res.ok
    assert res.confidence == Confidence.PACKAGE_EXACT
    assert res.ndc11 == "00781108901"
    assert res.matched_query == "0781-1089-01"
    assert res.matched_package.package_ndc == "0781-1089-01"
    assert res.tried_candidates == ["11111111111", "00781108901"]

def test_package_hit_beats_earlier_product_hit():
    reg = FakeRegistry(packages={"0781-1089-01": FLUOXETINE}, products={"0781-1089": FLUOXETINE})
    res = asyncio.run(_resolver(reg).verify(["00781108910", "00781108901"]))
    assert res.confidence == Confidence.PACKAGE_EXACT
    assert res.ndc11 == "00781108901"
    assert not any(kind == "product" for kind, _ in reg.calls)

def test_product_level_fallback_has_no_package():
    reg = FakeRegistry(products={"0781-1089": FLUOXETINE})
    res = asyncio.run(_resolver(reg).verify(["00781108901"]))
    assert res.ok
    assert res.confidence == Confidence.PRODUCT_LEVEL
    assert res.matched_query == "0781-1089"
    assert res.matched_package is None
    assert res.matched_product.product_ndc == "0781-1089"

def test_no_match():
    res = asyncio.run(_resolver(FakeRegistry()).verify(["00781108901"]))
    assert not res.ok
    assert res.failure == FailureKind.NO_MATCH
    assert res.reason == "No openFDA match found after trying all candidates"
    assert res.confidence == Confidence.NONE

def test_all_transport_errors():
    reg = FakeRegistry(fail={"*"})
    res = asyncio.run(_resolver(reg).verify(["00781108901", "12345678901"]))
    assert not res.ok
    assert res.failure == FailureKind.TRANSPORT_ERROR
    assert res.errors

def test_error_on_one_query_does_not_mask_a_hit():
    reg = FakeRegistry(packages={"0781-1089-01": FLUOXETINE}, fail={"00781-1089-01"})
    res = asyncio.run(_resolver(reg).verify(["00781108901"]))
    assert res.ok
    assert len(res.errors) == 1

def test_hits_and_answered_misses_are_cached():
    reg = FakeRegistry(packages={"0781-1089-01": FLUOXETINE})
    resolver = _resolver(reg)
    asyncio.run(resolver.verify(["11111111111", "00781108901"]))
    n = len(reg.calls)
    res = asyncio.run(resolver.verify(["11111111111", "00781108901"]))
    assert res.ok
    assert len(reg.calls) == n
    assert "verify:package:00781108901" in resolver.cache

def test_errored_misses_are_not_cached():
    reg = FakeRegistry(fail={"*"})
    resolver = _resolver(reg)
    asyncio.run(resolver.verify(["00781108901"]))
    n = len(reg.calls)
    asyncio.run(resolver.verify(["00781108901"]))
    assert len(reg.calls) == 2 * n
    assert len(resolver.cache) == 0

def test_invalid_input():
    res = asyncio.run(_resolver(FakeRegistry()).verify(["123", "abc"]))
    assert res.failure == FailureKind.INVALID_INPUT
    scan = NormalizedScan(ok=False, reason="Empty scan")
    res = asyncio.run(_resolver(FakeRegistry()).verify_scan(scan))
    assert res.failure == FailureKind.INVALID_INPUT
    assert res.reason == "Empty scan"

class BlockingRegistry:
    def __init__(self):
        self.calls = 0
        self.started = asyncio.Event()
    async def find_by_package_ndc(self, q):
        self.calls += 1
        self.started.set()
        await asyncio.Event().wait()
    async def find_by_product_ndc(self, q):
        self.calls += 1
        await asyncio.Event().wait()

def test_cancellation_stops_further_queries():
    async def run():
        reg = BlockingRegistry()
        task = asyncio.create_task(_resolver(reg).verify(["00781108901", "12345678901"]))
        await reg.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return reg.calls
    assert asyncio.run(run()) == 1

def test_confidence_is_ordered():
    assert Confidence.PACKAGE_EXACT.rank > Confidence.PRODUCT_LEVEL.rank > Confidence.NONE.rank
