from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from cache.bounded import BoundedCache
from ingest.errors import UpstreamError
from models.fda import FdaProduct
from models.results import Confidence, FailureKind, NormalizedScan, VerificationResult
from ndc.expander import expand_ndc11_to_package_candidates, expand_ndc11_to_product_candidates
from ndc.formats import is_digits
from ops.metrics import Timer

log = logging.getLogger("ndcscan.ndc.resolver")

PACKAGE = "package"
PRODUCT = "product"

_MISS = object()


class ProductRegistry(Protocol):
    async def find_by_package_ndc(self, package_ndc: str) -> Optional[FdaProduct]: ...

    async def find_by_product_ndc(self, product_ndc: str) -> Optional[FdaProduct]: ...


@dataclass(frozen=True)
class CandidateOutcome:
    """Cached answer for one (granularity, NDC-11) pair; product=None is a confirmed miss."""

    product: Optional[FdaProduct]
    query: Optional[str]


@dataclass
class _Probe:
    outcome: CandidateOutcome
    answered: int
    errors: List[str]


class VerificationResolver:
    """Resolve NDC-11 candidates against the product registry.

    Pass 1 tries every candidate at package granularity, pass 2 at product
    granularity. The first hit wins; a package-exact hit on any candidate
    beats a product-level hit on an earlier one. Calls are strictly
    sequential so a hit stops further requests.
    """

    def __init__(self, client: ProductRegistry, cache: BoundedCache):
        self.client = client
        self.cache = cache

    async def verify_scan(self, scan: NormalizedScan) -> VerificationResult:
        if not scan.ok:
            return VerificationResult(
                ok=False,
                reason=scan.reason or "Scan could not be normalized",
                failure=FailureKind.INVALID_INPUT,
            )
        return await self.verify(scan.ndc11_candidates or [scan.ndc11 or ""])

    async def verify(self, candidates: Sequence[str]) -> VerificationResult:
        t = Timer()
        cands = list(dict.fromkeys(c for c in candidates if is_digits(c, 11)))
        if not cands:
            return VerificationResult(
                ok=False,
                reason="Input must be 11 digits",
                failure=FailureKind.INVALID_INPUT,
                tried_candidates=[],
            )

        tried: List[str] = []
        errors: List[str] = []
        answered = 0

        for level, confidence in ((PACKAGE, Confidence.PACKAGE_EXACT), (PRODUCT, Confidence.PRODUCT_LEVEL)):
            for ndc11 in cands:
                if ndc11 not in tried:
                    tried.append(ndc11)
                probe = await self._probe(ndc11, level)
                errors.extend(probe.errors)
                answered += probe.answered
                product = probe.outcome.product
                if product is None:
                    continue

                package = product.find_package(probe.outcome.query or "") if level == PACKAGE else None
                if level == PACKAGE and package is None:
                    package = product.find_matching_package(ndc11)
                result = VerificationResult(
                    ok=True,
                    confidence=confidence,
                    ndc11=ndc11,
                    matched_query=probe.outcome.query,
                    matched_package=package,
                    matched_product=product,
                    tried_candidates=list(tried),
                    errors=errors,
                )
                self._log_result(result, t)
                return result

        if answered == 0 and errors:
            result = VerificationResult(
                ok=False,
                reason="Product registry unavailable for every candidate",
                failure=FailureKind.TRANSPORT_ERROR,
                ndc11=cands[0],
                tried_candidates=tried,
                errors=errors,
            )
        else:
            result = VerificationResult(
                ok=False,
                reason="No openFDA match found after trying all candidates",
                failure=FailureKind.NO_MATCH,
                ndc11=cands[0],
                tried_candidates=tried,
                errors=errors,
            )
        self._log_result(result, t)
        return result

    async def _probe(self, ndc11: str, level: str) -> _Probe:
        key = f"verify:{level}:{ndc11}"
        cached = self.cache.get(key, _MISS)
        if cached is not _MISS:
            return _Probe(outcome=cached, answered=1, errors=[])

        if level == PACKAGE:
            forms = expand_ndc11_to_package_candidates(ndc11)
            finder: Callable[[str], Awaitable[Optional[FdaProduct]]] = self.client.find_by_package_ndc
        else:
            forms = expand_ndc11_to_product_candidates(ndc11)
            finder = self.client.find_by_product_ndc

        answered = 0
        errors: List[str] = []
        for form in forms:
            try:
                product = await finder(form)
            except UpstreamError as e:
                log.warning(
                    "registry_candidate_failed",
                    extra={"extra": {"event": "registry_candidate_failed", "level": level, "ndc11": ndc11, "query": form, "message": str(e)}},
                )
                errors.append(f"{level}:{form}: {e}")
                continue
            answered += 1
            if product is not None:
                outcome = CandidateOutcome(product=product, query=form)
                self.cache.set(key, outcome)
                return _Probe(outcome=outcome, answered=answered, errors=errors)

        miss = CandidateOutcome(product=None, query=None)
        # A miss is only authoritative when every query actually answered.
        if not errors:
            self.cache.set(key, miss)
        return _Probe(outcome=miss, answered=answered, errors=errors)

    @staticmethod
    def _log_result(result: VerificationResult, t: Timer) -> None:
        log.info(
            "verification_result",
            extra={
                "extra": {
                    "event": "verification_result",
                    "ok": result.ok,
                    "confidence": result.confidence.value,
                    "ndc11": result.ndc11,
                    "matched_query": result.matched_query,
                    "tried": result.tried_candidates,
                    "error_count": len(result.errors),
                    "failure": result.failure.value if result.failure else None,
                    "latency_ms": t.ms(),
                }
            },
        )

