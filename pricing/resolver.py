from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from cache.bounded import BoundedCache
from ingest.errors import UpstreamError
from models.fda import FdaProduct
from models.results import FailureKind, PriceResult
from ndc.expander import expand_ndc10_to_11
from ndc.formats import digits_only, is_digits, is_product_level, split_dashed
from ndc.normalizer import normalize_ndc_to_11
from ops.metrics import Timer

log = logging.getLogger("ndcscan.pricing.resolver")


class PricingDataset(Protocol):
    async def rows_for_ndc(self, ndc11: str) -> List[Dict[str, Any]]: ...


def price_candidates(
    ndc: Optional[str],
    product: Optional[FdaProduct] = None,
    extra: Sequence[str] = (),
) -> List[str]:
    """Ordered, de-duplicated NDC-11s worth asking the pricing dataset about.

    1. the product package that matches the input
    2. direct normalization of the input
    3. every 10->11 expansion when the input is an undashed 10-digit NDC
    4. `extra` NDC-11s, e.g. every reading the barcode normalizer produced
    5. the product's packages under a two-segment (labeler-product) input
    6. every other package the product lists
    """
    out: Dict[str, None] = {}

    def push(v: Optional[str]) -> None:
        if v and is_digits(v, 11):
            out.setdefault(v, None)

    raw = (ndc or "").strip()
    if product is not None and raw:
        pkg = product.find_matching_package(raw)
        if pkg is not None:
            push(pkg.ndc11)

    if raw:
        push(normalize_ndc_to_11(raw))
        if "-" not in raw:
            for c in expand_ndc10_to_11(digits_only(raw)):
                push(c)
    for c in extra:
        push(c)

    if product is not None:
        if raw and is_product_level(raw):
            lab, prod = split_dashed(raw)
            for p in product.packaging:
                if p.package_ndc.startswith(f"{lab}-{prod}-"):
                    push(p.ndc11)
        for c in product.package_ndc11s():
            push(c)

    return list(out)


def _effective_date(value: Any) -> Optional[str]:
    if not value:
        return None
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%m/%d/%Y").date().isoformat()
    except ValueError:
        return None


def price_from_row(ndc11: str, row: Dict[str, Any]) -> Optional[PriceResult]:
    """A row counts only with a numeric per-unit price and the dataset's effective date."""
    effective = _effective_date(row.get("effective_date"))
    try:
        per_unit = float(row.get("nadac_per_unit"))
    except (TypeError, ValueError):
        return None
    if effective is None:
        return None
    return PriceResult(
        ok=True,
        ndc11=row.get("ndc") or row.get("NDC") or ndc11,
        price_per_unit=per_unit,
        pricing_unit=row.get("pricing_unit") or "EA",
        effective_date=effective,
        description=row.get("ndc_description"),
    )


class PriceResolver:
    """First-match-wins NADAC lookup over every plausible NDC-11."""

    def __init__(self, client: PricingDataset, cache: BoundedCache):
        self.client = client
        self.cache = cache

    async def latest_price(self, ndc11: str) -> PriceResult:
        """Price for exactly one NDC-11. Raises UpstreamError on transport failure."""
        if not is_digits(ndc11, 11):
            return PriceResult(ok=False, reason="Input must be 11 digits", failure=FailureKind.INVALID_INPUT)

        key = f"price:{ndc11}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        rows = await self.client.rows_for_ndc(ndc11)
        res = price_from_row(ndc11, rows[0]) if rows else None
        if res is None:
            reason = "No price data found for this NDC" if not rows else "Price row missing per-unit price or effective date"
            res = PriceResult(ok=False, ndc11=ndc11, reason=reason, failure=FailureKind.NO_MATCH)
        self.cache.set(key, res)
        return res

    async def resolve(
        self,
        ndc: Optional[str] = None,
        product: Optional[FdaProduct] = None,
        extra: Sequence[str] = (),
    ) -> PriceResult:
        t = Timer()
        candidates = price_candidates(ndc, product, extra)
        if not candidates:
            return PriceResult(
                ok=False,
                reason="Could not derive any valid NDC-11 candidates from input",
                failure=FailureKind.INVALID_INPUT,
            )

        tried: List[str] = []
        errors: List[str] = []
        answered = 0
        for ndc11 in candidates:
            tried.append(ndc11)
            try:
                res = await self.latest_price(ndc11)
            except UpstreamError as e:
                log.warning(
                    "price_candidate_failed",
                    extra={"extra": {"event": "price_candidate_failed", "ndc11": ndc11, "message": str(e)}},
                )
                errors.append(f"{ndc11}: {e}")
                continue
            answered += 1
            if res.ok:
                result = res.model_copy(update={"ndc11": ndc11, "tried": list(tried), "errors": list(errors)})
                self._log_result(result, t)
                return result

        if answered == 0:
            result = PriceResult(
                ok=False,
                reason="Pricing dataset unavailable for every candidate",
                failure=FailureKind.TRANSPORT_ERROR,
                tried=tried,
                errors=errors,
            )
        else:
            result = PriceResult(
                ok=False,
                reason="No price found for any candidate NDC-11",
                failure=FailureKind.NO_MATCH,
                tried=tried,
                errors=errors,
            )
        self._log_result(result, t)
        return result

    @staticmethod
    def _log_result(result: PriceResult, t: Timer) -> None:
        log.info(
            "price_result",
            extra={
                "extra": {
                    "event": "price_result",
                    "ok": result.ok,
                    "ndc11": result.ndc11,
                    "tried": result.tried,
                    "error_count": len(result.errors),
                    "failure": result.failure.value if result.failure else None,
                    "latency_ms": t.ms(),
                }
            },
        )
