from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from config.settings import settings
from ingest.errors import UpstreamError
from models.fda import FdaProduct
from ops.metrics import Timer

log = logging.getLogger("ndcscan.ingest.openfda")

SOURCE = "openfda"


class OpenFdaClient:
    """openFDA NDC directory lookups by exact package or product NDC.

    Owns an httpx.AsyncClient unless one is injected. Cancelling the awaiting
    task aborts the in-flight request.
    """

    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.base_url = base_url or settings.OPENFDA_NDC_URL
        self.api_key = settings.OPENFDA_API_KEY if api_key is None else api_key
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_S)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "OpenFdaClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def search(self, search: str, limit: int = 1) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"search": search, "limit": limit}
        if self.api_key:
            params["api_key"] = self.api_key

        t = Timer()
        try:
            r = await self.http.get(self.base_url, params=params)
        except httpx.HTTPError as e:
            log.warning(
                "openfda_transport_error",
                extra={"extra": {"event": "openfda_transport_error", "search": search, "error_type": type(e).__name__, "latency_ms": t.ms()}},
            )
            raise UpstreamError(SOURCE, f"{type(e).__name__}: {e}") from e

        # openFDA answers 404 "No matches found!" for an empty result set.
        if r.status_code == 404:
            log.debug("openfda_no_match", extra={"extra": {"event": "openfda_no_match", "search": search, "latency_ms": t.ms()}})
            return []
        if r.status_code >= 400:
            raise UpstreamError(SOURCE, f"HTTP {r.status_code}: {(r.text or '')[:200]}", status_code=r.status_code)

        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamError(SOURCE, "invalid JSON body", status_code=r.status_code) from e

        results = (data.get("results") or []) if isinstance(data, dict) else []
        log.debug(
            "openfda_search_result",
            extra={"extra": {"event": "openfda_search_result", "search": search, "hits": len(results), "latency_ms": t.ms()}},
        )
        return results

    async def find_by_package_ndc(self, package_ndc: str) -> Optional[FdaProduct]:
        rows = await self.search(f'packaging.package_ndc:"{package_ndc}"')
        return FdaProduct.from_record(rows[0]) if rows else None

    async def find_by_product_ndc(self, product_ndc: str) -> Optional[FdaProduct]:
        rows = await self.search(f'product_ndc:"{product_ndc}"')
        return FdaProduct.from_record(rows[0]) if rows else None
