from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from config.settings import settings
from ingest.errors import UpstreamError
from ops.metrics import Timer

log = logging.getLogger("ndcscan.ingest.nadac")

SOURCE = "nadac"


def build_query_params(ndc11: str) -> Dict[str, Any]:
    # The dataset sorts; the resolver takes its top row as-is.
    return {
        "conditions[0][property]": "ndc",
        "conditions[0][value]": ndc11,
        "conditions[0][operator]": "=",
        "sorts[0][property]": "effective_date",
        "sorts[0][order]": "desc",
        "limit": 1,
    }


class NadacClient:
    """NADAC per-unit price rows from the data.medicaid.gov datastore API."""

    def __init__(self, http: Optional[httpx.AsyncClient] = None, query_url: Optional[str] = None):
        self.query_url = query_url or settings.NADAC_QUERY_URL
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_S)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "NadacClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def rows_for_ndc(self, ndc11: str) -> List[Dict[str, Any]]:
        t = Timer()
        try:
            r = await self.http.get(self.query_url, params=build_query_params(ndc11))
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(SOURCE, f"HTTP {e.response.status_code}", status_code=e.response.status_code) from e
        except httpx.HTTPError as e:
            log.warning(
                "nadac_transport_error",
                extra={"extra": {"event": "nadac_transport_error", "ndc11": ndc11, "error_type": type(e).__name__, "latency_ms": t.ms()}},
            )
            raise UpstreamError(SOURCE, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise UpstreamError(SOURCE, "invalid JSON body") from e

        rows = data.get("results") if isinstance(data, dict) else None
        rows = rows if isinstance(rows, list) else []
        log.debug(
            "nadac_query_result",
            extra={"extra": {"event": "nadac_query_result", "ndc11": ndc11, "rows": len(rows), "latency_ms": t.ms()}},
        )
        return rows
