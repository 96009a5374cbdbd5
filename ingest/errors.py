from __future__ import annotations

from typing import Optional


class UpstreamError(RuntimeError):
    """A reference-data call failed in transport (timeout, network, non-2xx, bad body).

    Distinct from "no data": a service that answered with zero matching rows
    is not an error and never raises this.
    """

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status_code = status_code
