"""Response schemas for gate probes and geo checks."""
from __future__ import annotations

from concierge.schemas.common import CamelModel


class RateLimitProbeResponse(CamelModel):
    ok: bool = True
    remaining: int
    reset_in_ms: int


class GeoCheckResponse(CamelModel):
    allowed: bool
    country: str
