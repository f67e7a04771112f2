"""Rate limiter probe for operators."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from concierge.api.gating import client_address, denial_exception
from concierge.core.config import Settings, get_settings
from concierge.deps import get_access_gate
from concierge.schemas.gate import RateLimitProbeResponse
from concierge.services.access_gate import AccessGate, GateRequest, debug_probe_policy

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/rate-limit", response_model=RateLimitProbeResponse)
async def probe_rate_limit(
    request: Request,
    settings: Settings = Depends(get_settings),
    gate: AccessGate = Depends(get_access_gate),
) -> RateLimitProbeResponse:
    """Consume one slot of the debug bucket for the caller's address."""

    decision = await gate.evaluate(
        GateRequest(address=client_address(request)), debug_probe_policy(settings)
    )
    if not decision.allowed:
        raise denial_exception(request, decision)
    return RateLimitProbeResponse(
        remaining=decision.remaining, reset_in_ms=decision.reset_in_ms
    )
