"""Esthetics concierge endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from concierge.api.gating import client_address, denial_exception
from concierge.core.config import Settings, get_settings
from concierge.deps import get_access_gate, get_esthetics_service
from concierge.schemas.esthetics import (
    CompleteRequest,
    CompleteResponse,
    SessionFlags,
    SessionGeoFlags,
    SessionRateFlags,
    StartSessionRequest,
    StartSessionResponse,
)
from concierge.services.access_gate import AccessGate, GateRequest, esthetics_session_policy
from concierge.services.esthetics import EstheticsProtocolService

router = APIRouter(prefix="/esthetics", tags=["esthetics"])


@router.post("/start-session", response_model=StartSessionResponse)
async def start_session(
    payload: StartSessionRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    gate: AccessGate = Depends(get_access_gate),
) -> StartSessionResponse:
    """Admit a concierge session for nearby visitors, two per day per email and address."""

    address = client_address(request)
    decision = await gate.evaluate(
        GateRequest(address=address, email=payload.email),
        esthetics_session_policy(settings),
    )
    if not decision.allowed:
        raise denial_exception(request, decision)

    return StartSessionResponse(
        flags=SessionFlags(
            address=address,
            geo=SessionGeoFlags(
                distance_miles=decision.distance_miles,
                radius_miles=decision.radius_miles,
            ),
            rate_limit=SessionRateFlags(remaining=decision.remaining),
        )
    )


@router.post("/complete", response_model=CompleteResponse)
async def complete_session(
    payload: CompleteRequest,
    service: EstheticsProtocolService = Depends(get_esthetics_service),
) -> CompleteResponse | JSONResponse:
    result = await service.complete(payload)
    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "ok": False,
                "error": "email_send_failed",
                "sent": result.sent.model_dump(by_alias=True),
            },
        )
    return result
