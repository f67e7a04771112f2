"""Ask Dr. Lazuk chat endpoint."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from concierge.api.gating import client_address, denial_exception
from concierge.core.config import Settings, get_settings
from concierge.deps import get_access_gate, get_ask_service, get_country_gate
from concierge.schemas.ask import AskRequest, AskResponse
from concierge.services.access_gate import AccessGate, GateRequest, ask_policy
from concierge.services.ask import AskService
from concierge.services.country_gate import CountryGate
from concierge.services.skin_report import ReportConfigurationError, ReportServiceError

router = APIRouter(tags=["ask"])


@router.post("/ask", response_model=AskResponse, response_model_exclude_none=True)
async def ask(
    payload: AskRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    country_gate: CountryGate = Depends(get_country_gate),
    gate: AccessGate = Depends(get_access_gate),
    service: AskService = Depends(get_ask_service),
) -> AskResponse:
    address = client_address(request)

    decision = await country_gate.evaluate(
        address, request.headers.get(settings.geo_country_header)
    )
    if not decision.allowed:
        raise denial_exception(request, decision)

    user_key = (request.headers.get("x-user-key") or "").strip() or None
    decision = await gate.evaluate(
        GateRequest(address=address, user_key=user_key), ask_policy(settings)
    )
    if not decision.allowed:
        raise denial_exception(request, decision)

    try:
        return await service.reply(payload)
    except ReportConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except ReportServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
