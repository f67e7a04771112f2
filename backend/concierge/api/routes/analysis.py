"""Virtual skin analysis endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from concierge.api.gating import client_address, denial_exception
from concierge.core.config import Settings, get_settings
from concierge.deps import get_country_gate, get_report_cooldown, get_skin_report_service
from concierge.schemas.report import (
    AgingPreviewRequest,
    AgingPreviewResponse,
    EligibilityRequest,
    EligibilityResponse,
    RecordAnalysisResponse,
    SkinReportRequest,
    SkinReportResponse,
)
from concierge.services.access_gate import AccessDecision, ReasonCode
from concierge.services.cooldown import CooldownStatus, ReportCooldownStore
from concierge.services.country_gate import CountryGate
from concierge.services.skin_report import (
    ReportConfigurationError,
    ReportServiceError,
    SkinReportService,
)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post("/eligibility", response_model=EligibilityResponse, response_model_exclude_none=True)
async def check_eligibility(
    payload: EligibilityRequest,
    cooldown: ReportCooldownStore = Depends(get_report_cooldown),
) -> EligibilityResponse:
    """Report whether this email may request another analysis yet."""

    result = cooldown.check(payload.email)
    if result.allowed:
        return EligibilityResponse(can_generate=True)
    return EligibilityResponse(
        can_generate=False,
        next_available_date=result.next_available_at.isoformat() if result.next_available_at else None,
        message=_cooldown_message(result),
    )


@router.post("/record", response_model=RecordAnalysisResponse)
async def record_analysis(
    payload: EligibilityRequest,
    cooldown: ReportCooldownStore = Depends(get_report_cooldown),
) -> RecordAnalysisResponse:
    cooldown.record(payload.email)
    return RecordAnalysisResponse()


@router.post("/report", response_model=SkinReportResponse)
async def generate_report(
    payload: SkinReportRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    country_gate: CountryGate = Depends(get_country_gate),
    cooldown: ReportCooldownStore = Depends(get_report_cooldown),
    service: SkinReportService = Depends(get_skin_report_service),
) -> SkinReportResponse:
    """Produce the personalised letter, aging previews and emails for one visitor."""

    _enforce_photo_size(payload.photo_data_url, limit=settings.report_photo_max_bytes)

    decision = await country_gate.evaluate(
        client_address(request), request.headers.get(settings.geo_country_header)
    )
    if not decision.allowed:
        raise denial_exception(request, decision)

    # Acquired before generation; a failed generation still counts.
    result = cooldown.acquire(payload.email)
    if not result.allowed:
        raise denial_exception(
            request,
            AccessDecision(
                allowed=False,
                reason_code=ReasonCode.COOLDOWN_ACTIVE,
                reset_in_ms=result.remaining_ms,
            ),
            nextAvailableDate=(
                result.next_available_at.isoformat() if result.next_available_at else None
            ),
            message=_cooldown_message(result),
        )

    try:
        return await service.generate_report(payload)
    except ReportConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except ReportServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post("/aging-preview", response_model=AgingPreviewResponse)
async def generate_aging_preview(
    payload: AgingPreviewRequest,
    service: SkinReportService = Depends(get_skin_report_service),
) -> AgingPreviewResponse:
    try:
        return await service.generate_aging_preview(payload)
    except ReportConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except ReportServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


def _cooldown_message(result: CooldownStatus) -> str:
    days = result.remaining_days
    unit = "day" if days == 1 else "days"
    return f"You can request another analysis in {days} {unit}."


def _enforce_photo_size(photo: str, *, limit: int) -> None:
    if not photo.startswith("data:"):
        return
    encoded = photo.split(",", 1)[-1]
    if len(encoded) * 3 // 4 > limit:
        raise _payload_too_large(limit)


def _payload_too_large(limit: int) -> HTTPException:
    size_mb = limit / (1024 * 1024)
    if size_mb.is_integer():
        size_label = f"{int(size_mb)}MB"
    else:
        size_label = f"{size_mb:.1f}MB"
    return HTTPException(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        detail=f"Photo must be smaller than {size_label}",
    )
