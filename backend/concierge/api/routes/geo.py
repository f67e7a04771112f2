"""Country lookup used by the browser before showing the analysis form."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from concierge.api.gating import client_address
from concierge.core.config import Settings, get_settings
from concierge.deps import get_country_gate
from concierge.schemas.gate import GeoCheckResponse
from concierge.services.country_gate import CountryGate
from concierge.services.geo import GeoLookupError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/geo", tags=["geo"])


@router.get("/check", response_model=GeoCheckResponse)
async def check_country(
    request: Request,
    settings: Settings = Depends(get_settings),
    gate: CountryGate = Depends(get_country_gate),
) -> GeoCheckResponse:
    address = client_address(request)
    try:
        country = await gate.country_for(
            address, request.headers.get(settings.geo_country_header)
        )
    except GeoLookupError:
        logger.warning("Geo check failed", extra={"address": address})
        return GeoCheckResponse(allowed=False, country="unknown")

    return GeoCheckResponse(allowed=gate.allows(country), country=country or "unknown")
