"""Country-level restriction for the skin analysis and ask endpoints."""
from __future__ import annotations

import logging

from concierge.services.access_gate import AccessDecision, ReasonCode
from concierge.services.geo import GeoLookupError, GeoResolver

logger = logging.getLogger(__name__)


class CountryGate:
    """Admit callers from one configured country.

    The edge-provided country header wins when present; otherwise the address
    is resolved. A failed resolution denies.
    """

    def __init__(self, resolver: GeoResolver, allowed_country: str | None) -> None:
        self._resolver = resolver
        self._allowed = (allowed_country or "").strip().upper() or None

    @property
    def enabled(self) -> bool:
        return self._allowed is not None

    def allows(self, country: str | None) -> bool:
        return not self.enabled or (country or "").strip().upper() == self._allowed

    async def country_for(self, address: str, header_country: str | None = None) -> str:
        header_country = (header_country or "").strip().upper()
        if header_country:
            return header_country
        resolution = await self._resolver.resolve(address)
        return (resolution.country_code or "").upper()

    async def evaluate(self, address: str, header_country: str | None = None) -> AccessDecision:
        if not self.enabled:
            return AccessDecision(allowed=True)

        try:
            country = await self.country_for(address, header_country)
        except GeoLookupError:
            return AccessDecision(allowed=False, reason_code=ReasonCode.GEO_UNAVAILABLE)

        if not self.allows(country):
            logger.info(
                "Access denied: country not supported",
                extra={"address": address, "country": country or None},
            )
            return AccessDecision(allowed=False, reason_code=ReasonCode.GEO_RESTRICTED)
        return AccessDecision(allowed=True)
