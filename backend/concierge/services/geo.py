"""Resolve client network addresses to an approximate location."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from concierge.core.config import Settings

logger = logging.getLogger(__name__)


class GeoLookupError(RuntimeError):
    """Raised when an address cannot be resolved to usable coordinates.

    Covers transport failures and "no data" answers alike.
    """


@dataclass(frozen=True, slots=True)
class GeoResolution:
    latitude: float | None
    longitude: float | None
    country_code: str | None = None
    city: str | None = None
    region: str | None = None
    postal: str | None = None

    @property
    def usable(self) -> bool:
        return _is_finite(self.latitude) and _is_finite(self.longitude)


class GeoResolver(Protocol):
    async def resolve(self, address: str) -> GeoResolution: ...


class IpapiGeoResolver:
    """Single-attempt lookup against an ipapi.co compatible endpoint."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = settings.geo_lookup_base_url.rstrip("/")
        self._timeout = settings.geo_lookup_timeout_seconds
        self._transport = transport

    async def resolve(self, address: str) -> GeoResolution:
        url = f"{self._base_url}/{quote(address or 'unknown', safe='')}/json/"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "Geo lookup failed",
                extra={"address": address, "error": str(exc)},
            )
            raise GeoLookupError(f"geo lookup failed for {address}") from exc

        resolution = parse_geo_payload(data)
        if not resolution.usable:
            logger.warning(
                "Geo lookup returned unusable coordinates",
                extra={"address": address},
            )
            raise GeoLookupError(f"no usable coordinates for {address}")
        return resolution


def parse_geo_payload(data: Any) -> GeoResolution:
    if not isinstance(data, dict) or data.get("error"):
        return GeoResolution(latitude=None, longitude=None)
    return GeoResolution(
        latitude=_to_float(data.get("latitude")),
        longitude=_to_float(data.get("longitude")),
        country_code=_to_text(data.get("country_code")),
        city=_to_text(data.get("city")),
        region=_to_text(data.get("region")),
        postal=_to_text(data.get("postal")),
    )


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _is_finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)
