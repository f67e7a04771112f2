"""Combined geofence + rate-limit gate shared by the public endpoints."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from concierge.core.config import Settings
from concierge.services.distance import GeoPoint, within_radius
from concierge.services.geo import GeoLookupError, GeoResolver
from concierge.services.rate_limit import FixedWindowCounter

logger = logging.getLogger(__name__)


class ReasonCode(str, Enum):
    GEO_UNAVAILABLE = "geo_unavailable"
    OUTSIDE_SERVICE_AREA = "outside_service_area"
    GEO_RESTRICTED = "geo_restricted"
    RATE_LIMITED = "rate_limited"
    COOLDOWN_ACTIVE = "cooldown_active"
    INVALID_INPUT = "invalid_input"


@dataclass(frozen=True, slots=True)
class GateRequest:
    """Identity fields a gate can key on; already validated and normalised."""

    address: str
    email: str | None = None
    user_key: str | None = None


IdentityKeyFn = Callable[[GateRequest], str]


@dataclass(frozen=True, slots=True)
class GateConfig:
    window_ms: int
    max_requests: int
    identity_key_fn: IdentityKeyFn
    require_geo: bool = False
    geo_center: GeoPoint | None = None
    geo_radius_miles: float | None = None


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason_code: ReasonCode | None = None
    remaining: int = 0
    reset_in_ms: int = 0
    distance_miles: float | None = None
    radius_miles: float | None = None

    @property
    def retry_after_seconds(self) -> int:
        return math.ceil(self.reset_in_ms / 1000)

    def details(self) -> dict[str, Any]:
        """Denial details in the camelCase wire format."""

        payload: dict[str, Any] = {}
        if self.reason_code in (ReasonCode.RATE_LIMITED, ReasonCode.COOLDOWN_ACTIVE):
            payload["remaining"] = self.remaining
            payload["resetInMs"] = self.reset_in_ms
            payload["retryAfterSeconds"] = self.retry_after_seconds
        if self.distance_miles is not None:
            payload["distanceMiles"] = self.distance_miles
        if self.radius_miles is not None:
            payload["radiusMiles"] = self.radius_miles
        return payload


class AccessGate:
    """Evaluate geofence first, then the fixed-window counter.

    Out-of-area and unresolvable traffic is rejected before the counter is
    touched. Geo lookup failures always deny.
    """

    def __init__(self, counter: FixedWindowCounter, resolver: GeoResolver | None = None) -> None:
        self._counter = counter
        self._resolver = resolver

    async def evaluate(self, request: GateRequest, config: GateConfig) -> AccessDecision:
        distance_miles: float | None = None

        if config.require_geo:
            if self._resolver is None or config.geo_center is None or config.geo_radius_miles is None:
                raise RuntimeError("geofenced gate requires a resolver, center and radius")
            try:
                resolution = await self._resolver.resolve(request.address)
            except GeoLookupError:
                logger.info(
                    "Access denied: geo unavailable",
                    extra={"address": request.address},
                )
                return AccessDecision(allowed=False, reason_code=ReasonCode.GEO_UNAVAILABLE)

            assert resolution.latitude is not None and resolution.longitude is not None
            check = within_radius(
                resolution.latitude,
                resolution.longitude,
                config.geo_center,
                config.geo_radius_miles,
            )
            distance_miles = check.distance_miles
            if not check.allowed:
                logger.info(
                    "Access denied: outside service area",
                    extra={"address": request.address, "distance_miles": distance_miles},
                )
                return AccessDecision(
                    allowed=False,
                    reason_code=ReasonCode.OUTSIDE_SERVICE_AREA,
                    distance_miles=distance_miles,
                    radius_miles=config.geo_radius_miles,
                )

        key = config.identity_key_fn(request)
        rate = self._counter.check(
            key, window_ms=config.window_ms, max_requests=config.max_requests
        )
        if not rate.allowed:
            logger.info(
                "Access denied: rate limited",
                extra={"identity_key": key, "reset_in_ms": rate.reset_in_ms},
            )
            return AccessDecision(
                allowed=False,
                reason_code=ReasonCode.RATE_LIMITED,
                remaining=rate.remaining,
                reset_in_ms=rate.reset_in_ms,
            )

        return AccessDecision(
            allowed=True,
            remaining=rate.remaining,
            reset_in_ms=rate.reset_in_ms,
            distance_miles=distance_miles,
            radius_miles=config.geo_radius_miles if config.require_geo else None,
        )


# Identity keys


def address_key(prefix: str) -> IdentityKeyFn:
    def _key(request: GateRequest) -> str:
        return f"{prefix}:{request.address}"

    return _key


def email_address_key(request: GateRequest) -> str:
    return f"{request.email or ''}|{request.address}"


def address_user_key(prefix: str) -> IdentityKeyFn:
    def _key(request: GateRequest) -> str:
        if request.user_key:
            return f"{prefix}:{request.address}:{request.user_key}"
        return f"{prefix}:{request.address}"

    return _key


# Per-endpoint policies


def debug_probe_policy(settings: Settings) -> GateConfig:
    return GateConfig(
        window_ms=settings.debug_rate_window_ms,
        max_requests=settings.debug_rate_max_requests,
        identity_key_fn=address_key("debug"),
    )


def esthetics_session_policy(settings: Settings) -> GateConfig:
    return GateConfig(
        window_ms=settings.esthetics_rate_window_ms,
        max_requests=settings.esthetics_rate_max_requests,
        identity_key_fn=email_address_key,
        require_geo=True,
        geo_center=GeoPoint(settings.esthetics_center_lat, settings.esthetics_center_lon),
        geo_radius_miles=settings.esthetics_radius_miles,
    )


def ask_policy(settings: Settings) -> GateConfig:
    return GateConfig(
        window_ms=settings.ask_rate_window_ms,
        max_requests=settings.ask_rate_max_requests,
        identity_key_fn=address_user_key("ask"),
    )
