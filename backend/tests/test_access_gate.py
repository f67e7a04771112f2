"""Tests for the combined geofence and rate-limit gate."""
from __future__ import annotations

import httpx
import pytest

pytestmark = pytest.mark.anyio("asyncio")

from concierge.core.config import Settings
from concierge.services.access_gate import (
    AccessDecision,
    AccessGate,
    GateRequest,
    ReasonCode,
    ask_policy,
    debug_probe_policy,
    esthetics_session_policy,
)
from concierge.services.geo import GeoLookupError, GeoResolution, IpapiGeoResolver
from concierge.services.rate_limit import FixedWindowCounter

NEARBY = GeoResolution(latitude=34.14352, longitude=-84.29926, country_code="US")
FAR_AWAY = GeoResolution(latitude=40.7128, longitude=-74.006, country_code="US")


class _StubResolver:
    def __init__(self, resolution: GeoResolution | None = None) -> None:
        self._resolution = resolution
        self.calls: list[str] = []

    async def resolve(self, address: str) -> GeoResolution:
        self.calls.append(address)
        if self._resolution is None:
            raise GeoLookupError("lookup failed")
        return self._resolution


class _FixedClock:
    def __init__(self) -> None:
        self.now = 0

    def __call__(self) -> int:
        return self.now


def _settings() -> Settings:
    return Settings(_env_file=None)


async def test_esthetics_gate_allows_two_then_rate_limits() -> None:
    counter = FixedWindowCounter(clock=_FixedClock())
    gate = AccessGate(counter, _StubResolver(NEARBY))
    policy = esthetics_session_policy(_settings())
    request = GateRequest(address="1.2.3.4", email="a@b.com")

    first = await gate.evaluate(request, policy)
    second = await gate.evaluate(request, policy)
    third = await gate.evaluate(request, policy)

    assert first.allowed and first.remaining == 1
    assert first.distance_miles == pytest.approx(0.0, abs=1e-9)
    assert first.radius_miles == 20
    assert second.allowed and second.remaining == 0
    assert not third.allowed
    assert third.reason_code is ReasonCode.RATE_LIMITED
    assert third.reset_in_ms == 86_400_000
    assert third.retry_after_seconds == 86_400
    assert counter.peek("a@b.com|1.2.3.4") is not None


async def test_geo_failure_denies_without_touching_counter() -> None:
    counter = FixedWindowCounter(clock=_FixedClock())
    gate = AccessGate(counter, _StubResolver(None))

    decision = await gate.evaluate(
        GateRequest(address="1.2.3.4", email="a@b.com"), esthetics_session_policy(_settings())
    )

    assert not decision.allowed
    assert decision.reason_code is ReasonCode.GEO_UNAVAILABLE
    assert decision.remaining == 0 and decision.reset_in_ms == 0
    assert counter.peek("a@b.com|1.2.3.4") is None
    assert len(counter) == 0


@pytest.mark.parametrize(
    "status_code, payload",
    [
        (200, {"ip": "1.2.3.4", "latitude": None, "longitude": None}),
        (200, {"error": True, "reason": "Reserved IP Address"}),
        (503, {"error": True}),
    ],
)
async def test_unusable_lookup_from_ipapi_denies_without_touching_counter(
    status_code: int, payload: dict
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    resolver = IpapiGeoResolver(
        Settings(_env_file=None, geo_lookup_base_url="https://geo.test/"),
        transport=httpx.MockTransport(handler),
    )
    counter = FixedWindowCounter(clock=_FixedClock())
    gate = AccessGate(counter, resolver)

    decision = await gate.evaluate(
        GateRequest(address="1.2.3.4", email="a@b.com"), esthetics_session_policy(_settings())
    )

    assert not decision.allowed
    assert decision.reason_code is ReasonCode.GEO_UNAVAILABLE
    assert decision.details() == {}
    assert len(counter) == 0


async def test_outside_service_area_reports_distance_and_keeps_quota() -> None:
    counter = FixedWindowCounter(clock=_FixedClock())
    gate = AccessGate(counter, _StubResolver(FAR_AWAY))

    decision = await gate.evaluate(
        GateRequest(address="5.6.7.8", email="a@b.com"), esthetics_session_policy(_settings())
    )

    assert not decision.allowed
    assert decision.reason_code is ReasonCode.OUTSIDE_SERVICE_AREA
    assert decision.distance_miles is not None and decision.distance_miles > 20
    assert decision.details()["radiusMiles"] == 20
    assert "remaining" not in decision.details()
    assert len(counter) == 0


async def test_geo_is_skipped_when_not_required() -> None:
    resolver = _StubResolver(None)
    gate = AccessGate(FixedWindowCounter(clock=_FixedClock()), resolver)

    decision = await gate.evaluate(GateRequest(address="1.2.3.4"), debug_probe_policy(_settings()))

    assert decision.allowed
    assert decision.remaining == 19
    assert decision.distance_miles is None
    assert resolver.calls == []


async def test_ask_policy_keys_on_user_key() -> None:
    counter = FixedWindowCounter(clock=_FixedClock())
    gate = AccessGate(counter)
    policy = ask_policy(_settings())

    await gate.evaluate(GateRequest(address="1.2.3.4", user_key="device-1"), policy)
    await gate.evaluate(GateRequest(address="1.2.3.4"), policy)

    assert counter.peek("ask:1.2.3.4:device-1").count == 1  # type: ignore[union-attr]
    assert counter.peek("ask:1.2.3.4").count == 1  # type: ignore[union-attr]


async def test_geofenced_policy_without_resolver_is_a_configuration_error() -> None:
    gate = AccessGate(FixedWindowCounter())

    with pytest.raises(RuntimeError):
        await gate.evaluate(GateRequest(address="1.2.3.4"), esthetics_session_policy(_settings()))


def test_rate_limited_details_include_retry_hint() -> None:
    decision = AccessDecision(allowed=False, reason_code=ReasonCode.RATE_LIMITED, reset_in_ms=1_001)

    assert decision.retry_after_seconds == 2
    assert decision.details() == {"remaining": 0, "resetInMs": 1_001, "retryAfterSeconds": 2}
