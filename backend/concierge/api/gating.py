"""Shared request helpers for gated endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

from concierge.services.access_gate import AccessDecision, ReasonCode

UNKNOWN_ADDRESS = "unknown"

_TOO_MANY = {ReasonCode.RATE_LIMITED, ReasonCode.COOLDOWN_ACTIVE}


class GateDenied(Exception):
    """A gate refused the request; rendered as ``{ok, error, details}``."""

    def __init__(self, decision: AccessDecision, extra: dict[str, Any] | None = None) -> None:
        self.decision = decision
        self.reason = decision.reason_code or ReasonCode.RATE_LIMITED
        self.extra = extra or {}
        super().__init__(self.reason.value)

    @property
    def status_code(self) -> int:
        if self.reason in _TOO_MANY:
            return status.HTTP_429_TOO_MANY_REQUESTS
        return status.HTTP_403_FORBIDDEN

    def to_response(self) -> JSONResponse:
        content: dict[str, Any] = {"ok": False, "error": self.reason.value}
        details = {**self.decision.details(), **self.extra}
        if details:
            content["details"] = details
        headers = None
        if self.reason in _TOO_MANY:
            headers = {"Retry-After": str(self.decision.retry_after_seconds)}
        return JSONResponse(status_code=self.status_code, content=content, headers=headers)


def client_address(request: Request) -> str:
    """First ``X-Forwarded-For`` hop, then ``X-Real-IP``, then the socket peer."""

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_ADDRESS


def denial_exception(request: Request, decision: AccessDecision, **extra: Any) -> GateDenied:
    """Wrap a denied decision for the app-level handler and tag the request for auditing."""

    denied = GateDenied(decision, extra)
    request.state.gate_reason = denied.reason.value
    return denied


async def gate_denied_handler(request: Request, exc: GateDenied) -> JSONResponse:
    request.state.gate_reason = exc.reason.value
    return exc.to_response()
