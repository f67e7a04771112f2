"""Transactional email delivery through the Resend HTTP API."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from concierge.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EmailResult:
    ok: bool
    status_code: int | None = None
    error: str | None = None
    body: str | None = None


class ResendMailer:
    """Send one HTML email per call; failures are reported, never raised."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def send(
        self,
        *,
        to: str | Sequence[str],
        subject: str,
        html: str,
        from_email: str | None = None,
        reply_to: str | None = None,
    ) -> EmailResult:
        api_key = self._settings.resend_api_key
        if not api_key:
            logger.error("RESEND_API_KEY is not set; cannot send email", extra={"subject": subject})
            return EmailResult(ok=False, error="missing_resend_api_key")

        payload: dict[str, Any] = {
            "from": from_email or self._settings.resend_from_email,
            "to": [to] if isinstance(to, str) else list(to),
            "subject": subject,
            "html": html,
        }
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            async with httpx.AsyncClient(
                base_url=self._settings.resend_base_url,
                timeout=self._settings.resend_request_timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    "/emails",
                    json=payload,
                    headers={"Authorization": f"Bearer {api_key}"},
                )
        except httpx.HTTPError as exc:
            logger.error("Resend email exception", extra={"subject": subject}, exc_info=exc)
            return EmailResult(ok=False, error="resend_exception")

        if response.is_error:
            logger.error(
                "Resend email error",
                extra={"subject": subject, "status_code": response.status_code},
            )
            return EmailResult(
                ok=False,
                status_code=response.status_code,
                error="resend_error",
                body=response.text,
            )

        return EmailResult(ok=True, status_code=response.status_code)
