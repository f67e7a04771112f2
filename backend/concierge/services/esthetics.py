"""Esthetics concierge protocol delivery."""
from __future__ import annotations

import logging

from concierge.core.config import Settings
from concierge.schemas.esthetics import CompleteRequest, CompleteResponse, DeliveryFlags
from concierge.services import email_templates
from concierge.services.mailer import ResendMailer

logger = logging.getLogger(__name__)


class EstheticsProtocolService:
    """Email a finished protocol to the provider inbox, then to the client."""

    def __init__(self, settings: Settings, *, mailer: ResendMailer | None = None) -> None:
        self._settings = settings
        self._mailer = mailer or ResendMailer(settings)

    async def complete(self, submission: CompleteRequest) -> CompleteResponse:
        user = submission.user
        reply_to = self._settings.esthetics_reply_to or self._settings.esthetics_provider_email

        provider = await self._mailer.send(
            to=self._settings.esthetics_provider_email,
            subject=f"New Esthetics Protocol - {user.first_name} {user.last_name}",
            html=email_templates.esthetics_provider_email(submission),
            from_email=self._settings.esthetics_from_email,
            reply_to=user.email,
        )
        client = await self._mailer.send(
            to=user.email,
            subject="Your Curated Esthetics Protocol (Consultation Required)",
            html=email_templates.esthetics_client_email(submission),
            from_email=self._settings.esthetics_from_email,
            reply_to=reply_to,
        )

        if not (provider.ok and client.ok):
            logger.error(
                "Esthetics protocol delivery incomplete",
                extra={
                    "email": user.email,
                    "provider_sent": provider.ok,
                    "client_sent": client.ok,
                    "provider_error": provider.error,
                    "client_error": client.error,
                },
            )
        return CompleteResponse(
            ok=provider.ok and client.ok,
            sent=DeliveryFlags(provider=provider.ok, client=client.ok),
        )
