"""Ask Dr. Lazuk persona chat."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List
from uuid import uuid4

from concierge.core.config import Settings
from concierge.schemas.ask import AskRequest, AskResponse, VisionSummary
from concierge.services import prompts
from concierge.services.openai_client import async_openai_client
from concierge.services.skin_report import ReportServiceError, SkinReportService

logger = logging.getLogger(__name__)


class AskService:
    def __init__(self, settings: Settings, *, reports: SkinReportService | None = None) -> None:
        self._settings = settings
        self._reports = reports or SkinReportService(settings)

    async def reply(self, request: AskRequest) -> AskResponse:
        """Answer the latest visitor message, optionally grounded in a selfie."""

        request_id = uuid4().hex
        self._reports.ensure_credentials()

        async with async_openai_client(self._settings) as client:
            vision: Dict[str, Any] | None = None
            if request.photo_data_url:
                vision = await self._reports.analyze_selfie(
                    client,
                    photo_url=request.photo_data_url,
                    first_name=None,
                    age_range=None,
                    primary_concern=request.last_user_question or None,
                    request_id=request_id,
                )

            messages: List[Dict[str, str]] = [
                {"role": "system", "content": prompts.ask_system_prompt()}
            ]
            if vision:
                messages.append(
                    {
                        "role": "system",
                        "content": prompts.vision_context_message(json.dumps(vision)),
                    }
                )
            messages.extend(
                {"role": message.role, "content": message.content}
                for message in request.messages
            )

            response = await self._reports.execute_with_retries(
                lambda: client.chat.completions.create(
                    model=self._settings.openai_text_model,
                    temperature=0.7,
                    messages=messages,
                ),
                operation="ask_chat",
                request_id=request_id,
            )

        content = (response.choices[0].message.content if response.choices else None) or ""
        reply = content.strip()
        if not reply:
            raise ReportServiceError("OpenAI returned an empty reply")
        if request.is_first_reply:
            reply = prompts.FIRST_REPLY_DISCLAIMER + reply

        logger.info(
            "Ask reply generated",
            extra={"request_id": request_id, "vision_used": vision is not None},
        )
        return AskResponse(
            reply=reply,
            vision_used=vision is not None,
            vision=(
                VisionSummary(
                    fitzpatrick_type=vision.get("fitzpatrickType"),
                    skin_type=vision.get("skinType"),
                    raw=vision.get("raw") if isinstance(vision.get("raw"), dict) else None,
                )
                if vision
                else None
            ),
        )
