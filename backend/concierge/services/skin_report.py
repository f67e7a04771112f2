"""Business workflow for the Dr. Lazuk virtual skin analysis report."""
from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, TypeVar
from uuid import uuid4

from openai import AsyncOpenAI

from concierge.core.config import Settings
from concierge.schemas.report import (
    AgingPreviewImages,
    AgingPreviewRequest,
    AgingPreviewResponse,
    SkinReportRequest,
    SkinReportResponse,
)
from concierge.services import email_templates, prompts
from concierge.services.mailer import ResendMailer
from concierge.services.openai_client import async_openai_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

FITZPATRICK_ROMANS = ("I", "II", "III", "IV", "V", "VI")

_MEANINGFUL_ANALYSIS_KEYS = (
    "skinFindings",
    "texture",
    "poreBehavior",
    "pigment",
    "fineLinesAreas",
    "elasticity",
    "complimentFeatures",
)

_TYPE_RE = re.compile(r"FITZPATRICK_TYPE:\s*([IVX]+)", re.IGNORECASE)
_SUMMARY_RE = re.compile(r"FITZPATRICK_SUMMARY:\s*([\s\S]*?)(\n\s*\n|$)", re.IGNORECASE)
_INTERNAL_LINE_RE = re.compile(
    rf"^\s*(?:{prompts.COVERAGE_MARKER}|{prompts.SELFIE_DETAIL_MARKER}|{prompts.GREETING_MARKER}):[^\n]*\n?",
    re.MULTILINE,
)


class ReportConfigurationError(RuntimeError):
    """Raised when OpenAI credentials are not configured."""


class ReportServiceError(RuntimeError):
    """Raised when OpenAI returns an unexpected result or keeps failing."""


@dataclass(slots=True)
class ParsedLetter:
    report: str
    fitzpatrick_type: str | None
    fitzpatrick_summary: str | None


def is_weak_image_analysis(image_analysis: Any) -> bool:
    if not isinstance(image_analysis, dict):
        return True
    analysis = image_analysis.get("analysis") or {}
    if not isinstance(analysis, dict):
        return True
    return not any(analysis.get(key) for key in _MEANINGFUL_ANALYSIS_KEYS)


def extract_json_object(text: str) -> Dict[str, Any] | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        value = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def fitzpatrick_roman(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return FITZPATRICK_ROMANS[value - 1] if 1 <= value <= 6 else None
    if isinstance(value, str) and value.strip().upper() in FITZPATRICK_ROMANS:
        return value.strip().upper()
    return None


def letter_passes_checks(text: str) -> bool:
    return all(
        re.search(pattern, text or "", re.IGNORECASE)
        for pattern in (
            rf"{prompts.COVERAGE_MARKER}:\s*OK",
            rf"{prompts.SELFIE_DETAIL_MARKER}:\s*YES",
            rf"{prompts.GREETING_MARKER}:\s*YES",
        )
    )


def parse_letter(full_text: str) -> ParsedLetter:
    """Pull the Fitzpatrick header out of a generated letter and drop marker lines."""

    report = full_text or ""
    fitzpatrick_type = None
    fitzpatrick_summary = None

    type_match = _TYPE_RE.search(report)
    if type_match:
        fitzpatrick_type = type_match.group(1).upper()
        report = report.replace(type_match.group(0), "", 1)

    summary_match = _SUMMARY_RE.search(report)
    if summary_match:
        fitzpatrick_summary = summary_match.group(1).strip() or None
        report = report.replace(summary_match.group(0), "", 1)

    report = _INTERNAL_LINE_RE.sub("", report).strip()
    return ParsedLetter(
        report=report,
        fitzpatrick_type=fitzpatrick_type,
        fitzpatrick_summary=fitzpatrick_summary,
    )


def build_analysis_context(
    *,
    first_name: str,
    age_range: str,
    primary_concern: str,
    visitor_question: str | None,
    image_analysis: Dict[str, Any] | None,
) -> Dict[str, Any]:
    analysis = image_analysis or {}
    raw = analysis.get("raw") or {}
    vision = analysis.get("analysis") or {}

    tags: list[str] = []
    if raw.get("wearingGlasses"):
        tags.append("glasses")
    if raw.get("eyeColor") and raw.get("eyeColor") != "unknown":
        tags.append(f"{raw['eyeColor']} eyes")
    if raw.get("hairColor") and raw.get("hairColor") != "unknown":
        tags.append(f"{raw['hairColor']} hair")
    if raw.get("clothingColor") and raw.get("clothingColor") != "unknown":
        tags.append(f"{raw['clothingColor']} top")

    return {
        "form": {
            "firstName": first_name,
            "ageRange": age_range,
            "skinType": analysis.get("skinType"),
            "fitzpatrickType": fitzpatrick_roman(analysis.get("fitzpatrickType")),
            "primaryConcerns": [primary_concern] if primary_concern else [],
            "currentRoutine": visitor_question,
        },
        "selfie": {
            "tags": tags,
            "eyeColor": raw.get("eyeColor"),
            "hairColor": raw.get("hairColor"),
            "compliment": vision.get("complimentFeatures"),
        },
        "vision": {
            "overallGlow": vision.get("skinFindings"),
            "texture": vision.get("texture"),
            "poreBehavior": vision.get("poreBehavior"),
            "pigment": vision.get("pigment"),
            "fineLinesAreas": vision.get("fineLinesAreas"),
            "elasticity": vision.get("elasticity"),
            "checklist15": vision.get("checklist15"),
        },
    }


class SkinReportService:
    """Coordinate vision analysis, letter writing, aging previews and email delivery."""

    def __init__(self, settings: Settings, *, mailer: ResendMailer | None = None) -> None:
        self._settings = settings
        self._mailer = mailer or ResendMailer(settings)

    async def generate_report(self, submission: SkinReportRequest) -> SkinReportResponse:
        request_id = uuid4().hex
        started_at = time.perf_counter()
        logger.info(
            "Starting skin report generation",
            extra={"request_id": request_id, "has_image_analysis": submission.image_analysis is not None},
        )

        self.ensure_credentials()

        timings: dict[str, float] = {}
        async with async_openai_client(self._settings) as client:
            image_analysis = submission.image_analysis
            enriched_with_vision = False
            if is_weak_image_analysis(image_analysis):
                vision_started = time.perf_counter()
                vision = await self.analyze_selfie(
                    client,
                    photo_url=submission.photo_data_url,
                    first_name=submission.first_name,
                    age_range=submission.age_range,
                    primary_concern=submission.primary_concern,
                    request_id=request_id,
                )
                timings["vision_ms"] = (time.perf_counter() - vision_started) * 1000
                if vision:
                    image_analysis = vision
                    enriched_with_vision = True

            letter_started = time.perf_counter()
            letter = await self._write_letter(
                client, submission=submission, image_analysis=image_analysis, request_id=request_id
            )
            timings["letter_ms"] = (time.perf_counter() - letter_started) * 1000

            aging_started = time.perf_counter()
            aging_images = await self.generate_aging_images(
                client,
                age_range=submission.age_range,
                primary_concern=submission.primary_concern,
                fitzpatrick_type=letter.fitzpatrick_type,
                request_id=request_id,
            )
            timings["aging_ms"] = (time.perf_counter() - aging_started) * 1000

        await self._send_report_emails(submission, letter, aging_images, request_id=request_id)

        logger.info(
            "Skin report generation completed",
            extra={
                "request_id": request_id,
                "enriched_with_vision": enriched_with_vision,
                "fitzpatrick_type": letter.fitzpatrick_type,
                "timings_ms": timings,
                "duration_ms": (time.perf_counter() - started_at) * 1000,
            },
        )
        return SkinReportResponse(
            report=letter.report,
            fitzpatrick_type=letter.fitzpatrick_type,
            fitzpatrick_summary=letter.fitzpatrick_summary,
            aging_preview_images=aging_images,
            enriched_with_vision=enriched_with_vision,
        )

    async def generate_aging_preview(self, request: AgingPreviewRequest) -> AgingPreviewResponse:
        request_id = uuid4().hex
        self.ensure_credentials()

        async with async_openai_client(self._settings) as client:
            images = await self.generate_aging_images(
                client,
                age_range=request.age_range,
                primary_concern=request.primary_concern,
                fitzpatrick_type=fitzpatrick_roman(request.fitzpatrick_type),
                request_id=request_id,
            )

        result = await self._mailer.send(
            to=request.email,
            subject="Your Skin's Future Story - Aging Preview Images",
            html=email_templates.aging_preview_email(request.first_name, images),
        )
        return AgingPreviewResponse(delivered=result.ok, images=images)

    async def analyze_selfie(
        self,
        client: AsyncOpenAI,
        *,
        photo_url: str,
        first_name: str | None,
        age_range: str | None,
        primary_concern: str | None,
        request_id: str,
    ) -> Dict[str, Any] | None:
        """Run the vision model on a selfie; any failure yields ``None``."""

        prompt = prompts.vision_prompt(
            first_name=first_name, age_range=age_range, primary_concern=primary_concern
        )
        try:
            response = await self.execute_with_retries(
                lambda: client.chat.completions.create(
                    model=self._settings.openai_vision_model,
                    temperature=0.2,
                    max_tokens=900,
                    messages=[
                        {
                            "role": "user",
                            "content": [
                                {"type": "text", "text": prompt},
                                {"type": "image_url", "image_url": {"url": photo_url}},
                            ],
                        }
                    ],
                ),
                operation="vision_analysis",
                request_id=request_id,
            )
        except ReportServiceError:
            logger.warning("Vision analysis unavailable", extra={"request_id": request_id})
            return None

        content = response.choices[0].message.content if response.choices else None
        parsed = extract_json_object(content or "")
        if parsed is None:
            logger.warning("Vision analysis returned no JSON", extra={"request_id": request_id})
        return parsed

    async def generate_aging_images(
        self,
        client: AsyncOpenAI,
        *,
        age_range: str | None,
        primary_concern: str | None,
        fitzpatrick_type: str | None,
        request_id: str,
    ) -> AgingPreviewImages:
        """Generate the four previews together; a single failure drops all of them."""

        prompt_map = prompts.aging_prompts(
            age_range=age_range,
            primary_concern=primary_concern,
            fitzpatrick_type=fitzpatrick_type,
        )
        keys = list(prompt_map)
        # Every call settles before returning, so none outlives the client.
        responses = await asyncio.gather(
            *(
                asyncio.wait_for(
                    client.images.generate(
                        model=self._settings.openai_image_model,
                        prompt=prompt_map[key],
                        size=self._settings.openai_image_size,
                    ),
                    timeout=self._settings.openai_request_timeout,
                )
                for key in keys
            ),
            return_exceptions=True,
        )
        failures = [item for item in responses if isinstance(item, BaseException)]
        if failures:
            logger.error(
                "Aging preview generation failed",
                extra={"request_id": request_id, "failed": len(failures)},
                exc_info=failures[0],
            )
            return AgingPreviewImages()

        urls: dict[str, str | None] = {}
        for key, response in zip(keys, responses):
            urls[key] = _image_url(response)
        return AgingPreviewImages(**urls)

    def ensure_credentials(self) -> None:
        if not self._settings.openai_api_key:
            raise ReportConfigurationError(
                "Missing OpenAI credentials. Configure OPENAI_API_KEY."
            )

    async def _write_letter(
        self,
        client: AsyncOpenAI,
        *,
        submission: SkinReportRequest,
        image_analysis: Dict[str, Any] | None,
        request_id: str,
    ) -> ParsedLetter:
        context = build_analysis_context(
            first_name=submission.first_name,
            age_range=submission.age_range,
            primary_concern=submission.primary_concern,
            visitor_question=submission.visitor_question,
            image_analysis=image_analysis,
        )
        system_prompt = prompts.letter_system_prompt(submission.first_name)
        user_prompt = prompts.letter_user_prompt(
            first_name=submission.first_name,
            age_range=submission.age_range,
            primary_concern=submission.primary_concern,
            visitor_question=submission.visitor_question,
            context_json=json.dumps(context, indent=2),
            analysis_json=json.dumps(image_analysis or {}, indent=2),
        )

        attempts = max(1, self._settings.report_letter_attempts)
        full_text = ""
        for attempt in range(1, attempts + 1):
            response = await self.execute_with_retries(
                lambda attempt=attempt: client.chat.completions.create(
                    model=self._settings.openai_text_model,
                    temperature=0.55 if attempt == 1 else 0.4,
                    max_tokens=2100,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                ),
                operation="letter_generation",
                request_id=request_id,
            )
            full_text = (response.choices[0].message.content if response.choices else None) or ""
            if letter_passes_checks(full_text):
                break
            logger.warning(
                "Report validation failed, retrying",
                extra={"request_id": request_id, "attempt": attempt},
            )

        if not full_text.strip():
            raise ReportServiceError("OpenAI returned an empty report")
        return parse_letter(full_text)

    async def _send_report_emails(
        self,
        submission: SkinReportRequest,
        letter: ParsedLetter,
        aging_images: AgingPreviewImages,
        *,
        request_id: str,
    ) -> None:
        letter_html = email_templates.letter_body(letter.report, aging_images)
        clinic_email = self._settings.resend_clinic_email
        visitor_html = email_templates.report_visitor_email(
            photo_url=submission.photo_data_url,
            fitzpatrick_type=letter.fitzpatrick_type,
            fitzpatrick_summary=letter.fitzpatrick_summary,
            letter_html=letter_html,
            clinic_email=clinic_email,
        )
        clinic_html = email_templates.report_clinic_email(
            first_name=submission.first_name,
            email=submission.email,
            age_range=submission.age_range,
            primary_concern=submission.primary_concern,
            photo_url=submission.photo_data_url,
            fitzpatrick_type=letter.fitzpatrick_type,
            fitzpatrick_summary=letter.fitzpatrick_summary,
            letter_html=letter_html,
        )
        visitor_result, clinic_result = await asyncio.gather(
            self._mailer.send(
                to=submission.email,
                subject="Your Dr. Lazuk Virtual Skin Analysis Report",
                html=visitor_html,
            ),
            self._mailer.send(
                to=clinic_email,
                subject="New Skincare Analysis Guest",
                html=clinic_html,
            ),
        )
        if not (visitor_result.ok and clinic_result.ok):
            logger.warning(
                "Report email delivery incomplete",
                extra={
                    "request_id": request_id,
                    "visitor_sent": visitor_result.ok,
                    "clinic_sent": clinic_result.ok,
                },
            )

    async def execute_with_retries(
        self,
        task: Callable[[], Awaitable[T]],
        *,
        operation: str,
        request_id: str,
    ) -> T:
        attempts = self._settings.openai_retry_attempts
        backoff = self._settings.openai_retry_backoff_seconds
        last_error: Exception | None = None

        for attempt in range(attempts + 1):
            try:
                return await asyncio.wait_for(
                    task(), timeout=self._settings.openai_request_timeout
                )
            except Exception as exc:
                last_error = exc
                if attempt == attempts:
                    break

                wait_seconds = backoff * (attempt + 1)
                logger.warning(
                    "OpenAI %s attempt %s failed, retrying",
                    operation,
                    attempt + 1,
                    extra={
                        "request_id": request_id,
                        "operation": operation,
                        "retry_after_s": wait_seconds,
                    },
                    exc_info=exc,
                )
                if wait_seconds > 0:
                    await asyncio.sleep(wait_seconds)

        raise ReportServiceError(
            f"OpenAI {operation} failed (request_id={request_id})"
        ) from last_error


def _image_url(response: Any) -> str | None:
    data = getattr(response, "data", None) or []
    if not data:
        return None
    first = data[0]
    if getattr(first, "url", None):
        return first.url
    b64 = getattr(first, "b64_json", None)
    if b64:
        return f"data:image/png;base64,{b64}"
    return None
